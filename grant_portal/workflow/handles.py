"""
Transient handles for binary content held by the workflow.

A handle is the local reference a viewer uses to display a template or a
rendered document. Every handle must be released when no longer shown; the
registry keeps track of what is still live.
"""
import itertools
from typing import Optional

_counter = itertools.count(1)


class HandleReleasedError(RuntimeError):
    pass


class TransientHandle:
    def __init__(self, content: bytes, media_type: str, filename: Optional[str] = None,
                 registry: Optional["HandleRegistry"] = None):
        self.url = f"blob:grant-portal/{next(_counter)}"
        self.media_type = media_type
        self.filename = filename
        self._content: Optional[bytes] = content
        self._registry = registry

    @property
    def released(self) -> bool:
        return self._content is None

    @property
    def content(self) -> bytes:
        if self._content is None:
            raise HandleReleasedError(f"{self.url} has been released")
        return self._content

    def release(self) -> None:
        """Drop the content. Releasing twice is a no-op."""
        if self._content is None:
            return
        self._content = None
        if self._registry is not None:
            self._registry._forget(self)

    def __repr__(self) -> str:
        state = "released" if self.released else f"{len(self._content)} bytes"
        return f"<TransientHandle {self.url} {self.media_type} {state}>"


class HandleRegistry:
    """Creates handles and tracks the ones not yet released."""

    def __init__(self):
        self._live: dict[str, TransientHandle] = {}

    def create(self, content: bytes, media_type: str, filename: Optional[str] = None) -> TransientHandle:
        handle = TransientHandle(content, media_type, filename, registry=self)
        self._live[handle.url] = handle
        return handle

    def _forget(self, handle: TransientHandle) -> None:
        self._live.pop(handle.url, None)

    @property
    def live(self) -> list[TransientHandle]:
        return list(self._live.values())
