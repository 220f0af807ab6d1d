import logging
from typing import Any, Hashable

logger = logging.getLogger(__name__)


class QueryCache:
    """
    Cached server views keyed by tuples such as
    ("/api/grant-applications", application_id).

    Invalidation marks an entry stale so the next reader refetches it.
    """

    def __init__(self):
        self._entries: dict[tuple[Hashable, ...], Any] = {}
        self._stale: set[tuple[Hashable, ...]] = set()
        self.invalidations: list[tuple[Hashable, ...]] = []

    def set(self, key: tuple[Hashable, ...], value: Any) -> None:
        self._entries[key] = value
        self._stale.discard(key)

    def get(self, key: tuple[Hashable, ...]) -> Any:
        return self._entries.get(key)

    def is_stale(self, key: tuple[Hashable, ...]) -> bool:
        return key in self._stale or key not in self._entries

    def invalidate(self, key: tuple[Hashable, ...]) -> None:
        """Mark key and every entry it prefixes as stale."""
        self.invalidations.append(key)
        for cached in self._entries:
            if cached[:len(key)] == key:
                self._stale.add(cached)
        self._stale.add(key)
        logger.debug(f"Invalidated query {key!r}")
