"""
Consent form workflow.

Drives one consent form from editing to completion:

- open() loads the blank template for display
- set_field() and the signature strokes edit the form
- generate_preview() fills the template with the current fields and
  optional signature
- complete() persists fields and signature, then invalidates the cached
  application view
- close() releases every handle; responses arriving afterwards are dropped,
  except that a completed submission still invalidates the cache

Editing after a preview discards that preview, so the document on screen
always matches the fields and signature that would be submitted.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional
from pydantic import ValidationError as PydanticValidationError
from grant_portal.schemas.consent import ConsentFields, field_errors_from
from grant_portal.services.pdf_service import pdf_service, PDFServiceError
from grant_portal.workflow.api_client import PortalClient
from grant_portal.workflow.cache import QueryCache
from grant_portal.workflow.canvas import SignatureCanvas, Point
from grant_portal.workflow.errors import (
    ValidationError,
    Unauthenticated,
    TemplateLoadFailed,
    FillFailed,
    SubmissionFailed,
    InvalidTransition,
    ActionPending,
)
from grant_portal.workflow.handles import TransientHandle

logger = logging.getLogger(__name__)

CONSENT_TEMPLATE_ID = "rss-application"
APPLICATIONS_QUERY = "/api/grant-applications"
FIELD_NAMES = ("name", "address", "farmCode", "email")
SIGNATURE_REQUIRED = "Please provide your signature before completing."


class ConsentState(str, Enum):
    EDITING = "editing"
    PREVIEWED = "previewed"
    COMPLETED = "completed"
    CLOSED = "closed"


class ViewerState(str, Enum):
    LOADING = "loading"
    ERROR = "error"
    READY = "ready"


@dataclass(frozen=True)
class Notification:
    title: str
    description: str
    variant: str = "default"


class TemplateViewer:
    """Holds the blank template shown next to the form."""

    def __init__(self, client: PortalClient, template_id: str = CONSENT_TEMPLATE_ID):
        self.client = client
        self.template_id = template_id
        self.state: Optional[ViewerState] = None
        self.handle: Optional[TransientHandle] = None
        self.page_count = 0
        self.error: Optional[str] = None
        self.fallback_url: Optional[str] = None
        self._load_seq = 0
        self._released = False

    async def load(self, template_id: Optional[str] = None) -> TransientHandle:
        """
        Fetch the template and count its pages.

        On failure the viewer is left in ERROR with fallback_url pointing at
        the download endpoint so the document can still be opened directly.

        Raises:
            TemplateLoadFailed: If the template could not be fetched or parsed
        """
        if template_id is not None:
            self.template_id = template_id
        self._released = False
        self._load_seq += 1
        seq = self._load_seq

        self._drop_handle()
        self.state = ViewerState.LOADING
        self.page_count = 0
        self.error = None
        self.fallback_url = None

        try:
            handle = await self.client.download_template(self.template_id)
        except (TemplateLoadFailed, Unauthenticated) as e:
            if seq == self._load_seq and not self._released:
                self._fail(str(e))
            raise TemplateLoadFailed(str(e)) from e

        if seq != self._load_seq or self._released:
            # Superseded by a newer load or released while in flight
            handle.release()
            return handle

        try:
            page_count = pdf_service.page_count(handle.content)
        except PDFServiceError as e:
            handle.release()
            self._fail(f"Template is not a readable PDF: {e}")
            raise TemplateLoadFailed(self.error) from e

        self.handle = handle
        self.page_count = page_count
        self.state = ViewerState.READY
        return handle

    def _fail(self, message: str) -> None:
        self.state = ViewerState.ERROR
        self.error = message
        self.fallback_url = self.client.template_url(self.template_id)
        logger.warning(f"Template {self.template_id} unavailable: {message}")

    def _drop_handle(self) -> None:
        if self.handle is not None:
            self.handle.release()
            self.handle = None

    def release(self) -> None:
        self._released = True
        self._drop_handle()


class ConsentWorkflow:
    def __init__(
        self,
        client: PortalClient,
        application_id: int,
        canvas: Optional[SignatureCanvas] = None,
        cache: Optional[QueryCache] = None,
        template_id: str = CONSENT_TEMPLATE_ID,
    ):
        self.client = client
        self.application_id = application_id
        self.canvas = canvas or SignatureCanvas()
        self.cache = cache or QueryCache()
        self.viewer = TemplateViewer(client, template_id)

        self.fields: dict[str, str] = {name: "" for name in FIELD_NAMES}
        self.field_errors: dict[str, str] = {}
        self.state = ConsentState.EDITING
        self.preview: Optional[TransientHandle] = None
        self.preview_pending = False
        self.complete_pending = False
        self.notifications: list[Notification] = []
        self.submission: Optional[dict[str, Any]] = None
        self._revision = 0

    @property
    def closed(self) -> bool:
        return self.state == ConsentState.CLOSED

    @property
    def signature(self) -> str:
        """Current signature image, empty when nothing has been drawn."""
        if not self.canvas.has_ink:
            return ""
        return self.canvas.image_data

    def notify(self, title: str, description: str, variant: str = "default") -> None:
        self.notifications.append(Notification(title, description, variant))

    def _ensure_editable(self) -> None:
        if self.state in (ConsentState.COMPLETED, ConsentState.CLOSED):
            raise InvalidTransition(f"Consent form is {self.state.value}")

    def _mark_dirty(self) -> None:
        self._revision += 1
        if self.state == ConsentState.PREVIEWED:
            self.state = ConsentState.EDITING
            self._drop_preview()

    def _drop_preview(self) -> None:
        if self.preview is not None:
            self.preview.release()
            self.preview = None

    async def open(self) -> ViewerState:
        """Load the template for display. Failures leave the viewer in ERROR."""
        self._ensure_editable()
        try:
            await self.viewer.load()
        except TemplateLoadFailed:
            if not self.closed:
                self.notify(
                    "Preview unavailable",
                    "Unable to load PDF preview. The template will be filled with your details "
                    "when you generate the PDF.",
                    "destructive",
                )
        return self.viewer.state

    # Editing

    def set_field(self, name: str, value: str) -> None:
        self._ensure_editable()
        if name not in self.fields:
            raise KeyError(f"Unknown consent field: {name}")
        self.fields[name] = value
        self._mark_dirty()

    def begin_stroke(self, point: Point) -> None:
        self._ensure_editable()
        self.canvas.begin_stroke(point)
        self._mark_dirty()

    def extend_stroke(self, point: Point) -> None:
        self._ensure_editable()
        if self.canvas.drawing:
            self.canvas.extend_stroke(point)
            self._mark_dirty()

    def end_stroke(self) -> str:
        self._ensure_editable()
        return self.canvas.end_stroke()

    def pointer_leave(self) -> Optional[str]:
        self._ensure_editable()
        return self.canvas.pointer_leave()

    def clear_signature(self) -> None:
        self._ensure_editable()
        had_ink = self.canvas.has_ink
        self.canvas.clear()
        if had_ink:
            self._mark_dirty()

    def validate(self) -> ConsentFields:
        """
        Check the fields without touching the network.

        Raises:
            ValidationError: With one message per invalid field
        """
        try:
            fields = ConsentFields.model_validate(self.fields)
        except PydanticValidationError as e:
            self.field_errors = field_errors_from(e)
            raise ValidationError(self.field_errors) from e
        self.field_errors = {}
        return fields

    # Network actions

    async def generate_preview(self) -> Optional[TransientHandle]:
        """
        Fill the template with the current fields and signature.

        Returns the preview handle, or None when the response arrived after
        close() or after the form was edited again.
        """
        self._ensure_editable()
        if self.preview_pending:
            raise ActionPending("PDF generation already in progress")
        fields = self.validate()
        signature = self.signature or None
        revision = self._revision

        self.preview_pending = True
        try:
            handle = await self.client.fill_consent_pdf(fields, signature)
        except (FillFailed, Unauthenticated) as e:
            if self.state in (ConsentState.COMPLETED, ConsentState.CLOSED):
                return None
            logger.warning(f"Preview failed for application {self.application_id}: {e}")
            self.notify("Error", "Failed to generate PDF. Please try again.", "destructive")
            raise
        finally:
            self.preview_pending = False

        if self.state in (ConsentState.COMPLETED, ConsentState.CLOSED) or revision != self._revision:
            handle.release()
            return None

        superseded = self.preview
        self.preview = handle
        if superseded is not None:
            superseded.release()
        self.state = ConsentState.PREVIEWED
        self.notify("PDF Generated", "Your consent form has been filled. Review and download below.")
        return handle

    async def complete(self) -> dict[str, Any]:
        """
        Persist the consent form. Only allowed once a preview exists.

        Raises:
            InvalidTransition: If no current preview exists
            ActionPending: If a completion is already in flight
            ValidationError: If fields are invalid or there is no signature
            SubmissionFailed: If the server rejected or never received the request
        """
        if self.state != ConsentState.PREVIEWED:
            raise InvalidTransition(f"Cannot complete consent form while {self.state.value}")
        if self.complete_pending:
            raise ActionPending("Consent form submission already in progress")
        fields = self.validate()
        signature = self.signature
        if not signature:
            self.field_errors = {"signature": SIGNATURE_REQUIRED}
            self.notify("Signature Required", SIGNATURE_REQUIRED, "destructive")
            raise ValidationError(self.field_errors)

        self.complete_pending = True
        try:
            result = await self.client.submit_signature(self.application_id, fields, signature)
        except (SubmissionFailed, Unauthenticated) as e:
            if self.closed:
                return {}
            logger.warning(f"Consent submission failed for application {self.application_id}: {e}")
            self.notify("Error", "Failed to save consent form. Please try again.", "destructive")
            raise
        finally:
            self.complete_pending = False

        # The record is saved even if the form was closed meanwhile
        self.cache.invalidate((APPLICATIONS_QUERY, self.application_id))
        if self.closed:
            return result

        self.submission = result
        self.notify("Success", "Consent form completed successfully.")
        self._release_handles()
        self.state = ConsentState.COMPLETED
        logger.info(f"Consent form completed for application {self.application_id}")
        return result

    def save_preview(self, directory: str | Path) -> Path:
        """Write the current preview to directory under its download filename."""
        if self.preview is None:
            raise InvalidTransition("No preview to download")
        target = Path(directory) / (self.preview.filename or "consent.pdf")
        target.write_bytes(self.preview.content)
        return target

    def _release_handles(self) -> None:
        self.viewer.release()
        self._drop_preview()

    def close(self) -> None:
        """Release handles and stop accepting responses. Safe to call twice."""
        self._release_handles()
        if self.state != ConsentState.COMPLETED:
            self.state = ConsentState.CLOSED
