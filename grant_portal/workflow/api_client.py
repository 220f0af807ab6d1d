"""
HTTP client for the consent form endpoints of the portal API.

Every call needs a bearer token from the signed-in session. Calls made
without one fail with Unauthenticated before anything is sent.
"""
import logging
import mimetypes
import re
from typing import Any, Optional
import httpx
from grant_portal.schemas.consent import ConsentFields
from grant_portal.workflow.errors import Unauthenticated, TemplateLoadFailed, FillFailed, SubmissionFailed
from grant_portal.workflow.handles import HandleRegistry, TransientHandle

logger = logging.getLogger(__name__)

FILLED_PDF_FILENAME = "RSS_Application_Filled.pdf"
_FILENAME_RE = re.compile(r'filename="?([^";]+)"?')


def _error_detail(response: httpx.Response) -> str:
    try:
        detail = response.json().get("detail")
    except (ValueError, AttributeError):
        detail = None
    return str(detail) if detail else f"HTTP {response.status_code}"


def _download_filename(response: httpx.Response, stem: str) -> str:
    """Filename from Content-Disposition, else the stem plus the media type's extension."""
    match = _FILENAME_RE.search(response.headers.get("content-disposition", ""))
    if match:
        return match.group(1).strip()
    media_type = response.headers.get("content-type", "application/pdf").split(";")[0].strip()
    return f"{stem}{mimetypes.guess_extension(media_type) or ''}"


class PortalClient:
    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        handles: Optional[HandleRegistry] = None,
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.client = http_client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)
        self.handles = handles or HandleRegistry()

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "PortalClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _auth_headers(self) -> dict[str, str]:
        if not self.token:
            raise Unauthenticated("Not authenticated")
        return {"Authorization": f"Bearer {self.token}"}

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    @staticmethod
    def template_url(template_id: str) -> str:
        return f"/api/download-template/{template_id}"

    async def download_template(self, template_id: str) -> TransientHandle:
        headers = self._auth_headers()
        try:
            response = await self.client.get(self._url(self.template_url(template_id)), headers=headers)
        except httpx.HTTPError as e:
            raise TemplateLoadFailed(f"Failed to load template: {e}") from e
        if response.status_code != 200:
            raise TemplateLoadFailed(f"Failed to load template: {_error_detail(response)}")

        return self.handles.create(
            response.content,
            response.headers.get("content-type", "application/pdf"),
            filename=_download_filename(response, template_id),
        )

    async def fill_consent_pdf(self, fields: ConsentFields, signature: Optional[str] = None) -> TransientHandle:
        """
        Request the filled consent PDF.

        The signature is left out of the request when empty so a preview can
        be generated before signing. Each call returns a new handle.
        """
        headers = self._auth_headers()
        payload = fields.to_payload()
        if signature:
            payload["signature"] = signature

        try:
            response = await self.client.post(self._url("/api/fill-consent-pdf"), json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise FillFailed(f"Failed to fill PDF: {e}") from e
        if not response.is_success:
            logger.warning(f"Fill request rejected: {response.status_code}")
            raise FillFailed(f"Failed to fill PDF: {_error_detail(response)}")

        return self.handles.create(response.content, "application/pdf", filename=FILLED_PDF_FILENAME)

    async def submit_signature(self, application_id: int, fields: ConsentFields, signature: str) -> dict[str, Any]:
        """Persist the signed consent form. Not retried."""
        headers = self._auth_headers()
        payload = {"signature": signature, **fields.to_payload()}

        try:
            response = await self.client.post(
                self._url(f"/api/digital-signature/{application_id}"),
                json=payload,
                headers=headers,
            )
        except httpx.HTTPError as e:
            raise SubmissionFailed(f"Failed to save signature: {e}") from e
        if not response.is_success:
            raise SubmissionFailed(f"Failed to save signature: {_error_detail(response)}")

        try:
            return response.json()
        except ValueError:
            return {}
