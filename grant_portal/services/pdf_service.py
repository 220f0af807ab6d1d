"""
PDF operations service for the consent form.

Handles:
- Decoding the signature data URL drawn on the signature canvas
- Filling AcroForm text fields of a PDF template
- Overlaying the signature image inside the template's signature field
"""
import base64
import binascii
import io
import logging
from datetime import datetime
from typing import Optional
import pytz
from PIL import Image, UnidentifiedImageError
from PyPDF2 import PdfReader, PdfWriter
from PyPDF2.errors import PdfReadError
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas
from grant_portal.core.config import settings
from grant_portal.schemas.consent import ConsentFields

logger = logging.getLogger(__name__)

# AcroForm field names in the RSS application template
FIELD_FULL_NAME = "Full Name"
FIELD_ADDRESS = "Address"
FIELD_FARM_CODE = "Farm Code"
FIELD_EMAIL = "Email"
FIELD_DATE = "Date"
FIELD_SIGNED_ON_BEHALF = "Signed on behalf of"
FIELD_SIGNATURE = "Signed"

SIGNATURE_INSET = 2  # points between the field border and the image
SIGNATURE_CROP_PADDING = 10  # pixels of blank canvas kept around the ink


class PDFServiceError(Exception):
    """Base exception for PDF service errors"""
    pass


class SignatureDecodeError(PDFServiceError):
    """Signature data is not a decodable image"""
    pass


class PDFService:
    """Service for PDF operations"""

    @staticmethod
    def decode_signature(signature_data: str) -> Image.Image:
        """
        Decode base64 signature data to PIL Image.

        Args:
            signature_data: Base64 encoded image string (with or without data URI prefix)

        Returns:
            PIL Image object in RGBA mode

        Raises:
            SignatureDecodeError: If signature data is invalid
        """
        if not signature_data:
            raise SignatureDecodeError("Signature data is empty")

        # Remove data URI prefix if present (e.g., "data:image/png;base64,")
        if "base64," in signature_data:
            signature_data = signature_data.split("base64,", 1)[1]

        try:
            signature_bytes = base64.b64decode(signature_data, validate=True)
            signature_image = Image.open(io.BytesIO(signature_bytes))
            signature_image.load()
        except (binascii.Error, ValueError, UnidentifiedImageError, OSError) as e:
            raise SignatureDecodeError(f"Failed to decode signature data: {e}") from e

        return signature_image.convert("RGBA")

    @staticmethod
    def crop_to_ink(signature_image: Image.Image, padding: int = SIGNATURE_CROP_PADDING) -> Image.Image:
        """Trim blank canvas around the strokes. A blank image is returned unchanged."""
        bbox = signature_image.getbbox()
        if not bbox:
            return signature_image
        width, height = signature_image.size
        return signature_image.crop((
            max(0, bbox[0] - padding),
            max(0, bbox[1] - padding),
            min(width, bbox[2] + padding),
            min(height, bbox[3] + padding),
        ))

    @staticmethod
    def fit_into_rect(
        rect: tuple[float, float, float, float],
        image_size: tuple[int, int],
        inset: float = SIGNATURE_INSET,
    ) -> tuple[float, float, float, float]:
        """
        Fit an image into a field rectangle, keeping its aspect ratio.

        Args:
            rect: Field rectangle as (x1, y1, x2, y2) in PDF points
            image_size: (width, height) of the image in pixels
            inset: Margin kept on every side of the rectangle

        Returns:
            (x, y, width, height) of the drawn image, centred in the rectangle
        """
        x1, x2 = sorted((rect[0], rect[2]))
        y1, y2 = sorted((rect[1], rect[3]))
        rect_width = x2 - x1
        rect_height = y2 - y1

        max_width = max(rect_width - 2 * inset, 0)
        max_height = max(rect_height - 2 * inset, 0)
        aspect_ratio = image_size[0] / image_size[1]

        draw_width = max_width
        draw_height = max_width / aspect_ratio
        if draw_height > max_height:
            draw_height = max_height
            draw_width = max_height * aspect_ratio

        x = x1 + (rect_width - draw_width) / 2
        y = y1 + (rect_height - draw_height) / 2
        return x, y, draw_width, draw_height

    @staticmethod
    def create_signature_overlay(signature_image: Image.Image, page_width: float, page_height: float,
                                 box: tuple[float, float, float, float]) -> bytes:
        """
        Create a single-page PDF overlay with the signature drawn at box.

        Args:
            signature_image: PIL Image of the signature
            page_width: Width of the PDF page
            page_height: Height of the PDF page
            box: (x, y, width, height) where the image is drawn

        Returns:
            PDF bytes containing the signature overlay
        """
        packet = io.BytesIO()
        can = canvas.Canvas(packet, pagesize=(page_width, page_height))
        x, y, width, height = box
        can.drawImage(ImageReader(signature_image), x, y, width=width, height=height, mask="auto")
        can.save()
        packet.seek(0)
        return packet.getvalue()

    @staticmethod
    def find_field_rect(page, field_name: str) -> Optional[tuple[float, float, float, float]]:
        """Return the widget rectangle of field_name on page, or None if the page has no such widget."""
        annots = page.get("/Annots")
        if annots is None:
            return None
        for annot_ref in annots.get_object():
            annot = annot_ref.get_object()
            if annot.get("/T") == field_name and "/Rect" in annot:
                return tuple(float(v) for v in annot["/Rect"])
        return None

    @staticmethod
    def fill_form(template_bytes: bytes, values: dict[str, str],
                  signature_image: Optional[Image.Image] = None,
                  signature_field: str = FIELD_SIGNATURE) -> bytes:
        """
        Fill text fields of a PDF form and optionally draw a signature.

        Args:
            template_bytes: PDF template containing an AcroForm
            values: Field name to value; unknown field names are ignored
            signature_image: Optional signature drawn inside signature_field
            signature_field: Name of the text field that marks the signature box

        Returns:
            Filled PDF bytes

        Raises:
            PDFServiceError: If the template cannot be read or written
        """
        try:
            reader = PdfReader(io.BytesIO(template_bytes))
            if "/AcroForm" not in reader.trailer["/Root"]:
                raise PDFServiceError("Template has no form fields")

            writer = PdfWriter()
            writer.clone_reader_document_root(reader)

            signature_placed = False
            for page in writer.pages:
                if "/Annots" in page:
                    writer.update_page_form_field_values(page, values)

                if signature_image is None or signature_placed:
                    continue
                rect = PDFService.find_field_rect(page, signature_field)
                if rect is None:
                    continue

                box = PDFService.fit_into_rect(rect, signature_image.size)
                overlay_bytes = PDFService.create_signature_overlay(
                    signature_image,
                    float(page.mediabox.width),
                    float(page.mediabox.height),
                    box,
                )
                page.merge_page(PdfReader(io.BytesIO(overlay_bytes)).pages[0])
                signature_placed = True

            if signature_image is not None and not signature_placed:
                logger.warning(f"Signature field {signature_field!r} not found in template; signature not drawn")

            output = io.BytesIO()
            writer.write(output)
            return output.getvalue()
        except PDFServiceError:
            raise
        except (PdfReadError, KeyError, ValueError) as e:
            raise PDFServiceError(f"Failed to fill PDF form: {e}") from e

    def fill_consent_form(self, template_bytes: bytes, fields: ConsentFields,
                          signature_data: Optional[str] = None,
                          signed_on: Optional[datetime] = None) -> bytes:
        """
        Fill the consent declaration of the RSS application template.

        The signature is optional so applicants can preview the document
        before signing.

        Raises:
            SignatureDecodeError: If signature_data is present but not an image
            PDFServiceError: If filling the template fails
        """
        signature_image = None
        if signature_data:
            signature_image = self.crop_to_ink(self.decode_signature(signature_data))

        if signed_on is None:
            signed_on = datetime.now(pytz.timezone(settings.TIMEZONE))

        values = {
            FIELD_FULL_NAME: fields.name,
            FIELD_ADDRESS: fields.address,
            FIELD_FARM_CODE: fields.farm_code,
            FIELD_EMAIL: fields.email,
            FIELD_DATE: signed_on.strftime("%d/%m/%Y"),
            FIELD_SIGNED_ON_BEHALF: fields.name,
        }
        return self.fill_form(template_bytes, values, signature_image)

    @staticmethod
    def page_count(pdf_bytes: bytes) -> int:
        try:
            return len(PdfReader(io.BytesIO(pdf_bytes)).pages)
        except (PdfReadError, KeyError, ValueError) as e:
            raise PDFServiceError(f"Failed to read PDF: {e}") from e


# Create singleton instance
pdf_service = PDFService()
