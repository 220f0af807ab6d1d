"""
Consent template generator using ReportLab.

Builds the unfilled RSS application declaration with AcroForm text fields
named the way the fill service expects. Used when no template file has been
deployed to TEMPLATES_DIR.
"""
import csv
import io
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from grant_portal.services.pdf_service import (
    FIELD_ADDRESS,
    FIELD_DATE,
    FIELD_EMAIL,
    FIELD_FARM_CODE,
    FIELD_FULL_NAME,
    FIELD_SIGNATURE,
    FIELD_SIGNED_ON_BEHALF,
)

TITLE = "Rural Support Scheme - Application 2026"

DECLARATION_PARAGRAPHS = [
    "I declare that the information given in this application is true and complete to the",
    "best of my knowledge. I understand that support may be withheld or recovered if any",
    "information is found to be false or misleading.",
    "",
    "I consent to the Department processing the personal data in this application for the",
    "purpose of administering the Rural Support Scheme, including sharing it with other",
    "public bodies where required by law.",
    "",
    "I agree to notify the Department of any change to the details given in this form.",
]

# (label, field name, height in mm, multiline)
CONSENT_FIELDS = [
    ("Full Name", FIELD_FULL_NAME, 8, False),
    ("Address", FIELD_ADDRESS, 24, True),
    ("Farm Code", FIELD_FARM_CODE, 8, False),
    ("Email", FIELD_EMAIL, 8, False),
    ("Signed on behalf of", FIELD_SIGNED_ON_BEHALF, 8, False),
    ("Date", FIELD_DATE, 8, False),
    ("Signed", FIELD_SIGNATURE, 20, False),
]

LAND_DECLARATION_HEADER = ["Field Name", "Land Type", "Acreage", "Crop Type", "Irrigation Type"]
LAND_DECLARATION_EXAMPLES = [
    ["Example Field 1", "Arable", "10.5", "Wheat", "Sprinkler"],
    ["Example Field 2", "Pasture", "5.2", "Grass", "None"],
]


def _draw_header(c: canvas.Canvas, width: float, height: float, subtitle: str) -> None:
    c.setFont("Helvetica-Bold", 16)
    c.drawCentredString(width / 2, height - 25 * mm, TITLE)
    c.setFont("Helvetica", 11)
    c.drawCentredString(width / 2, height - 32 * mm, subtitle)


def build_consent_template() -> bytes:
    """
    Generate the two page consent template.

    Page 1 carries the declaration text, page 2 the consent fields.
    """
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    width, height = A4

    _draw_header(c, width, height, "Declaration")
    c.setFont("Helvetica", 11)
    y = height - 50 * mm
    for line in DECLARATION_PARAGRAPHS:
        c.drawString(20 * mm, y, line)
        y -= 6 * mm
    c.showPage()

    _draw_header(c, width, height, "Declaration and Consent")
    y = height - 50 * mm
    label_x = 20 * mm
    field_x = 65 * mm
    field_width = width - field_x - 20 * mm
    for label, name, field_height, multiline in CONSENT_FIELDS:
        box_height = field_height * mm
        y -= box_height
        c.setFont("Helvetica-Bold", 10)
        c.drawString(label_x, y + box_height - 5 * mm, label)
        c.acroForm.textfield(
            name=name,
            tooltip=label,
            x=field_x,
            y=y,
            width=field_width,
            height=box_height,
            fontName="Helvetica",
            fontSize=10,
            borderStyle="underlined",
            forceBorder=True,
            fieldFlags="multiline" if multiline else "",
            value="",
        )
        y -= 6 * mm
    c.showPage()
    c.save()
    return buffer.getvalue()


def build_land_declaration_template() -> bytes:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(LAND_DECLARATION_HEADER)
    writer.writerows(LAND_DECLARATION_EXAMPLES)
    return buffer.getvalue().encode("utf-8")
