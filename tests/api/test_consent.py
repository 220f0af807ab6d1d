import io

import pytest
from PyPDF2 import PdfReader
from sqlalchemy import select

from grant_portal.models.domain import GrantApplication
from grant_portal.models.enums import ApplicationStatus

pytestmark = pytest.mark.anyio


def image_count(pdf_bytes: bytes) -> int:
    count = 0
    for page in PdfReader(io.BytesIO(pdf_bytes)).pages:
        xobjects = page["/Resources"].get("/XObject")
        if xobjects is None:
            continue
        for xobject in xobjects.get_object().values():
            if xobject.get_object().get("/Subtype") == "/Image":
                count += 1
    return count


async def test_download_consent_template(client, applicant, auth_headers):
    response = await client.get("/api/download-template/rss-application", headers=auth_headers(applicant))

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert "RSS_Application_2026_Template.pdf" in response.headers["content-disposition"]
    fields = PdfReader(io.BytesIO(response.content)).get_fields()
    assert {"Full Name", "Address", "Farm Code", "Email", "Date", "Signed on behalf of", "Signed"} <= set(fields)


async def test_template_is_stable_between_downloads(client, applicant, auth_headers):
    first = await client.get("/api/download-template/rss-application", headers=auth_headers(applicant))
    second = await client.get("/api/download-template/rss-application", headers=auth_headers(applicant))
    assert first.content == second.content


async def test_download_land_declaration_template(client, applicant, auth_headers):
    response = await client.get("/api/download-template/land-declaration", headers=auth_headers(applicant))

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.text.splitlines()[0] == "Field Name,Land Type,Acreage,Crop Type,Irrigation Type"


async def test_unknown_template_is_404(client, applicant, auth_headers):
    response = await client.get("/api/download-template/nope", headers=auth_headers(applicant))
    assert response.status_code == 404


async def test_template_requires_auth(client):
    response = await client.get("/api/download-template/rss-application")
    assert response.status_code == 401


async def test_fill_without_signature(client, applicant, auth_headers, jane_doe):
    response = await client.post("/api/fill-consent-pdf", json=jane_doe, headers=auth_headers(applicant))

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert 'filename="RSS_Application_Filled.pdf"' in response.headers["content-disposition"]

    values = PdfReader(io.BytesIO(response.content)).get_form_text_fields()
    assert values["Full Name"] == "Jane Doe"
    assert values["Address"] == "1 Farm Lane"
    assert values["Farm Code"] == "FC-001"
    assert values["Email"] == "jane@example.com"
    assert values["Signed on behalf of"] == "Jane Doe"
    day, month, year = values["Date"].split("/")
    assert len(day) == 2 and len(month) == 2 and len(year) == 4


async def test_fill_with_signature_draws_image(client, applicant, auth_headers, jane_doe, signature_data_url):
    unsigned = await client.post("/api/fill-consent-pdf", json=jane_doe, headers=auth_headers(applicant))
    signed = await client.post(
        "/api/fill-consent-pdf",
        json={**jane_doe, "signature": signature_data_url},
        headers=auth_headers(applicant),
    )

    assert signed.status_code == 200
    assert image_count(signed.content) == image_count(unsigned.content) + 1


async def test_fill_rejects_undecodable_signature(client, applicant, auth_headers, jane_doe):
    response = await client.post(
        "/api/fill-consent-pdf",
        json={**jane_doe, "signature": "data:image/png;base64,not-an-image"},
        headers=auth_headers(applicant),
    )
    assert response.status_code == 400


async def test_fill_validates_fields(client, applicant, auth_headers, jane_doe):
    response = await client.post(
        "/api/fill-consent-pdf",
        json={**jane_doe, "email": "not-an-email"},
        headers=auth_headers(applicant),
    )
    assert response.status_code == 422


async def test_fill_requires_auth(client, jane_doe):
    response = await client.post("/api/fill-consent-pdf", json=jane_doe)
    assert response.status_code == 401


async def test_digital_signature_completes_consent(
    client, session_factory, applicant, application, auth_headers, jane_doe, signature_data_url
):
    response = await client.post(
        f"/api/digital-signature/{application.id}",
        json={"signature": signature_data_url, **jane_doe},
        headers=auth_headers(applicant),
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["consent_form_completed"] is True
    assert data["progress_percentage"] == 25
    assert data["status"] == ApplicationStatus.IN_PROGRESS.value

    async with session_factory() as session:
        stored = (await session.execute(
            select(GrantApplication).where(GrantApplication.id == application.id)
        )).scalar_one()
    assert stored.digital_signature == signature_data_url
    assert stored.consent_name == "Jane Doe"
    assert stored.consent_address == "1 Farm Lane"
    assert stored.consent_farm_code == "FC-001"
    assert stored.consent_email == "jane@example.com"


async def test_latest_consent_overwrites(client, applicant, application, auth_headers, jane_doe, signature_data_url):
    for name in ("Jane Doe", "Jane Smith"):
        response = await client.post(
            f"/api/digital-signature/{application.id}",
            json={"signature": signature_data_url, **jane_doe, "name": name},
            headers=auth_headers(applicant),
        )
        assert response.status_code == 200

    data = response.json()["data"]
    assert data["consent_name"] == "Jane Smith"
    assert data["progress_percentage"] == 25


async def test_digital_signature_rejects_empty_signature(client, applicant, application, auth_headers, jane_doe):
    response = await client.post(
        f"/api/digital-signature/{application.id}",
        json={"signature": "", **jane_doe},
        headers=auth_headers(applicant),
    )
    assert response.status_code == 422


async def test_digital_signature_rejects_undecodable_signature(
    client, applicant, application, auth_headers, jane_doe
):
    response = await client.post(
        f"/api/digital-signature/{application.id}",
        json={"signature": "data:image/png;base64,AAAA", **jane_doe},
        headers=auth_headers(applicant),
    )
    assert response.status_code == 422


async def test_digital_signature_checks_ownership(
    client, other_applicant, application, auth_headers, jane_doe, signature_data_url
):
    response = await client.post(
        f"/api/digital-signature/{application.id}",
        json={"signature": signature_data_url, **jane_doe},
        headers=auth_headers(other_applicant),
    )
    assert response.status_code == 403


async def test_digital_signature_missing_application(client, applicant, auth_headers, jane_doe, signature_data_url):
    response = await client.post(
        "/api/digital-signature/9999",
        json={"signature": signature_data_url, **jane_doe},
        headers=auth_headers(applicant),
    )
    assert response.status_code == 404
