from pathlib import Path

import pytest

pytestmark = pytest.mark.anyio


async def upload(client, headers, application_id, document_type, filename="fields.csv", content=b"a,b\n1,2\n"):
    return await client.post(
        "/api/documents",
        data={"applicationId": str(application_id), "documentType": document_type},
        files={"file": (filename, content, "text/csv")},
        headers=headers,
    )


async def test_upload_land_declaration(client, applicant, application, auth_headers, storage):
    response = await upload(client, auth_headers(applicant), application.id, "land_declaration")

    assert response.status_code == 201
    document = response.json()["data"]
    assert document["file_name"] == "fields.csv"
    assert document["file_size"] == 8
    stored = Path(document["file_path"])
    assert stored.read_bytes() == b"a,b\n1,2\n"
    assert storage.base_dir.resolve() in stored.resolve().parents

    app_response = await client.get(f"/api/grant-applications/{application.id}", headers=auth_headers(applicant))
    data = app_response.json()["data"]
    assert data["land_declaration_completed"] is True
    assert data["progress_percentage"] == 25
    assert data["status"] == "in_progress"


async def test_list_and_delete_documents(client, applicant, application, auth_headers):
    uploaded = await upload(client, auth_headers(applicant), application.id, "supporting_doc", "deeds.pdf", b"%PDF")
    document = uploaded.json()["data"]

    listed = await client.get(f"/api/documents/{application.id}", headers=auth_headers(applicant))
    assert [d["id"] for d in listed.json()["data"]] == [document["id"]]

    deleted = await client.delete(f"/api/documents/{document['id']}", headers=auth_headers(applicant))
    assert deleted.status_code == 200
    assert not Path(document["file_path"]).exists()

    listed = await client.get(f"/api/documents/{application.id}", headers=auth_headers(applicant))
    assert listed.json()["data"] == []


async def test_upload_rejects_disallowed_extension(client, applicant, application, auth_headers):
    response = await upload(client, auth_headers(applicant), application.id, "other", "run.exe", b"MZ")
    assert response.status_code == 400


async def test_upload_rejects_oversized_file(client, applicant, application, auth_headers):
    content = b"x" * (10 * 1024 * 1024 + 1)
    response = await upload(client, auth_headers(applicant), application.id, "other", "big.csv", content)
    assert response.status_code == 400
    assert "File too large" in response.json()["detail"]


async def test_upload_to_other_users_application_is_forbidden(client, other_applicant, application, auth_headers):
    response = await upload(client, auth_headers(other_applicant), application.id, "supporting_doc")
    assert response.status_code == 403
