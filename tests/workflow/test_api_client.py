import httpx
import pytest

from grant_portal.schemas.consent import ConsentFields
from grant_portal.workflow.api_client import PortalClient
from grant_portal.workflow.cache import QueryCache
from grant_portal.workflow.errors import FillFailed, SubmissionFailed, TemplateLoadFailed, Unauthenticated
from grant_portal.workflow.handles import HandleRegistry, HandleReleasedError

pytestmark = pytest.mark.anyio

FIELDS = ConsentFields(name="Jane Doe", address="1 Farm Lane", farmCode="FC-001", email="jane@example.com")


def client_for(handler, token="session-token") -> PortalClient:
    return PortalClient(
        "http://portal.test",
        token=token,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


async def test_transport_error_becomes_fill_failed():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = client_for(handler)
    with pytest.raises(FillFailed):
        await client.fill_consent_pdf(FIELDS)
    assert client.handles.live == []
    await client.aclose()


async def test_rejected_submission_raises_with_server_detail():
    def handler(request):
        return httpx.Response(403, json={"detail": "Unauthorized"})

    client = client_for(handler)
    with pytest.raises(SubmissionFailed, match="Unauthorized"):
        await client.submit_signature(7, FIELDS, "data:image/png;base64,AAAA")
    await client.aclose()


async def test_template_errors_raise_template_load_failed():
    def handler(request):
        return httpx.Response(500, text="boom")

    client = client_for(handler)
    with pytest.raises(TemplateLoadFailed, match="HTTP 500"):
        await client.download_template("rss-application")
    await client.aclose()


async def test_every_call_requires_a_token():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200)

    client = client_for(handler, token=None)
    with pytest.raises(Unauthenticated):
        await client.download_template("rss-application")
    with pytest.raises(Unauthenticated):
        await client.fill_consent_pdf(FIELDS)
    with pytest.raises(Unauthenticated):
        await client.submit_signature(7, FIELDS, "data:image/png;base64,AAAA")
    assert requests == []
    await client.aclose()


def test_released_handle_drops_content():
    registry = HandleRegistry()
    handle = registry.create(b"%PDF", "application/pdf")
    assert handle.url.startswith("blob:")
    assert registry.live == [handle]

    handle.release()
    handle.release()

    assert handle.released
    assert registry.live == []
    with pytest.raises(HandleReleasedError):
        handle.content


def test_invalidate_marks_prefixed_entries_stale():
    cache = QueryCache()
    cache.set(("/api/grant-applications", 7), {"id": 7})
    cache.set(("/api/grant-applications", 8), {"id": 8})

    cache.invalidate(("/api/grant-applications", 7))

    assert cache.is_stale(("/api/grant-applications", 7))
    assert not cache.is_stale(("/api/grant-applications", 8))
    assert cache.get(("/api/grant-applications", 7)) == {"id": 7}


async def test_consecutive_fills_return_independent_handles():
    def handler(request):
        return httpx.Response(200, content=b"%PDF-1.4 filled")

    client = client_for(handler)
    first = await client.fill_consent_pdf(FIELDS)
    second = await client.fill_consent_pdf(FIELDS, "data:image/png;base64,AAAA")

    first.release()

    assert first.released
    assert second.content == b"%PDF-1.4 filled"
    assert client.handles.live == [second]
    await client.aclose()


async def test_template_handle_is_named_from_response():
    def handler(request):
        if request.url.path.endswith("/land-declaration"):
            return httpx.Response(
                200,
                content=b"Field Name,OS Grid Reference\n",
                headers={
                    "content-type": "text/csv; charset=utf-8",
                    "content-disposition": 'attachment; filename="land-declaration-template.csv"',
                },
            )
        return httpx.Response(200, content=b"%PDF-1.4", headers={"content-type": "application/pdf"})

    client = client_for(handler)
    csv_handle = await client.download_template("land-declaration")
    pdf_handle = await client.download_template("rss-application")

    assert csv_handle.filename == "land-declaration-template.csv"
    assert csv_handle.media_type.startswith("text/csv")
    assert pdf_handle.filename == "rss-application.pdf"
    await client.aclose()
