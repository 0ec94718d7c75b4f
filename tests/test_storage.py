import httpx
import pytest

from salik_admin.core.errors import UploadError
from salik_admin.storage import uploads
from salik_admin.storage.uploads import ObjectStorage, download_url, object_name
from salik_admin.utils.http import get_client


def test_object_name_uses_original_filename():
    assert object_name("Abstract/", "thesis final.pdf") == "Abstract/thesis final.pdf"
    assert object_name("PDFs/", "/home/admin/docs/x.pdf") == "PDFs/x.pdf"


def test_download_url_quotes_the_whole_name():
    assert download_url("bkt", "Abstract/thesis final.pdf", "t0k") == (
        "https://firebasestorage.googleapis.com/v0/b/bkt/o/Abstract%2Fthesis%20final.pdf?alt=media&token=t0k"
    )


async def test_upload_bytes_streams_and_reports_progress(storage, backend, monkeypatch):
    monkeypatch.setattr(uploads, "CHUNK_SIZE", 4)
    progress: list[tuple[int, int]] = []

    url = await storage.upload_bytes("Abstract/p.pdf", b"0123456789", on_progress=lambda s, t: progress.append((s, t)))

    assert url.endswith("/o/Abstract%2Fp.pdf?alt=media&token=tok-p")
    request = backend.storage_calls()[0]
    assert request.method == "POST"
    assert request.url.path == "/v0/b/test-bucket/o"
    assert request.url.params["uploadType"] == "media"
    assert request.content == b"0123456789"
    assert request.headers["Content-Type"] == "application/pdf"
    assert progress == [(0, 10), (4, 10), (8, 10), (10, 10)]


async def test_upload_rejected_raises_upload_error(storage, backend):
    backend.upload_failures.add("Abstract/p.pdf")
    with pytest.raises(UploadError) as exc:
        await storage.upload_bytes("Abstract/p.pdf", b"data")
    assert "HTTP 403" in exc.value.message


async def test_upload_without_token_raises():
    transport = httpx.MockTransport(lambda r: httpx.Response(200, json={"name": "Abstract/p.pdf"}))
    async with get_client(transport=transport) as client:
        storage = ObjectStorage(bucket="b", client=client, auth_token="")
        with pytest.raises(UploadError, match="no download token"):
            await storage.upload_bytes("Abstract/p.pdf", b"data")


async def test_upload_network_failure_raises():
    def drop(request: httpx.Request) -> httpx.Response:
        raise httpx.WriteError("connection reset", request=request)

    async with get_client(transport=httpx.MockTransport(drop)) as client:
        storage = ObjectStorage(bucket="b", client=client, auth_token="")
        with pytest.raises(UploadError):
            await storage.upload_bytes("Abstract/p.pdf", b"data")


async def test_auth_token_sent_as_bearer(backend):
    async with get_client(transport=backend.transport()) as client:
        storage = ObjectStorage(bucket="test-bucket", client=client, auth_token="secret")
        await storage.upload_bytes("PDFs/q.pdf", b"x")
    assert backend.storage_calls()[0].headers["Authorization"] == "Bearer secret"


async def test_upload_file_missing_path(storage, tmp_path, backend):
    with pytest.raises(UploadError):
        await storage.upload_file("Abstract/", tmp_path / "missing.pdf")
    assert backend.calls == []
