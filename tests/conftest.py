import json
from collections.abc import AsyncIterator, Callable
from pathlib import Path
from typing import Any

import httpx
import pandas as pd
import pytest

from salik_admin.api.client import ApiClient
from salik_admin.core.config import set_production_mode, set_test_mode
from salik_admin.storage.uploads import ObjectStorage
from salik_admin.utils.http import get_client

API_BASE = "http://api.test"
BUCKET = "test-bucket"

Handler = Callable[[httpx.Request], httpx.Response]


class FakeBackend:
    """Routes requests for the library API and the storage endpoint.

    ``routes`` maps (method, path) to a handler; ``calls`` records every request.
    """

    def __init__(self) -> None:
        self.calls: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], Handler] = {}
        self.students: list[dict[str, Any]] = []
        self.research: list[dict[str, Any]] = []
        self.upload_failures: set[str] = set()
        self.routes[("GET", "/api/students")] = lambda r: httpx.Response(200, json=self.students)
        self.routes[("GET", "/api/research")] = lambda r: httpx.Response(200, json=self.research)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        if request.url.host == "firebasestorage.googleapis.com":
            return self._storage(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            for (method, path), h in self.routes.items():
                if method == request.method and path.endswith("*") and request.url.path.startswith(path[:-1]):
                    handler = h
                    break
        if handler is None:
            return httpx.Response(404, json={"error": "not_found"})
        return handler(request)

    def _storage(self, request: httpx.Request) -> httpx.Response:
        name = request.url.params["name"]
        if name in self.upload_failures:
            return httpx.Response(403, json={"error": {"message": "Permission denied."}})
        return httpx.Response(
            200,
            json={"name": name, "bucket": BUCKET, "size": str(len(request.content)), "downloadTokens": f"tok-{Path(name).stem}"},
        )

    def api_calls(self) -> list[tuple[str, str]]:
        return [
            (r.method, r.url.path)
            for r in self.calls
            if r.url.host != "firebasestorage.googleapis.com"
        ]

    def storage_calls(self) -> list[httpx.Request]:
        return [r for r in self.calls if r.url.host == "firebasestorage.googleapis.com"]

    @staticmethod
    def body(request: httpx.Request) -> Any:
        return json.loads(request.content)


@pytest.fixture(autouse=True)
def test_mode() -> Any:
    set_test_mode()
    yield
    set_production_mode()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
async def api(backend: FakeBackend) -> AsyncIterator[ApiClient]:
    client = get_client(base_url=API_BASE, transport=backend.transport())
    yield ApiClient(base_url=API_BASE, client=client)
    await client.aclose()


@pytest.fixture
async def storage(backend: FakeBackend) -> AsyncIterator[ObjectStorage]:
    client = get_client(transport=backend.transport())
    yield ObjectStorage(bucket=BUCKET, client=client, auth_token="")
    await client.aclose()


@pytest.fixture
def make_workbook(tmp_path: Path) -> Callable[..., Path]:
    def _make(rows: list[dict[str, Any]], name: str = "students.xlsx", columns: list[str] | None = None) -> Path:
        path = tmp_path / name
        df = pd.DataFrame(rows, columns=columns)
        df.to_excel(path, index=False)
        return path

    return _make


@pytest.fixture
def pdf_file(tmp_path: Path) -> Callable[[str], Path]:
    def _make(name: str, content: bytes = b"%PDF-1.4 test") -> Path:
        path = tmp_path / name
        path.write_bytes(content)
        return path

    return _make
