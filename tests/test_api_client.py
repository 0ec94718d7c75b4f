import httpx
import pytest

from salik_admin.api.client import ApiClient
from salik_admin.core.errors import ApiError
from salik_admin.core.models import ResearchUpdate
from salik_admin.utils.http import get_client


async def test_list_students_parses_records(api, backend):
    backend.students = [{"email": "a@mabinicolleges.edu.ph", "first_name": "A", "last_name": "Z"}]
    students = await api.list_students()
    assert students[0].email == "a@mabinicolleges.edu.ph"
    assert backend.calls[0].url == "http://api.test/api/students"


async def test_update_research_sends_full_record(api, backend):
    backend.routes[("PUT", "/api/research/3")] = lambda r: httpx.Response(200, json={})
    await api.update_research(3, ResearchUpdate(title="T", keyword="", year="2020", pdf_url="u"))
    assert backend.body(backend.calls[0]) == {"title": "T", "keyword": "", "year": "2020", "pdf_url": "u"}


async def test_non_json_list_is_an_api_error(api, backend):
    backend.routes[("GET", "/api/research")] = lambda r: httpx.Response(200, json={"error": "oops"})
    with pytest.raises(ApiError, match="expected a JSON array"):
        await api.list_research()


async def test_timeout_is_an_api_error():
    def slow(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    async with get_client(transport=httpx.MockTransport(slow)) as client:
        api = ApiClient(base_url="http://api.test", client=client)
        with pytest.raises(ApiError) as exc:
            await api.list_students()
    assert exc.value.action == "fetch students"
    assert exc.value.status_code is None


async def test_default_base_url_comes_from_config():
    async with ApiClient() as api:
        assert api.base_url == "http://localhost:8000"
