"""Async client for the library REST API.

Every method maps to one endpoint and one user-facing action. Failures of any
kind (connection, timeout, non-2xx) are raised as ``ApiError`` carrying that
action; nothing is retried here, a retry is always the operator repeating the
command.
"""

from types import TracebackType
from typing import Any
from urllib.parse import quote

import httpx

from ..core.config import get_config
from ..core.errors import ApiError
from ..core.models import ResearchCreate, ResearchRecord, ResearchUpdate, StudentRecord
from ..utils.http import get_client, log_response
from ..utils.log import get_logger

log = get_logger(__name__)


class ApiClient:
    def __init__(
        self,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        config = get_config()
        self.base_url = (base_url or config.api_base_url).rstrip("/")
        self._owns_client = client is None
        self._client = client or get_client(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else config.http_timeout,
        )

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def _request(
        self,
        method: str,
        path: str,
        action: str,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        url = self._url(path)
        try:
            resp = await self._client.request(method, url, json=json)
        except httpx.TimeoutException as e:
            log.error("api_timeout", action=action, method=method, url=url, error=str(e))
            raise ApiError(action, f"request timed out: {e}", url=url) from e
        except httpx.HTTPError as e:
            log.error(
                "api_network_error",
                action=action,
                method=method,
                url=url,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ApiError(action, f"network error: {e}", url=url) from e

        log_response(resp, action=action)
        if not resp.is_success:
            raise ApiError(
                action,
                f"server responded with HTTP {resp.status_code}",
                status_code=resp.status_code,
                url=url,
            )
        return resp

    def _json_list(self, resp: httpx.Response, action: str) -> list[dict[str, Any]]:
        try:
            data = resp.json()
        except ValueError as e:
            log.error("api_json_parse_error", action=action, error=str(e))
            raise ApiError(action, "response is not valid JSON", url=str(resp.request.url)) from e
        if not isinstance(data, list):
            log.error("api_unexpected_payload", action=action, payload_type=type(data).__name__)
            raise ApiError(action, "expected a JSON array", url=str(resp.request.url))
        return data

    # --- research -------------------------------------------------------

    async def list_research(self) -> list[ResearchRecord]:
        action = "fetch research"
        resp = await self._request("GET", "/api/research", action)
        records = [ResearchRecord.model_validate(item) for item in self._json_list(resp, action)]
        log.info("research_fetched", count=len(records))
        return records

    async def create_research_bulk(self, entries: list[ResearchCreate]) -> None:
        body = {"researchList": [e.model_dump() for e in entries]}
        await self._request("POST", "/api/research/bulk", "create research", json=body)
        log.info("research_created", count=len(entries))

    async def update_research(self, record_id: int | str, update: ResearchUpdate) -> None:
        await self._request(
            "PUT", f"/api/research/{record_id}", "update research", json=update.model_dump()
        )
        log.info("research_updated", record_id=record_id)

    async def delete_research(self, record_id: int | str) -> None:
        await self._request("DELETE", f"/api/research/{record_id}", "delete research")
        log.info("research_deleted", record_id=record_id)

    # --- students -------------------------------------------------------

    async def list_students(self) -> list[StudentRecord]:
        action = "fetch students"
        resp = await self._request("GET", "/api/students", action)
        students = [StudentRecord.model_validate(item) for item in self._json_list(resp, action)]
        log.info("students_fetched", count=len(students))
        return students

    async def insert_students(self, students: list[StudentRecord]) -> None:
        body = {"students": [s.model_dump(exclude_none=True) for s in students]}
        await self._request("POST", "/api/insert_students", "insert students", json=body)
        log.info("students_inserted", count=len(students))

    async def delete_student(self, email: str) -> None:
        await self._request("DELETE", f"/api/students/{quote(email, safe='@')}", "delete student")
        log.info("student_deleted", email=email)
