"""Thin async client for the Jira Cloud REST API (v3)."""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass
from typing import Any

import httpx

from jirabridge.core.errors import ApiError
from jirabridge.utils.logging import get_logger

log = get_logger(__name__)

API_ROOT = "/rest/api/3"


@dataclass(frozen=True)
class Credentials:
    base_url: str
    email: str
    api_token: str

    @property
    def api_url(self) -> str:
        return self.base_url.rstrip("/") + API_ROOT

    @property
    def authorization(self) -> str:
        token = base64.b64encode(f"{self.email}:{self.api_token}".encode()).decode()
        return f"Basic {token}"


class JiraClient:
    """Issues authenticated JSON requests against a single Jira site.

    Failures are never retried: a non-2xx answer raises ``ApiError`` and
    transport errors from httpx propagate unchanged.
    """

    def __init__(
        self,
        credentials: Credentials,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._credentials = credentials
        self._http = httpx.AsyncClient(
            base_url=credentials.api_url,
            headers={
                "Authorization": credentials.authorization,
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
            transport=transport,
        )

    async def __aenter__(self) -> JiraClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._http.aclose()

    async def request(self, method: str, path: str, body: Any = None) -> Any:
        """Send a request and return the decoded JSON body, or None when empty."""
        content = json.dumps(body) if body is not None else None
        resp = await self._http.request(method, path, content=content)
        log.debug("jira_request", method=method, path=path, status=resp.status_code)

        if not resp.is_success:
            raise ApiError(resp.status_code, resp.text)

        if resp.status_code == 204 or resp.headers.get("content-length") == "0":
            return None
        if not resp.text:
            return None
        return resp.json()

    async def get(self, path: str) -> Any:
        return await self.request("GET", path)

    async def post(self, path: str, body: Any = None) -> Any:
        return await self.request("POST", path, body)

    async def put(self, path: str, body: Any = None) -> Any:
        return await self.request("PUT", path, body)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)
