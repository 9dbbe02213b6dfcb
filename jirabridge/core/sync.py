"""Credential check run when the adapter is set up or re-synced."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

import httpx

from jirabridge.core.client import Credentials, JiraClient
from jirabridge.core.errors import JiraBridgeError
from jirabridge.utils.logging import get_logger

log = get_logger(__name__)


@dataclass
class SyncResult:
    status: Literal["ready", "failed"]
    signals: dict[str, str | None] = field(default_factory=dict)
    description: str = ""


async def sync(
    credentials: Credentials,
    transport: httpx.AsyncBaseTransport | None = None,
) -> SyncResult:
    """Validate credentials via ``GET /myself`` and collect identity signals."""
    try:
        async with JiraClient(credentials, transport=transport) as client:
            me = await client.get("/myself") or {}
    except (JiraBridgeError, httpx.HTTPError, ValueError) as e:
        log.error("jira_auth_failed", error=str(e), base_url=credentials.base_url)
        return SyncResult(status="failed", description="Authentication error, see logs")

    log.info("jira_auth_ok", account_id=me.get("accountId"))
    return SyncResult(
        status="ready",
        signals={
            "userAccountId": me.get("accountId"),
            "userDisplayName": me.get("displayName"),
            "userEmailAddress": me.get("emailAddress"),
        },
    )
