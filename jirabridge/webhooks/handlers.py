"""Webhook signature validation, classification and payload normalization."""

from __future__ import annotations

import hashlib
import hmac
from datetime import datetime, timezone
from typing import Any

from jirabridge.webhooks.models import JIRA_EVENTS, EventKind, WebhookEvent

SIGNATURE_HEADER = "X-Hub-Signature"


# ---------------------------------------------------------------------------
# Signature validation
# ---------------------------------------------------------------------------

def compute_signature(body: bytes, secret: str) -> str:
    return "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def validate_signature(body: bytes, signature: str | None, secret: str | None) -> bool:
    """Validate a Jira webhook HMAC-SHA256 signature over the raw body.

    Accepts everything when no secret is configured; otherwise the
    signature must be present and match.
    """
    if not secret:
        return True
    if not signature:
        return False
    return hmac.compare_digest(compute_signature(body, secret).encode(), signature.encode())


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def classify(payload: dict[str, Any]) -> EventKind | None:
    return JIRA_EVENTS.get(payload.get("webhookEvent"))


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

def _dig(data: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _user_ref(user: Any) -> dict[str, Any] | None:
    if not isinstance(user, dict):
        return None
    return {
        "accountId": user.get("accountId"),
        "displayName": user.get("displayName"),
        "emailAddress": user.get("emailAddress"),
    }


def _issue_data(issue: Any, *extra_fields: str) -> dict[str, Any] | None:
    if not isinstance(issue, dict):
        return None
    data = {
        "id": issue.get("id"),
        "key": issue.get("key"),
        "summary": _dig(issue, "fields", "summary"),
        "status": _dig(issue, "fields", "status", "name"),
        "assignee": _dig(issue, "fields", "assignee", "displayName"),
        "priority": _dig(issue, "fields", "priority", "name"),
        "issueType": _dig(issue, "fields", "issuetype", "name"),
        "project": _dig(issue, "fields", "project", "key"),
    }
    for name in extra_fields:
        data[name] = _dig(issue, "fields", name)
    return data


def normalize_issue_created(payload: dict[str, Any]) -> dict[str, Any]:
    return {
        "issue": _issue_data(payload.get("issue"), "created"),
        "createdBy": _user_ref(payload.get("user")),
        "timestamp": _now(),
    }


def normalize_issue_updated(payload: dict[str, Any]) -> dict[str, Any]:
    items = _dig(payload, "changelog", "items")
    changes = [
        {
            "field": item.get("field"),
            "fieldtype": item.get("fieldtype"),
            "from": item.get("fromString"),
            "to": item.get("toString"),
        }
        for item in (items if isinstance(items, list) else [])
        if isinstance(item, dict)
    ]
    return {
        "issue": _issue_data(payload.get("issue"), "updated"),
        "changes": changes,
        "updatedBy": _user_ref(payload.get("user")),
        "timestamp": _now(),
    }


def normalize_comment_created(payload: dict[str, Any]) -> dict[str, Any]:
    comment = payload.get("comment")
    comment_data = None
    if isinstance(comment, dict):
        comment_data = {
            "id": comment.get("id"),
            "body": comment.get("body"),
            "created": comment.get("created"),
            "updated": comment.get("updated"),
            "self": comment.get("self"),
        }
    return {
        "issue": _issue_data(payload.get("issue")),
        "comment": comment_data,
        "createdBy": _user_ref(_dig(payload, "comment", "author")),
        "timestamp": _now(),
    }


def normalize_version_released(payload: dict[str, Any]) -> dict[str, Any]:
    version = payload.get("version")
    version_data = None
    if isinstance(version, dict):
        version_data = {
            key: version.get(key)
            for key in (
                "id", "name", "description", "archived", "released",
                "startDate", "releaseDate", "projectId", "self",
            )
        }
    return {
        "version": version_data,
        "releasedBy": _user_ref(payload.get("user")),
        "timestamp": _now(),
    }


_NORMALIZERS = {
    EventKind.ISSUE_CREATED: normalize_issue_created,
    EventKind.ISSUE_UPDATED: normalize_issue_updated,
    EventKind.COMMENT_CREATED: normalize_comment_created,
    EventKind.VERSION_RELEASED: normalize_version_released,
}


def normalize_event(kind: EventKind, payload: dict[str, Any]) -> WebhookEvent:
    """Normalize a classified Jira payload into a WebhookEvent."""
    return WebhookEvent(
        kind=kind,
        payload=_NORMALIZERS[kind](payload),
        raw_event=payload.get("webhookEvent", ""),
    )
