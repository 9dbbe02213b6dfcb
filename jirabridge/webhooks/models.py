"""Webhook event models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventKind(str, Enum):
    ISSUE_CREATED = "issueCreated"
    ISSUE_UPDATED = "issueUpdated"
    COMMENT_CREATED = "commentCreated"
    VERSION_RELEASED = "versionReleased"


# Jira ``webhookEvent`` discriminator -> internal kind
JIRA_EVENTS: dict[str, EventKind] = {
    "jira:issue_created": EventKind.ISSUE_CREATED,
    "jira:issue_updated": EventKind.ISSUE_UPDATED,
    "comment_created": EventKind.COMMENT_CREATED,
    "jira:version_released": EventKind.VERSION_RELEASED,
}

FILTER_KEYS = ("projectKeys", "issueTypes", "priorities", "statuses")


@dataclass
class WebhookEvent:
    kind: EventKind
    payload: dict[str, Any] = field(default_factory=dict)
    raw_event: str = ""


@dataclass
class Subscriber:
    id: str
    kind: EventKind
    config: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TriggerSpec:
    """Describes a webhook trigger a subscriber can register against."""
    kind: EventKind
    title: str
    description: str
    filters: tuple[str, ...] = ()
    output: dict[str, Any] = field(default_factory=dict)

    def to_schema(self) -> dict[str, Any]:
        return {
            "name": self.kind.value,
            "title": self.title,
            "category": "Webhooks",
            "description": self.description,
            "config_schema": {
                "type": "object",
                "properties": {
                    key: {"type": "array", "items": {"type": "string"}}
                    for key in self.filters
                },
                "required": [],
            },
            "output_schema": self.output,
        }


_USER_REF = {
    "type": "object",
    "properties": {
        "accountId": {"type": "string"},
        "displayName": {"type": "string"},
        "emailAddress": {"type": "string"},
    },
}

_ISSUE_PROPERTIES = {
    "id": {"type": "string"},
    "key": {"type": "string"},
    "summary": {"type": "string"},
    "status": {"type": "string"},
    "assignee": {"type": "string"},
    "priority": {"type": "string"},
    "issueType": {"type": "string"},
    "project": {"type": "string"},
}


def _issue_schema(**extra: Any) -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {**_ISSUE_PROPERTIES, **extra},
        "required": ["id", "key"],
    }


TRIGGERS: dict[EventKind, TriggerSpec] = {
    EventKind.ISSUE_CREATED: TriggerSpec(
        kind=EventKind.ISSUE_CREATED,
        title="Issue Created",
        description="Triggered when a new Jira issue is created via webhook",
        filters=("projectKeys", "issueTypes", "priorities"),
        output={
            "type": "object",
            "properties": {
                "issue": _issue_schema(created={"type": "string"}),
                "createdBy": _USER_REF,
                "timestamp": {"type": "string"},
            },
            "required": ["issue", "timestamp"],
        },
    ),
    EventKind.ISSUE_UPDATED: TriggerSpec(
        kind=EventKind.ISSUE_UPDATED,
        title="Issue Updated",
        description="Triggered when a Jira issue is updated via webhook",
        filters=FILTER_KEYS,
        output={
            "type": "object",
            "properties": {
                "issue": _issue_schema(updated={"type": "string"}),
                "changes": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "field": {"type": "string"},
                            "fieldtype": {"type": "string"},
                            "from": {"type": "string"},
                            "to": {"type": "string"},
                        },
                        "required": ["field"],
                    },
                },
                "updatedBy": _USER_REF,
                "timestamp": {"type": "string"},
            },
            "required": ["issue", "changes", "timestamp"],
        },
    ),
    EventKind.COMMENT_CREATED: TriggerSpec(
        kind=EventKind.COMMENT_CREATED,
        title="Comment Created",
        description="Triggered when a new comment is added to a Jira issue via webhook",
        filters=("projectKeys",),
        output={
            "type": "object",
            "properties": {
                "issue": _issue_schema(),
                "comment": {
                    "type": "object",
                    "properties": {
                        "id": {"type": "string"},
                        "body": {"type": "string"},
                        "created": {"type": "string"},
                        "updated": {"type": "string"},
                        "self": {"type": "string"},
                    },
                    "required": ["id", "body", "created"],
                },
                "createdBy": _USER_REF,
                "timestamp": {"type": "string"},
            },
            "required": ["issue", "comment", "timestamp"],
        },
    ),
    EventKind.VERSION_RELEASED: TriggerSpec(
        kind=EventKind.VERSION_RELEASED,
        title="Version Released",
        description="Triggered when a Jira version is released via webhook",
        output={
            "type": "object",
            "properties": {
                "version": {
                    "type": "object",
                    "properties": {
                        "id": {"type": "string"},
                        "name": {"type": "string"},
                        "description": {"type": "string"},
                        "archived": {"type": "boolean"},
                        "released": {"type": "boolean"},
                        "startDate": {"type": "string"},
                        "releaseDate": {"type": "string"},
                        "projectId": {"type": "string"},
                        "self": {"type": "string"},
                    },
                    "required": ["id", "name"],
                },
                "releasedBy": _USER_REF,
                "timestamp": {"type": "string"},
            },
            "required": ["version", "timestamp"],
        },
    ),
}
