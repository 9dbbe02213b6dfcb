"""Subscriber filter matching for normalized webhook payloads."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

# filter key -> (normalized field, fallback paths into a raw Jira issue)
_DIMENSIONS: dict[str, tuple[str, tuple[tuple[str, ...], ...]]] = {
    "projectKeys": ("project", (("fields", "project", "key"),)),
    "issueTypes": (
        "issueType",
        (("fields", "issuetype", "name"), ("fields", "issueType", "name")),
    ),
    "priorities": ("priority", (("fields", "priority", "name"),)),
    "statuses": ("status", (("fields", "status", "name"),)),
}


def _lookup(issue: Mapping[str, Any], field: str, paths: tuple[tuple[str, ...], ...]) -> Any:
    value = issue.get(field)
    if value:
        return value
    for path in paths:
        node: Any = issue
        for key in path:
            node = node.get(key) if isinstance(node, Mapping) else None
        if node:
            return node
    return None


def matches(payload: Mapping[str, Any], config: Mapping[str, Any] | None) -> bool:
    """Return True when ``payload`` passes every filter set in ``config``.

    Dimensions that are absent or empty are ignored. Payloads without an
    issue (version events) always pass since there is nothing to filter on.
    """
    if not config:
        return True

    issue = payload.get("issue")
    if not issue or not isinstance(issue, Mapping):
        return True

    for key, (field, paths) in _DIMENSIONS.items():
        allowed = config.get(key)
        if not allowed or not isinstance(allowed, (list, tuple, set, frozenset)):
            continue
        value = _lookup(issue, field, paths)
        if not value or value not in allowed:
            return False

    return True
