"""jirabridge blocks: the catalog of callable Jira operations."""

from __future__ import annotations

from typing import Any

from jirabridge.blocks.base import BaseBlock, InputField, require_inputs
from jirabridge.blocks.issues import (
    AddCommentBlock,
    AddExternalLinkBlock,
    AddWatchersBlock,
    AssignIssueBlock,
    CreateIssueBlock,
    GetIssueBlock,
    LinkIssuesBlock,
    SearchIssuesBlock,
    SendNotificationBlock,
    TransitionIssueBlock,
    UpdateIssueBlock,
)
from jirabridge.blocks.users import GetUserDetailsBlock
from jirabridge.blocks.versions import CreateVersionBlock, UpdateVersionBlock
from jirabridge.core.errors import NotFoundError
from jirabridge.webhooks.models import TRIGGERS

BLOCKS: dict[str, BaseBlock] = {
    block.name: block
    for block in (
        # Issues
        CreateIssueBlock(),
        GetIssueBlock(),
        UpdateIssueBlock(),
        TransitionIssueBlock(),
        SearchIssuesBlock(),
        AddCommentBlock(),
        AssignIssueBlock(),
        AddWatchersBlock(),
        LinkIssuesBlock(),
        AddExternalLinkBlock(),
        SendNotificationBlock(),
        # Users
        GetUserDetailsBlock(),
        # Project management
        CreateVersionBlock(),
        UpdateVersionBlock(),
    )
}


def get_block(name: str) -> BaseBlock:
    try:
        return BLOCKS[name]
    except KeyError:
        raise NotFoundError(
            f"Unknown block '{name}'. Available blocks: {', '.join(BLOCKS)}"
        ) from None


def catalog() -> list[dict[str, Any]]:
    """Describe every operation block followed by every webhook trigger."""
    return [b.to_schema() for b in BLOCKS.values()] + [t.to_schema() for t in TRIGGERS.values()]


__all__ = [
    "BLOCKS",
    "BaseBlock",
    "InputField",
    "catalog",
    "get_block",
    "require_inputs",
]
