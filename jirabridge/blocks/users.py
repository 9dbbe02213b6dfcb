"""User lookup block."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from jirabridge.blocks.base import BaseBlock, InputField, object_schema
from jirabridge.core.client import JiraClient
from jirabridge.core.errors import NotFoundError, ValidationError


class GetUserDetailsBlock(BaseBlock):
    @property
    def name(self) -> str:
        return "getUserDetails"

    @property
    def title(self) -> str:
        return "Get User Details"

    @property
    def description(self) -> str:
        return "Look up a Jira user by email address or account ID"

    @property
    def category(self) -> str:
        return "Users"

    @property
    def inputs(self) -> list[InputField]:
        return [
            InputField("email", "Email Address",
                       description="Email address of the user to look up (incompatible with Account ID)"),
            InputField("accountId", "Account ID",
                       description="Account ID of the user to look up (incompatible with Email Address)"),
        ]

    @property
    def output(self) -> dict[str, Any]:
        return object_schema(
            {
                "accountId": "string",
                "displayName": "string",
                "emailAddress": "string",
                "active": "boolean",
                "accountType": "string",
            },
            required=["accountId", "displayName", "active", "accountType"],
        )

    @property
    def error_prefix(self) -> str:
        return "Failed to find user"

    def validate(self, config: dict[str, Any]) -> None:
        email, account_id = config.get("email"), config.get("accountId")
        if not email and not account_id:
            raise ValidationError("Either email or accountId must be provided")
        if email and account_id:
            raise ValidationError("Email and accountId cannot be used together - choose one")

    async def execute(self, config: dict[str, Any], client: JiraClient) -> dict[str, Any]:
        account_id = config.get("accountId")
        if account_id:
            user = await client.get(f"/user?accountId={quote(account_id, safe='')}")
        else:
            email = config["email"]
            # The search is fuzzy; keep only an exact email match
            candidates = await client.get(f"/user/search?query={quote(email, safe='')}")
            user = next(
                (
                    u for u in candidates or []
                    if (u.get("emailAddress") or "").lower() == email.lower()
                ),
                None,
            )
            if user is None:
                raise NotFoundError(f"No user found with email address: {email}")

        return {
            "accountId": user.get("accountId"),
            "displayName": user.get("displayName"),
            "emailAddress": user.get("emailAddress"),
            "active": user.get("active"),
            "accountType": user.get("accountType"),
        }
