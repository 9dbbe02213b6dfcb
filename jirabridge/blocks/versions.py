"""Project management blocks for project versions (releases)."""

from __future__ import annotations

from typing import Any

from jirabridge.blocks.base import BaseBlock, InputField, object_schema
from jirabridge.core.client import JiraClient

_OPTIONAL_VERSION_KEYS = ("description", "archived", "released", "startDate", "releaseDate")


def _version_inputs() -> list[InputField]:
    return [
        InputField("description", "Description", description="Description of the version"),
        InputField("archived", "Archived", type="boolean", description="Whether the version is archived"),
        InputField("released", "Released", type="boolean", description="Whether the version is released"),
        InputField("startDate", "Start Date", description="Start date of the version (YYYY-MM-DD)"),
        InputField("releaseDate", "Release Date", description="Release date of the version (YYYY-MM-DD)"),
    ]


class CreateVersionBlock(BaseBlock):
    @property
    def name(self) -> str:
        return "createVersion"

    @property
    def title(self) -> str:
        return "Create Version"

    @property
    def description(self) -> str:
        return "Create a new version in a Jira project"

    @property
    def category(self) -> str:
        return "Project Management"

    @property
    def inputs(self) -> list[InputField]:
        return [
            InputField("projectIdOrKey", "Project ID or Key", required=True,
                       description="The ID or key of the project to create the version in"),
            InputField("name", "Version Name", required=True,
                       description="The name of the version (e.g., '1.0.0', 'Sprint 1')"),
            *_version_inputs(),
        ]

    @property
    def output(self) -> dict[str, Any]:
        return object_schema(
            {"versionId": "string", "versionUrl": "string", "created": "boolean"},
            required=["versionId", "versionUrl", "created"],
        )

    @property
    def error_prefix(self) -> str:
        return "Failed to create version"

    async def execute(self, config: dict[str, Any], client: JiraClient) -> dict[str, Any]:
        archived = config.get("archived")
        released = config.get("released")
        body: dict[str, Any] = {
            "name": config["name"],
            "projectId": config["projectIdOrKey"],
            "archived": False if archived is None else archived,
            "released": False if released is None else released,
        }
        for key in ("description", "startDate", "releaseDate"):
            if config.get(key):
                body[key] = config[key]

        created = await client.post("/version", body)
        return {"versionId": created["id"], "versionUrl": created["self"], "created": True}


class UpdateVersionBlock(BaseBlock):
    """Updates a version, sending only the attributes present in the input."""

    @property
    def name(self) -> str:
        return "updateVersion"

    @property
    def title(self) -> str:
        return "Update Version"

    @property
    def description(self) -> str:
        return "Update an existing Jira project version"

    @property
    def category(self) -> str:
        return "Project Management"

    @property
    def inputs(self) -> list[InputField]:
        return [
            InputField("versionId", "Version ID", required=True,
                       description="The ID of the version to update"),
            InputField("name", "Version Name", description="New name for the version"),
            *_version_inputs(),
        ]

    @property
    def output(self) -> dict[str, Any]:
        return object_schema({"updated": "boolean"}, required=["updated"])

    @property
    def error_prefix(self) -> str:
        return "Failed to update version"

    async def execute(self, config: dict[str, Any], client: JiraClient) -> dict[str, Any]:
        body = {
            key: config[key]
            for key in ("name", *_OPTIONAL_VERSION_KEYS)
            if key in config
        }
        await client.put(f"/version/{config['versionId']}", body)
        return {"updated": True}
