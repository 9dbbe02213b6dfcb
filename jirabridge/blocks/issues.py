"""Issue blocks: create, read, update, transition, search and collaborate on issues."""

from __future__ import annotations

from typing import Any
from urllib.parse import urlencode

from jirabridge.blocks.base import (
    BaseBlock,
    InputField,
    merge_fields,
    object_schema,
    text_to_adf,
)
from jirabridge.core.client import JiraClient
from jirabridge.core.errors import NotFoundError, ValidationError
from jirabridge.utils.logging import get_logger

log = get_logger(__name__)

_ISSUE_ID_OR_KEY = "The ID or key of the issue to {} (e.g., 'PROJ-123' or '10001')"

# Output shape shared by getIssue and the issues of searchIssues
_ISSUE_DETAIL_PROPERTIES: dict[str, Any] = {
    "id": "string",
    "key": "string",
    "issueUrl": "string",
    "fields": "object",
    "expand": "string",
    "names": "object",
    "renderedFields": "object",
    "changelog": "object",
}


def _issue_field(action: str) -> InputField:
    return InputField(
        "issueIdOrKey", "Issue ID or Key", required=True,
        description=_ISSUE_ID_OR_KEY.format(action),
    )


class CreateIssueBlock(BaseBlock):
    @property
    def name(self) -> str:
        return "createIssue"

    @property
    def title(self) -> str:
        return "Create Issue"

    @property
    def description(self) -> str:
        return "Create a new Jira issue with specified details"

    @property
    def category(self) -> str:
        return "Issues"

    @property
    def inputs(self) -> list[InputField]:
        return [
            InputField("projectKey", "Project Key", required=True,
                       description="The key of the project where the issue will be created (e.g., 'PROJ')"),
            InputField("issueTypeName", "Issue Type", required=True,
                       description="The name of the issue type (e.g., 'Bug', 'Task', 'Story', 'Epic')"),
            InputField("summary", "Summary", required=True,
                       description="Brief title/summary of the issue"),
            InputField("description", "Description",
                       description="Detailed description of the issue"),
            InputField("priorityName", "Priority",
                       description="The priority level name (e.g., 'Low', 'Medium', 'High'). "
                                   "Must be available on the Create Issue screen."),
            InputField("assigneeAccountId", "Assignee Account ID",
                       description="Account ID of the user to assign the issue to"),
            InputField("parentKey", "Parent Issue Key",
                       description="Key of the parent issue (for subtasks) or epic"),
            InputField("labels", "Labels", type="string[]",
                       description="Labels to add to the issue"),
            InputField("additionalFields", "Additional Fields", type="object",
                       description="Additional fields as a JSON object (custom fields, components, etc.)"),
        ]

    @property
    def output(self) -> dict[str, Any]:
        return object_schema(
            {"issueId": "string", "issueKey": "string", "issueUrl": "string"},
            required=["issueId", "issueKey", "issueUrl"],
        )

    @property
    def error_prefix(self) -> str:
        return "Failed to create Jira issue"

    async def execute(self, config: dict[str, Any], client: JiraClient) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "project": {"key": config["projectKey"]},
            "issuetype": {"name": config["issueTypeName"]},
            "summary": config["summary"],
        }
        if config.get("description"):
            fields["description"] = text_to_adf(config["description"])
        if config.get("priorityName"):
            fields["priority"] = {"name": config["priorityName"]}
        if config.get("assigneeAccountId"):
            fields["assignee"] = {"accountId": config["assigneeAccountId"]}
        if config.get("parentKey"):
            fields["parent"] = {"key": config["parentKey"]}
        if config.get("labels") is not None:
            fields["labels"] = config["labels"]

        fields = merge_fields(fields, config.get("additionalFields"))
        created = await client.post("/issue", {"fields": fields})

        return {
            "issueId": created["id"],
            "issueKey": created["key"],
            "issueUrl": created["self"],
        }


class GetIssueBlock(BaseBlock):
    @property
    def name(self) -> str:
        return "getIssue"

    @property
    def title(self) -> str:
        return "Get Issue"

    @property
    def description(self) -> str:
        return "Retrieve a Jira issue by ID or key with optional field filtering and expansion"

    @property
    def category(self) -> str:
        return "Issues"

    @property
    def inputs(self) -> list[InputField]:
        return [
            _issue_field("retrieve"),
            InputField("fields", "Fields to Include", type="string[]",
                       description="Fields to include (e.g., ['summary', 'status']). Empty returns all fields."),
            InputField("expand", "Expand Options", type="string[]",
                       description="Entities to expand (e.g., ['names', 'renderedFields', 'changelog', 'transitions'])"),
        ]

    @property
    def output(self) -> dict[str, Any]:
        return object_schema(
            {
                **_ISSUE_DETAIL_PROPERTIES,
                "transitions": "object[]",
                "operations": "object",
                "editmeta": "object",
            },
            required=["id", "key", "issueUrl", "fields"],
        )

    @property
    def error_prefix(self) -> str:
        return "Failed to get issue"

    async def execute(self, config: dict[str, Any], client: JiraClient) -> dict[str, Any]:
        params = {}
        if config.get("fields"):
            params["fields"] = ",".join(config["fields"])
        if config.get("expand"):
            params["expand"] = ",".join(config["expand"])

        path = f"/issue/{config['issueIdOrKey']}"
        if params:
            path = f"{path}?{urlencode(params)}"

        issue = await client.get(path)
        return {
            "id": issue["id"],
            "key": issue["key"],
            "issueUrl": issue["self"],
            "fields": issue.get("fields"),
            "expand": issue.get("expand"),
            "names": issue.get("names"),
            "renderedFields": issue.get("renderedFields"),
            "changelog": issue.get("changelog"),
            "transitions": issue.get("transitions"),
            "operations": issue.get("operations"),
            "editmeta": issue.get("editmeta"),
        }


class UpdateIssueBlock(BaseBlock):
    @property
    def name(self) -> str:
        return "updateIssue"

    @property
    def title(self) -> str:
        return "Update Issue"

    @property
    def description(self) -> str:
        return "Update an existing Jira issue with new field values"

    @property
    def category(self) -> str:
        return "Issues"

    @property
    def inputs(self) -> list[InputField]:
        return [
            _issue_field("update"),
            InputField("summary", "Summary", description="Updated summary/title for the issue"),
            InputField("description", "Description", description="Updated description for the issue"),
            InputField("priorityName", "Priority",
                       description="Updated priority level name (e.g., 'Low', 'Medium', 'High')"),
            InputField("assigneeAccountId", "Assignee Account ID",
                       description="Account ID of the user to assign the issue to"),
            InputField("labels", "Labels", type="string[]",
                       description="Labels to set on the issue (replaces existing labels)"),
            InputField("additionalFields", "Additional Fields", type="object",
                       description="Additional fields as a JSON object (custom fields, components, etc.)"),
            InputField("updateOperations", "Update Operations", type="object",
                       description="Jira update syntax, e.g. {'labels': [{'add': 'new'}, {'remove': 'old'}]}"),
        ]

    @property
    def output(self) -> dict[str, Any]:
        return object_schema(
            {"issueIdOrKey": "string", "updated": "boolean"},
            required=["issueIdOrKey", "updated"],
        )

    @property
    def error_prefix(self) -> str:
        return "Failed to update issue"

    async def execute(self, config: dict[str, Any], client: JiraClient) -> dict[str, Any]:
        fields: dict[str, Any] = {}
        if config.get("summary"):
            fields["summary"] = config["summary"]
        if config.get("description"):
            fields["description"] = text_to_adf(config["description"])
        if config.get("priorityName"):
            fields["priority"] = {"name": config["priorityName"]}
        if config.get("assigneeAccountId"):
            fields["assignee"] = {"accountId": config["assigneeAccountId"]}
        if config.get("labels") is not None:
            fields["labels"] = config["labels"]

        extra = config.get("additionalFields")
        has_fields = bool(fields) or extra is not None
        fields = merge_fields(fields, extra)

        update_ops = config.get("updateOperations")
        if not has_fields and not update_ops:
            raise ValidationError("No fields or update operations provided")

        body: dict[str, Any] = {}
        if has_fields:
            body["fields"] = fields
        if update_ops:
            body["update"] = update_ops

        await client.put(f"/issue/{config['issueIdOrKey']}", body)
        return {"issueIdOrKey": config["issueIdOrKey"], "updated": True}


class TransitionIssueBlock(BaseBlock):
    @property
    def name(self) -> str:
        return "transitionIssue"

    @property
    def title(self) -> str:
        return "Transition Issue"

    @property
    def description(self) -> str:
        return "Transition a Jira issue through workflow states (e.g., In Progress -> Done)"

    @property
    def category(self) -> str:
        return "Issues"

    @property
    def inputs(self) -> list[InputField]:
        return [
            _issue_field("transition"),
            InputField("transitionName", "Transition Name", required=True,
                       description="The name of the transition to perform (e.g., 'In Progress', 'Done')"),
            InputField("comment", "Comment", description="Optional comment to add when transitioning"),
            InputField("resolution", "Resolution",
                       description="Resolution to set (e.g., 'Fixed', 'Duplicate'), typically when closing"),
            InputField("additionalFields", "Additional Fields", type="object",
                       description="Additional fields to set during the transition as a JSON object"),
        ]

    @property
    def output(self) -> dict[str, Any]:
        return object_schema(
            {"issueIdOrKey": "string", "transitionId": "string", "transitioned": "boolean"},
            required=["issueIdOrKey", "transitionId", "transitioned"],
        )

    @property
    def error_prefix(self) -> str:
        return "Failed to transition issue"

    async def execute(self, config: dict[str, Any], client: JiraClient) -> dict[str, Any]:
        key = config["issueIdOrKey"]
        wanted = config["transitionName"]

        listing = await client.get(f"/issue/{key}/transitions")
        transitions = (listing or {}).get("transitions", [])
        match = next(
            (t for t in transitions if t.get("name", "").lower() == wanted.lower()),
            None,
        )
        if match is None:
            available = ", ".join(t.get("name", "") for t in transitions)
            raise NotFoundError(
                f"Transition '{wanted}' not found. Available transitions: {available}"
            )

        body: dict[str, Any] = {"transition": {"id": match["id"]}}

        fields: dict[str, Any] = {}
        if config.get("resolution"):
            fields["resolution"] = {"name": config["resolution"]}
        extra = config.get("additionalFields")
        if fields or extra is not None:
            body["fields"] = merge_fields(fields, extra)

        if config.get("comment"):
            body["update"] = {"comment": [{"add": {"body": text_to_adf(config["comment"])}}]}

        log.debug("issue_transition", issue=key, transition=match.get("name"), transition_id=match["id"])
        await client.post(f"/issue/{key}/transitions", body)
        return {"issueIdOrKey": key, "transitionId": match["id"], "transitioned": True}


class SearchIssuesBlock(BaseBlock):
    MAX_RESULTS_CAP = 100

    @property
    def name(self) -> str:
        return "searchIssues"

    @property
    def title(self) -> str:
        return "Search Issues"

    @property
    def description(self) -> str:
        return "Search for Jira issues using JQL (Jira Query Language)"

    @property
    def category(self) -> str:
        return "Issues"

    @property
    def inputs(self) -> list[InputField]:
        return [
            InputField("jql", "JQL Query", required=True,
                       description="JQL query, e.g. 'project = PROJ AND status = \"In Progress\"'"),
            InputField("fields", "Fields to Include", type="string[]",
                       description="Fields to include in results. Empty returns the default fields."),
            InputField("expand", "Expand Options", type="string[]",
                       description="Entities to expand (e.g., ['names', 'renderedFields', 'changelog'])"),
            InputField("startAt", "Start At", type="number",
                       description="Index of the first result to return (default: 0)"),
            InputField("maxResults", "Max Results", type="number",
                       description="Maximum number of results to return (default: 50, max: 100)"),
        ]

    @property
    def output(self) -> dict[str, Any]:
        return object_schema(
            {
                "total": "number",
                "startAt": "number",
                "maxResults": "number",
                "issues": {
                    "type": "array",
                    "items": object_schema(
                        _ISSUE_DETAIL_PROPERTIES, required=["id", "key", "issueUrl", "fields"]
                    ),
                },
                "warningMessages": "string[]",
            },
            required=["total", "startAt", "maxResults", "issues", "warningMessages"],
        )

    @property
    def error_prefix(self) -> str:
        return "Failed to search issues"

    async def execute(self, config: dict[str, Any], client: JiraClient) -> dict[str, Any]:
        start_at = config.get("startAt")
        max_results = config.get("maxResults")
        body: dict[str, Any] = {
            "jql": config["jql"],
            "startAt": 0 if start_at is None else start_at,
            "maxResults": min(50 if max_results is None else max_results, self.MAX_RESULTS_CAP),
        }
        if config.get("fields"):
            body["fields"] = config["fields"]
        if config.get("expand"):
            body["expand"] = config["expand"]

        results = await client.post("/search", body)
        return {
            "total": results.get("total"),
            "startAt": results.get("startAt"),
            "maxResults": results.get("maxResults"),
            "issues": [
                {
                    "id": issue["id"],
                    "key": issue["key"],
                    "issueUrl": issue["self"],
                    "fields": issue.get("fields"),
                    "expand": issue.get("expand"),
                    "names": issue.get("names"),
                    "renderedFields": issue.get("renderedFields"),
                    "changelog": issue.get("changelog"),
                }
                for issue in results.get("issues", [])
            ],
            "warningMessages": results.get("warningMessages") or [],
        }


class AddCommentBlock(BaseBlock):
    @property
    def name(self) -> str:
        return "addComment"

    @property
    def title(self) -> str:
        return "Add Comment"

    @property
    def description(self) -> str:
        return "Add a comment to a Jira issue"

    @property
    def category(self) -> str:
        return "Issues"

    @property
    def inputs(self) -> list[InputField]:
        return [
            _issue_field("comment on"),
            InputField("comment", "Comment Text", required=True,
                       description="The text content of the comment"),
            InputField("visibility", "Visibility",
                       description="Group allowed to see the comment (e.g., 'Developers'). Empty for public."),
        ]

    @property
    def output(self) -> dict[str, Any]:
        return object_schema(
            {"commentId": "string", "created": "string", "commentUrl": "string"},
            required=["commentId", "created", "commentUrl"],
        )

    @property
    def error_prefix(self) -> str:
        return "Failed to add comment"

    async def execute(self, config: dict[str, Any], client: JiraClient) -> dict[str, Any]:
        body: dict[str, Any] = {"body": text_to_adf(config["comment"])}
        if config.get("visibility"):
            body["visibility"] = {"type": "group", "value": config["visibility"]}

        added = await client.post(f"/issue/{config['issueIdOrKey']}/comment", body)
        return {
            "commentId": added["id"],
            "created": added["created"],
            "commentUrl": added["self"],
        }


class AssignIssueBlock(BaseBlock):
    @property
    def name(self) -> str:
        return "assignIssue"

    @property
    def title(self) -> str:
        return "Assign Issue"

    @property
    def description(self) -> str:
        return "Assign a Jira issue to a user, or unassign it"

    @property
    def category(self) -> str:
        return "Issues"

    @property
    def inputs(self) -> list[InputField]:
        return [
            _issue_field("assign"),
            InputField("accountId", "Account ID",
                       description="Account ID of the assignee. Empty to unassign."),
        ]

    @property
    def output(self) -> dict[str, Any]:
        return object_schema(
            {"issueIdOrKey": "string", "assigned": "boolean"},
            required=["issueIdOrKey", "assigned"],
        )

    @property
    def error_prefix(self) -> str:
        return "Failed to assign issue"

    async def execute(self, config: dict[str, Any], client: JiraClient) -> dict[str, Any]:
        key = config["issueIdOrKey"]
        await client.put(f"/issue/{key}/assignee", {"accountId": config.get("accountId") or None})
        return {"issueIdOrKey": key, "assigned": True}


class AddWatchersBlock(BaseBlock):
    """Adds watchers one at a time.

    The watchers endpoint takes a single account id per call. A failure for
    one account is recorded in the results and the remaining accounts are
    still attempted; watchers added before a failure are kept.
    """

    @property
    def name(self) -> str:
        return "addWatchers"

    @property
    def title(self) -> str:
        return "Add Watchers"

    @property
    def description(self) -> str:
        return "Add watchers to a Jira issue"

    @property
    def category(self) -> str:
        return "Issues"

    @property
    def inputs(self) -> list[InputField]:
        return [
            _issue_field("add watchers to"),
            InputField("accountIds", "Account IDs", type="string[]", required=True,
                       description="User account IDs to add as watchers"),
        ]

    @property
    def output(self) -> dict[str, Any]:
        result = object_schema(
            {"accountId": "string", "added": "boolean", "error": "string"},
            required=["accountId", "added"],
        )
        return object_schema(
            {
                "issueIdOrKey": "string",
                "totalWatchers": "number",
                "successCount": "number",
                "failureCount": "number",
                "results": {"type": "array", "items": result},
            },
            required=["issueIdOrKey", "totalWatchers", "successCount", "failureCount", "results"],
        )

    @property
    def error_prefix(self) -> str:
        return "Failed to add watchers"

    async def execute(self, config: dict[str, Any], client: JiraClient) -> dict[str, Any]:
        key = config["issueIdOrKey"]
        account_ids = list(config["accountIds"])
        results: list[dict[str, Any]] = []

        for account_id in account_ids:
            try:
                await client.post(f"/issue/{key}/watchers", account_id)
            except Exception as e:
                log.warning("watcher_add_failed", issue=key, account_id=account_id, error=str(e))
                results.append({"accountId": account_id, "added": False, "error": str(e)})
            else:
                results.append({"accountId": account_id, "added": True})

        success_count = sum(1 for r in results if r["added"])
        return {
            "issueIdOrKey": key,
            "totalWatchers": len(account_ids),
            "successCount": success_count,
            "failureCount": len(results) - success_count,
            "results": results,
        }


class LinkIssuesBlock(BaseBlock):
    @property
    def name(self) -> str:
        return "linkIssues"

    @property
    def title(self) -> str:
        return "Link Issues"

    @property
    def description(self) -> str:
        return "Create a link between two Jira issues"

    @property
    def category(self) -> str:
        return "Issues"

    @property
    def inputs(self) -> list[InputField]:
        return [
            InputField("linkType", "Link Type", required=True,
                       description="The type of link (e.g., 'Blocks', 'Relates', 'Duplicates', 'Cloners')"),
            InputField("inwardIssue", "Inward Issue", required=True,
                       description="Key of the inward issue (e.g., the issue that is blocked)"),
            InputField("outwardIssue", "Outward Issue", required=True,
                       description="Key of the outward issue (e.g., the issue that blocks)"),
            InputField("comment", "Comment", description="Optional comment to add to the link"),
        ]

    @property
    def output(self) -> dict[str, Any]:
        return object_schema({"linked": "boolean"}, required=["linked"])

    @property
    def error_prefix(self) -> str:
        return "Failed to link issues"

    async def execute(self, config: dict[str, Any], client: JiraClient) -> dict[str, Any]:
        body: dict[str, Any] = {
            "type": {"name": config["linkType"]},
            "inwardIssue": {"key": config["inwardIssue"]},
            "outwardIssue": {"key": config["outwardIssue"]},
        }
        if config.get("comment"):
            body["comment"] = {"body": text_to_adf(config["comment"])}

        await client.post("/issueLink", body)
        return {"linked": True}


class AddExternalLinkBlock(BaseBlock):
    @property
    def name(self) -> str:
        return "addExternalLink"

    @property
    def title(self) -> str:
        return "Add External Link"

    @property
    def description(self) -> str:
        return "Add a remote (web) link to a Jira issue"

    @property
    def category(self) -> str:
        return "Issues"

    @property
    def inputs(self) -> list[InputField]:
        return [
            _issue_field("add the external link to"),
            InputField("url", "URL", required=True, description="The URL of the external resource"),
            InputField("title", "Title", required=True, description="Display title of the link"),
            InputField("summary", "Summary", description="Short description of the linked resource"),
            InputField("iconUrl", "Icon URL", description="URL of a 16x16 icon for the link"),
            InputField("iconTitle", "Icon Title", description="Tooltip text for the icon"),
        ]

    @property
    def output(self) -> dict[str, Any]:
        return object_schema(
            {"linkId": "string", "linkUrl": "string", "created": "boolean"},
            required=["linkId", "linkUrl", "created"],
        )

    @property
    def error_prefix(self) -> str:
        return "Failed to add external link"

    async def execute(self, config: dict[str, Any], client: JiraClient) -> dict[str, Any]:
        link: dict[str, Any] = {"url": config["url"], "title": config["title"]}
        if config.get("summary"):
            link["summary"] = config["summary"]
        if config.get("iconUrl"):
            link["icon"] = {"url16x16": config["iconUrl"]}
            if config.get("iconTitle"):
                link["icon"]["title"] = config["iconTitle"]

        created = await client.post(f"/issue/{config['issueIdOrKey']}/remotelink", {"object": link})
        return {"linkId": str(created["id"]), "linkUrl": created["self"], "created": True}


def _recipient(value: str) -> dict[str, str]:
    # Heuristic: emails contain '@', group names contain '-', anything else is an account id
    if "@" in value:
        return {"email": value}
    if "-" in value:
        return {"name": value}
    return {"accountId": value}


class SendNotificationBlock(BaseBlock):
    @property
    def name(self) -> str:
        return "sendNotification"

    @property
    def title(self) -> str:
        return "Send Notification"

    @property
    def description(self) -> str:
        return "Send an email notification about a Jira issue"

    @property
    def category(self) -> str:
        return "Issues"

    @property
    def inputs(self) -> list[InputField]:
        return [
            _issue_field("notify about"),
            InputField("subject", "Subject", required=True, description="Subject of the notification"),
            InputField("textBody", "Text Body", description="Plain text body of the notification"),
            InputField("htmlBody", "HTML Body", description="HTML body of the notification"),
            InputField("recipients", "Recipients", type="string[]", required=True,
                       description="User account IDs, email addresses, or group names to notify"),
            InputField("restrict", "Restrict Visibility", type="boolean",
                       description="Only notify users who can browse the issue (default: true)"),
        ]

    @property
    def output(self) -> dict[str, Any]:
        return object_schema(
            {
                "issueIdOrKey": "string",
                "subject": "string",
                "recipientCount": "number",
                "notified": "boolean",
            },
            required=["issueIdOrKey", "subject", "recipientCount", "notified"],
        )

    @property
    def error_prefix(self) -> str:
        return "Failed to send notification"

    async def execute(self, config: dict[str, Any], client: JiraClient) -> dict[str, Any]:
        key = config["issueIdOrKey"]
        recipients = list(config["recipients"])
        restrict = config.get("restrict")
        if restrict is None:
            restrict = True

        body: dict[str, Any] = {
            "subject": config["subject"],
            "to": {"users": [_recipient(r) for r in recipients]},
            "restrict": {"permissions": [{"key": "BROWSE"}] if restrict else []},
        }
        if config.get("textBody"):
            body["textBody"] = config["textBody"]
        if config.get("htmlBody"):
            body["htmlBody"] = config["htmlBody"]

        await client.post(f"/issue/{key}/notify", body)
        return {
            "issueIdOrKey": key,
            "subject": config["subject"],
            "recipientCount": len(recipients),
            "notified": True,
        }
