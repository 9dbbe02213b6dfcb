"""Tests for the operation blocks."""

from unittest.mock import AsyncMock

import pytest

from jirabridge.blocks import BLOCKS, catalog, get_block, require_inputs
from jirabridge.blocks.base import merge_fields, text_to_adf
from jirabridge.core.errors import (
    ApiError,
    NotFoundError,
    OperationError,
    ValidationError,
)


@pytest.fixture
def client():
    client = AsyncMock()
    client.get = AsyncMock()
    client.post = AsyncMock()
    client.put = AsyncMock()
    return client


def _adf(text):
    return {
        "type": "doc",
        "version": 1,
        "content": [{"type": "paragraph", "content": [{"type": "text", "text": text}]}],
    }


# ---------------------------------------------------------------------------
# Shared helpers and catalog
# ---------------------------------------------------------------------------

class TestHelpers:
    def test_text_to_adf(self):
        assert text_to_adf("hello") == _adf("hello")

    def test_merge_fields_extra_wins(self):
        base = {"summary": "a", "labels": ["x"]}
        merged = merge_fields(base, {"summary": "b", "customfield_1": 3})
        assert merged == {"summary": "b", "labels": ["x"], "customfield_1": 3}
        assert base == {"summary": "a", "labels": ["x"]}

    def test_merge_fields_none(self):
        assert merge_fields({"a": 1}, None) == {"a": 1}


class TestCatalog:
    def test_all_blocks_registered(self):
        assert set(BLOCKS) == {
            "createIssue", "getIssue", "updateIssue", "transitionIssue",
            "searchIssues", "addComment", "assignIssue", "addWatchers",
            "linkIssues", "addExternalLink", "sendNotification",
            "getUserDetails", "createVersion", "updateVersion",
        }

    def test_catalog_includes_triggers(self):
        names = [entry["name"] for entry in catalog()]
        assert names[-4:] == ["issueCreated", "issueUpdated", "commentCreated", "versionReleased"]

    def test_schema_lists_required_inputs(self):
        schema = get_block("createIssue").to_schema()
        assert schema["category"] == "Issues"
        assert schema["input_schema"]["required"] == ["projectKey", "issueTypeName", "summary"]
        assert schema["input_schema"]["properties"]["labels"]["type"] == "array"

    def test_unknown_block(self):
        with pytest.raises(NotFoundError, match="Unknown block 'nope'"):
            get_block("nope")

    def test_require_inputs(self):
        block = get_block("addComment")
        with pytest.raises(ValidationError, match="issueIdOrKey, comment"):
            require_inputs(block, {})
        require_inputs(block, {"issueIdOrKey": "P-1", "comment": "hi"})


# ---------------------------------------------------------------------------
# Issues
# ---------------------------------------------------------------------------

class TestCreateIssue:
    async def test_builds_fields(self, client):
        client.post.return_value = {"id": "10001", "key": "PROJ-1", "self": "https://x/issue/10001"}
        out = await get_block("createIssue").run(
            {
                "projectKey": "PROJ",
                "issueTypeName": "Bug",
                "summary": "Broken",
                "description": "It broke",
                "priorityName": "High",
                "assigneeAccountId": "acc-1",
                "parentKey": "PROJ-0",
                "labels": ["a"],
            },
            client,
        )

        client.post.assert_awaited_once()
        path, body = client.post.await_args.args
        assert path == "/issue"
        assert body == {
            "fields": {
                "project": {"key": "PROJ"},
                "issuetype": {"name": "Bug"},
                "summary": "Broken",
                "description": _adf("It broke"),
                "priority": {"name": "High"},
                "assignee": {"accountId": "acc-1"},
                "parent": {"key": "PROJ-0"},
                "labels": ["a"],
            }
        }
        assert out == {"issueId": "10001", "issueKey": "PROJ-1", "issueUrl": "https://x/issue/10001"}

    async def test_additional_fields_override(self, client):
        client.post.return_value = {"id": "1", "key": "P-1", "self": "u"}
        await get_block("createIssue").run(
            {
                "projectKey": "PROJ",
                "issueTypeName": "Task",
                "summary": "base",
                "additionalFields": {"summary": "override", "customfield_10010": "x"},
            },
            client,
        )
        fields = client.post.await_args.args[1]["fields"]
        assert fields["summary"] == "override"
        assert fields["customfield_10010"] == "x"
        assert "description" not in fields

    async def test_api_error_is_prefixed(self, client):
        client.post.side_effect = ApiError(400, "bad field")
        with pytest.raises(ApiError) as exc_info:
            await get_block("createIssue").run(
                {"projectKey": "P", "issueTypeName": "Task", "summary": "s"}, client
            )
        assert str(exc_info.value) == "Failed to create Jira issue: Jira API error (400): bad field"
        assert exc_info.value.status_code == 400


class TestGetIssue:
    async def test_query_parameters(self, client):
        client.get.return_value = {"id": "1", "key": "P-1", "self": "u", "fields": {"summary": "s"}}
        out = await get_block("getIssue").run(
            {"issueIdOrKey": "P-1", "fields": ["summary", "status"], "expand": ["changelog"]},
            client,
        )
        client.get.assert_awaited_once_with("/issue/P-1?fields=summary%2Cstatus&expand=changelog")
        assert out["issueUrl"] == "u"
        assert out["fields"] == {"summary": "s"}
        assert out["transitions"] is None

    async def test_plain_path(self, client):
        client.get.return_value = {"id": "1", "key": "P-1", "self": "u", "fields": {}}
        await get_block("getIssue").run({"issueIdOrKey": "P-1"}, client)
        client.get.assert_awaited_once_with("/issue/P-1")


class TestUpdateIssue:
    async def test_fields_and_operations(self, client):
        out = await get_block("updateIssue").run(
            {
                "issueIdOrKey": "P-1",
                "summary": "new",
                "description": "desc",
                "updateOperations": {"labels": [{"add": "x"}]},
            },
            client,
        )
        client.put.assert_awaited_once_with(
            "/issue/P-1",
            {
                "fields": {"summary": "new", "description": _adf("desc")},
                "update": {"labels": [{"add": "x"}]},
            },
        )
        assert out == {"issueIdOrKey": "P-1", "updated": True}

    async def test_only_operations(self, client):
        await get_block("updateIssue").run(
            {"issueIdOrKey": "P-1", "updateOperations": {"labels": [{"remove": "y"}]}}, client
        )
        assert client.put.await_args.args[1] == {"update": {"labels": [{"remove": "y"}]}}

    async def test_nothing_to_update(self, client):
        with pytest.raises(ValidationError, match="No fields or update operations provided"):
            await get_block("updateIssue").run({"issueIdOrKey": "P-1"}, client)
        client.put.assert_not_awaited()


class TestTransitionIssue:
    TRANSITIONS = {
        "transitions": [
            {"id": "11", "name": "To Do"},
            {"id": "21", "name": "In Progress"},
            {"id": "31", "name": "Done"},
        ]
    }

    async def test_case_insensitive_match(self, client):
        client.get.return_value = self.TRANSITIONS
        out = await get_block("transitionIssue").run(
            {
                "issueIdOrKey": "P-1",
                "transitionName": "done",
                "resolution": "Fixed",
                "comment": "closing",
            },
            client,
        )
        client.get.assert_awaited_once_with("/issue/P-1/transitions")
        client.post.assert_awaited_once_with(
            "/issue/P-1/transitions",
            {
                "transition": {"id": "31"},
                "fields": {"resolution": {"name": "Fixed"}},
                "update": {"comment": [{"add": {"body": _adf("closing")}}]},
            },
        )
        assert out == {"issueIdOrKey": "P-1", "transitionId": "31", "transitioned": True}

    async def test_minimal_body(self, client):
        client.get.return_value = self.TRANSITIONS
        await get_block("transitionIssue").run(
            {"issueIdOrKey": "P-1", "transitionName": "In Progress"}, client
        )
        assert client.post.await_args.args[1] == {"transition": {"id": "21"}}

    async def test_unknown_transition_lists_available(self, client):
        client.get.return_value = self.TRANSITIONS
        with pytest.raises(NotFoundError) as exc_info:
            await get_block("transitionIssue").run(
                {"issueIdOrKey": "P-1", "transitionName": "Archive"}, client
            )
        assert str(exc_info.value) == (
            "Failed to transition issue: Transition 'Archive' not found. "
            "Available transitions: To Do, In Progress, Done"
        )
        client.post.assert_not_awaited()


class TestSearchIssues:
    async def test_defaults_and_mapping(self, client):
        client.post.return_value = {
            "startAt": 0,
            "maxResults": 50,
            "total": 1,
            "issues": [{"id": "1", "key": "P-1", "self": "u", "fields": {"summary": "s"}}],
        }
        out = await get_block("searchIssues").run({"jql": "project = P"}, client)

        client.post.assert_awaited_once_with(
            "/search", {"jql": "project = P", "startAt": 0, "maxResults": 50}
        )
        assert out["total"] == 1
        assert out["issues"][0]["issueUrl"] == "u"
        assert out["warningMessages"] == []

    async def test_max_results_capped(self, client):
        client.post.return_value = {"startAt": 10, "maxResults": 100, "total": 0, "issues": []}
        await get_block("searchIssues").run(
            {"jql": "x", "startAt": 10, "maxResults": 500, "fields": ["summary"], "expand": []},
            client,
        )
        body = client.post.await_args.args[1]
        assert body == {"jql": "x", "startAt": 10, "maxResults": 100, "fields": ["summary"]}


class TestAddComment:
    async def test_with_visibility(self, client):
        client.post.return_value = {"id": "9", "created": "2024-01-01", "self": "u"}
        out = await get_block("addComment").run(
            {"issueIdOrKey": "P-1", "comment": "hi", "visibility": "Developers"}, client
        )
        client.post.assert_awaited_once_with(
            "/issue/P-1/comment",
            {"body": _adf("hi"), "visibility": {"type": "group", "value": "Developers"}},
        )
        assert out == {"commentId": "9", "created": "2024-01-01", "commentUrl": "u"}


class TestAssignIssue:
    async def test_assign(self, client):
        out = await get_block("assignIssue").run({"issueIdOrKey": "P-1", "accountId": "acc"}, client)
        client.put.assert_awaited_once_with("/issue/P-1/assignee", {"accountId": "acc"})
        assert out == {"issueIdOrKey": "P-1", "assigned": True}

    async def test_unassign_with_empty_string(self, client):
        await get_block("assignIssue").run({"issueIdOrKey": "P-1", "accountId": ""}, client)
        client.put.assert_awaited_once_with("/issue/P-1/assignee", {"accountId": None})


class TestAddWatchers:
    async def test_partial_failure_is_reported(self, client):
        client.post.side_effect = [None, ApiError(404, "no such user"), None]
        out = await get_block("addWatchers").run(
            {"issueIdOrKey": "P-1", "accountIds": ["a", "b", "c"]}, client
        )

        assert client.post.await_count == 3
        assert [call.args for call in client.post.await_args_list] == [
            ("/issue/P-1/watchers", "a"),
            ("/issue/P-1/watchers", "b"),
            ("/issue/P-1/watchers", "c"),
        ]
        assert out["totalWatchers"] == 3
        assert out["successCount"] == 2
        assert out["failureCount"] == 1
        assert out["results"][0] == {"accountId": "a", "added": True}
        assert out["results"][1]["added"] is False
        assert "no such user" in out["results"][1]["error"]


class TestLinkIssues:
    async def test_with_comment(self, client):
        out = await get_block("linkIssues").run(
            {"linkType": "Blocks", "inwardIssue": "P-1", "outwardIssue": "P-2", "comment": "dep"},
            client,
        )
        client.post.assert_awaited_once_with(
            "/issueLink",
            {
                "type": {"name": "Blocks"},
                "inwardIssue": {"key": "P-1"},
                "outwardIssue": {"key": "P-2"},
                "comment": {"body": _adf("dep")},
            },
        )
        assert out == {"linked": True}


class TestAddExternalLink:
    async def test_icon_and_id_stringified(self, client):
        client.post.return_value = {"id": 10000, "self": "u"}
        out = await get_block("addExternalLink").run(
            {
                "issueIdOrKey": "P-1",
                "url": "https://example.com",
                "title": "Docs",
                "iconUrl": "https://example.com/i.png",
                "iconTitle": "Docs icon",
            },
            client,
        )
        client.post.assert_awaited_once_with(
            "/issue/P-1/remotelink",
            {
                "object": {
                    "url": "https://example.com",
                    "title": "Docs",
                    "icon": {"url16x16": "https://example.com/i.png", "title": "Docs icon"},
                }
            },
        )
        assert out == {"linkId": "10000", "linkUrl": "u", "created": True}


class TestSendNotification:
    async def test_recipient_kinds_and_default_restrict(self, client):
        out = await get_block("sendNotification").run(
            {
                "issueIdOrKey": "P-1",
                "subject": "Heads up",
                "textBody": "plain",
                "recipients": ["a@example.com", "jira-admins", "5b10ac8d82e05b22cc7d4ef5"],
            },
            client,
        )
        path, body = client.post.await_args.args
        assert path == "/issue/P-1/notify"
        assert body["to"]["users"] == [
            {"email": "a@example.com"},
            {"name": "jira-admins"},
            {"accountId": "5b10ac8d82e05b22cc7d4ef5"},
        ]
        assert body["restrict"] == {"permissions": [{"key": "BROWSE"}]}
        assert body["textBody"] == "plain"
        assert "htmlBody" not in body
        assert out == {
            "issueIdOrKey": "P-1",
            "subject": "Heads up",
            "recipientCount": 3,
            "notified": True,
        }

    async def test_unrestricted(self, client):
        await get_block("sendNotification").run(
            {"issueIdOrKey": "P-1", "subject": "s", "recipients": ["x"], "restrict": False},
            client,
        )
        assert client.post.await_args.args[1]["restrict"] == {"permissions": []}


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

class TestGetUserDetails:
    USER = {
        "accountId": "acc-1",
        "displayName": "Ada",
        "emailAddress": "Ada@Example.com",
        "active": True,
        "accountType": "atlassian",
    }

    async def test_requires_one_key(self, client):
        with pytest.raises(ValidationError, match="Either email or accountId"):
            await get_block("getUserDetails").run({}, client)

    async def test_rejects_both_keys(self, client):
        with pytest.raises(ValidationError) as exc_info:
            await get_block("getUserDetails").run({"email": "a@b.c", "accountId": "x"}, client)
        assert not str(exc_info.value).startswith("Failed to find user")
        client.get.assert_not_awaited()

    async def test_by_account_id(self, client):
        client.get.return_value = self.USER
        out = await get_block("getUserDetails").run({"accountId": "acc 1"}, client)
        client.get.assert_awaited_once_with("/user?accountId=acc%201")
        assert out["displayName"] == "Ada"

    async def test_by_email_exact_match(self, client):
        client.get.return_value = [
            {"accountId": "other", "emailAddress": "ada.l@example.com"},
            self.USER,
        ]
        out = await get_block("getUserDetails").run({"email": "ada@example.com"}, client)
        client.get.assert_awaited_once_with("/user/search?query=ada%40example.com")
        assert out["accountId"] == "acc-1"

    async def test_email_not_found(self, client):
        client.get.return_value = []
        with pytest.raises(NotFoundError, match="Failed to find user: No user found with email address"):
            await get_block("getUserDetails").run({"email": "ghost@example.com"}, client)


# ---------------------------------------------------------------------------
# Versions
# ---------------------------------------------------------------------------

class TestCreateVersion:
    async def test_defaults(self, client):
        client.post.return_value = {"id": "100", "self": "u"}
        out = await get_block("createVersion").run(
            {"projectIdOrKey": "10000", "name": "1.0.0", "releaseDate": "2024-06-01"}, client
        )
        client.post.assert_awaited_once_with(
            "/version",
            {
                "name": "1.0.0",
                "projectId": "10000",
                "archived": False,
                "released": False,
                "releaseDate": "2024-06-01",
            },
        )
        assert out == {"versionId": "100", "versionUrl": "u", "created": True}


class TestUpdateVersion:
    async def test_only_present_keys(self, client):
        out = await get_block("updateVersion").run(
            {"versionId": "100", "released": True, "description": ""}, client
        )
        client.put.assert_awaited_once_with("/version/100", {"description": "", "released": True})
        assert out == {"updated": True}


# ---------------------------------------------------------------------------
# Error wrapping
# ---------------------------------------------------------------------------

class TestErrorWrapping:
    async def test_unexpected_error_becomes_operation_error(self, client):
        client.post.return_value = {}  # missing id/key/self
        with pytest.raises(OperationError) as exc_info:
            await get_block("createIssue").run(
                {"projectKey": "P", "issueTypeName": "Task", "summary": "s"}, client
            )
        assert str(exc_info.value).startswith("Failed to create Jira issue:")
        assert isinstance(exc_info.value.__cause__, KeyError)
