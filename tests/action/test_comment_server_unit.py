"""Unit tests for the tracking comment MCP server."""

import asyncio
from unittest.mock import AsyncMock

from agent_action.github.client import GitHubClient
from agent_action.mcp.comment_server import (
    CommentServerSettings,
    create_server,
    update_tracking_comment,
)


def run_async(coro):
    return asyncio.run(coro)


def _make_settings(event_name: str) -> CommentServerSettings:
    return CommentServerSettings(
        github_token="ghs_test",
        repo_owner="acme",
        repo_name="widgets",
        claude_comment_id=4242,
        github_event_name=event_name,
    )


def _make_client() -> AsyncMock:
    client = AsyncMock(spec=GitHubClient)
    response = {
        "id": 4242,
        "html_url": "https://github.com/acme/widgets/issues/1#issuecomment-4242",
        "updated_at": "2024-01-01T00:00:00Z",
        "body": "done",
    }
    client.update_comment.return_value = response
    client.update_review_comment.return_value = response
    return client


class TestUpdateTrackingComment:

    def test_issue_comment_endpoint(self):
        client = _make_client()

        result = run_async(update_tracking_comment(client, _make_settings("issue_comment"), "done"))

        client.update_comment.assert_awaited_once_with("acme", "widgets", 4242, "done")
        client.update_review_comment.assert_not_awaited()
        assert result == {
            "id": 4242,
            "html_url": "https://github.com/acme/widgets/issues/1#issuecomment-4242",
            "updated_at": "2024-01-01T00:00:00Z",
        }

    def test_review_comment_endpoint(self):
        client = _make_client()

        run_async(update_tracking_comment(
            client, _make_settings("pull_request_review_comment"), "done"
        ))

        client.update_review_comment.assert_awaited_once_with("acme", "widgets", 4242, "done")
        client.update_comment.assert_not_awaited()


def test_server_registers_tool():
    server = create_server(_make_settings("issue_comment"))
    tools = run_async(server.list_tools())
    assert [tool.name for tool in tools] == ["update_claude_comment"]
