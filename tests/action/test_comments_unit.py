"""Unit tests for tracking comment creation.

Covers the three ways a tracking comment comes to exist: a reply in the
review thread of a review comment, reuse of a sticky comment on a pull
request, and a fresh issue comment.
"""

import asyncio
from unittest.mock import AsyncMock

from agent_action.config import ActionSettings
from agent_action.github.client import GitHubClient
from agent_action.github.comments import (
    TRACKING_MARKER,
    create_initial_comment,
    initial_comment_body,
)
from agent_action.github.context import normalize
from agent_action.mcp.comment_server import CommentServerSettings, update_tracking_comment


def run_async(coro):
    return asyncio.run(coro)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def _make_settings(**overrides) -> ActionSettings:
    env = {
        "GITHUB_REPOSITORY": "acme/widgets",
        "GITHUB_ACTOR": "octocat",
        "GITHUB_RUN_ID": "1234",
    }
    env.update({key.upper(): value for key, value in overrides.items()})
    return ActionSettings.from_mapping(env)


def _make_client(existing_comments=None) -> AsyncMock:
    client = AsyncMock(spec=GitHubClient)
    client.list_issue_comments.return_value = existing_comments or []
    client.create_comment.return_value = {"id": 4242}
    client.create_review_comment_reply.return_value = {"id": 4243}
    client.update_comment.return_value = {"id": 9001}
    client.update_review_comment.return_value = {"id": 4243}
    return client


def _sticky_comment(comment_id: int = 9001, user_type: str = "Bot") -> dict:
    return {
        "id": comment_id,
        "user": {"login": "claude[bot]", "type": user_type},
        "body": f"Previous run\n{TRACKING_MARKER}",
    }


def _pr_comment_context(settings: ActionSettings):
    payload = {
        "action": "created",
        "issue": {"number": 7, "pull_request": {"url": "https://api.github.com/pulls/7"}},
        "comment": {"id": 555, "body": "@claude again"},
    }
    return normalize("issue_comment", payload, settings)


def _review_comment_context(settings: ActionSettings):
    payload = {
        "action": "created",
        "pull_request": {"number": 7},
        "comment": {"id": 9, "body": "@claude tweak this"},
    }
    return normalize("pull_request_review_comment", payload, settings)


# ---------------------------------------------------------------------------
# Fresh comments
# ---------------------------------------------------------------------------


class TestFreshComment:

    def test_issue_gets_new_comment(self):
        settings = _make_settings()
        context = normalize(
            "issue_comment",
            {"issue": {"number": 12}, "comment": {"id": 1, "body": "@claude"}},
            settings,
        )
        client = _make_client()

        comment_id = run_async(create_initial_comment(client, context, settings))

        assert comment_id == 4242
        client.create_comment.assert_awaited_once_with(
            "acme", "widgets", 12, initial_comment_body(context, settings)
        )
        client.list_issue_comments.assert_not_awaited()

    def test_body_links_job_run_and_carries_marker(self):
        settings = _make_settings()
        body = initial_comment_body(_pr_comment_context(settings), settings)

        assert "https://github.com/acme/widgets/actions/runs/1234" in body
        assert body.endswith(TRACKING_MARKER)

    def test_sticky_disabled_skips_lookup(self):
        settings = _make_settings()
        client = _make_client([_sticky_comment()])

        comment_id = run_async(
            create_initial_comment(client, _pr_comment_context(settings), settings)
        )

        assert comment_id == 4242
        client.list_issue_comments.assert_not_awaited()
        client.update_comment.assert_not_awaited()


# ---------------------------------------------------------------------------
# Sticky comments
# ---------------------------------------------------------------------------


class TestStickyComment:

    def test_reuses_marked_bot_comment(self):
        settings = _make_settings(use_sticky_comment="true")
        client = _make_client([_sticky_comment()])
        context = _pr_comment_context(settings)

        comment_id = run_async(create_initial_comment(client, context, settings))

        assert comment_id == 9001
        client.update_comment.assert_awaited_once_with(
            "acme", "widgets", 9001, initial_comment_body(context, settings)
        )
        client.create_comment.assert_not_awaited()

    def test_human_comment_with_marker_is_not_reused(self):
        settings = _make_settings(use_sticky_comment="true")
        client = _make_client([_sticky_comment(user_type="User")])

        comment_id = run_async(
            create_initial_comment(client, _pr_comment_context(settings), settings)
        )

        assert comment_id == 4242
        client.update_comment.assert_not_awaited()

    def test_no_match_creates_new_comment(self):
        settings = _make_settings(use_sticky_comment="true")
        unrelated = {"id": 5, "user": {"type": "Bot"}, "body": "CI passed"}
        client = _make_client([unrelated])

        comment_id = run_async(
            create_initial_comment(client, _pr_comment_context(settings), settings)
        )

        assert comment_id == 4242
        client.list_issue_comments.assert_awaited_once_with("acme", "widgets", 7)

    def test_issues_never_use_sticky_comment(self):
        settings = _make_settings(use_sticky_comment="true")
        context = normalize(
            "issues",
            {"action": "opened", "issue": {"number": 12, "body": "@claude"}},
            settings,
        )
        client = _make_client([_sticky_comment()])

        assert run_async(create_initial_comment(client, context, settings)) == 4242
        client.list_issue_comments.assert_not_awaited()


# ---------------------------------------------------------------------------
# Review threads
# ---------------------------------------------------------------------------


class TestReviewThreadReply:

    def test_replies_in_thread(self):
        settings = _make_settings()
        client = _make_client()
        context = _review_comment_context(settings)

        comment_id = run_async(create_initial_comment(client, context, settings))

        assert comment_id == 4243
        client.create_review_comment_reply.assert_awaited_once_with(
            "acme", "widgets", 7, 9, initial_comment_body(context, settings)
        )
        client.create_comment.assert_not_awaited()

    def test_sticky_comment_is_ignored_for_review_comments(self):
        settings = _make_settings(use_sticky_comment="true")
        client = _make_client([_sticky_comment()])

        comment_id = run_async(
            create_initial_comment(client, _review_comment_context(settings), settings)
        )

        assert comment_id == 4243
        client.list_issue_comments.assert_not_awaited()
        client.update_comment.assert_not_awaited()

    def test_progress_updates_reach_the_thread_reply(self):
        settings = _make_settings(use_sticky_comment="true")
        client = _make_client([_sticky_comment()])
        comment_id = run_async(
            create_initial_comment(client, _review_comment_context(settings), settings)
        )
        server_settings = CommentServerSettings(
            github_token="ghs_test",
            repo_owner="acme",
            repo_name="widgets",
            claude_comment_id=comment_id,
            github_event_name="pull_request_review_comment",
        )

        run_async(update_tracking_comment(client, server_settings, "progress"))

        client.update_review_comment.assert_awaited_once_with(
            "acme", "widgets", 4243, "progress"
        )
