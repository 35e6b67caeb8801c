"""Unit tests for the execution modes.

Verifies trigger predicates, tool lists, context preparation, prompt
generation and the side effects of each mode's prepare, with the GitHub
client and git mocked.
"""

import asyncio
import io
import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from agent_action.config import ActionSettings
from agent_action.errors import HumanActorError, PrepareError
from agent_action.github.branch import GitRunner
from agent_action.github.client import GitHubClient
from agent_action.github.context import normalize
from agent_action.github.data import FetchDataResult
from agent_action.modes.agent import AgentMode
from agent_action.modes.base import ModeData, ModeOptions
from agent_action.modes.names import ModeName
from agent_action.modes.review import REVIEW_TOOLS, ReviewMode
from agent_action.modes.tag import COMMENT_TOOL, GIT_TOOLS, TagMode
from agent_action.modes.tools import (
    BASE_TOOLS,
    DISALLOWED_BASELINE,
    build_tool_scope,
    export_tool_scope,
)
from agent_action.outputs import ActionOutputs
from agent_action.prompt.models import EventData, PreparedContext


def run_async(coro):
    return asyncio.run(coro)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def _make_settings(tmp_path: Path, **overrides) -> ActionSettings:
    env = {
        "GITHUB_REPOSITORY": "acme/widgets",
        "GITHUB_ACTOR": "octocat",
        "GITHUB_RUN_ID": "1234",
        "RUNNER_TEMP": str(tmp_path),
    }
    env.update({key.upper(): value for key, value in overrides.items()})
    return ActionSettings.from_mapping(env)


def _make_outputs() -> ActionOutputs:
    return ActionOutputs(stream=io.StringIO())


def _make_client() -> AsyncMock:
    client = AsyncMock(spec=GitHubClient)
    client.get_user.return_value = {"login": "octocat", "type": "User", "name": "Octo Cat"}
    client.create_comment.return_value = {"id": 99}
    client.get_issue.return_value = {
        "title": "Broken build",
        "body": "It fails on main",
        "user": {"login": "octocat"},
        "state": "open",
    }
    client.get_pull_request.return_value = {
        "title": "Add feature",
        "body": "Adds the feature",
        "user": {"login": "dev1"},
        "state": "open",
        "base": {"ref": "main"},
        "head": {"ref": "feature/x", "sha": "abc123"},
        "additions": 10,
        "deletions": 2,
        "changed_files": 1,
        "commits": 3,
    }
    client.list_issue_comments.return_value = []
    client.list_pull_request_files.return_value = [
        {"filename": "src/app.py", "status": "modified", "additions": 10, "deletions": 2, "sha": "f1"}
    ]
    client.list_pull_request_reviews.return_value = []
    client.list_review_comments.return_value = []
    client.get_repository.return_value = {"default_branch": "main"}
    return client


def _issue_comment(settings: ActionSettings, body: str = "@claude fix it", on_pr: bool = False):
    issue = {"number": 12}
    if on_pr:
        issue["pull_request"] = {"url": "https://api.github.com/pulls/12"}
    payload = {"action": "created", "issue": issue, "comment": {"id": 555, "body": body}}
    return normalize("issue_comment", payload, settings)


def _pull_request(settings: ActionSettings, action: str = "opened"):
    payload = {"action": action, "pull_request": {"number": 7, "title": "Add feature"}}
    return normalize("pull_request", payload, settings)


def _prepared(**overrides) -> PreparedContext:
    values = {
        "repository": "acme/widgets",
        "event_data": EventData(event_name="pull_request", is_pr=True, entity_number=7),
    }
    values.update(overrides)
    return PreparedContext(**values)


# ---------------------------------------------------------------------------
# Tool scope
# ---------------------------------------------------------------------------


class TestToolScope:

    def test_composition_order(self, tmp_path):
        settings = _make_settings(tmp_path, allowed_tools="Bash(npm test)", disallowed_tools="Write")
        context = _issue_comment(settings)

        scope = build_tool_scope(["ModeTool"], context.inputs)

        assert scope.allowed == [*BASE_TOOLS, "ModeTool", "Bash(npm test)"]
        assert scope.disallowed == ["WebSearch", "WebFetch", "Write"]

    def test_duplicates_are_kept(self, tmp_path):
        settings = _make_settings(tmp_path, allowed_tools="Read")
        scope = build_tool_scope([], _issue_comment(settings).inputs)
        assert scope.allowed.count("Read") == 2

    def test_export_joins_with_commas(self, tmp_path):
        outputs = _make_outputs()
        scope = build_tool_scope([], _issue_comment(_make_settings(tmp_path)).inputs)

        export_tool_scope(scope, outputs)

        assert outputs.exported["INPUT_ALLOWED_TOOLS"] == ",".join(BASE_TOOLS)
        assert outputs.exported["INPUT_DISALLOWED_TOOLS"] == ",".join(DISALLOWED_BASELINE)


# ---------------------------------------------------------------------------
# Agent mode
# ---------------------------------------------------------------------------


class TestAgentMode:

    def test_metadata(self):
        mode = AgentMode()
        assert mode.name is ModeName.AGENT
        assert mode.get_allowed_tools() == []
        assert mode.get_disallowed_tools() == []
        assert mode.should_create_tracking_comment() is False

    def test_triggers_on_every_automation_context(self, tmp_path):
        settings = _make_settings(tmp_path, mode="agent")
        mode = AgentMode()
        assert mode.should_trigger(normalize("workflow_dispatch", {}, settings))
        assert mode.should_trigger(normalize("schedule", {}, settings))

    def test_does_not_trigger_on_entity_context(self, tmp_path):
        settings = _make_settings(tmp_path, mode="agent")
        assert not AgentMode().should_trigger(_issue_comment(settings))

    def test_prepare_context_only_sets_mode_and_context(self, tmp_path):
        context = normalize("workflow_dispatch", {}, _make_settings(tmp_path, mode="agent"))

        mode_context = AgentMode().prepare_context(
            context, ModeData(comment_id=1, base_branch="main")
        )

        assert mode_context.model_fields_set == {"mode", "github_context"}
        assert mode_context.comment_id is None

    @pytest.mark.parametrize(
        "override,direct,expected",
        [
            ("Override", "Direct", "Override"),
            ("", "Direct", "Direct"),
            ("", "", "Repository: acme/widgets"),
        ],
    )
    def test_generate_prompt_priority(self, override, direct, expected):
        prompt = AgentMode().generate_prompt(
            _prepared(override_prompt=override, direct_prompt=direct), None
        )
        assert prompt == expected

    def test_prepare_with_user_tools_and_override(self, tmp_path):
        settings = _make_settings(
            tmp_path,
            mode="agent",
            direct_prompt="Update dependencies",
            allowed_tools="Bash(npm install)",
            disallowed_tools="Edit",
            mcp_config='{"mcpServers":{"custom":{"command":"x"}},"extra":1}',
        )
        context = normalize("workflow_dispatch", {}, settings)
        outputs = _make_outputs()
        client = _make_client()

        result = run_async(AgentMode().prepare(ModeOptions(
            context=context,
            client=client,
            github_token="tok",
            settings=settings,
            outputs=outputs,
        )))

        prompt = (tmp_path / "claude-prompts" / "claude-prompt.txt").read_text()
        assert prompt == "Update dependencies"
        assert outputs.exported["INPUT_ALLOWED_TOOLS"] == ",".join([*BASE_TOOLS, "Bash(npm install)"])
        assert outputs.exported["INPUT_DISALLOWED_TOOLS"] == "WebSearch,WebFetch,Edit"
        assert json.loads(result.mcp_config) == {
            "mcpServers": {"custom": {"command": "x"}},
            "extra": 1,
        }
        assert outputs.outputs["mcp_config"] == result.mcp_config
        assert result.comment_id is None
        assert result.branch_info.base_branch == ""
        assert result.branch_info.current_branch == ""
        assert result.branch_info.claude_branch is None
        client.create_comment.assert_not_awaited()

    def test_prepare_with_malformed_override_warns(self, tmp_path):
        settings = _make_settings(tmp_path, mode="agent", mcp_config="{not json")
        outputs = _make_outputs()

        result = run_async(AgentMode().prepare(ModeOptions(
            context=normalize("schedule", {}, settings),
            client=_make_client(),
            github_token="tok",
            settings=settings,
            outputs=outputs,
        )))

        assert result.mcp_config == '{"mcpServers":{}}'
        assert len(outputs.warnings) == 1
        assert "Failed to parse additional MCP config" in outputs.warnings[0]


# ---------------------------------------------------------------------------
# Review mode
# ---------------------------------------------------------------------------


class TestReviewMode:

    @pytest.mark.parametrize(
        "action,expected",
        [
            ("opened", True),
            ("synchronize", True),
            ("reopened", True),
            ("closed", False),
            ("edited", False),
        ],
    )
    def test_pull_request_actions(self, tmp_path, action, expected):
        context = _pull_request(_make_settings(tmp_path), action)
        assert ReviewMode().should_trigger(context) is expected

    def test_comment_on_pr_requires_phrase(self, tmp_path):
        settings = _make_settings(tmp_path)
        mode = ReviewMode()
        assert mode.should_trigger(_issue_comment(settings, "@claude review", on_pr=True))
        assert not mode.should_trigger(_issue_comment(settings, "looks good", on_pr=True))

    def test_comment_on_issue_never_triggers(self, tmp_path):
        context = _issue_comment(_make_settings(tmp_path), "@claude review", on_pr=False)
        assert not ReviewMode().should_trigger(context)

    def test_automation_never_triggers(self, tmp_path):
        context = normalize("workflow_dispatch", {}, _make_settings(tmp_path))
        assert not ReviewMode().should_trigger(context)

    def test_metadata(self):
        mode = ReviewMode()
        assert mode.name is ModeName.REVIEW
        assert len(mode.get_allowed_tools()) == 10
        assert all(tool.startswith("mcp__github__") for tool in mode.get_allowed_tools())
        assert mode.should_create_tracking_comment() is False

    def test_generate_prompt_honours_override(self):
        prompt = ReviewMode().generate_prompt(
            _prepared(override_prompt="Just say hi"),
            FetchDataResult(context_data={}),
        )
        assert prompt == "Just say hi"

    def test_generate_prompt_structure(self):
        data = FetchDataResult(
            context_data={"title": "Add feature", "body": "Adds the feature"},
            comments=[],
        )
        prepared = _prepared(
            direct_prompt="Focus on security",
            trigger_username="octocat",
            event_data=EventData(
                event_name="issue_comment",
                is_pr=True,
                entity_number=7,
                comment_body="@claude review",
            ),
        )

        prompt = ReviewMode().generate_prompt(prepared, data)

        order = [
            "<formatted_context>",
            "<comments>",
            "<review_comments>",
            "<changed_files>",
            "<formatted_body>",
            "<trigger_comment>",
            "<direct_prompt>",
            "REVIEW MODE WORKFLOW:",
        ]
        positions = [prompt.index(marker) for marker in order]
        assert positions == sorted(positions)
        assert "User @octocat: @claude review" in prompt
        assert "<pr_number>7</pr_number>" in prompt
        assert "No comments yet" in prompt

    def test_prepare_requires_entity_context(self, tmp_path):
        settings = _make_settings(tmp_path, mode="experimental-review")
        with pytest.raises(PrepareError, match="Review mode requires entity context"):
            run_async(ReviewMode().prepare(ModeOptions(
                context=normalize("schedule", {}, settings),
                client=_make_client(),
                github_token="tok",
                settings=settings,
                outputs=_make_outputs(),
            )))

    def test_prepare(self, tmp_path):
        settings = _make_settings(tmp_path, mode="experimental-review")
        outputs = _make_outputs()
        client = _make_client()

        result = run_async(ReviewMode().prepare(ModeOptions(
            context=_pull_request(settings),
            client=client,
            github_token="workflow-token",
            settings=settings,
            outputs=outputs,
        )))

        assert result.comment_id is None
        assert result.branch_info.base_branch == "main"
        assert result.branch_info.current_branch == ""
        config = json.loads(result.mcp_config)
        assert config["mcpServers"]["github"]["env"]["GITHUB_PERSONAL_ACCESS_TOKEN"] == "workflow-token"
        assert "github_comment" not in config["mcpServers"]
        assert outputs.outputs["mcp_config"] == result.mcp_config
        assert outputs.exported["INPUT_ALLOWED_TOOLS"] == ",".join([*BASE_TOOLS, *REVIEW_TOOLS])
        prompt = (tmp_path / "claude-prompts" / "claude-prompt.txt").read_text()
        assert "src/app.py" in prompt
        client.create_comment.assert_not_awaited()


# ---------------------------------------------------------------------------
# Tag mode
# ---------------------------------------------------------------------------


class TestTagMode:

    def test_metadata(self):
        mode = TagMode()
        assert mode.name is ModeName.TAG
        assert mode.get_allowed_tools() == [COMMENT_TOOL]
        assert mode.should_create_tracking_comment() is True

    def test_triggers_on_phrase(self, tmp_path):
        settings = _make_settings(tmp_path)
        assert TagMode().should_trigger(_issue_comment(settings, "@claude fix"))
        assert not TagMode().should_trigger(_issue_comment(settings, "no mention"))

    def test_never_triggers_on_automation(self, tmp_path):
        context = normalize("workflow_dispatch", {}, _make_settings(tmp_path))
        assert not TagMode().should_trigger(context)

    def test_prepare_context_sets_supplied_fields(self, tmp_path):
        context = _issue_comment(_make_settings(tmp_path))

        mode_context = TagMode().prepare_context(
            context, ModeData(comment_id=5, base_branch="main")
        )

        assert mode_context.model_fields_set == {
            "mode",
            "github_context",
            "comment_id",
            "base_branch",
        }

    def test_run_tools_on_pr_without_signing(self, tmp_path):
        context = _pull_request(_make_settings(tmp_path))
        tools = TagMode().run_tools(context)
        assert tools[0] == COMMENT_TOOL
        assert all(tool in tools for tool in GIT_TOOLS)
        assert "mcp__github_inline_comment__create_inline_comment" in tools

    def test_run_tools_with_signing_on_issue(self, tmp_path):
        context = _issue_comment(_make_settings(tmp_path, use_commit_signing="true"))
        assert TagMode().run_tools(context) == [COMMENT_TOOL]

    def test_prepare_on_issue(self, tmp_path):
        settings = _make_settings(tmp_path)
        outputs = _make_outputs()
        client = _make_client()
        git = AsyncMock(spec=GitRunner)

        result = run_async(TagMode().prepare(ModeOptions(
            context=_issue_comment(settings),
            client=client,
            github_token="tok",
            settings=settings,
            outputs=outputs,
            git=git,
        )))

        assert result.comment_id == 99
        assert result.branch_info.base_branch == "main"
        assert result.branch_info.claude_branch.startswith("claude/issue-12-")
        git.run.assert_any_await("checkout", "-b", result.branch_info.claude_branch)

        config = json.loads(result.mcp_config)
        comment_env = config["mcpServers"]["github_comment"]["env"]
        assert comment_env["CLAUDE_COMMENT_ID"] == "99"
        assert comment_env["REPO_OWNER"] == "acme"
        assert "github_inline_comment" not in config["mcpServers"]

        allowed = outputs.exported["INPUT_ALLOWED_TOOLS"].split(",")
        assert COMMENT_TOOL in allowed
        assert "Bash(git push:*)" in allowed

        prompt = (tmp_path / "claude-prompts" / "claude-prompt.txt").read_text()
        assert "@claude fix it" in prompt
        assert "<claude_comment_id>99</claude_comment_id>" in prompt
        assert "Octo Cat" in prompt

    def test_prepare_rejects_bot_actor(self, tmp_path):
        settings = _make_settings(tmp_path)
        client = _make_client()
        client.get_user.return_value = {"login": "octocat", "type": "Bot"}

        with pytest.raises(HumanActorError):
            run_async(TagMode().prepare(ModeOptions(
                context=_issue_comment(settings),
                client=client,
                github_token="tok",
                settings=settings,
                outputs=_make_outputs(),
                git=AsyncMock(spec=GitRunner),
            )))

        client.create_comment.assert_not_awaited()

    def test_generate_prompt_override(self):
        prompt = TagMode().generate_prompt(_prepared(override_prompt="Custom"), None)
        assert prompt == "Custom"

    def test_generate_prompt_with_signing(self):
        prompt = TagMode().generate_prompt(
            _prepared(custom_instructions="Be brief"), None, use_commit_signing=True
        )
        assert "signed through the GitHub API" in prompt
        assert "<custom_instructions>\nBe brief\n</custom_instructions>" in prompt
