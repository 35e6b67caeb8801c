"""Unit tests for the mode registry."""

import pytest

from agent_action.config import ActionSettings
from agent_action.errors import IncompatibleModeError, InvalidModeError
from agent_action.github.context import normalize
from agent_action.modes.agent import AgentMode
from agent_action.modes.registry import (
    DEFAULT_MODE,
    VALID_MODES,
    get_mode,
    is_valid_mode,
)
from agent_action.modes.review import ReviewMode
from agent_action.modes.tag import TagMode


def _make_settings(**overrides) -> ActionSettings:
    env = {"GITHUB_REPOSITORY": "acme/widgets", "GITHUB_ACTOR": "octocat"}
    env.update({key.upper(): value for key, value in overrides.items()})
    return ActionSettings.from_mapping(env)


@pytest.fixture
def entity_context():
    payload = {"action": "created", "issue": {"number": 1}, "comment": {"body": "@claude"}}
    return normalize("issue_comment", payload, _make_settings())


@pytest.fixture
def automation_context():
    return normalize("workflow_dispatch", {}, _make_settings(mode="agent"))


class TestGetMode:

    def test_tag_mode(self, entity_context):
        mode = get_mode("tag", entity_context)
        assert isinstance(mode, TagMode)
        assert mode.name.value == "tag"

    def test_agent_mode(self, entity_context, automation_context):
        assert isinstance(get_mode("agent", automation_context), AgentMode)
        # Agent mode on an entity event is allowed; it simply never triggers
        assert isinstance(get_mode("agent", entity_context), AgentMode)

    def test_review_mode(self, entity_context, automation_context):
        assert isinstance(get_mode("experimental-review", entity_context), ReviewMode)
        assert isinstance(get_mode("experimental-review", automation_context), ReviewMode)

    def test_invalid_mode_message(self, entity_context):
        with pytest.raises(InvalidModeError) as exc_info:
            get_mode("invalid", entity_context)

        assert str(exc_info.value) == (
            "Invalid mode 'invalid'. Valid modes are: 'tag', 'agent', "
            "'experimental-review'. Please check your workflow configuration."
        )

    def test_tag_mode_rejects_automation(self, automation_context):
        with pytest.raises(IncompatibleModeError) as exc_info:
            get_mode("tag", automation_context)

        assert str(exc_info.value) == (
            "Tag mode cannot handle workflow_dispatch events. "
            "Use 'agent' mode for automation events."
        )
        assert exc_info.value.mode_name == "tag"
        assert exc_info.value.event_name == "workflow_dispatch"

    def test_tag_mode_rejects_schedule(self):
        context = normalize("schedule", {}, _make_settings())
        with pytest.raises(IncompatibleModeError, match="schedule"):
            get_mode("tag", context)

    def test_returns_same_instance(self, entity_context):
        assert get_mode("tag", entity_context) is get_mode("tag", entity_context)


class TestModeNames:

    def test_default_mode(self):
        assert DEFAULT_MODE == "tag"

    def test_valid_modes(self):
        assert VALID_MODES == ("tag", "agent", "experimental-review")

    @pytest.mark.parametrize("name", ["tag", "agent", "experimental-review"])
    def test_is_valid_mode(self, name):
        assert is_valid_mode(name)

    @pytest.mark.parametrize("name", ["", "Tag", "review", "invalid"])
    def test_is_not_valid_mode(self, name):
        assert not is_valid_mode(name)
