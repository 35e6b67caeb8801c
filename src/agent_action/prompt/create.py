"""Prompt file creation.

Flattens a ModeContext into a PreparedContext, asks the mode to render its
prompt and writes it to ``<RUNNER_TEMP>/claude-prompts/claude-prompt.txt``,
where the downstream agent step picks it up.
"""

from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog

from agent_action.config import ActionSettings
from agent_action.github.context import is_entity_context
from agent_action.github.data import FetchDataResult
from agent_action.modes.tools import ToolScope, build_tool_scope
from agent_action.prompt.models import EventData, PreparedContext

if TYPE_CHECKING:
    from agent_action.modes.base import Mode, ModeContext

logger = structlog.get_logger()

_COMMENT_EVENTS = ("issue_comment", "pull_request_review_comment")


def build_event_data(context: Any) -> EventData:
    """Extract the event facts a prompt refers to."""
    payload: Dict[str, Any] = context.payload or {}
    comment_body = None
    comment_id = None

    if context.event_name in _COMMENT_EVENTS:
        comment = payload.get("comment") or {}
        comment_body = comment.get("body")
        comment_id = comment.get("id")
    elif context.event_name == "pull_request_review":
        comment_body = (payload.get("review") or {}).get("body")

    if is_entity_context(context):
        return EventData(
            event_name=context.event_name,
            event_action=context.event_action,
            is_pr=context.is_pr,
            entity_number=context.entity_number,
            comment_body=comment_body,
            comment_id=comment_id,
        )
    return EventData(event_name=context.event_name, event_action=context.event_action)


def prepare_prompt_context(
    mode_context: "ModeContext",
    allowed_tools: List[str],
    disallowed_tools: List[str],
) -> PreparedContext:
    """Flatten a ModeContext for prompt rendering."""
    context = mode_context.github_context
    inputs = context.inputs
    return PreparedContext(
        repository=context.repository.full_name,
        event_data=build_event_data(context),
        trigger_phrase=inputs.trigger_phrase,
        trigger_username=context.actor or None,
        custom_instructions=inputs.custom_instructions,
        direct_prompt=inputs.direct_prompt,
        override_prompt=inputs.override_prompt,
        comment_id=mode_context.comment_id,
        base_branch=mode_context.base_branch,
        claude_branch=mode_context.claude_branch,
        allowed_tools=allowed_tools,
        disallowed_tools=disallowed_tools,
    )


def write_prompt_file(settings: ActionSettings, content: str) -> Path:
    """Write the prompt file, creating its directory."""
    prompt_dir = Path(settings.prompt_dir)
    prompt_dir.mkdir(parents=True, exist_ok=True)
    prompt_file = Path(settings.prompt_file)
    prompt_file.write_text(content, encoding="utf-8")
    logger.info("Prompt file written", path=str(prompt_file), length=len(content))
    return prompt_file


def create_prompt(
    mode: "Mode",
    mode_context: "ModeContext",
    github_data: Optional[FetchDataResult],
    settings: ActionSettings,
    scope: Optional[ToolScope] = None,
) -> Path:
    """Render the mode's prompt and write the prompt file.

    Args:
        mode: Mode rendering the prompt.
        mode_context: Context merged with run-scoped data.
        github_data: Fetched issue or pull request data, if any.
        settings: Captured step configuration.
        scope: Tool scope of the run; defaults to the mode's static tools.

    Returns:
        Path of the written prompt file.
    """
    inputs = mode_context.github_context.inputs
    if scope is None:
        scope = build_tool_scope(
            mode.get_allowed_tools(), inputs, mode.get_disallowed_tools()
        )
    prepared = prepare_prompt_context(
        mode_context,
        allowed_tools=scope.allowed,
        disallowed_tools=scope.disallowed,
    )
    content = mode.generate_prompt(
        prepared, github_data, use_commit_signing=inputs.use_commit_signing
    )
    return write_prompt_file(settings, content)
