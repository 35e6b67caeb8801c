"""Agent mode: automation runs without a human trigger.

Handles workflow_dispatch and schedule events. There is no tracking
comment and no branch management; the task comes from the workflow's
override or direct prompt.
"""

from typing import Optional

import structlog

from agent_action.github.branch import BranchInfo
from agent_action.github.context import is_automation_context
from agent_action.github.data import FetchDataResult
from agent_action.mcp.config import (
    empty_mcp_config,
    merge_mcp_config,
    serialize_mcp_config,
)
from agent_action.modes.base import (
    Context,
    Mode,
    ModeContext,
    ModeData,
    ModeOptions,
    ModeResult,
)
from agent_action.modes.names import ModeName
from agent_action.modes.tools import build_tool_scope, export_tool_scope
from agent_action.prompt.create import create_prompt
from agent_action.prompt.models import PreparedContext

logger = structlog.get_logger()


class AgentMode(Mode):
    name = ModeName.AGENT
    description = "Automation mode for workflow_dispatch and schedule events"

    def should_trigger(self, context: Context) -> bool:
        # Automation events carry no human trigger text to inspect
        return is_automation_context(context)

    def prepare_context(
        self, context: Context, data: Optional[ModeData] = None
    ) -> ModeContext:
        return ModeContext(mode=self.name, github_context=context)

    def should_create_tracking_comment(self) -> bool:
        return False

    async def prepare(self, options: ModeOptions) -> ModeResult:
        context = options.context

        # The agent step requires a prompt file even when no prompt was given
        scope = build_tool_scope(self.get_allowed_tools(), context.inputs)
        create_prompt(
            self, self.prepare_context(context), None, options.settings, scope=scope
        )
        export_tool_scope(scope, options.outputs)

        mcp_config = serialize_mcp_config(
            merge_mcp_config(
                empty_mcp_config(), options.settings.mcp_config, options.outputs
            )
        )
        options.outputs.set_output("mcp_config", mcp_config)

        logger.info("Agent mode prepared", event_name=context.event_name)
        return ModeResult(
            comment_id=None,
            branch_info=BranchInfo(base_branch="", current_branch=""),
            mcp_config=mcp_config,
        )

    def generate_prompt(
        self,
        context: PreparedContext,
        github_data: Optional[FetchDataResult],
        use_commit_signing: bool = False,
    ) -> str:
        if context.override_prompt:
            return context.override_prompt
        if context.direct_prompt:
            return context.direct_prompt
        return f"Repository: {context.repository}"
