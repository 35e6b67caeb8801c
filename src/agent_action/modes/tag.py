"""Tag mode: the interactive default.

Runs when a human summons the agent on an issue or pull request, by
mention, assignment or label. The agent reports through a tracking
comment it keeps rewriting, and works on a dedicated branch (or the PR's
own branch).
"""

from typing import List, Optional

import structlog

from agent_action.errors import PrepareError
from agent_action.github.branch import setup_branch
from agent_action.github.comments import create_initial_comment
from agent_action.github.context import EntityContext, is_entity_context
from agent_action.github.data import FetchDataResult, fetch_github_data
from agent_action.github.formatter import (
    format_body,
    format_changed_files_with_sha,
    format_comments,
    format_context,
    format_review_comments,
)
from agent_action.github.permissions import check_human_actor
from agent_action.github.trigger import check_contains_trigger
from agent_action.mcp.config import INLINE_COMMENT_TOOL, prepare_mcp_config
from agent_action.modes.base import Context, Mode, ModeData, ModeOptions, ModeResult
from agent_action.modes.names import ModeName
from agent_action.modes.tools import build_tool_scope, export_tool_scope
from agent_action.prompt.create import create_prompt
from agent_action.prompt.models import PreparedContext

logger = structlog.get_logger()

COMMENT_TOOL = "mcp__github_comment__update_claude_comment"

GIT_TOOLS = [
    "Bash(git add:*)",
    "Bash(git commit:*)",
    "Bash(git push:*)",
    "Bash(git status:*)",
    "Bash(git diff:*)",
    "Bash(git log:*)",
    "Bash(git rm:*)",
]


class TagMode(Mode):
    name = ModeName.TAG
    description = "Traditional implementation mode triggered by @claude mentions"

    def should_trigger(self, context: Context) -> bool:
        if not is_entity_context(context):
            return False
        return check_contains_trigger(context)

    def get_allowed_tools(self) -> List[str]:
        return [COMMENT_TOOL]

    def should_create_tracking_comment(self) -> bool:
        return True

    def run_tools(self, context: EntityContext) -> List[str]:
        """Tools granted for a concrete run on top of the static list."""
        tools = self.get_allowed_tools()
        if not context.inputs.use_commit_signing:
            tools.extend(GIT_TOOLS)
        if context.is_pr:
            tools.append(INLINE_COMMENT_TOOL)
        return tools

    async def prepare(self, options: ModeOptions) -> ModeResult:
        context = options.context
        if not is_entity_context(context):
            raise PrepareError("Tag mode requires entity context")

        client = options.client
        await check_human_actor(client, context)

        comment_id = await create_initial_comment(client, context, options.settings)

        github_data = await fetch_github_data(
            client,
            context.repository,
            context.entity_number,
            context.is_pr,
            trigger_username=context.actor,
        )

        branch_info = await setup_branch(client, github_data, context, options.git)

        mode_context = self.prepare_context(
            context,
            ModeData(
                comment_id=comment_id,
                base_branch=branch_info.base_branch,
                claude_branch=branch_info.claude_branch,
            ),
        )

        mode_tools = self.run_tools(context)
        scope = build_tool_scope(mode_tools, context.inputs, self.get_disallowed_tools())
        create_prompt(self, mode_context, github_data, options.settings, scope=scope)
        export_tool_scope(scope, options.outputs)

        mcp_config = prepare_mcp_config(
            github_token=options.github_token,
            context=context,
            settings=options.settings,
            allowed_tools=[*mode_tools, *context.inputs.allowed_tools],
            comment_id=comment_id,
            branch=branch_info.claude_branch or branch_info.current_branch,
            base_branch=branch_info.base_branch,
            outputs=options.outputs,
        )

        logger.info(
            "Tag mode prepared",
            comment_id=comment_id,
            branch=branch_info.current_branch,
        )
        return ModeResult(
            comment_id=comment_id,
            branch_info=branch_info,
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

        event = context.event_data
        sections = [
            "You are Claude, an AI assistant designed to help with GitHub "
            "issues and pull requests. Think carefully as you analyze the "
            "context and respond appropriately.",
        ]

        if github_data is not None:
            data = github_data.context_data
            sections.append(
                f"<formatted_context>\n{format_context(data, event.is_pr)}\n</formatted_context>"
            )
            body = format_body(data.get("body") or "") or "No description provided"
            sections.append(f"<pr_or_issue_body>\n{body}\n</pr_or_issue_body>")
            sections.append(
                f"<comments>\n{format_comments(github_data.comments) or 'No comments'}\n</comments>"
            )
            if event.is_pr:
                reviews = format_review_comments(github_data.reviews)
                files = format_changed_files_with_sha(github_data.changed_files)
                sections.append(
                    f"<review_comments>\n{reviews or 'No review comments'}\n</review_comments>"
                )
                sections.append(
                    f"<changed_files>\n{files or 'No files changed'}\n</changed_files>"
                )

        kind = "PR" if event.is_pr else "ISSUE"
        details = [
            f"<event_type>{_event_type(event.event_name, event.event_action)}</event_type>",
            f"<is_pr>{str(event.is_pr).lower()}</is_pr>",
            f"<repository>{context.repository}</repository>",
            f"<{kind.lower()}_number>{event.entity_number}</{kind.lower()}_number>",
            f"<claude_comment_id>{context.comment_id}</claude_comment_id>",
            f"<trigger_username>{context.trigger_username or 'Unknown'}</trigger_username>",
            f"<trigger_phrase>{context.trigger_phrase}</trigger_phrase>",
        ]
        if github_data is not None and github_data.trigger_display_name:
            details.append(
                f"<trigger_display_name>{github_data.trigger_display_name}</trigger_display_name>"
            )
        if event.comment_body:
            details.append(
                f"<trigger_comment>\n{event.comment_body}\n</trigger_comment>"
            )
        if context.direct_prompt:
            details.append(f"<direct_prompt>\n{context.direct_prompt}\n</direct_prompt>")
        sections.append("\n".join(details))

        sections.append(
            "<comment_tool_info>\n"
            f"Update your tracking comment with {COMMENT_TOOL}. Only the "
            "comment body can be changed.\n"
            "</comment_tool_info>"
        )

        sections.append(_instructions(context, use_commit_signing))

        if context.custom_instructions:
            sections.append(
                f"<custom_instructions>\n{context.custom_instructions}\n</custom_instructions>"
            )
        return "\n\n".join(sections)


def _event_type(event_name: str, action: Optional[str]) -> str:
    if event_name == "pull_request_review_comment":
        return "REVIEW_COMMENT"
    if event_name == "pull_request_review":
        return "PR_REVIEW"
    if event_name == "issue_comment":
        return "GENERAL_COMMENT"
    if event_name == "issues":
        if action == "assigned":
            return "ISSUE_ASSIGNED"
        if action == "labeled":
            return "ISSUE_LABELED"
        return "ISSUE_CREATED"
    return "PULL_REQUEST"


def _instructions(context: PreparedContext, use_commit_signing: bool) -> str:
    branch = context.claude_branch or context.base_branch or ""
    if use_commit_signing:
        commit_steps = (
            "- Commits are signed through the GitHub API: describe each change "
            "in your tracking comment and do not run local git commands."
        )
    else:
        commit_steps = (
            f"- You are on branch {branch}. Commit with "
            "`git add` and `git commit`, then `git push origin HEAD`."
        )
    return (
        "Your task is to analyze the context, understand the request and "
        "provide helpful responses or implement changes when asked.\n\n"
        "Follow these steps:\n"
        "1. Create a todo list in your tracking comment and keep it current, "
        "checking items off as you finish them.\n"
        "2. Read the context above, including the trigger comment and the "
        f"direct prompt if present. Only act on requests addressed with "
        f"'{context.trigger_phrase}'.\n"
        "3. Answer questions in the tracking comment, or implement the "
        "requested changes:\n"
        f"{commit_steps}\n"
        "4. Finish by rewriting the tracking comment with a summary of what "
        "you did. Never create additional comments."
    )
