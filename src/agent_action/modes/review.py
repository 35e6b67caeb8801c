"""Review mode: pull request code review through GitHub's review API.

Uses the workflow's own token rather than an exchanged installation
token. Feedback is delivered as a pending review with inline comments,
so no tracking comment is created and no branch is touched.
"""

from typing import List, Optional

import structlog

from agent_action.errors import PrepareError
from agent_action.github.branch import BranchInfo
from agent_action.github.context import is_entity_context, is_pull_request_event
from agent_action.github.data import FetchDataResult, fetch_github_data
from agent_action.github.formatter import (
    format_body,
    format_changed_files_with_sha,
    format_comments,
    format_context,
    format_review_comments,
)
from agent_action.github.trigger import check_contains_trigger
from agent_action.mcp.config import prepare_mcp_config
from agent_action.modes.base import Context, Mode, ModeData, ModeOptions, ModeResult
from agent_action.modes.names import ModeName
from agent_action.modes.tools import build_tool_scope, export_tool_scope
from agent_action.prompt.create import create_prompt
from agent_action.prompt.models import PreparedContext

logger = structlog.get_logger()

REVIEW_TOOLS = [
    "mcp__github__get_me",
    "mcp__github__create_pending_pull_request_review",
    "mcp__github__add_comment_to_pending_review",
    "mcp__github__submit_pending_pull_request_review",
    "mcp__github__delete_pending_pull_request_review",
    "mcp__github__create_and_submit_pull_request_review",
    "mcp__github__add_issue_comment",
    "mcp__github__get_pull_request",
    "mcp__github__get_pull_request_reviews",
    "mcp__github__get_pull_request_status",
]

PULL_REQUEST_ACTIONS = ("opened", "synchronize", "reopened")

_TRIGGER_COMMENT_EVENTS = (
    "issue_comment",
    "pull_request_review_comment",
    "pull_request_review",
)


class ReviewMode(Mode):
    name = ModeName.REVIEW
    description = "Experimental code review mode for inline comments and suggestions"

    def should_trigger(self, context: Context) -> bool:
        if not is_entity_context(context) or not context.is_pr:
            return False
        if is_pull_request_event(context):
            return context.event_action in PULL_REQUEST_ACTIONS
        return check_contains_trigger(context)

    def get_allowed_tools(self) -> List[str]:
        return list(REVIEW_TOOLS)

    def should_create_tracking_comment(self) -> bool:
        return False

    async def prepare(self, options: ModeOptions) -> ModeResult:
        context = options.context
        if not is_entity_context(context):
            raise PrepareError("Review mode requires entity context")

        github_data = await fetch_github_data(
            options.client,
            context.repository,
            context.entity_number,
            context.is_pr,
            trigger_username=context.actor,
        )

        # No branch is created or modified
        branch_info = BranchInfo(base_branch="main", current_branch="")

        mode_context = self.prepare_context(
            context, ModeData(base_branch=branch_info.base_branch)
        )
        scope = build_tool_scope(self.get_allowed_tools(), context.inputs)
        create_prompt(self, mode_context, github_data, options.settings, scope=scope)
        export_tool_scope(scope, options.outputs)

        mcp_config = prepare_mcp_config(
            github_token=options.github_token,
            context=context,
            settings=options.settings,
            allowed_tools=[*self.get_allowed_tools(), *context.inputs.allowed_tools],
            branch=branch_info.current_branch,
            base_branch=branch_info.base_branch,
            outputs=options.outputs,
        )
        options.outputs.set_output("mcp_config", mcp_config)

        logger.info("Review mode prepared", pr_number=context.entity_number)
        return ModeResult(branch_info=branch_info, mcp_config=mcp_config)

    def generate_prompt(
        self,
        context: PreparedContext,
        github_data: Optional[FetchDataResult],
        use_commit_signing: bool = False,
    ) -> str:
        if context.override_prompt:
            return context.override_prompt

        event = context.event_data
        data = github_data.context_data if github_data else {}
        comments = github_data.comments if github_data else []
        reviews = github_data.reviews if github_data else []
        changed_files = github_data.changed_files if github_data else []
        body = format_body(data.get("body") or "") or "No description provided"
        pr_number = event.entity_number if event.is_pr else None

        sections = [
            "You are Claude, an AI assistant specialized in code reviews for "
            "GitHub pull requests. You are operating in REVIEW MODE: provide "
            "thorough code review feedback using GitHub MCP tools for inline "
            "comments and suggestions.",
            f"<formatted_context>\n{format_context(data, True)}\n</formatted_context>",
            f"<repository>{context.repository}</repository>"
            + (f"\n<pr_number>{pr_number}</pr_number>" if pr_number else ""),
            f"<comments>\n{format_comments(comments) or 'No comments yet'}\n</comments>",
            f"<review_comments>\n{format_review_comments(reviews) or 'No review comments'}\n</review_comments>",
            f"<changed_files>\n{format_changed_files_with_sha(changed_files)}\n</changed_files>",
            f"<formatted_body>\n{body}\n</formatted_body>",
        ]

        if event.event_name in _TRIGGER_COMMENT_EVENTS and event.comment_body:
            sections.append(
                f"<trigger_comment>\nUser @{context.trigger_username}: "
                f"{event.comment_body}\n</trigger_comment>"
            )
        if context.direct_prompt:
            sections.append(f"<direct_prompt>\n{context.direct_prompt}\n</direct_prompt>")

        sections.append(_workflow(context.repository, pr_number))
        return "\n\n".join(sections)


def _workflow(repository: str, pr_number: Optional[int]) -> str:
    number = pr_number if pr_number else "[PR number]"
    return f"""REVIEW MODE WORKFLOW:

1. Understand the PR context:
   - You are reviewing PR #{number} in {repository}
   - Use mcp__github__get_pull_request to get PR metadata
   - Use the Read, Grep and Glob tools to examine the modified files on disk
   - The changed_files section above lists the modified files

2. Create a pending review:
   - Use mcp__github__create_pending_pull_request_review to start your review
   - Comments are batched until the review is submitted

3. Add inline comments:
   - Use mcp__github__add_comment_to_pending_review once per finding
   - Parameters: path, line (or startLine and line for a range), side
     ("LEFT" for old code, "RIGHT" for new code), subjectType "line", body
   - For code suggestions use a ```suggestion block that replaces ONLY the
     commented line(s)

4. Submit your review:
   - Use mcp__github__submit_pending_pull_request_review
   - event: "COMMENT", "REQUEST_CHANGES" or "APPROVE"
   - body: a structured summary with an executive summary, findings by
     severity, action items and an overall assessment

The review body is the primary channel for your feedback; make it complete
on its own."""
