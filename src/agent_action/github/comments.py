"""Tracking comment creation.

The tracking comment is the visible "working on it" placeholder the agent
later rewrites through the github_comment MCP server.
"""

from typing import Optional

import structlog

from agent_action.config import ActionSettings
from agent_action.github.client import GitHubClient
from agent_action.github.context import (
    EntityContext,
    is_pull_request_review_comment_event,
)

logger = structlog.get_logger()

TRACKING_MARKER = "<!-- agent-action:tracking-comment -->"


def job_run_link(context: EntityContext, settings: ActionSettings) -> str:
    return (
        f"{settings.github_server_url}/{context.repository.full_name}"
        f"/actions/runs/{context.run_id}"
    )


def initial_comment_body(context: EntityContext, settings: ActionSettings) -> str:
    return (
        "Claude Code is working…\n\n"
        "I'll analyze this and get back to you.\n\n"
        f"[View job run]({job_run_link(context, settings)})\n"
        f"{TRACKING_MARKER}"
    )


async def create_initial_comment(
    client: GitHubClient,
    context: EntityContext,
    settings: ActionSettings,
) -> int:
    """Create (or reuse, when sticky) the tracking comment.

    A review comment event always gets a reply in its review thread; the
    comment server updates it through the review comment endpoint, so a
    sticky issue comment cannot stand in for it.

    Args:
        client: Authenticated GitHub client.
        context: The entity context of the run.
        settings: Captured step configuration.

    Returns:
        The id of the tracking comment.
    """
    owner, repo = context.repository.owner, context.repository.repo
    body = initial_comment_body(context, settings)

    if is_pull_request_review_comment_event(context):
        comment_id = (context.payload.get("comment") or {}).get("id")
        if comment_id:
            result = await client.create_review_comment_reply(
                owner, repo, context.entity_number, comment_id, body
            )
            logger.info("Created tracking reply in review thread", comment_id=result.get("id"))
            return result["id"]

    sticky = context.inputs.use_sticky_comment and context.is_pr
    if sticky and not is_pull_request_review_comment_event(context):
        existing = await _find_sticky_comment(client, context)
        if existing is not None:
            await client.update_comment(owner, repo, existing, body)
            logger.info("Updated sticky tracking comment", comment_id=existing)
            return existing

    result = await client.create_comment(owner, repo, context.entity_number, body)
    logger.info("Created tracking comment", comment_id=result.get("id"))
    return result["id"]


async def _find_sticky_comment(
    client: GitHubClient, context: EntityContext
) -> Optional[int]:
    comments = await client.list_issue_comments(
        context.repository.owner, context.repository.repo, context.entity_number
    )
    for comment in comments:
        user = comment.get("user") or {}
        if user.get("type") == "Bot" and TRACKING_MARKER in (comment.get("body") or ""):
            return comment.get("id")
    return None
