"""Tracking comment MCP server.

Exposes a single ``update_claude_comment`` tool over stdio. The agent uses
it to rewrite the tracking comment created during prepare with its
progress and final answer. Configuration comes from the environment the
MCP config passes to the server process.
"""

import json
from typing import Any, Dict

import structlog
from mcp.server.fastmcp import FastMCP
from pydantic_settings import BaseSettings, SettingsConfigDict

from agent_action.github.client import GitHubClient
from agent_action.logs import configure_logging

logger = structlog.get_logger()


class CommentServerSettings(BaseSettings):
    """Environment of the comment server process."""

    model_config = SettingsConfigDict(case_sensitive=False, extra="ignore")

    github_token: str
    repo_owner: str
    repo_name: str
    claude_comment_id: int
    github_event_name: str = ""
    github_api_url: str = "https://api.github.com"
    log_level: str = "INFO"


async def update_tracking_comment(
    client: GitHubClient, settings: CommentServerSettings, body: str
) -> Dict[str, Any]:
    """Replace the tracking comment body.

    Review-comment threads use the pull request comment endpoint; every
    other event uses the issue comment endpoint.
    """
    if settings.github_event_name == "pull_request_review_comment":
        result = await client.update_review_comment(
            settings.repo_owner, settings.repo_name, settings.claude_comment_id, body
        )
    else:
        result = await client.update_comment(
            settings.repo_owner, settings.repo_name, settings.claude_comment_id, body
        )
    logger.info("Tracking comment updated", comment_id=settings.claude_comment_id)
    return {
        "id": result.get("id"),
        "html_url": result.get("html_url"),
        "updated_at": result.get("updated_at"),
    }


def create_server(settings: CommentServerSettings) -> FastMCP:
    mcp = FastMCP("GitHub Comment Server")

    @mcp.tool()
    async def update_claude_comment(body: str) -> str:
        """Update the Claude comment with progress and results.

        Args:
            body: The updated comment content (markdown).
        """
        async with GitHubClient(
            token=settings.github_token, base_url=settings.github_api_url
        ) as client:
            result = await update_tracking_comment(client, settings, body)
        return json.dumps(result, indent=2)

    return mcp


def main() -> None:
    settings = CommentServerSettings()
    # stdout carries the MCP protocol
    configure_logging(settings.log_level)
    create_server(settings).run()


if __name__ == "__main__":
    main()
