"""Inline pull request comment MCP server.

Exposes ``create_inline_comment`` over stdio: one review comment on a line
or a line range of a pull request file. Full review capabilities are not
exposed, so the agent cannot approve a pull request through this server.
"""

import json
from typing import Any, Dict, Literal, Optional

import structlog
from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from pydantic_settings import BaseSettings, SettingsConfigDict

from agent_action.github.client import GitHubAPIError, GitHubClient
from agent_action.logs import configure_logging

logger = structlog.get_logger()

Side = Literal["LEFT", "RIGHT"]


class InlineCommentServerSettings(BaseSettings):
    """Environment of the inline comment server process."""

    model_config = SettingsConfigDict(case_sensitive=False, extra="ignore")

    github_token: str
    repo_owner: str
    repo_name: str
    pr_number: int
    github_api_url: str = "https://api.github.com"
    log_level: str = "INFO"


class InlineCommentError(Exception):
    """Raised when an inline comment cannot be created."""


def error_hint(message: str) -> str:
    if "Validation Failed" in message:
        return (
            "\n\nThis usually means the line number doesn't exist in the diff "
            "or the file path is incorrect. Make sure you're commenting on "
            "lines that are part of the PR's changes."
        )
    if "Not Found" in message:
        return (
            "\n\nThis usually means the PR number, repository, or file path "
            "is incorrect."
        )
    return ""


def build_comment_params(
    path: str,
    body: str,
    line: Optional[int],
    start_line: Optional[int],
    side: Side,
    commit_id: str,
) -> Dict[str, Any]:
    """Build the create-review-comment request body.

    ``line`` is always required; with ``start_line`` the comment spans the
    range and ``start_side`` mirrors ``side``.

    Raises:
        InlineCommentError: If ``line`` is missing or the range is inverted.
    """
    if not line:
        raise InlineCommentError(
            "'line' is required: use 'line' for single-line comments or both "
            "'startLine' and 'line' for multi-line comments"
        )
    if start_line and start_line > line:
        raise InlineCommentError(
            f"'startLine' ({start_line}) must not be greater than 'line' ({line})"
        )

    params: Dict[str, Any] = {
        "path": path,
        "body": body,
        "side": side,
        "commit_id": commit_id,
        "line": line,
    }
    if start_line:
        params["start_line"] = start_line
        params["start_side"] = side
    return params


async def create_inline_comment(
    client: GitHubClient,
    settings: InlineCommentServerSettings,
    path: str,
    body: str,
    line: Optional[int] = None,
    start_line: Optional[int] = None,
    side: Side = "RIGHT",
    commit_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Create an inline review comment, defaulting to the PR head commit."""
    owner, repo, number = settings.repo_owner, settings.repo_name, settings.pr_number

    if not commit_id:
        pr = await client.get_pull_request(owner, repo, number)
        commit_id = (pr.get("head") or {}).get("sha", "")

    params = build_comment_params(path, body, line, start_line, side, commit_id)
    result = await client.create_review_comment(owner, repo, number, params)

    if start_line:
        location = f"from line {start_line} to {line}"
    else:
        location = f"at line {line}"
    return {
        "success": True,
        "comment_id": result.get("id"),
        "html_url": result.get("html_url"),
        "path": result.get("path"),
        "line": result.get("line") or result.get("original_line"),
        "message": f"Inline comment created successfully on {path} {location}",
    }


def create_server(settings: InlineCommentServerSettings) -> FastMCP:
    mcp = FastMCP("GitHub Inline Comment Server")

    @mcp.tool(
        name="create_inline_comment",
        description="Create an inline comment on a specific line or lines in a PR file",
    )
    async def inline_comment(
        path: str,
        body: str,
        line: Optional[int] = None,
        startLine: Optional[int] = None,
        side: Side = "RIGHT",
        commit_id: Optional[str] = None,
    ) -> str:
        try:
            async with GitHubClient(
                token=settings.github_token, base_url=settings.github_api_url
            ) as client:
                result = await create_inline_comment(
                    client, settings, path, body, line, startLine, side, commit_id
                )
        except (GitHubAPIError, InlineCommentError) as e:
            message = str(e)
            logger.warning("Inline comment failed", path=path, error=message)
            raise ToolError(
                f"Error creating inline comment: {message}{error_hint(message)}"
            ) from e
        return json.dumps(result, indent=2)

    return mcp


def main() -> None:
    settings = InlineCommentServerSettings()
    configure_logging(settings.log_level)
    create_server(settings).run()


if __name__ == "__main__":
    main()
