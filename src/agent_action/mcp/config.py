"""MCP server configuration for the agent step.

The configuration is a JSON object with an ``mcpServers`` map. The base
document is assembled from the servers a mode needs and then merged with
the user's MCP_CONFIG override. A malformed override is reported as a
workflow warning and discarded.
"""

import json
import sys
from typing import Any, Dict, Iterable, Optional

import structlog

from agent_action.config import ActionSettings
from agent_action.github.context import is_entity_context
from agent_action.outputs import ActionOutputs

logger = structlog.get_logger()

GITHUB_MCP_IMAGE = "ghcr.io/github/github-mcp-server:sha-efef8ae"

INLINE_COMMENT_TOOL = "mcp__github_inline_comment__create_inline_comment"

GITHUB_TOOL_PREFIX = "mcp__github__"


def empty_mcp_config() -> Dict[str, Any]:
    return {"mcpServers": {}}


def serialize_mcp_config(config: Dict[str, Any]) -> str:
    return json.dumps(config, separators=(",", ":"))


def parse_mcp_override(
    override: str, outputs: Optional[ActionOutputs] = None
) -> Optional[Dict[str, Any]]:
    """Parse the MCP_CONFIG override.

    Returns:
        The parsed object, or None when the override is empty, malformed
        or not a JSON object.
    """
    if not override or not override.strip():
        return None
    try:
        parsed = json.loads(override)
    except json.JSONDecodeError as e:
        _warn(outputs, f"Failed to parse additional MCP config: {e}")
        return None
    if not isinstance(parsed, dict):
        _warn(outputs, "Additional MCP config must be a JSON object, ignoring it")
        return None
    return parsed


def merge_mcp_config(
    base: Dict[str, Any],
    override: str,
    outputs: Optional[ActionOutputs] = None,
) -> Dict[str, Any]:
    """Shallow-merge the override into the base: override keys win."""
    parsed = parse_mcp_override(override, outputs)
    if parsed is None:
        return dict(base)
    logger.info("Merging additional MCP config", keys=sorted(parsed))
    return {**base, **parsed}


def prepare_mcp_config(
    *,
    github_token: str,
    context: Any,
    settings: ActionSettings,
    allowed_tools: Iterable[str],
    comment_id: Optional[int] = None,
    branch: str = "",
    base_branch: str = "",
    outputs: Optional[ActionOutputs] = None,
) -> str:
    """Build the serialized MCP configuration for a tag or review run.

    Servers:
        github_comment: when a tracking comment exists.
        github_inline_comment: on pull requests when the inline comment
            tool is allowed.
        github: the GitHub MCP server, when any ``mcp__github__`` tool is
            allowed.

    User-supplied servers are merged into ``mcpServers`` and replace
    same-named base servers; other top-level override keys replace the
    base keys.
    """
    allowed = list(allowed_tools)
    owner, repo = context.repository.owner, context.repository.repo
    servers: Dict[str, Any] = {}

    if comment_id is not None:
        servers["github_comment"] = {
            "command": sys.executable,
            "args": ["-m", "agent_action.mcp.comment_server"],
            "env": {
                "GITHUB_TOKEN": github_token,
                "REPO_OWNER": owner,
                "REPO_NAME": repo,
                "CLAUDE_COMMENT_ID": str(comment_id),
                "GITHUB_EVENT_NAME": context.event_name,
                "GITHUB_API_URL": settings.github_api_url,
                "BRANCH_NAME": branch,
                "BASE_BRANCH": base_branch,
            },
        }

    if (
        is_entity_context(context)
        and context.is_pr
        and INLINE_COMMENT_TOOL in allowed
    ):
        servers["github_inline_comment"] = {
            "command": sys.executable,
            "args": ["-m", "agent_action.mcp.inline_comment_server"],
            "env": {
                "GITHUB_TOKEN": github_token,
                "REPO_OWNER": owner,
                "REPO_NAME": repo,
                "PR_NUMBER": str(context.entity_number),
                "GITHUB_API_URL": settings.github_api_url,
            },
        }

    if any(tool.startswith(GITHUB_TOOL_PREFIX) for tool in allowed):
        servers["github"] = {
            "command": "docker",
            "args": [
                "run",
                "-i",
                "--rm",
                "-e",
                "GITHUB_PERSONAL_ACCESS_TOKEN",
                "-e",
                "GITHUB_HOST",
                GITHUB_MCP_IMAGE,
            ],
            "env": {
                "GITHUB_PERSONAL_ACCESS_TOKEN": github_token,
                "GITHUB_HOST": settings.github_server_url,
            },
        }

    config: Dict[str, Any] = {"mcpServers": servers}
    parsed = parse_mcp_override(settings.mcp_config, outputs)
    if parsed is not None:
        extra_servers = parsed.get("mcpServers")
        config = {**config, **parsed}
        if isinstance(extra_servers, dict):
            config["mcpServers"] = {**servers, **extra_servers}

    logger.info("MCP config prepared", servers=sorted(config.get("mcpServers") or {}))
    return serialize_mcp_config(config)


def _warn(outputs: Optional[ActionOutputs], message: str) -> None:
    logger.warning(message)
    if outputs is not None:
        outputs.warning(message)
