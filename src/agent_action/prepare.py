"""Prepare orchestrator driving one workflow run.

Runs the linear, fallible sequence of the prepare step:
mode name → token → context → write permission → mode → trigger → prepare.

Every step is awaited in order. The run ends in exactly one of two
observable states: the agent should run (tool scope, prompt file and MCP
configuration are published) or it should not (``contains_trigger`` is
``false``, or the failure is published through ``prepare_error``).
"""

from typing import Any, Awaitable, Callable, Dict, Optional

import structlog

from agent_action.config import ActionSettings
from agent_action.errors import InvalidModeError, WritePermissionError
from agent_action.github.branch import GitRunner
from agent_action.github.client import GitHubClient
from agent_action.github.context import is_entity_context, normalize
from agent_action.github.permissions import check_write_permissions
from agent_action.github.token import resolve_github_token
from agent_action.modes.base import ModeOptions, ModeResult
from agent_action.modes.names import ModeName, invalid_mode_message, is_valid_mode
from agent_action.modes.registry import get_mode
from agent_action.outputs import ActionOutputs

logger = structlog.get_logger()

ClientFactory = Callable[[str], GitHubClient]
TokenResolver = Callable[[ModeName, ActionSettings], Awaitable[str]]


class PrepareOrchestrator:
    """Drives a workflow event through the prepare sequence.

    Accepts its collaborators via constructor injection so tests can
    replace the GitHub client, the token exchange and git.

    Attributes:
        settings: Captured step configuration.
        outputs: Writer for workflow outputs and exported variables.
        client_factory: Builds a GitHub client from a token.
        token_resolver: Resolves the GitHub token for a mode.
        git: Runner for local git commands.
    """

    def __init__(
        self,
        settings: ActionSettings,
        outputs: ActionOutputs,
        client_factory: Optional[ClientFactory] = None,
        token_resolver: TokenResolver = resolve_github_token,
        git: Optional[GitRunner] = None,
    ):
        self.settings = settings
        self.outputs = outputs
        self.client_factory = client_factory or self._default_client
        self.token_resolver = token_resolver
        self.git = git or GitRunner()

    def _default_client(self, token: str) -> GitHubClient:
        return GitHubClient(token=token, base_url=self.settings.github_api_url)

    async def run(self, event_name: str, payload: Dict[str, Any]) -> int:
        """Run the prepare sequence.

        Args:
            event_name: The GitHub event name of the run.
            payload: The raw event payload.

        Returns:
            Process exit status: 0 on success or when not triggered,
            1 when any step failed.
        """
        logger.info("Starting prepare", event_name=event_name, mode=self.settings.mode)
        try:
            await self._prepare(event_name, payload)
        except Exception as exc:
            return self.fail(exc)
        return 0

    def fail(self, exc: BaseException) -> int:
        """Publish a failure and return the failing exit status."""
        message = str(exc) or repr(exc)
        logger.error("Prepare step failed", error=message, exc_info=exc)
        self.outputs.set_failed(f"Prepare step failed with error: {message}")
        self.outputs.set_output("prepare_error", message)
        return 1

    async def _prepare(self, event_name: str, payload: Dict[str, Any]) -> None:
        mode_name = self._resolve_mode_name()

        github_token = await self.token_resolver(mode_name, self.settings)

        context = normalize(event_name, payload, self.settings)

        async with self.client_factory(github_token) as client:
            if is_entity_context(context):
                if not await check_write_permissions(client, context):
                    raise WritePermissionError(
                        "Actor does not have write permissions to the repository"
                    )

            mode = get_mode(mode_name.value, context)

            contains_trigger = mode.should_trigger(context)
            self.outputs.set_output("contains_trigger", str(contains_trigger).lower())
            if not contains_trigger:
                logger.info("No trigger found, skipping remaining steps", mode=mode_name.value)
                return

            logger.info(
                "Preparing with mode",
                mode=mode_name.value,
                event_name=context.event_name,
            )
            result = await mode.prepare(
                ModeOptions(
                    context=context,
                    client=client,
                    github_token=github_token,
                    settings=self.settings,
                    outputs=self.outputs,
                    git=self.git,
                )
            )

        self._publish(result)

    def _resolve_mode_name(self) -> ModeName:
        name = self.settings.mode
        if not is_valid_mode(name):
            raise InvalidModeError(invalid_mode_message(name), mode_name=name)
        return ModeName(name)

    def _publish(self, result: ModeResult) -> None:
        self.outputs.set_output("mcp_config", result.mcp_config)
        if result.comment_id is not None:
            self.outputs.set_output("claude_comment_id", str(result.comment_id))

        branch = result.branch_info
        branch_name = branch.claude_branch or branch.current_branch
        if branch_name:
            self.outputs.set_output("branch_name", branch_name)
        if branch.base_branch:
            self.outputs.set_output("base_branch", branch.base_branch)

        logger.info(
            "Prepare completed",
            comment_id=result.comment_id,
            branch_name=branch_name or None,
        )
