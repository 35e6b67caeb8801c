"""Entry point of the prepare step."""

import asyncio
import sys

import structlog

from agent_action.config import ActionSettings, describe_settings, get_settings
from agent_action.github.context import load_event_payload
from agent_action.logs import configure_logging
from agent_action.outputs import ActionOutputs
from agent_action.prepare import PrepareOrchestrator

logger = structlog.get_logger()


async def run(settings: ActionSettings, outputs: ActionOutputs) -> int:
    orchestrator = PrepareOrchestrator(settings, outputs)
    try:
        payload = load_event_payload(settings.github_event_path)
    except (OSError, ValueError) as exc:
        return orchestrator.fail(exc)
    return await orchestrator.run(settings.github_event_name, payload)


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Prepare step configuration", **describe_settings(settings))

    outputs = ActionOutputs(
        output_path=settings.github_output,
        env_path=settings.github_env,
    )
    sys.exit(asyncio.run(run(settings, outputs)))


if __name__ == "__main__":
    main()
