"""Mode registry.

Maps mode names to their implementations and enforces the one hard
compatibility rule: tag mode cannot run on automation events.

To add a mode, add its name to ModeName and its instance to ``_MODES``.
"""

from typing import Dict

from agent_action.errors import IncompatibleModeError, InvalidModeError
from agent_action.github.context import is_automation_context
from agent_action.modes.agent import AgentMode
from agent_action.modes.base import Context, Mode
from agent_action.modes.names import (
    DEFAULT_MODE,
    VALID_MODES,
    ModeName,
    invalid_mode_message,
    is_valid_mode,
)
from agent_action.modes.review import ReviewMode
from agent_action.modes.tag import TagMode

__all__ = ["DEFAULT_MODE", "VALID_MODES", "get_mode", "is_valid_mode"]

_MODES: Dict[str, Mode] = {
    ModeName.TAG.value: TagMode(),
    ModeName.AGENT.value: AgentMode(),
    ModeName.REVIEW.value: ReviewMode(),
}


def get_mode(name: str, context: Context) -> Mode:
    """Retrieve a mode and check it can handle the event.

    Args:
        name: Mode name from the workflow configuration.
        context: The normalized context of the run.

    Returns:
        The registered Mode.

    Raises:
        InvalidModeError: If the name is not a registered mode.
        IncompatibleModeError: If tag mode is asked to handle an
            automation event.
    """
    key = name.value if isinstance(name, ModeName) else name
    mode = _MODES.get(key)
    if mode is None:
        raise InvalidModeError(invalid_mode_message(key), mode_name=key)

    if mode.name is ModeName.TAG and is_automation_context(context):
        raise IncompatibleModeError(
            f"Tag mode cannot handle {context.event_name} events. "
            "Use 'agent' mode for automation events.",
            mode_name=key,
            event_name=context.event_name,
        )
    return mode
