"""Registered mode names.

Kept free of imports so the context normalizer can validate the mode
input without pulling in the mode implementations.
"""

from enum import Enum


class ModeName(str, Enum):
    """Execution modes of the action.

    Attributes:
        TAG: Human-in-the-loop mode triggered by mentions, assignment or labels.
        AGENT: Automation mode for workflow_dispatch and schedule events.
        REVIEW: Pull request review mode using the workflow token.
    """

    TAG = "tag"
    AGENT = "agent"
    REVIEW = "experimental-review"


DEFAULT_MODE = ModeName.TAG.value
VALID_MODES = tuple(mode.value for mode in ModeName)


def is_valid_mode(name: str) -> bool:
    """Check if a string is a registered mode name."""
    return name in VALID_MODES


def invalid_mode_message(name: str) -> str:
    valid = "', '".join(VALID_MODES)
    return (
        f"Invalid mode '{name}'. Valid modes are: '{valid}'. "
        "Please check your workflow configuration."
    )
