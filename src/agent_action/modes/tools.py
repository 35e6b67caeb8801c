"""Tool scope assembly.

The published tool scope is the concatenation of a fixed base list, the
mode's own tools and the user's tools. Duplicates are harmless: the agent
checks scope by set membership.
"""

from dataclasses import dataclass, field
from typing import Iterable, List

from agent_action.github.context import ActionInputs
from agent_action.outputs import ActionOutputs

BASE_TOOLS = ["Edit", "MultiEdit", "Glob", "Grep", "LS", "Read", "Write"]

DISALLOWED_BASELINE = ["WebSearch", "WebFetch"]


@dataclass(frozen=True)
class ToolScope:
    """Ordered allowed and disallowed tool names."""

    allowed: List[str] = field(default_factory=list)
    disallowed: List[str] = field(default_factory=list)


def build_tool_scope(
    mode_allowed: Iterable[str],
    inputs: ActionInputs,
    mode_disallowed: Iterable[str] = (),
) -> ToolScope:
    """Compose base, mode and user tools.

    Args:
        mode_allowed: Tools the mode grants on top of the base list.
        inputs: Resolved step inputs carrying the user's tool lists.
        mode_disallowed: Tools the mode denies on top of the baseline.

    Returns:
        ToolScope with the composed lists.
    """
    return ToolScope(
        allowed=[*BASE_TOOLS, *mode_allowed, *inputs.allowed_tools],
        disallowed=[
            *DISALLOWED_BASELINE,
            *mode_disallowed,
            *inputs.disallowed_tools,
        ],
    )


def export_tool_scope(scope: ToolScope, outputs: ActionOutputs) -> None:
    """Export the scope as INPUT_ variables for the agent step."""
    outputs.export_variable("INPUT_ALLOWED_TOOLS", ",".join(scope.allowed))
    outputs.export_variable("INPUT_DISALLOWED_TOOLS", ",".join(scope.disallowed))
