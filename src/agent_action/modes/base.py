"""Mode contract shared by all execution modes.

A mode is a stateless strategy object. Its trigger predicate is a pure
function of the context; all side effects live in the async ``prepare``
operation, which the orchestrator only calls after the trigger decision.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict

from agent_action.config import ActionSettings
from agent_action.github.branch import BranchInfo, GitRunner
from agent_action.github.client import GitHubClient
from agent_action.github.context import AutomationContext, EntityContext
from agent_action.github.data import FetchDataResult
from agent_action.modes.names import ModeName
from agent_action.outputs import ActionOutputs
from agent_action.prompt.models import PreparedContext

Context = Union[EntityContext, AutomationContext]


class ModeData(BaseModel):
    """Run-scoped data merged into the mode context."""

    comment_id: Optional[int] = None
    base_branch: Optional[str] = None
    claude_branch: Optional[str] = None


class ModeContext(BaseModel):
    """Context handed to prompt generation.

    Only the fields that were supplied are set; ``model_fields_set``
    tells which ones.
    """

    model_config = ConfigDict(frozen=True)

    mode: ModeName
    github_context: Context
    comment_id: Optional[int] = None
    base_branch: Optional[str] = None
    claude_branch: Optional[str] = None


class ModeResult(BaseModel):
    """Terminal output of a successful prepare.

    Attributes:
        comment_id: Tracking comment id, if the mode created one.
        branch_info: Branches the agent works with.
        mcp_config: Serialized MCP configuration.
    """

    model_config = ConfigDict(frozen=True)

    comment_id: Optional[int] = None
    branch_info: BranchInfo
    mcp_config: str


@dataclass
class ModeOptions:
    """Collaborators passed to Mode.prepare.

    Attributes:
        context: The normalized context of the run.
        client: Authenticated GitHub client.
        github_token: Token the agent's MCP servers authenticate with.
        settings: Captured step configuration.
        outputs: Writer for workflow outputs and exported variables.
        git: Runner for local git commands.
    """

    context: Context
    client: GitHubClient
    github_token: str
    settings: ActionSettings
    outputs: ActionOutputs
    git: GitRunner = field(default_factory=GitRunner)


class Mode(ABC):
    """Abstract base class for execution modes.

    Attributes:
        name: Registered mode name.
        description: One-line description of the mode.
    """

    name: ModeName
    description: str

    @abstractmethod
    def should_trigger(self, context: Context) -> bool:
        """Decide whether the agent should act on this context."""

    def prepare_context(
        self, context: Context, data: Optional[ModeData] = None
    ) -> ModeContext:
        """Merge the context with run-scoped data for prompt generation."""
        values = data.model_dump(exclude_none=True) if data else {}
        return ModeContext(mode=self.name, github_context=context, **values)

    def get_allowed_tools(self) -> List[str]:
        return []

    def get_disallowed_tools(self) -> List[str]:
        return []

    @abstractmethod
    def should_create_tracking_comment(self) -> bool:
        """Whether a visible tracking comment is created before work starts."""

    @abstractmethod
    def generate_prompt(
        self,
        context: PreparedContext,
        github_data: Optional[FetchDataResult],
        use_commit_signing: bool = False,
    ) -> str:
        """Build the task description handed to the agent."""

    @abstractmethod
    async def prepare(self, options: ModeOptions) -> ModeResult:
        """Perform the mode's side-effecting setup."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name.value!r}>"
