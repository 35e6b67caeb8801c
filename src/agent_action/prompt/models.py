"""Models handed to Mode.generate_prompt."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class EventData(BaseModel):
    """The event facts a prompt refers to.

    Attributes:
        event_name: GitHub event name.
        event_action: Payload ``action``, if any.
        is_pr: Whether the entity is a pull request.
        entity_number: Issue or pull request number (None for automation).
        comment_body: Body of the comment or review that triggered the run.
        comment_id: Id of the triggering comment, if any.
    """

    model_config = ConfigDict(frozen=True)

    event_name: str
    event_action: Optional[str] = None
    is_pr: bool = False
    entity_number: Optional[int] = None
    comment_body: Optional[str] = None
    comment_id: Optional[int] = None


class PreparedContext(BaseModel):
    """Flattened view of a run used to render the prompt."""

    model_config = ConfigDict(frozen=True)

    repository: str
    event_data: EventData
    trigger_phrase: str = "@claude"
    trigger_username: Optional[str] = None
    custom_instructions: str = ""
    direct_prompt: str = ""
    override_prompt: str = ""
    comment_id: Optional[int] = None
    base_branch: Optional[str] = None
    claude_branch: Optional[str] = None
    allowed_tools: List[str] = Field(default_factory=list)
    disallowed_tools: List[str] = Field(default_factory=list)
