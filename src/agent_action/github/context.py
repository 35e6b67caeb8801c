"""Normalized GitHub event context.

This module converts the raw event payload delivered to a workflow run,
together with the captured step configuration, into one immutable Context
value. The Context is a closed union discriminated by ``event_class``:

- EntityContext: events about an addressable issue or pull request
  (issues, issue_comment, pull_request, pull_request_review,
  pull_request_review_comment). Carries entity_number and is_pr.
- AutomationContext: events with no addressable entity
  (workflow_dispatch, schedule).

Classification uses the static event-name tables below, never the shape
of the payload. Downstream code switches on the tag via the type guards.

GitHub event payload structure (issue_comment event):
{
  "action": "created",
  "issue": {"number": 12, "pull_request": {...}},
  "comment": {"body": "@claude please fix", "user": {"login": "octocat"}},
  "repository": {"name": "repo-name", "owner": {"login": "owner-name"}},
  "sender": {"login": "octocat"}
}
"""

import json
import re
from pathlib import Path
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

import structlog
from pydantic import BaseModel, ConfigDict, Field

from agent_action.config import ActionSettings
from agent_action.errors import (
    InvalidModeError,
    MalformedPayloadError,
    UnsupportedEventError,
)
from agent_action.modes.names import ModeName, invalid_mode_message, is_valid_mode

logger = structlog.get_logger()


ENTITY_EVENT_NAMES = (
    "issues",
    "issue_comment",
    "pull_request",
    "pull_request_review",
    "pull_request_review_comment",
)

AUTOMATION_EVENT_NAMES = ("workflow_dispatch", "schedule")

EntityEventName = Literal[
    "issues",
    "issue_comment",
    "pull_request",
    "pull_request_review",
    "pull_request_review_comment",
]

AutomationEventName = Literal["workflow_dispatch", "schedule"]

# Payload object holding the entity number for each entity event
_ENTITY_NUMBER_SOURCE = {
    "issues": "issue",
    "issue_comment": "issue",
    "pull_request": "pull_request",
    "pull_request_review": "pull_request",
    "pull_request_review_comment": "pull_request",
}

_MULTILINE_SPLIT = re.compile(r",|[\n\r]+")
_INLINE_COMMENT = re.compile(r"#.*$")


class Repository(BaseModel):
    """Repository coordinates of the workflow run."""

    model_config = ConfigDict(frozen=True)

    owner: str
    repo: str
    full_name: str


class ActionInputs(BaseModel):
    """Step inputs resolved once at normalization time.

    Attributes:
        mode: The configured execution mode.
        trigger_phrase: Phrase that summons the agent in comments and bodies.
        assignee_trigger: Username whose assignment triggers the agent.
        label_trigger: Label whose addition triggers the agent.
        allowed_tools: User-supplied tools to grant, in input order.
        disallowed_tools: User-supplied tools to deny, in input order.
        custom_instructions: Extra instructions appended to the prompt.
        direct_prompt: Task text supplied directly by the workflow.
        override_prompt: Replacement for the whole generated prompt.
        base_branch: Branch to base new work on (repository default if None).
        branch_prefix: Prefix for branches created by the agent.
        use_sticky_comment: Reuse one tracking comment per pull request.
        use_commit_signing: Commit through the API instead of local git.
        additional_permissions: Extra permission scopes, e.g. actions: read.
    """

    model_config = ConfigDict(frozen=True)

    mode: ModeName
    trigger_phrase: str = "@claude"
    assignee_trigger: str = ""
    label_trigger: str = ""
    allowed_tools: List[str] = Field(default_factory=list)
    disallowed_tools: List[str] = Field(default_factory=list)
    custom_instructions: str = ""
    direct_prompt: str = ""
    override_prompt: str = ""
    base_branch: Optional[str] = None
    branch_prefix: str = "claude/"
    use_sticky_comment: bool = False
    use_commit_signing: bool = False
    additional_permissions: Dict[str, str] = Field(default_factory=dict)


class BaseContext(BaseModel):
    """Fields shared by both context variants."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    event_action: Optional[str] = None
    repository: Repository
    actor: str
    inputs: ActionInputs
    payload: Dict[str, Any] = Field(default_factory=dict)


class EntityContext(BaseContext):
    """Context for events about an issue or pull request."""

    event_class: Literal["entity"] = "entity"
    event_name: EntityEventName
    entity_number: int
    is_pr: bool


class AutomationContext(BaseContext):
    """Context for workflow_dispatch and schedule events."""

    event_class: Literal["automation"] = "automation"
    event_name: AutomationEventName


GitHubContext = Annotated[
    Union[EntityContext, AutomationContext],
    Field(discriminator="event_class"),
]


# =============================================================================
# Input parsing
# =============================================================================


def parse_multiline_input(s: str) -> List[str]:
    """Parse a comma- or newline-separated list input.

    Anything from a '#' to the end of an entry is a comment. Entries are
    trimmed and empty ones dropped; order and duplicates are preserved.

    Args:
        s: Raw input text.

    Returns:
        The parsed entries.
    """
    if not s:
        return []
    entries = (_INLINE_COMMENT.sub("", part) for part in _MULTILINE_SPLIT.split(s))
    return [entry.strip() for entry in entries if entry.strip()]


def parse_additional_permissions(s: str) -> Dict[str, str]:
    """Parse ``key: value`` lines into a permission mapping.

    Each line is split on its first colon. Lines missing a key or a value
    are skipped silently.

    Args:
        s: Raw input text.

    Returns:
        Mapping of permission scope to access level.
    """
    permissions: Dict[str, str] = {}
    if not s or not s.strip():
        return permissions

    for line in s.strip().split("\n"):
        key, _, value = line.strip().partition(":")
        key, value = key.strip(), value.strip()
        if key and value:
            permissions[key] = value
    return permissions


# =============================================================================
# Normalization
# =============================================================================


def normalize(
    event_name: str,
    payload: Dict[str, Any],
    settings: ActionSettings,
) -> Union[EntityContext, AutomationContext]:
    """Normalize a raw event into a typed context.

    Args:
        event_name: The GitHub event name of the run.
        payload: The raw event payload.
        settings: The captured step configuration.

    Returns:
        EntityContext or AutomationContext depending on the event class.

    Raises:
        InvalidModeError: If the mode input is not a registered mode.
        UnsupportedEventError: If the event name is not recognized.
        MalformedPayloadError: If an entity event lacks its entity number.
    """
    if not is_valid_mode(settings.mode):
        raise InvalidModeError(
            invalid_mode_message(settings.mode),
            mode_name=settings.mode,
        )

    payload = payload if isinstance(payload, dict) else {}
    event_action = payload.get("action")
    common = {
        "run_id": settings.github_run_id,
        "event_action": event_action if isinstance(event_action, str) else None,
        "repository": _resolve_repository(settings, payload),
        "actor": _resolve_actor(settings, payload),
        "inputs": _resolve_inputs(settings),
        "payload": payload,
    }

    if event_name in ENTITY_EVENT_NAMES:
        context = EntityContext(
            event_name=event_name,
            entity_number=_entity_number(event_name, payload),
            is_pr=_is_pr(event_name, payload),
            **common,
        )
    elif event_name in AUTOMATION_EVENT_NAMES:
        context = AutomationContext(event_name=event_name, **common)
    else:
        raise UnsupportedEventError(f"Unsupported event type: {event_name}")

    logger.info(
        "Normalized event context",
        event_name=event_name,
        event_class=context.event_class,
        repository=context.repository.full_name,
        mode=context.inputs.mode.value,
    )
    return context


def load_event_payload(event_path: str) -> Dict[str, Any]:
    """Read the event payload JSON the runner wrote for this run."""
    if not event_path:
        return {}
    return json.loads(Path(event_path).read_text(encoding="utf-8"))


def parse_github_context(
    settings: ActionSettings,
) -> Union[EntityContext, AutomationContext]:
    """Load the event payload of the current run and normalize it.

    Args:
        settings: The captured step configuration.

    Returns:
        The normalized context.
    """
    payload = load_event_payload(settings.github_event_path)
    return normalize(settings.github_event_name, payload, settings)


def _resolve_inputs(settings: ActionSettings) -> ActionInputs:
    return ActionInputs(
        mode=ModeName(settings.mode),
        trigger_phrase=settings.trigger_phrase,
        assignee_trigger=settings.assignee_trigger,
        label_trigger=settings.label_trigger,
        allowed_tools=parse_multiline_input(settings.allowed_tools),
        disallowed_tools=parse_multiline_input(settings.disallowed_tools),
        custom_instructions=settings.custom_instructions,
        direct_prompt=settings.direct_prompt,
        override_prompt=settings.override_prompt,
        base_branch=settings.base_branch,
        branch_prefix=settings.branch_prefix,
        use_sticky_comment=settings.use_sticky_comment,
        use_commit_signing=settings.use_commit_signing,
        additional_permissions=parse_additional_permissions(
            settings.additional_permissions
        ),
    )


def _resolve_repository(
    settings: ActionSettings, payload: Dict[str, Any]
) -> Repository:
    """Take owner/repo from GITHUB_REPOSITORY, else from the payload."""
    owner, _, repo = settings.github_repository.partition("/")
    if not (owner and repo):
        repo_data = payload.get("repository")
        repo_data = repo_data if isinstance(repo_data, dict) else {}
        owner_data = repo_data.get("owner")
        owner = owner_data.get("login", "") if isinstance(owner_data, dict) else ""
        repo = repo_data.get("name") or ""
    return Repository(owner=owner, repo=repo, full_name=f"{owner}/{repo}")


def _resolve_actor(settings: ActionSettings, payload: Dict[str, Any]) -> str:
    if settings.github_actor:
        return settings.github_actor
    sender = payload.get("sender")
    if isinstance(sender, dict) and isinstance(sender.get("login"), str):
        return sender["login"]
    return ""


def _entity_number(event_name: str, payload: Dict[str, Any]) -> int:
    source = _ENTITY_NUMBER_SOURCE[event_name]
    entity = payload.get(source)
    number = entity.get("number") if isinstance(entity, dict) else None
    if not isinstance(number, int) or isinstance(number, bool):
        raise MalformedPayloadError(
            f"Missing {source}.number in {event_name} event payload"
        )
    return number


def _is_pr(event_name: str, payload: Dict[str, Any]) -> bool:
    if event_name == "issues":
        return False
    if event_name == "issue_comment":
        issue = payload.get("issue")
        return isinstance(issue, dict) and bool(issue.get("pull_request"))
    return True


# =============================================================================
# Type guards
# =============================================================================


def is_entity_context(context: BaseContext) -> bool:
    return context.event_name in ENTITY_EVENT_NAMES


def is_automation_context(context: BaseContext) -> bool:
    return context.event_name in AUTOMATION_EVENT_NAMES


def is_issues_event(context: BaseContext) -> bool:
    return context.event_name == "issues"


def is_issue_comment_event(context: BaseContext) -> bool:
    return context.event_name == "issue_comment"


def is_pull_request_event(context: BaseContext) -> bool:
    return context.event_name == "pull_request"


def is_pull_request_review_event(context: BaseContext) -> bool:
    return context.event_name == "pull_request_review"


def is_pull_request_review_comment_event(context: BaseContext) -> bool:
    return context.event_name == "pull_request_review_comment"


def is_issues_assigned_event(context: BaseContext) -> bool:
    return is_issues_event(context) and context.event_action == "assigned"
