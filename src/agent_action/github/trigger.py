"""Trigger evaluation for entity events.

check_contains_trigger decides, from the normalized context alone, whether
a human asked for the agent: by assigning the configured user, adding the
configured label, or writing the trigger phrase. It performs no I/O.
"""

from typing import Any, Dict, Iterable, Optional

import structlog

from agent_action.github.context import (
    EntityContext,
    is_issue_comment_event,
    is_issues_assigned_event,
    is_issues_event,
    is_pull_request_event,
    is_pull_request_review_comment_event,
    is_pull_request_review_event,
)

logger = structlog.get_logger()


def check_contains_trigger(context: EntityContext) -> bool:
    """Check whether an entity event asks for the agent.

    Matching of the trigger phrase is a case-sensitive substring match;
    an empty phrase, assignee or label never matches.

    Args:
        context: The entity context of the run.

    Returns:
        True if the event contains a trigger.
    """
    inputs = context.inputs
    payload = context.payload

    if is_issues_assigned_event(context):
        assignee = _login(payload.get("assignee"))
        wanted = inputs.assignee_trigger.lstrip("@")
        if wanted and assignee and assignee.lstrip("@") == wanted:
            logger.info("Issue assigned to trigger user", assignee=assignee)
            return True
        return False

    if is_issues_event(context) and context.event_action == "labeled":
        label = _get(payload, "label", "name")
        if inputs.label_trigger and label == inputs.label_trigger:
            logger.info("Issue labeled with trigger label", label=label)
            return True
        return False

    phrase = inputs.trigger_phrase
    if not phrase:
        return False

    if is_issues_event(context):
        texts = (_get(payload, "issue", "body"), _get(payload, "issue", "title"))
    elif is_pull_request_event(context):
        texts = (
            _get(payload, "pull_request", "body"),
            _get(payload, "pull_request", "title"),
        )
    elif is_pull_request_review_event(context):
        texts = (_get(payload, "review", "body"),)
    elif is_issue_comment_event(context) or is_pull_request_review_comment_event(
        context
    ):
        texts = (_get(payload, "comment", "body"),)
    else:
        texts = ()

    if _contains(texts, phrase):
        logger.info(
            "Trigger phrase found",
            event_name=context.event_name,
            trigger_phrase=phrase,
        )
        return True

    logger.info("No trigger was met", event_name=context.event_name)
    return False


def _contains(texts: Iterable[Optional[str]], phrase: str) -> bool:
    return any(isinstance(text, str) and phrase in text for text in texts)


def _get(payload: Dict[str, Any], key: str, field: str) -> Optional[str]:
    obj = payload.get(key)
    if not isinstance(obj, dict):
        return None
    value = obj.get(field)
    return value if isinstance(value, str) else None


def _login(user: Any) -> Optional[str]:
    if isinstance(user, dict) and isinstance(user.get("login"), str):
        return user["login"]
    return None
