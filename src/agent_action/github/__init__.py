"""GitHub integration for the prepare step.

This package normalizes event payloads, evaluates triggers, checks actor
permissions and talks to the GitHub REST API:
- context: typed, immutable event context and input parsing
- trigger: trigger phrase, assignee and label evaluation
- client: async REST client with retry and rate-limit handling
- token: OIDC token exchange and token selection per mode
"""

from .context import (
    AutomationContext,
    EntityContext,
    GitHubContext,
    normalize,
    parse_additional_permissions,
    parse_github_context,
    parse_multiline_input,
)
from .trigger import check_contains_trigger

__all__ = [
    "AutomationContext",
    "EntityContext",
    "GitHubContext",
    "check_contains_trigger",
    "normalize",
    "parse_additional_permissions",
    "parse_github_context",
    "parse_multiline_input",
]
