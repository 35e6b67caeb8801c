"""Step configuration using pydantic-settings.

This module defines the ActionSettings class that captures the GitHub
Actions step environment once per run. Inputs are exposed to the step as
plain environment variables (MODE, TRIGGER_PHRASE, ...) alongside the
runner's own variables (GITHUB_EVENT_NAME, RUNNER_TEMP, ...).

The settings object is built once at the start of the run and passed
explicitly through the pipeline; nothing re-reads os.environ afterwards.
"""

from typing import Any, Mapping, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ActionSettings(BaseSettings):
    """Prepare step configuration from environment variables.

    Only the literal string "true" (case-insensitive) enables a boolean
    flag, matching how workflow inputs are rendered into the environment.
    The mode name is kept as a raw string so an unknown value surfaces as
    an InvalidModeError from the normalizer rather than a validation error.
    """

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # -------------------------------------------------------------------------
    # Mode and trigger inputs
    # -------------------------------------------------------------------------
    mode: str = "tag"
    trigger_phrase: str = "@claude"
    assignee_trigger: str = ""
    label_trigger: str = ""

    # -------------------------------------------------------------------------
    # Tool and prompt inputs
    # -------------------------------------------------------------------------
    # Comma- or newline-separated, '#' starts a comment
    allowed_tools: str = ""
    disallowed_tools: str = ""
    custom_instructions: str = ""
    direct_prompt: str = ""
    override_prompt: str = ""

    # Raw JSON merged over the mode's MCP configuration
    mcp_config: str = ""

    # "key: value" per line
    additional_permissions: str = ""

    # -------------------------------------------------------------------------
    # Branch and comment inputs
    # -------------------------------------------------------------------------
    base_branch: Optional[str] = None
    branch_prefix: str = "claude/"
    use_sticky_comment: bool = False
    use_commit_signing: bool = False

    # -------------------------------------------------------------------------
    # Runner environment
    # -------------------------------------------------------------------------
    github_event_name: str = ""
    github_event_path: str = ""
    github_run_id: str = ""
    github_repository: str = ""
    github_actor: str = ""
    github_api_url: str = "https://api.github.com"
    github_server_url: str = "https://github.com"
    runner_temp: str = "/tmp"
    github_output: str = ""
    github_env: str = ""
    log_level: str = "INFO"

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------
    override_github_token: str = ""
    default_workflow_token: str = ""
    actions_id_token_request_url: str = ""
    actions_id_token_request_token: str = ""
    oidc_audience: str = "claude-code-github-action"
    token_exchange_url: str = (
        "https://api.anthropic.com/api/github/github-app-token-exchange"
    )

    # -------------------------------------------------------------------------
    # Agent settings file
    # -------------------------------------------------------------------------
    agent_settings: str = ""
    slash_commands_dir: str = ""
    home: str = ""

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------
    @field_validator("use_sticky_comment", "use_commit_signing", mode="before")
    @classmethod
    def parse_flag(cls, v: Any) -> bool:
        """Treat only the literal "true" as enabled."""
        if isinstance(v, bool):
            return v
        if v is None:
            return False
        return str(v).strip().lower() == "true"

    @field_validator("base_branch", mode="before")
    @classmethod
    def empty_base_branch_is_unset(cls, v: Any) -> Optional[str]:
        """An empty BASE_BRANCH means "use the repository default"."""
        if v is None or not str(v).strip():
            return None
        return str(v).strip()

    @field_validator("github_api_url", "github_server_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @classmethod
    def from_mapping(cls, env: Mapping[str, str]) -> "ActionSettings":
        """Build settings from an explicit environment mapping.

        Unlike the default constructor this does not consult os.environ,
        so a captured environment can be normalized deterministically.

        Args:
            env: Flat key to string mapping (keys are case-insensitive).

        Returns:
            ActionSettings populated from the mapping and field defaults.
        """
        known = set(cls.model_fields)
        values = {
            key.lower(): value
            for key, value in env.items()
            if key.lower() in known
        }
        return cls.model_validate(values)

    @property
    def prompt_dir(self) -> str:
        return f"{self.runner_temp}/claude-prompts"

    @property
    def prompt_file(self) -> str:
        return f"{self.prompt_dir}/claude-prompt.txt"


def _redact_secret(value: str, visible_chars: int = 4) -> str:
    """Redact a secret value, showing only the first few characters."""
    if len(value) <= visible_chars:
        return "*" * len(value)
    return value[:visible_chars] + "*" * (len(value) - visible_chars)


def describe_settings(settings: ActionSettings) -> dict:
    """Summarize settings for logging with tokens redacted."""
    return {
        "mode": settings.mode,
        "event_name": settings.github_event_name,
        "repository": settings.github_repository,
        "actor": settings.github_actor,
        "trigger_phrase": settings.trigger_phrase,
        "base_branch": settings.base_branch,
        "branch_prefix": settings.branch_prefix,
        "use_sticky_comment": settings.use_sticky_comment,
        "use_commit_signing": settings.use_commit_signing,
        "github_api_url": settings.github_api_url,
        "override_github_token": _redact_secret(settings.override_github_token),
        "default_workflow_token": _redact_secret(settings.default_workflow_token),
    }


def get_settings() -> ActionSettings:
    """Create ActionSettings from the process environment.

    Returns:
        ActionSettings: Configured settings instance.

    Raises:
        pydantic.ValidationError: If a value has the wrong type.
    """
    return ActionSettings()
