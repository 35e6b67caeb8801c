"""Error taxonomy for the prepare step.

Every failure the orchestrator can report derives from PrepareError so the
single exit point can publish it uniformly. A non-triggering event is not an
error and has no class here.
"""


class PrepareError(Exception):
    """Base class for all fatal prepare-step failures."""


class ConfigError(PrepareError):
    """Raised when the step configuration is invalid or incomplete."""


class InvalidModeError(ConfigError):
    """Raised when the configured mode name is not registered.

    Attributes:
        mode_name: The rejected mode name.
    """

    def __init__(self, message: str, mode_name: str):
        self.mode_name = mode_name
        super().__init__(message)


class MissingTokenError(ConfigError):
    """Raised when a mode requires a pre-supplied token that is absent."""


class WritePermissionError(PrepareError):
    """Raised when the triggering actor lacks write access to the repository."""


class HumanActorError(PrepareError):
    """Raised when an interactive mode is triggered by a non-human account."""


class IncompatibleModeError(PrepareError):
    """Raised when a mode cannot handle the event class at all.

    Attributes:
        mode_name: The requested mode.
        event_name: The event the mode was asked to handle.
    """

    def __init__(self, message: str, mode_name: str, event_name: str):
        self.mode_name = mode_name
        self.event_name = event_name
        super().__init__(message)


class UnsupportedEventError(PrepareError):
    """Raised when the event name is not one of the recognized events."""


class MalformedPayloadError(UnsupportedEventError):
    """Raised when a recognized entity event lacks its entity number."""


class TokenExchangeError(PrepareError):
    """Raised when the OIDC token cannot be exchanged for an app token."""
