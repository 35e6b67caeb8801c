"""GitHub token resolution.

Interactive and automation modes exchange the workflow's OIDC identity
token for a short-lived GitHub App installation token, unless the workflow
supplies OVERRIDE_GITHUB_TOKEN. Review mode instead requires the workflow's
own token (DEFAULT_WORKFLOW_TOKEN). The two paths encode different trust
models and are kept separate.
"""

import asyncio
import random
from typing import Optional

import httpx
import structlog

from agent_action.config import ActionSettings
from agent_action.errors import MissingTokenError, TokenExchangeError
from agent_action.modes.names import ModeName

logger = structlog.get_logger()


class TokenExchanger:
    """Exchanges an Actions OIDC token for a GitHub App token.

    Attributes:
        settings: Captured step configuration (request URL, audience, ...).
        max_attempts: Attempts per HTTP call before giving up.
        base_delay: Base delay in seconds for exponential backoff.
    """

    def __init__(
        self,
        settings: ActionSettings,
        max_attempts: int = 3,
        base_delay: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._transport = transport

    async def setup_token(self) -> str:
        """Return the installation token for this run."""
        if self.settings.override_github_token:
            logger.info("Using provided GITHUB_TOKEN for authentication")
            return self.settings.override_github_token

        logger.info("Requesting OIDC token")
        async with httpx.AsyncClient(timeout=30.0, transport=self._transport) as http:
            oidc_token = await self._with_retry(
                "oidc_token", lambda: self._request_oidc_token(http)
            )
            app_token = await self._with_retry(
                "token_exchange", lambda: self._exchange(http, oidc_token)
            )
        logger.info("App token successfully obtained")
        return app_token

    async def _request_oidc_token(self, http: httpx.AsyncClient) -> str:
        url = self.settings.actions_id_token_request_url
        request_token = self.settings.actions_id_token_request_token
        if not url or not request_token:
            raise TokenExchangeError(
                "Could not fetch an OIDC token. Did you remember to add "
                "`id-token: write` to your workflow permissions?"
            )

        response = await http.get(
            url,
            params={"audience": self.settings.oidc_audience},
            headers={"Authorization": f"Bearer {request_token}"},
        )
        if response.status_code != 200:
            raise TokenExchangeError(
                f"Failed to get OIDC token: HTTP {response.status_code}"
            )
        value = response.json().get("value")
        if not value:
            raise TokenExchangeError("OIDC token response did not contain a value")
        return value

    async def _exchange(self, http: httpx.AsyncClient, oidc_token: str) -> str:
        response = await http.post(
            self.settings.token_exchange_url,
            headers={"Authorization": f"Bearer {oidc_token}"},
        )
        if response.status_code != 200:
            try:
                detail = response.json().get("error", {}).get("message")
            except (ValueError, AttributeError):
                detail = None
            raise TokenExchangeError(
                "App token exchange failed: "
                f"{response.status_code} - {detail or response.text[:200]}"
            )
        token = response.json().get("token")
        if not token:
            raise TokenExchangeError("App token exchange returned no token")
        return token

    async def _with_retry(self, step: str, call):
        last_error: Optional[Exception] = None
        for attempt in range(self.max_attempts):
            try:
                return await call()
            except (TokenExchangeError, httpx.RequestError) as e:
                last_error = e
                if attempt + 1 < self.max_attempts:
                    delay = random.uniform(0, self.base_delay * (2 ** attempt))
                    logger.warning(
                        "Token step failed, retrying",
                        step=step,
                        attempt=attempt + 1,
                        delay=delay,
                        error=str(e),
                    )
                    await asyncio.sleep(delay)
        if isinstance(last_error, TokenExchangeError):
            raise last_error
        raise TokenExchangeError(f"{step} failed: {last_error}")


async def resolve_github_token(mode_name: ModeName, settings: ActionSettings) -> str:
    """Resolve the token the rest of the run authenticates with.

    Args:
        mode_name: The validated mode of this run.
        settings: Captured step configuration.

    Returns:
        The GitHub token.

    Raises:
        MissingTokenError: Review mode without DEFAULT_WORKFLOW_TOKEN.
        TokenExchangeError: If the OIDC exchange fails.
    """
    if mode_name == ModeName.REVIEW:
        if not settings.default_workflow_token:
            raise MissingTokenError(
                "DEFAULT_WORKFLOW_TOKEN is required for experimental-review mode"
            )
        logger.info("Using default workflow token for review mode")
        return settings.default_workflow_token

    return await TokenExchanger(settings).setup_token()
