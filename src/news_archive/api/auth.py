"""API token handling.

Tokens are loaded from an explicit value or an environment variable and are
sent to the vendor as the ``token`` query parameter on both REST and stream
endpoints.
"""

import logging
import os

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_ENV = "NEWS_API_TOKEN"


class AuthenticationError(Exception):
    """Raised when no API token is available."""


class ApiAuth:
    """API token holder.

    Loads the token from:
    1. Explicit token parameter
    2. The configured environment variable (``NEWS_API_TOKEN`` by default)
    """

    def __init__(self, token: str | None = None, token_env: str = DEFAULT_TOKEN_ENV) -> None:
        """Initialize API authentication.

        Args:
            token: API token. If None, loads from the ``token_env`` variable.
            token_env: Name of the environment variable holding the token.

        Raises:
            AuthenticationError: If no token is found or it is blank.
        """
        loaded_token = None
        token_source = None

        if token:
            loaded_token = token
            token_source = "explicit parameter"
        elif os.environ.get(token_env):
            loaded_token = os.environ[token_env]
            token_source = f"{token_env} environment variable"

        if not loaded_token or not loaded_token.strip():
            raise AuthenticationError(
                f"API token not found. Set the {token_env} environment variable "
                "or pass the token explicitly."
            )

        logger.info("Using API token from %s", token_source)
        self._token = loaded_token.strip()

    @property
    def token(self) -> str:
        """Get the API token."""
        return self._token

    def query_params(self) -> dict[str, str]:
        """Query parameters that authenticate a request."""
        return {"token": self._token}

    def __repr__(self) -> str:
        """Return string representation without exposing the token."""
        return "ApiAuth(token=***)"
