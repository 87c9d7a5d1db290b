"""Harness API client exceptions."""

from typing import Any


class HarnessError(Exception):
    """Base exception for Harness API errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_data: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data or {}


class HarnessAuthenticationError(HarnessError):
    """Raised on 401/403 or when no API key is configured."""

    pass


class HarnessNotFoundError(HarnessError):
    """Raised when the pipeline or account does not exist."""

    pass


class HarnessRateLimitError(HarnessError):
    """Raised on 429."""

    pass


class HarnessServerError(HarnessError):
    """Raised on 5xx."""

    pass


class HarnessMalformedResponseError(HarnessError):
    """Raised when a 2xx response carries no usable execution URL."""

    pass


class HarnessConnectionError(HarnessError):
    """Raised on transport failures and timeouts."""

    pass
