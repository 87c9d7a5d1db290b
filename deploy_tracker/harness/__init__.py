"""Harness deployment trigger client."""

from .client import HarnessClient, module_slug, render_runtime_inputs
from .exceptions import (
    HarnessAuthenticationError,
    HarnessConnectionError,
    HarnessError,
    HarnessMalformedResponseError,
    HarnessNotFoundError,
    HarnessRateLimitError,
    HarnessServerError,
)

__all__ = [
    "HarnessAuthenticationError",
    "HarnessClient",
    "HarnessConnectionError",
    "HarnessError",
    "HarnessMalformedResponseError",
    "HarnessNotFoundError",
    "HarnessRateLimitError",
    "HarnessServerError",
    "module_slug",
    "render_runtime_inputs",
]
