"""GitHub authentication handlers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from ..integrations.secrets import SecretStore
from .exceptions import GitHubAuthenticationError

GITHUB_TOKEN_KEY = "github-token"  # nosec B105


@dataclass
class AuthToken:
    """Authentication token with metadata."""

    token: str
    token_type: str = "Bearer"

    def to_header(self) -> dict[str, str]:
        """Convert to authorization header."""
        return {"Authorization": f"{self.token_type} {self.token}"}

    def __repr__(self) -> str:
        """Return representation without the secret value."""
        return f"AuthToken(token_type={self.token_type!r}, token=***)"


class AuthProvider(ABC):
    """Abstract base class for authentication providers."""

    @abstractmethod
    async def get_token(self) -> AuthToken:
        """Get authentication token for the next request."""
        pass


class TokenAuth(AuthProvider):
    """Static bearer token authentication."""

    DEFAULT_TOKEN_TYPE = "Bearer"  # Standard HTTP authentication scheme  # nosec B105

    def __init__(self, token: str, token_type: str | None = None):
        """Initialize token authentication.

        Args:
            token: Authentication token
            token_type: Type of token (Bearer, token, etc.). Uses Bearer by default.
        """
        if not token or not token.strip():
            raise GitHubAuthenticationError("GitHub token is required")
        if token_type is None:
            token_type = self.DEFAULT_TOKEN_TYPE
        self._token = AuthToken(token=token.strip(), token_type=token_type)

    async def get_token(self) -> AuthToken:
        """Get authentication token."""
        return self._token


class SecretStoreAuth(AuthProvider):
    """Bearer token read from a secret store on every request.

    The value is never cached, so a token saved while the process runs is
    picked up by the very next call.
    """

    def __init__(self, store: SecretStore, key: str = GITHUB_TOKEN_KEY):
        """Initialize secret store authentication.

        Args:
            store: Secret store holding the token
            key: Logical key of the token in the store
        """
        self.store = store
        self.key = key

    async def get_token(self) -> AuthToken:
        """Load the token from the store.

        Raises:
            GitHubAuthenticationError: If no token is configured
        """
        token = self.store.load_token(self.key).strip()
        if not token:
            raise GitHubAuthenticationError(
                "GitHub token is not configured. Save it with the secret store first."
            )
        return AuthToken(token=token)
