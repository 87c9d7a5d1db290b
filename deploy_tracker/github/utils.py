"""Helpers for GitHub repository identities."""

from urllib.parse import quote, urlparse

from .exceptions import GitHubError


def split_repo_full_name(repo_full_name: str) -> tuple[str, str]:
    """Split ``owner/repo`` into its parts.

    Raises:
        GitHubError: If the identity is not exactly two non-empty components
    """
    parts = repo_full_name.strip().split("/")
    if len(parts) != 2 or not all(parts):
        raise GitHubError(
            f"Invalid repository full name '{repo_full_name}'. Expected owner/repo."
        )
    return parts[0], parts[1]


def parse_repo_full_name(url: str) -> str | None:
    """Derive ``owner/repo`` from a repository URL.

    Works for https URLs with or without a trailing ``.git``. Returns None
    when the path has fewer than two components.
    """
    parsed = urlparse(url.strip())
    components = [part for part in parsed.path.split("/") if part]
    if len(components) < 2:
        return None

    owner, repo = components[0], components[1]
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    return f"{owner}/{repo}"


def encode_path(path: str) -> str:
    """Percent-encode a repository path or ref, keeping slashes."""
    return quote(path, safe="/")
