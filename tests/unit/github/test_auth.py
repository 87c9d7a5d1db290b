"""Tests for GitHub authentication, rate limit tracking and repo helpers."""

import time

import pytest

from deploy_tracker.github.auth import (
    GITHUB_TOKEN_KEY,
    AuthToken,
    SecretStoreAuth,
    TokenAuth,
)
from deploy_tracker.github.exceptions import (
    GitHubAuthenticationError,
    GitHubError,
    GitHubRateLimitError,
)
from deploy_tracker.github.rate_limiting import RateLimitManager
from deploy_tracker.github.utils import (
    encode_path,
    parse_repo_full_name,
    split_repo_full_name,
)
from deploy_tracker.integrations.secrets import EnvironmentSecretStore


class TestAuthToken:
    def test_to_header(self):
        token = AuthToken(token="abc")
        assert token.to_header() == {"Authorization": "Bearer abc"}

    def test_repr_hides_secret(self):
        assert "abc" not in repr(AuthToken(token="abc"))


class TestTokenAuth:
    async def test_strips_token(self):
        auth = TokenAuth("  abc  ")
        token = await auth.get_token()
        assert token.token == "abc"
        assert token.token_type == "Bearer"

    def test_rejects_blank_token(self):
        with pytest.raises(GitHubAuthenticationError):
            TokenAuth("   ")


class TestSecretStoreAuth:
    async def test_reads_store_on_every_call(self, monkeypatch):
        store = EnvironmentSecretStore(prefix="DT_TEST_")
        monkeypatch.setenv("DT_TEST_GITHUB_TOKEN", "first")
        auth = SecretStoreAuth(store)

        assert (await auth.get_token()).token == "first"

        monkeypatch.setenv("DT_TEST_GITHUB_TOKEN", "second")
        assert (await auth.get_token()).token == "second"

    async def test_missing_token_raises(self, monkeypatch):
        monkeypatch.delenv("DT_TEST_GITHUB_TOKEN", raising=False)
        auth = SecretStoreAuth(EnvironmentSecretStore(prefix="DT_TEST_"))

        with pytest.raises(GitHubAuthenticationError):
            await auth.get_token()

    def test_default_key(self):
        auth = SecretStoreAuth(EnvironmentSecretStore())
        assert auth.key == GITHUB_TOKEN_KEY


class TestRateLimitManager:
    def test_ignores_responses_without_headers(self):
        manager = RateLimitManager()
        manager.update_rate_limit({})
        assert manager.get_rate_limit() is None
        manager.check_rate_limit()

    def test_tracks_headers_per_resource(self):
        manager = RateLimitManager()
        manager.update_rate_limit(
            {
                "X-RateLimit-Limit": "5000",
                "X-RateLimit-Remaining": "4999",
                "X-RateLimit-Reset": str(int(time.time()) + 60),
                "X-RateLimit-Resource": "search",
            }
        )

        assert manager.get_rate_limit() is None
        info = manager.get_rate_limit("search")
        assert info.remaining == 4999
        assert not info.is_exceeded

    def test_invalid_headers_are_ignored(self):
        manager = RateLimitManager()
        manager.update_rate_limit({"X-RateLimit-Limit": "lots"})
        assert manager.get_rate_limit() is None

    def test_exhausted_quota_blocks_until_reset(self):
        manager = RateLimitManager()
        manager.update_rate_limit(
            {
                "X-RateLimit-Limit": "60",
                "X-RateLimit-Remaining": "0",
                "X-RateLimit-Reset": str(int(time.time()) + 600),
            }
        )

        with pytest.raises(GitHubRateLimitError):
            manager.check_rate_limit()

    def test_exhausted_quota_after_reset_is_allowed(self):
        manager = RateLimitManager()
        manager.update_rate_limit(
            {
                "X-RateLimit-Limit": "60",
                "X-RateLimit-Remaining": "0",
                "X-RateLimit-Reset": str(int(time.time()) - 5),
            }
        )

        manager.check_rate_limit()


class TestRepoHelpers:
    def test_split_repo_full_name(self):
        assert split_repo_full_name("acme/app") == ("acme", "app")

    @pytest.mark.parametrize("value", ["acme", "acme/app/extra", "/app", "acme/"])
    def test_split_rejects_malformed_names(self, value):
        with pytest.raises(GitHubError):
            split_repo_full_name(value)

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://github.com/acme/app", "acme/app"),
            ("https://github.com/acme/app.git", "acme/app"),
            ("https://github.com/acme/app/", "acme/app"),
            ("https://github.com/acme", None),
        ],
    )
    def test_parse_repo_full_name(self, url, expected):
        assert parse_repo_full_name(url) == expected

    def test_encode_path_keeps_slashes(self):
        assert encode_path("feature/US 1#2") == "feature/US%201%232"
