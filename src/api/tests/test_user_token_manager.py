"""
Tests for the user token providers.

The identity endpoint is never contacted: ``_post_token_request`` is
patched to return scripted status/body pairs.
"""
import asyncio
import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, Mock, patch

import pytest

from api.errors import AuthenticationError
from api.oauth import (
    CachedToken,
    OAuthConfig,
    StaticTokenProvider,
    TRADING_SCOPE,
    UserTokenManager,
)
from config import TradingConfig


NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def oauth_config():
    return OAuthConfig(client_id="test_client_id", client_secret="test_client_secret", sandbox=True)


@pytest.fixture
def token_response():
    return json.dumps({
        "access_token": "fresh_access_token",
        "token_type": "User Access Token",
        "expires_in": 7200,
    })


def make_manager(oauth_config, **kwargs):
    kwargs.setdefault("refresh_token", "refresh-123")
    return UserTokenManager(oauth_config, Mock(), clock=lambda: NOW, **kwargs)


class TestOAuthConfig:
    def test_token_url(self, oauth_config):
        assert oauth_config.token_url == "https://api.sandbox.ebay.com/identity/v1/oauth2/token"
        assert OAuthConfig(client_id="a", client_secret="b").token_url == (
            "https://api.ebay.com/identity/v1/oauth2/token"
        )

    def test_auth_header_is_basic(self, oauth_config):
        assert oauth_config.auth_header.startswith("Basic ")


class TestCachedToken:
    def test_expiry_buffer(self):
        token = CachedToken(access_token="t", expires_at=NOW + timedelta(minutes=4))
        assert token.is_expired(NOW, buffer_minutes=5)
        assert not token.is_expired(NOW, buffer_minutes=3)

    def test_no_expiry_never_expires(self):
        assert not CachedToken(access_token="t").is_expired(NOW)


@pytest.mark.asyncio
async def test_static_provider():
    assert await StaticTokenProvider("abc").get_token() == "abc"


class TestUserTokenManager:
    @pytest.mark.asyncio
    async def test_valid_token_is_returned_without_refresh(self, oauth_config):
        manager = make_manager(
            oauth_config,
            access_token="current",
            expires_at=NOW + timedelta(hours=1)
        )
        with patch.object(manager, "_post_token_request", new=AsyncMock()) as post:
            assert await manager.get_token() == "current"

        post.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_token_without_expiry_is_trusted(self, oauth_config):
        manager = make_manager(oauth_config, access_token="current")
        with patch.object(manager, "_post_token_request", new=AsyncMock()) as post:
            assert await manager.get_token() == "current"
        post.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_expired_token_is_refreshed(self, oauth_config, token_response):
        manager = make_manager(
            oauth_config,
            access_token="stale",
            expires_at=NOW + timedelta(minutes=2)
        )
        with patch.object(
            manager, "_post_token_request", new=AsyncMock(return_value=(200, token_response))
        ) as post:
            assert await manager.get_token() == "fresh_access_token"

        headers, data = post.call_args.args
        assert headers["Authorization"] == oauth_config.auth_header
        assert data == {
            "grant_type": "refresh_token",
            "refresh_token": "refresh-123",
            "scope": TRADING_SCOPE,
        }
        assert manager.expires_at == NOW + timedelta(seconds=7200)

    @pytest.mark.asyncio
    async def test_missing_token_is_refreshed(self, oauth_config, token_response):
        manager = make_manager(oauth_config)
        with patch.object(
            manager, "_post_token_request", new=AsyncMock(return_value=(200, token_response))
        ):
            assert await manager.get_token() == "fresh_access_token"
        assert manager.access_token == "fresh_access_token"

    @pytest.mark.asyncio
    async def test_naive_expiry_is_treated_as_utc(self, oauth_config):
        manager = make_manager(
            oauth_config,
            access_token="current",
            expires_at=datetime(2024, 5, 1, 14, 0, 0)
        )
        assert manager.expires_at.tzinfo is timezone.utc
        assert await manager.get_token() == "current"

    @pytest.mark.asyncio
    async def test_rotated_refresh_token_is_kept(self, oauth_config):
        body = json.dumps({"access_token": "a", "expires_in": 60, "refresh_token": "refresh-456"})
        manager = make_manager(oauth_config)
        with patch.object(manager, "_post_token_request", new=AsyncMock(return_value=(200, body))):
            await manager.get_token()

        assert manager.refresh_token == "refresh-456"

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_refresh(self, oauth_config, token_response):
        manager = make_manager(oauth_config)

        async def slow_post(headers, data):
            await asyncio.sleep(0.01)
            return 200, token_response

        with patch.object(manager, "_post_token_request", new=AsyncMock(side_effect=slow_post)) as post:
            tokens = await asyncio.gather(*(manager.get_token() for _ in range(5)))

        assert tokens == ["fresh_access_token"] * 5
        assert post.await_count == 1

    @pytest.mark.asyncio
    async def test_no_refresh_token(self, oauth_config):
        manager = make_manager(oauth_config, refresh_token=None)

        with pytest.raises(AuthenticationError, match="no refresh token"):
            await manager.get_token()

    @pytest.mark.asyncio
    async def test_no_app_credentials(self):
        manager = make_manager(None)

        with pytest.raises(AuthenticationError, match="EBAY_APP_ID"):
            await manager.get_token()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,body,expected", [
        (400, json.dumps({"error": "invalid_grant"}), "reauthorize"),
        (401, json.dumps({"error": "invalid_client"}), "Invalid client credentials"),
        (429, json.dumps({"error": "throttled"}), "Rate limit"),
        (500, "upstream down", "upstream down"),
        (503, "", "HTTP 503 error"),
    ])
    async def test_rejected_refresh(self, oauth_config, status, body, expected):
        manager = make_manager(oauth_config)
        with patch.object(manager, "_post_token_request", new=AsyncMock(return_value=(status, body))):
            with pytest.raises(AuthenticationError, match=expected) as exc_info:
                await manager.get_token()

        assert exc_info.value.details["status_code"] == status

    @pytest.mark.asyncio
    async def test_non_json_success_body(self, oauth_config):
        manager = make_manager(oauth_config)
        with patch.object(manager, "_post_token_request", new=AsyncMock(return_value=(200, "<html>"))):
            with pytest.raises(AuthenticationError, match="not valid JSON"):
                await manager.get_token()

    @pytest.mark.asyncio
    async def test_body_without_access_token(self, oauth_config):
        manager = make_manager(oauth_config)
        with patch.object(manager, "_post_token_request", new=AsyncMock(return_value=(200, "{}"))):
            with pytest.raises(AuthenticationError, match="missing access_token"):
                await manager.get_token()


class TestFromConfig:
    def test_with_app_credentials(self):
        config = TradingConfig(
            app_id="app",
            cert_id="cert",
            user_token="tok",
            refresh_token="ref",
            sandbox_mode=True
        )
        manager = UserTokenManager.from_config(config, Mock())

        assert manager.oauth_config.client_id == "app"
        assert manager.oauth_config.sandbox is True
        assert manager.access_token == "tok"
        assert manager.refresh_token == "ref"

    def test_without_app_credentials(self):
        manager = UserTokenManager.from_config(TradingConfig(refresh_token="ref"), Mock())
        assert manager.oauth_config is None
        assert manager.access_token is None
