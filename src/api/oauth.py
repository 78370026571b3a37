"""
eBay OAuth 2.0 user token providers for the Trading API.

The Trading API authenticates the seller with a user access token sent in
the X-EBAY-API-IAF-TOKEN header. Providers only need ``get_token()``.
"""
import asyncio
import base64
import json
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Tuple

import aiohttp
from pydantic import BaseModel, Field

from api.errors import AuthenticationError
from logging_config import LogContext


# Scope granted to the seller token that the Trading API accepts
TRADING_SCOPE = "https://api.ebay.com/oauth/api_scope"


class OAuthConfig(BaseModel):
    """Application credentials used to refresh user tokens."""
    client_id: str = Field(..., description="eBay application client ID")
    client_secret: str = Field(..., description="eBay application client secret")
    sandbox: bool = Field(default=False, description="Use sandbox environment")
    request_timeout: int = Field(default=30, description="Request timeout in seconds")

    @property
    def token_url(self) -> str:
        """Get the token endpoint URL based on environment."""
        domain = "sandbox.ebay.com" if self.sandbox else "ebay.com"
        return f"https://api.{domain}/identity/v1/oauth2/token"

    @property
    def auth_header(self) -> str:
        """Generate Basic Auth header for token requests."""
        credentials = f"{self.client_id}:{self.client_secret}"
        encoded = base64.b64encode(credentials.encode()).decode()
        return f"Basic {encoded}"


class CachedToken(BaseModel):
    """User access token with expiration tracking."""
    access_token: str
    token_type: str = "Bearer"
    expires_at: Optional[datetime] = None

    def is_expired(self, now: datetime, buffer_minutes: int = 5) -> bool:
        """Check if token is expired with configurable buffer."""
        if self.expires_at is None:
            return False
        return now >= self.expires_at - timedelta(minutes=buffer_minutes)


class StaticTokenProvider:
    """Returns a fixed user token."""

    def __init__(self, token: str):
        self._token = token

    async def get_token(self) -> str:
        return self._token


class UserTokenManager:
    """
    Hands out a valid user access token, refreshing it on demand.

    A refresh happens when the token is missing, expired, or within the
    expiry buffer. Concurrent callers share a single refresh.
    """

    def __init__(
        self,
        oauth_config: Optional[OAuthConfig],
        logger,
        access_token: Optional[str] = None,
        refresh_token: Optional[str] = None,
        expires_at: Optional[datetime] = None,
        buffer_minutes: int = 5,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.oauth_config = oauth_config
        self.logger = logger
        self.refresh_token = refresh_token
        self.buffer_minutes = buffer_minutes
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = asyncio.Lock()
        self._token: Optional[CachedToken] = None
        if access_token:
            if expires_at is not None and expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=timezone.utc)
            self._token = CachedToken(access_token=access_token, expires_at=expires_at)

    @classmethod
    def from_config(cls, config, logger) -> "UserTokenManager":
        """Create a manager from TradingConfig credentials."""
        oauth_config = None
        if config.app_id and config.cert_id:
            oauth_config = OAuthConfig(
                client_id=config.app_id,
                client_secret=config.cert_id,
                sandbox=config.sandbox_mode,
                request_timeout=config.timeout
            )
        return cls(
            oauth_config,
            logger,
            access_token=config.user_token,
            refresh_token=config.refresh_token,
            expires_at=config.token_expires_at
        )

    @property
    def access_token(self) -> Optional[str]:
        return self._token.access_token if self._token else None

    @property
    def expires_at(self) -> Optional[datetime]:
        return self._token.expires_at if self._token else None

    def _needs_refresh(self) -> bool:
        if self._token is None:
            return True
        return self._token.is_expired(self._clock(), self.buffer_minutes)

    async def get_token(self) -> str:
        """
        Get a valid user access token.

        Raises:
            AuthenticationError: No refresh token, or the refresh was rejected
        """
        async with self._lock:
            if self._needs_refresh():
                self._token = await self._refresh()
            return self._token.access_token

    async def _refresh(self) -> CachedToken:
        if not self.refresh_token:
            raise AuthenticationError(
                "User access token expired and no refresh token is configured"
            )
        if self.oauth_config is None:
            raise AuthenticationError(
                "EBAY_APP_ID and EBAY_CERT_ID are required to refresh the user token"
            )

        self.logger.info("Refreshing eBay user access token", context=LogContext.AUTHENTICATION)

        headers = {
            "Authorization": self.oauth_config.auth_header,
            "Content-Type": "application/x-www-form-urlencoded"
        }
        data = {
            "grant_type": "refresh_token",
            "refresh_token": self.refresh_token,
            "scope": TRADING_SCOPE
        }

        start_time = time.time()
        status, response_text = await self._post_token_request(headers, data)

        self.logger.external_api_called(
            "oauth", "refresh_token", status, time.time() - start_time
        )

        if status != 200:
            error_msg = self._parse_oauth_error(status, response_text)
            self.logger.error(
                "User token refresh failed",
                context=LogContext.AUTHENTICATION,
                status_code=status,
                error=error_msg
            )
            raise AuthenticationError(
                f"User token refresh failed: {error_msg}",
                details={"status_code": status}
            )

        try:
            token_data = json.loads(response_text)
        except json.JSONDecodeError as e:
            raise AuthenticationError("OAuth response is not valid JSON") from e

        if "access_token" not in token_data:
            raise AuthenticationError("OAuth response missing access_token")

        expires_in = int(token_data.get("expires_in", 7200))
        expires_at = self._clock() + timedelta(seconds=expires_in)

        # eBay may rotate the refresh token
        if token_data.get("refresh_token"):
            self.refresh_token = token_data["refresh_token"]

        self.logger.info(
            "User access token refreshed", context=LogContext.AUTHENTICATION, expires_in=expires_in
        )

        return CachedToken(
            access_token=token_data["access_token"],
            token_type=token_data.get("token_type", "Bearer"),
            expires_at=expires_at
        )

    async def _post_token_request(self, headers, data) -> Tuple[int, str]:
        """POST to the identity endpoint and return status and body."""
        timeout = aiohttp.ClientTimeout(total=self.oauth_config.request_timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(
                self.oauth_config.token_url,
                headers=headers,
                data=data
            ) as response:
                return response.status, await response.text()

    def _parse_oauth_error(self, status_code: int, response_text: str) -> str:
        """Parse eBay OAuth error response for better error messages."""
        try:
            error_data = json.loads(response_text)
        except json.JSONDecodeError:
            return response_text or f"HTTP {status_code} error"

        if isinstance(error_data, dict):
            error_description = error_data.get("error_description", "")
            error_code = error_data.get("error", "")

            if error_code == "invalid_client":
                return "Invalid client credentials (check App ID and Cert ID)"
            if error_code == "invalid_grant":
                return "Refresh token is invalid or expired; reauthorize the seller account"
            if status_code == 429:
                return "Rate limit exceeded for OAuth requests"
            if error_description:
                return f"{error_code}: {error_description}"

        return response_text or f"HTTP {status_code} error"
