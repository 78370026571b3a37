"""Configuration for the Merchantry Trading API server."""
import os
from datetime import datetime
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field

from api.errors import ConfigurationError


TRADING_API_URLS = {
    "production": "https://api.ebay.com/ws/api.dll",
    "sandbox": "https://api.sandbox.ebay.com/ws/api.dll",
}


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() == "true"


class TradingConfig(BaseModel):
    """Configuration for eBay Trading API integration."""

    # Server identification
    server_name: str = Field("merchantry", description="Server name for logging")
    log_level: str = Field("INFO", description="Logging level")

    # Transport settings
    transport: str = Field("stdio", description="Transport type: stdio, sse, http")
    host: str = Field("127.0.0.1", description="Host for network transports")
    port: int = Field(8000, description="Port for network transports")

    # Application credentials (needed only for user token refresh)
    app_id: str = Field("", description="eBay Application ID (client ID)")
    cert_id: Optional[str] = Field(None, description="Certificate ID (client secret)")
    dev_id: Optional[str] = Field(None, description="Developer ID")

    # User credentials
    user_token: Optional[str] = Field(None, description="OAuth user access token")
    refresh_token: Optional[str] = Field(None, description="OAuth refresh token")
    token_expires_at: Optional[datetime] = Field(None, description="Access token expiry")

    # Environment settings
    sandbox_mode: bool = Field(False, description="Use sandbox environment")
    compatibility_level: str = Field("1157", description="Trading API compatibility level")
    default_marketplace: str = Field("EBAY_DE", description="Marketplace used when none is given")
    timeout: int = Field(30, gt=0, description="HTTP timeout in seconds")

    # SKU -> ItemID resolution bounds
    direct_sku_lookup: bool = Field(False, description="Try GetItem by SKU before scanning")
    resolver_page_size: int = Field(20, ge=1, le=200)
    resolver_max_pages: int = Field(5, ge=1)
    resolver_lookback_days: int = Field(90, ge=1, le=120)

    # Two-phase search bounds
    search_page_size: int = Field(200, ge=1, le=200)
    exact_search_max_pages: int = Field(10, ge=1)
    partial_search_max_pages: int = Field(50, ge=1)
    search_window_days: int = Field(14, ge=1)
    active_window_days: int = Field(120, ge=1)

    @classmethod
    def from_env(cls) -> "TradingConfig":
        """Create config from environment variables."""
        expires_at = os.environ.get("EBAY_TOKEN_EXPIRES_AT")
        return cls(
            server_name=os.environ.get("MERCHANTRY_SERVER_NAME", "merchantry"),
            log_level=os.environ.get("MERCHANTRY_LOG_LEVEL", "INFO"),
            transport=os.environ.get("MERCHANTRY_TRANSPORT", "stdio"),
            host=os.environ.get("MERCHANTRY_HOST", "127.0.0.1"),
            port=int(os.environ.get("MERCHANTRY_PORT", "8000")),
            app_id=os.environ.get("EBAY_APP_ID", ""),
            cert_id=os.environ.get("EBAY_CERT_ID"),
            dev_id=os.environ.get("EBAY_DEV_ID"),
            user_token=os.environ.get("EBAY_USER_TOKEN"),
            refresh_token=os.environ.get("EBAY_REFRESH_TOKEN"),
            token_expires_at=datetime.fromisoformat(expires_at) if expires_at else None,
            sandbox_mode=_env_bool("EBAY_SANDBOX", "false"),
            compatibility_level=os.environ.get("EBAY_COMPATIBILITY_LEVEL", "1157"),
            default_marketplace=os.environ.get("EBAY_DEFAULT_MARKETPLACE", "EBAY_DE"),
            timeout=int(os.environ.get("EBAY_TIMEOUT", "30")),
            direct_sku_lookup=_env_bool("EBAY_DIRECT_SKU_LOOKUP", "false"),
            resolver_page_size=int(os.environ.get("EBAY_RESOLVER_PAGE_SIZE", "20")),
            resolver_max_pages=int(os.environ.get("EBAY_RESOLVER_MAX_PAGES", "5")),
            resolver_lookback_days=int(os.environ.get("EBAY_RESOLVER_LOOKBACK_DAYS", "90")),
            search_page_size=int(os.environ.get("EBAY_SEARCH_PAGE_SIZE", "200")),
            exact_search_max_pages=int(os.environ.get("EBAY_EXACT_SEARCH_MAX_PAGES", "10")),
            partial_search_max_pages=int(os.environ.get("EBAY_PARTIAL_SEARCH_MAX_PAGES", "50")),
            search_window_days=int(os.environ.get("EBAY_SEARCH_WINDOW_DAYS", "14")),
            active_window_days=int(os.environ.get("EBAY_ACTIVE_WINDOW_DAYS", "120")),
        )

    @property
    def trading_api_url(self) -> str:
        """Get the Trading API endpoint based on sandbox mode."""
        return TRADING_API_URLS["sandbox" if self.sandbox_mode else "production"]

    def validate_credentials(self) -> None:
        """Validate that a user token source is configured."""
        if not self.user_token and not self.refresh_token:
            raise ConfigurationError(
                "EBAY_USER_TOKEN or EBAY_REFRESH_TOKEN is required for the Trading API.\n"
                "Authorize the seller account once through eBay's consent flow and\n"
                "store the resulting tokens in your .env file.",
                missing_fields=["EBAY_USER_TOKEN", "EBAY_REFRESH_TOKEN"],
            )

        if self.refresh_token and not (self.app_id and self.cert_id):
            raise ConfigurationError(
                "EBAY_APP_ID and EBAY_CERT_ID are required to refresh user tokens.\n"
                "Copy them from https://developer.ebay.com/my/keys",
                missing_fields=[
                    name for name, value in
                    (("EBAY_APP_ID", self.app_id), ("EBAY_CERT_ID", self.cert_id))
                    if not value
                ],
            )

    def check_credential_status(self) -> Dict[str, Any]:
        """Check credential status and provide helpful guidance."""
        status = {
            "user_token": bool(self.user_token),
            "refresh_token": bool(self.refresh_token),
            "app_credentials": bool(self.app_id and self.cert_id),
            "ready_for_trading_api": bool(self.user_token or self.refresh_token),
            "can_refresh": bool(self.refresh_token and self.app_id and self.cert_id),
        }

        messages = []
        if status["user_token"]:
            messages.append("EBAY_USER_TOKEN configured")
        else:
            messages.append("EBAY_USER_TOKEN missing - a refresh token is needed instead")

        if status["can_refresh"]:
            messages.append("Token refresh available")
        elif self.refresh_token:
            messages.append("EBAY_REFRESH_TOKEN set but EBAY_APP_ID/EBAY_CERT_ID missing")

        messages.append(f"Default marketplace: {self.default_marketplace}")
        messages.append("Environment: " + ("SANDBOX" if self.sandbox_mode else "PRODUCTION"))

        status["messages"] = messages
        return status
