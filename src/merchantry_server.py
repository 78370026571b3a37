"""Merchantry MCP Server implementation."""
from typing import Optional

from dotenv import load_dotenv
from fastmcp import FastMCP

from config import TradingConfig
from logging_config import LogContext, setup_server_logging
from __version__ import __version__
from api.marketplaces import describe
from api.oauth import StaticTokenProvider, UserTokenManager
from api.trading_client import TradingApiClient
from api.trading_service import TradingService

# Load environment variables
load_dotenv()

# Load configuration
config = TradingConfig.from_env()

# Setup logging
logger = setup_server_logging(config)

credential_status = config.check_credential_status()
if not credential_status["ready_for_trading_api"]:
    logger.warning(
        "eBay user token not configured; Trading API tools will report setup instructions",
        context=LogContext.CONFIGURATION,
        hints=credential_status["messages"]
    )
else:
    logger.info(
        "eBay credentials loaded",
        context=LogContext.CONFIGURATION,
        details=credential_status["messages"]
    )

# Shared across requests so a refreshed token is reused
if config.refresh_token:
    token_provider = UserTokenManager.from_config(config, logger)
else:
    token_provider = StaticTokenProvider(config.user_token or "")

# Create global MCP instance
mcp = FastMCP(
    "Merchantry - eBay Trading Server",
    version=__version__
)

# Store config and logger for tool access
mcp.config = config
mcp.logger = logger


def build_trading_service(marketplace: Optional[str] = None) -> TradingService:
    """
    Build a request-scoped TradingService.

    Args:
        marketplace: Marketplace code; unknown or missing codes fall back
            to the configured default marketplace

    Returns:
        TradingService bound to a fresh client; close it after use
    """
    descriptor = describe(marketplace, default=config.default_marketplace)
    client = TradingApiClient(config, descriptor, token_provider, logger)
    return TradingService(client, config, logger)


def create_merchantry_server():
    """Create and configure the Merchantry MCP server."""
    # Tools register themselves on import
    import tools.trading_api  # noqa: F401

    return mcp


def main():
    """Entry point for merchantry-server command."""
    from main import main as main_func
    main_func()
