"""Shared fixtures for the Trading API unit tests."""
from datetime import datetime, timezone
from unittest.mock import Mock, AsyncMock

import pytest

from config import TradingConfig
from api.marketplaces import MARKETPLACES


FIXED_NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def trading_config():
    """Config with small paging bounds so tests stay readable."""
    return TradingConfig(
        user_token="test-user-token",
        app_id="test-app",
        cert_id="test-cert",
        sandbox_mode=True,
        resolver_page_size=2,
        resolver_max_pages=3,
        search_page_size=2,
        exact_search_max_pages=2,
        partial_search_max_pages=3,
    )


@pytest.fixture
def logger():
    """Stand-in for TradingLogger; records every call."""
    return Mock()


@pytest.fixture
def marketplace_de():
    return MARKETPLACES["EBAY_DE"]


@pytest.fixture
def marketplace_us():
    return MARKETPLACES["EBAY_US"]


@pytest.fixture
def mock_client(marketplace_de):
    """TradingApiClient double whose execute() is scripted per test."""
    client = Mock()
    client.marketplace = marketplace_de
    client.execute = AsyncMock()
    client.close = AsyncMock()
    return client
