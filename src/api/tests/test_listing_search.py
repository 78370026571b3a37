"""Unit tests for the two-phase listing search."""
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from api.errors import ApiErrorDetail, TradingApiError
from api.listing_search import ListingSearchEngine, SearchRequest
from api.seller_list import format_timestamp, has_more_items
from api.tests.trading_data import listed_item, seller_list_page
from config import TradingConfig


NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine(mock_client, trading_config, logger):
    return ListingSearchEngine(mock_client, trading_config, logger, clock=lambda: NOW)


def calls(mock_client):
    return [call.args for call in mock_client.execute.call_args_list]


class TestSearchRequest:
    def test_blank_values_rejected(self):
        with pytest.raises(ValidationError):
            SearchRequest(sku=" ", title="Phone")
        with pytest.raises(ValidationError):
            SearchRequest(sku="A", title="")

    def test_naive_created_at_is_utc(self):
        request = SearchRequest(sku="A", title="B", created_at=datetime(2024, 5, 1))
        assert request.created_at.tzinfo is timezone.utc


class TestTimeWindow:
    def test_window_around_created_at(self, engine):
        window = engine.time_window(SearchRequest(
            sku="A", title="B", created_at=datetime(2024, 5, 15, tzinfo=timezone.utc)
        ))
        assert window == {
            "StartTimeFrom": "2024-05-01T00:00:00.000Z",
            "StartTimeTo": "2024-05-29T00:00:00.000Z",
        }

    def test_active_window_without_created_at(self, engine):
        window = engine.time_window(SearchRequest(sku="A", title="B"))
        assert window == {
            "EndTimeFrom": "2024-05-01T12:00:00.000Z",
            "EndTimeTo": "2024-08-29T12:00:00.000Z",
        }


class TestSearch:
    @pytest.mark.asyncio
    async def test_phase_one_match(self, engine, mock_client):
        mock_client.execute.return_value = seller_list_page([
            listed_item("100", "SKU-1", title="Apple iPhone 12 Black"),
        ])

        outcome = await engine.search_with_phase(SearchRequest(sku="SKU-1", title="iphone 12", category_id="9355"))

        assert outcome.phase == 1
        assert outcome.item.item_id == "100"
        assert outcome.item.quantity.available == 2
        call_name, params = calls(mock_client)[0]
        assert call_name == "GetSellerList"
        assert params["SKUArray"] == {"SKU": "SKU-1"}
        assert params["CategoryID"] == "9355"
        assert params["GranularityLevel"] == "Fine"
        assert params["Pagination"] == {"EntriesPerPage": 2, "PageNumber": 1}

    @pytest.mark.asyncio
    async def test_phase_two_matches_sku_substring(self, engine, mock_client):
        mock_client.execute.side_effect = [
            seller_list_page([]),
            seller_list_page([
                listed_item("1", "SKU-1-OLD", title="Something else"),
                listed_item("2", "DE-SKU-1-V2", title="Apple iPhone 12"),
            ]),
        ]

        outcome = await engine.search_with_phase(SearchRequest(sku="SKU-1", title="IPHONE"))

        assert outcome.phase == 2
        assert outcome.item.item_id == "2"
        assert outcome.pages_scanned == 2
        assert "SKUArray" not in calls(mock_client)[1][1]

    @pytest.mark.asyncio
    async def test_phase_two_sku_match_is_case_sensitive(self, engine, mock_client):
        mock_client.execute.side_effect = [
            seller_list_page([]),
            seller_list_page([listed_item("2", "de-sku-1", title="Apple iPhone 12")]),
        ]

        assert await engine.search(SearchRequest(sku="SKU-1", title="iPhone")) is None

    @pytest.mark.asyncio
    async def test_phase_two_skipped_after_phase_one_match(self, engine, mock_client):
        mock_client.execute.return_value = seller_list_page(
            [listed_item("100", "SKU-1", title="iPhone")], has_more=True
        )

        await engine.search(SearchRequest(sku="SKU-1", title="iPhone"))

        assert mock_client.execute.await_count == 1

    @pytest.mark.asyncio
    async def test_title_must_match_in_phase_one(self, engine, mock_client):
        mock_client.execute.side_effect = [
            seller_list_page([listed_item("100", "SKU-1", title="Samsung Galaxy")]),
            seller_list_page([listed_item("100", "SKU-1", title="Samsung Galaxy")]),
        ]

        assert await engine.search(SearchRequest(sku="SKU-1", title="iPhone")) is None
        assert mock_client.execute.await_count == 2

    @pytest.mark.asyncio
    async def test_page_bounds_per_phase(self, engine, mock_client):
        mock_client.execute.return_value = seller_list_page(
            [listed_item("1", "X", title="Other")], has_more=True
        )

        outcome = await engine.search_with_phase(SearchRequest(sku="SKU-1", title="iPhone"))

        assert outcome.item is None
        assert outcome.pages_scanned == 5
        exact = [params for _, params in calls(mock_client) if "SKUArray" in params]
        assert len(exact) == 2

    @pytest.mark.asyncio
    async def test_failure_aborts_search(self, engine, mock_client):
        mock_client.execute.side_effect = [
            seller_list_page([], has_more=False),
            TradingApiError([ApiErrorDetail(code="340", short_message="Bad window")], "Failure", "GetSellerList"),
        ]

        with pytest.raises(TradingApiError):
            await engine.search(SearchRequest(sku="SKU-1", title="iPhone"))


class TestSellerListHelpers:
    def test_format_timestamp(self):
        moment = datetime(2024, 1, 2, 3, 4, 5, 678901, tzinfo=timezone.utc)
        assert format_timestamp(moment) == "2024-01-02T03:04:05.678Z"

    def test_format_timestamp_naive_is_utc(self):
        assert format_timestamp(datetime(2024, 1, 2)) == "2024-01-02T00:00:00.000Z"

    @pytest.mark.parametrize("value,expected", [
        ("true", True),
        ("True", True),
        (True, True),
        ("false", False),
        (None, False),
    ])
    def test_has_more_items(self, value, expected):
        assert has_more_items({"HasMoreItems": value}) is expected


@pytest.mark.asyncio
async def test_default_search_bounds(mock_client, logger):
    engine = ListingSearchEngine(mock_client, TradingConfig(), logger, clock=lambda: NOW)
    mock_client.execute.return_value = seller_list_page(
        [listed_item("1", "X", title="Other")], has_more=True
    )

    assert await engine.search(SearchRequest(sku="SKU-1", title="iPhone")) is None

    sent = [call.args[1] for call in mock_client.execute.call_args_list]
    exact, partial = sent[:10], sent[10:]
    assert len(partial) == 50
    assert all(params["SKUArray"] == {"SKU": "SKU-1"} for params in exact)
    assert not any("SKUArray" in params for params in partial)
    assert [params["Pagination"] for params in exact] == [
        {"EntriesPerPage": 200, "PageNumber": n} for n in range(1, 11)
    ]
    assert [params["Pagination"] for params in partial] == [
        {"EntriesPerPage": 200, "PageNumber": n} for n in range(1, 51)
    ]
