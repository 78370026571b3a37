"""
Two-phase listing search over the seller's own listings.

Phase 1 asks eBay to filter by SKU and matches the title locally. Phase 2
runs only when phase 1 finds nothing: it drops the SKU filter and matches
SKU substrings locally, which catches listings whose SKU carries a prefix
or suffix.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, field_validator

from api.models import ListingItem
from api.seller_list import SellerListPager, format_timestamp
from logging_config import LogContext


class SearchRequest(BaseModel):
    """Listing search criteria."""
    sku: str
    title: str
    category_id: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("sku", "title")
    @classmethod
    def must_not_be_empty(cls, v):
        if not v or not v.strip():
            raise ValueError("Value cannot be empty or only whitespace")
        return v

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, v):
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class SearchOutcome(BaseModel):
    """Search result with the phase that produced it."""
    item: Optional[ListingItem] = None
    phase: Optional[int] = None
    pages_scanned: int = 0


class ListingSearchEngine:
    """Finds at most one listing matching a SKU and title."""

    def __init__(
        self,
        client,
        config,
        logger,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.client = client
        self.config = config
        self.logger = logger
        self.pager = SellerListPager(client, logger)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def time_window(self, request: SearchRequest) -> Dict[str, str]:
        """
        Time filter for the search.

        Around ``created_at`` the window spans the configured number of days
        on either side of the start time. Without it, listings ending between
        now and the active window are searched.
        """
        if request.created_at is not None:
            delta = timedelta(days=self.config.search_window_days)
            return {
                "StartTimeFrom": format_timestamp(request.created_at - delta),
                "StartTimeTo": format_timestamp(request.created_at + delta),
            }

        now = self._clock()
        return {
            "EndTimeFrom": format_timestamp(now),
            "EndTimeTo": format_timestamp(now + timedelta(days=self.config.active_window_days)),
        }

    def _base_params(self, request: SearchRequest) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "DetailLevel": "ReturnAll",
            "GranularityLevel": "Fine",
        }
        params.update(self.time_window(request))
        if request.category_id:
            params["CategoryID"] = request.category_id
        return params

    async def search(self, request: SearchRequest) -> Optional[ListingItem]:
        """
        Find a listing by SKU and title.

        Returns:
            The first match, or None

        Raises:
            TradingApiError: Any page of either phase failed
        """
        outcome = await self.search_with_phase(request)
        return outcome.item

    async def search_with_phase(self, request: SearchRequest) -> SearchOutcome:
        """Run the search and report which phase matched."""
        title = request.title.lower()
        base_params = self._base_params(request)
        pages_scanned = 0

        self.logger.info(
            "Listing search started",
            context=LogContext.LISTING_SEARCH,
            sku=request.sku,
            category_id=request.category_id
        )

        exact_params = dict(base_params)
        exact_params["SKUArray"] = {"SKU": request.sku}
        async for page in self.pager.iter_pages(
            exact_params,
            self.config.search_page_size,
            self.config.exact_search_max_pages
        ):
            pages_scanned += 1
            for item in page.items:
                if title in (item.get("Title") or "").lower():
                    return self._found(item, 1, pages_scanned)

        async for page in self.pager.iter_pages(
            base_params,
            self.config.search_page_size,
            self.config.partial_search_max_pages
        ):
            pages_scanned += 1
            for item in page.items:
                # SKU match is case-sensitive, title match is not
                if request.sku in (item.get("SKU") or "") and title in (item.get("Title") or "").lower():
                    return self._found(item, 2, pages_scanned)

        self.logger.info(
            "Listing search found no match",
            context=LogContext.LISTING_SEARCH,
            sku=request.sku,
            pages_scanned=pages_scanned
        )
        return SearchOutcome(pages_scanned=pages_scanned)

    def _found(self, item: Dict[str, Any], phase: int, pages_scanned: int) -> SearchOutcome:
        listing = ListingItem.from_trading(item)
        self.logger.info(
            "Listing search matched",
            context=LogContext.LISTING_SEARCH,
            item_id=listing.item_id,
            sku=listing.sku,
            phase=phase,
            pages_scanned=pages_scanned
        )
        return SearchOutcome(item=listing, phase=phase, pages_scanned=pages_scanned)
