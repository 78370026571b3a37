"""
Resolve seller SKUs to eBay ItemIDs.

Numeric identifiers are ItemIDs and pass through untouched. SKUs are
looked up in the seller's recent listings; the result is never cached.
"""
import re
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator

from api.ebay_enums import ListingStatus
from api.errors import TradingApiError
from api.seller_list import SellerListPager, format_timestamp
from logging_config import LogContext


ITEM_ID_PATTERN = re.compile(r"^\d+$")


class IdentifierKind(str, Enum):
    ITEM_ID = "item_id"
    SKU = "sku"


class ItemIdentifier(BaseModel):
    """A listing reference that is explicitly an ItemID or a SKU."""
    model_config = ConfigDict(frozen=True)

    kind: IdentifierKind
    value: str

    @field_validator("value")
    @classmethod
    def value_must_not_be_empty(cls, v):
        if not v or not v.strip():
            raise ValueError("Identifier cannot be empty")
        return v.strip()

    @classmethod
    def item_id(cls, value: str) -> "ItemIdentifier":
        return cls(kind=IdentifierKind.ITEM_ID, value=value)

    @classmethod
    def sku(cls, value: str) -> "ItemIdentifier":
        return cls(kind=IdentifierKind.SKU, value=value)

    @classmethod
    def infer(cls, raw: Union[str, "ItemIdentifier"]) -> "ItemIdentifier":
        """All-digit strings are ItemIDs; anything else is a SKU."""
        if isinstance(raw, ItemIdentifier):
            return raw
        raw = str(raw).strip()
        if ITEM_ID_PATTERN.match(raw):
            return cls.item_id(raw)
        return cls.sku(raw)

    @property
    def is_item_id(self) -> bool:
        return self.kind == IdentifierKind.ITEM_ID


class ItemResolver:
    """Maps a SKU to the ItemID of its active listing."""

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

    async def resolve_item_id(
        self,
        identifier: Union[str, ItemIdentifier],
        marketplace: Optional[str] = None
    ) -> Optional[str]:
        """
        Resolve an identifier to an ItemID.

        Args:
            identifier: ItemID, SKU, or a string classified by ItemIdentifier.infer
            marketplace: Marketplace code, used for logging only

        Returns:
            The ItemID, or None when no active listing carries the SKU

        Raises:
            TradingApiError: A GetSellerList page failed
        """
        identifier = ItemIdentifier.infer(identifier)
        if identifier.is_item_id:
            return identifier.value

        sku = identifier.value
        log_fields = {
            "context": LogContext.ITEM_RESOLUTION,
            "sku": sku,
            "marketplace": marketplace or self.client.marketplace.code,
        }

        if self.config.direct_sku_lookup:
            item_id = await self._lookup_by_sku(sku, log_fields)
            if item_id:
                return item_id

        now = self._clock()
        base_params = {
            "DetailLevel": "ReturnAll",
            "StartTimeFrom": format_timestamp(now - timedelta(days=self.config.resolver_lookback_days)),
            "StartTimeTo": format_timestamp(now),
            "IncludeVariations": False,
        }

        pages_scanned = 0
        async for page in self.pager.iter_pages(
            base_params,
            self.config.resolver_page_size,
            self.config.resolver_max_pages
        ):
            pages_scanned = page.page_number
            for item in page.items:
                status = (item.get("SellingStatus") or {}).get("ListingStatus")
                if item.get("SKU") == sku and status == ListingStatus.ACTIVE.value:
                    item_id = item.get("ItemID")
                    self.logger.info(
                        "Resolved SKU to ItemID",
                        item_id=item_id,
                        page_number=page.page_number,
                        **log_fields
                    )
                    return item_id

        self.logger.info(
            "No active listing found for SKU",
            pages_scanned=pages_scanned,
            **log_fields
        )
        return None

    async def _lookup_by_sku(self, sku: str, log_fields) -> Optional[str]:
        """GetItem by SKU; a remote error falls through to the scan."""
        try:
            response = await self.client.execute("GetItem", {
                "SKU": sku,
                "DetailLevel": "ReturnAll",
            })
        except TradingApiError as e:
            self.logger.warning(
                "Direct SKU lookup failed, scanning seller list",
                error=e.message,
                error_codes=e.error_codes,
                **log_fields
            )
            return None

        item = response.get("Item") or {}
        status = (item.get("SellingStatus") or {}).get("ListingStatus")
        if status == ListingStatus.ACTIVE.value and item.get("ItemID"):
            self.logger.info("Resolved SKU by direct lookup", item_id=item["ItemID"], **log_fields)
            return item["ItemID"]
        return None
