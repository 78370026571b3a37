"""
Listing operations on the eBay Trading API.

TradingService is the façade the MCP tools call. It composes the client,
the item resolver and the listing search, and returns pydantic models
only.
"""
from typing import Any, Dict, Optional, Union

from api.ebay_enums import EndingReason, ListingStatus
from api.errors import TradingApiError
from api.item_resolver import ItemIdentifier, ItemResolver
from api.listing_search import ListingSearchEngine, SearchRequest
from api.listing_transformer import transform_item
from api.marketplaces import MarketplaceDescriptor
from api.models import (
    EndListingResult,
    ItemStatus,
    ListingItem,
    ListingResult,
    RelistResult,
    TradingItem,
    UserInfo,
    VerifyResult,
    parse_fees,
)
from api.xml_codec import extract_errors


# Fields eBay refuses to change on a live listing; relist to change them
NON_UPDATABLE_FIELDS = (
    "primary_category",
    "secondary_category",
    "category_id",
    "listing_type",
    "listing_duration",
    "product_listing_details",
    "condition_id",
    "condition",
    "country",
    "currency",
    "regulatory",
    "buy_it_now_price",
    "reserve_price",
    "marketplace",
    "verify_only",
    "condition_descriptors",
    "item_compatibility_list",
    "charity",
    "payment_methods",
    "paypal_email_address",
    "auto_pay",
)

# Trading element names for the same fields, checked against extra_fields
NON_UPDATABLE_ELEMENTS = (
    "PrimaryCategory",
    "SecondaryCategory",
    "ListingType",
    "ListingDuration",
    "ProductListingDetails",
    "ConditionID",
    "ConditionDescriptors",
    "Country",
    "Currency",
    "BuyItNowPrice",
    "ReservePrice",
    "Regulatory",
    "Charity",
    "ItemCompatibilityList",
    "PaymentMethods",
    "PayPalEmailAddress",
    "AutoPay",
)

# GetItem error codes for deleted or unknown listings
NOT_FOUND_ERROR_CODES = ("17", "361")

Identifier = Union[str, ItemIdentifier]


def _apply_listing_defaults(item: Dict[str, Any]) -> None:
    item.setdefault("ListingDuration", "GTC")
    item.setdefault("ListingType", "FixedPriceItem")
    item.setdefault("DispatchTimeMax", 3)


class TradingService:
    """Trading API listing operations for one marketplace."""

    def __init__(
        self,
        client,
        config,
        logger,
        marketplace: Optional[MarketplaceDescriptor] = None,
        resolver: Optional[ItemResolver] = None,
        search_engine: Optional[ListingSearchEngine] = None
    ):
        self.client = client
        self.config = config
        self.logger = logger
        self.marketplace = marketplace or client.marketplace
        self.resolver = resolver or ItemResolver(client, config, logger)
        self.search_engine = search_engine or ListingSearchEngine(client, config, logger)

    async def _identify(self, identifier: Identifier) -> Dict[str, str]:
        """ItemID when resolvable, otherwise the SKU itself."""
        identifier = ItemIdentifier.infer(identifier)
        item_id = await self.resolver.resolve_item_id(identifier, self.marketplace.code)
        if item_id:
            return {"ItemID": item_id}

        self.logger.warning(
            "Could not resolve SKU to ItemID, sending SKU directly",
            sku=identifier.value
        )
        return {"SKU": identifier.value}

    def _warnings(self, response: Dict[str, Any]):
        return [error for error in extract_errors(response) if error.is_warning]

    # ==================== Listing lifecycle ====================

    async def create_listing(self, item: TradingItem) -> ListingResult:
        """
        Create a fixed-price listing with AddFixedPriceItem.

        Raises:
            ValueError: No start price was given
            TradingApiError: eBay rejected the listing
        """
        if item.start_price is None:
            raise ValueError("StartPrice is required and must be a valid number")

        tree = transform_item(item, self.marketplace)
        _apply_listing_defaults(tree)

        self.logger.info(
            "Creating listing",
            sku=item.sku,
            marketplace=self.marketplace.code,
            category_id=(tree.get("PrimaryCategory") or {}).get("CategoryID")
        )

        response = await self.client.execute("AddFixedPriceItem", {"Item": tree})
        return ListingResult(
            item_id=response.get("ItemID"),
            sku=response.get("SKU"),
            start_time=response.get("StartTime"),
            end_time=response.get("EndTime"),
            category_id=response.get("CategoryID"),
            fees=parse_fees(response.get("Fees")),
            warnings=self._warnings(response)
        )

    async def verify_listing(self, item: TradingItem) -> VerifyResult:
        """Dry-run a listing with VerifyAddFixedPriceItem; nothing is created."""
        tree = transform_item(item, self.marketplace)
        _apply_listing_defaults(tree)

        response = await self.client.execute("VerifyAddFixedPriceItem", {"Item": tree})
        errors = extract_errors(response)
        return VerifyResult(
            fees=parse_fees(response.get("Fees")),
            errors=[error for error in errors if not error.is_warning],
            warnings=[error for error in errors if error.is_warning]
        )

    async def revise_listing(self, identifier: Identifier, updates: TradingItem) -> ListingResult:
        """
        Update a live listing with ReviseFixedPriceItem.

        Fields that cannot change after listing are dropped and reported in
        ``removed_fields``.
        """
        supplied = updates.supplied_fields()
        removed_fields = [name for name in supplied if name in NON_UPDATABLE_FIELDS]
        allowed = updates.model_copy(update={name: None for name in NON_UPDATABLE_FIELDS})

        changes = transform_item(allowed, self.marketplace, partial=True)
        for element in NON_UPDATABLE_ELEMENTS:
            if element in changes:
                del changes[element]
                removed_fields.append(element)
        if removed_fields:
            self.logger.warning(
                "Dropped fields that cannot be revised; relist to change them",
                removed_fields=removed_fields
            )

        tree = await self._identify(identifier)
        tree.update(changes)

        self.logger.info(
            "Revising listing",
            item_id=tree.get("ItemID"),
            sku=tree.get("SKU"),
            fields=[key for key in tree if key not in ("ItemID", "SKU")]
        )

        response = await self.client.execute("ReviseFixedPriceItem", {"Item": tree})
        return ListingResult(
            item_id=response.get("ItemID"),
            sku=response.get("SKU"),
            start_time=response.get("StartTime"),
            end_time=response.get("EndTime"),
            fees=parse_fees(response.get("Fees")),
            warnings=self._warnings(response),
            removed_fields=removed_fields
        )

    async def relist_listing(
        self, item_id: str, updates: Optional[TradingItem] = None
    ) -> RelistResult:
        """
        Relist an ended listing with RelistFixedPriceItem.

        eBay assigns a new ItemID; both the new and the original are returned.
        """
        tree: Dict[str, Any] = {"ItemID": item_id}
        if updates is not None:
            changes = transform_item(updates, self.marketplace, partial=True)
            changes.pop("ItemID", None)
            tree.update(changes)

        self.logger.info("Relisting item", item_id=item_id, has_updates=updates is not None)

        response = await self.client.execute("RelistFixedPriceItem", {"Item": tree})
        new_item_id = response.get("ItemID")

        self.logger.info("Item relisted", item_id=new_item_id, original_item_id=item_id)

        return RelistResult(
            item_id=new_item_id,
            original_item_id=item_id,
            sku=response.get("SKU"),
            start_time=response.get("StartTime"),
            end_time=response.get("EndTime"),
            fees=parse_fees(response.get("Fees")),
            warnings=self._warnings(response)
        )

    async def end_listing(
        self,
        identifier: Identifier,
        reason: str = EndingReason.OTHER_LISTING_ERROR.value
    ) -> EndListingResult:
        """End a listing early with EndFixedPriceItem."""
        if not EndingReason.is_valid(reason):
            self.logger.warning(
                "Unrecognized ending reason, forwarding to eBay",
                reason=reason,
                valid_reasons=EndingReason.get_all_values()
            )

        params: Dict[str, Any] = {"EndingReason": reason}
        params.update(await self._identify(identifier))

        response = await self.client.execute("EndFixedPriceItem", params)
        return EndListingResult(
            item_id=response.get("ItemID") or params.get("ItemID"),
            sku=response.get("SKU") or params.get("SKU"),
            end_time=response.get("EndTime")
        )

    # ==================== Lookups ====================

    async def get_item(self, identifier: Identifier) -> ListingItem:
        """Fetch a listing by ItemID or SKU with GetItem."""
        identifier = ItemIdentifier.infer(identifier)
        params: Dict[str, Any] = {
            "IncludeWatchCount": True,
            "IncludeItemSpecifics": True,
            "DetailLevel": "ReturnAll",
        }
        if identifier.is_item_id:
            params["ItemID"] = identifier.value
        else:
            params["SKU"] = identifier.value

        response = await self.client.execute("GetItem", params)
        return ListingItem.from_trading(response.get("Item") or {})

    async def get_item_status(self, item_id: str) -> ItemStatus:
        """
        Report whether a listing is active, ended or gone.

        Deleted or unknown listings come back as a NotFound status rather
        than an error.
        """
        params = {
            "ItemID": item_id,
            "IncludeWatchCount": False,
            "IncludeItemSpecifics": False,
            "DetailLevel": "ReturnAll",
        }
        try:
            response = await self.client.execute("GetItem", params)
        except TradingApiError as e:
            if e.has_error_code(*NOT_FOUND_ERROR_CODES):
                self.logger.info("Item not found", item_id=item_id, error_codes=e.error_codes)
                return ItemStatus.not_found(item_id, e.message)
            raise

        item = response.get("Item") or {}
        listing = ListingItem.from_trading(item)
        status = listing.listing_status
        return ItemStatus(
            item_id=listing.item_id or item_id,
            sku=listing.sku,
            title=listing.title,
            listing_status=status,
            is_active=status is ListingStatus.ACTIVE,
            is_ended=status in (ListingStatus.COMPLETED, ListingStatus.ENDED),
            quantity=listing.quantity,
            price=listing.current_price,
            start_time=listing.start_time,
            end_time=listing.end_time,
            listing_duration=item.get("ListingDuration"),
            listing_type=listing.listing_type,
            watch_count=int(item.get("WatchCount") or 0),
            view_count=int(item.get("HitCount") or 0)
        )

    async def get_user(self) -> UserInfo:
        """Fetch the authenticated seller with GetUser."""
        response = await self.client.execute("GetUser", {"DetailLevel": "ReturnAll"})
        return UserInfo.from_trading(response.get("User") or {})

    async def search_listing(self, request: SearchRequest) -> Optional[ListingItem]:
        return await self.search_engine.search(request)

    async def resolve_item_id(self, identifier: Identifier) -> Optional[str]:
        return await self.resolver.resolve_item_id(identifier, self.marketplace.code)

    async def close(self) -> None:
        await self.client.close()
