"""eBay Trading API tools for listing management."""
import asyncio
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Dict, Any, Optional, List, Union

import aiohttp
from fastmcp import Context
from pydantic import BaseModel, Field, field_validator

from data_types import success_response, warning_response, error_response, ErrorCode, validate_tool_input
from logging_config import log_context, log_performance
from api.errors import (
    TradingApiError,
    MalformedResponseError,
    AuthenticationError,
    ConfigurationError,
    extract_trading_error_details,
)
from api.ebay_enums import EndingReason
from api.item_resolver import ItemIdentifier
from api.marketplaces import describe, view_item_url
from api.listing_search import SearchRequest
from api.models import TradingItem, ItemSpecific
from merchantry_server import mcp, build_trading_service


CREDENTIALS_NOTE = (
    "eBay user token not configured. Set EBAY_USER_TOKEN, or EBAY_REFRESH_TOKEN "
    "together with EBAY_APP_ID and EBAY_CERT_ID, to use the Trading API."
)


def _credentials_missing() -> bool:
    return not (mcp.config.user_token or mcp.config.refresh_token)


def _not_configured(data: Dict[str, Any]) -> str:
    data["note"] = CREDENTIALS_NOTE
    return success_response(
        data=data,
        message="eBay API credentials not available - see note for setup instructions"
    ).to_json_string()


@asynccontextmanager
async def _trading_session(tool_name: str, marketplace: Optional[str]):
    """Request-scoped TradingService; binds the log context and closes the client."""
    service = build_trading_service(marketplace)
    marketplace_code = describe(marketplace, default=mcp.config.default_marketplace).code
    try:
        with log_context(tool_name=tool_name, marketplace=marketplace_code):
            yield service
    finally:
        await service.close()


async def _failure(ctx: Context, action: str, e: Exception) -> str:
    """Map an exception to the standard error response."""
    mcp.logger.error(
        f"Failed {action}",
        error=str(e),
        error_type=type(e).__name__
    )
    if isinstance(e, TradingApiError):
        await ctx.error(f"eBay rejected {action}: {e.message}")
        return error_response(
            ErrorCode.EXTERNAL_API_ERROR,
            e.get_comprehensive_message(),
            extract_trading_error_details(e)
        ).to_json_string()
    if isinstance(e, MalformedResponseError):
        await ctx.error(f"Unreadable eBay response while {action}")
        return error_response(ErrorCode.MALFORMED_RESPONSE, e.message, e.details).to_json_string()
    if isinstance(e, AuthenticationError):
        await ctx.error(f"Authentication failed: {e.message}")
        return error_response(ErrorCode.AUTHENTICATION_ERROR, e.message, e.details).to_json_string()
    if isinstance(e, ConfigurationError):
        return error_response(ErrorCode.CONFIGURATION_ERROR, e.message, e.details).to_json_string()
    if isinstance(e, ValueError):
        await ctx.error(f"Invalid parameters: {str(e)}")
        return error_response(ErrorCode.VALIDATION_ERROR, str(e)).to_json_string()
    if isinstance(e, (aiohttp.ClientError, asyncio.TimeoutError)):
        await ctx.error(f"Network error while {action}: {str(e)}")
        return error_response(
            ErrorCode.EXTERNAL_API_ERROR,
            f"Network error while {action}: {str(e) or type(e).__name__}"
        ).to_json_string()

    await ctx.error(f"Failed {action}: {str(e)}")
    return error_response(
        ErrorCode.INTERNAL_ERROR,
        f"Failed {action}: {str(e)}"
    ).to_json_string()


def _dump(model: BaseModel) -> Dict[str, Any]:
    return model.model_dump(mode="json", exclude_none=True)


class ListingInput(BaseModel):
    """Input model for create_listing and verify_listing tools."""
    title: str = Field(..., min_length=1, max_length=80, description="Item title (max 80 characters)")
    description: str = Field(..., min_length=1, description="Item description, HTML allowed")
    category_id: str = Field(..., description="eBay category ID for the item")
    start_price: float = Field(..., gt=0, description="Fixed price in the marketplace currency")
    sku: Optional[str] = Field(None, description="Seller SKU")
    quantity: int = Field(1, ge=1, description="Number of items available")
    condition: Optional[str] = Field(None, description="Condition name, e.g. New, Used")
    picture_urls: Optional[List[str]] = Field(None, description="Picture URLs")
    item_specifics: Optional[Dict[str, Union[str, List[str]]]] = Field(None, description="Item specifics by name")
    additional_fields: Optional[Dict[str, Any]] = Field(None, description="Any other TradingItem fields")

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v):
        if not v.strip():
            raise ValueError("Title cannot be empty or only whitespace")
        return v

    def to_trading_item(self) -> TradingItem:
        fields = dict(self.additional_fields or {})
        fields.update({
            "title": self.title,
            "description": self.description,
            "category_id": self.category_id,
            "start_price": self.start_price,
            "sku": self.sku,
            "quantity": self.quantity,
            "condition": self.condition,
            "picture_urls": self.picture_urls,
        })
        if self.item_specifics:
            fields["item_specifics"] = [
                ItemSpecific(name=name, value=value)
                for name, value in self.item_specifics.items()
            ]
        return validate_tool_input(TradingItem, {k: v for k, v in fields.items() if v is not None})


def _listing_input(**values) -> ListingInput:
    return validate_tool_input(ListingInput, values)


@mcp.tool
@log_performance(mcp.logger)
async def create_listing(
    title: str,
    description: str,
    category_id: str,
    start_price: float,
    sku: Optional[str] = None,
    quantity: int = 1,
    condition: Optional[str] = None,
    picture_urls: Optional[List[str]] = None,
    item_specifics: Optional[Dict[str, Union[str, List[str]]]] = None,
    additional_fields: Optional[Dict[str, Any]] = None,
    marketplace: Optional[str] = None,
    *,
    ctx: Context
) -> str:
    """
    Create a new fixed-price eBay listing.

    Shipping and returns default to the marketplace's standard options
    unless seller profiles or explicit policies are given in
    additional_fields.

    Args:
        title: Item title (max 80 characters)
        description: Item description; HTML is sent as CDATA
        category_id: eBay category ID
        start_price: Fixed price in the marketplace currency
        sku: Seller SKU
        quantity: Number of items available
        condition: Condition name (New, Used, ...); defaults to New
        picture_urls: Picture URLs
        item_specifics: Item specifics, e.g. {"Brand": "Apple"}
        additional_fields: Other listing fields, e.g. seller_profiles or return_policy
        marketplace: Marketplace code such as EBAY_DE or EBAY_US
        ctx: MCP context for logging

    Returns:
        JSON response with the new ItemID, fees and any eBay warnings
    """
    await ctx.info(f"Creating eBay listing: {title}")
    await ctx.report_progress(0.1, "Validating listing parameters...")

    if _credentials_missing():
        return _not_configured({"item_id": None, "status": "Not Created"})

    try:
        listing = _listing_input(
            title=title,
            description=description,
            category_id=category_id,
            start_price=start_price,
            sku=sku,
            quantity=quantity,
            condition=condition,
            picture_urls=picture_urls,
            item_specifics=item_specifics,
            additional_fields=additional_fields
        )
        item = listing.to_trading_item()
    except ValueError as e:
        return await _failure(ctx, "creating listing", e)

    try:
        async with _trading_session("create_listing", marketplace) as service:
            await ctx.report_progress(0.4, "Submitting listing to eBay...")
            result = await service.create_listing(item)

            await ctx.report_progress(1.0, "Listing created successfully")
            await ctx.info(f"Created listing with Item ID: {result.item_id}")

            data = _dump(result)
            data["listing_url"] = view_item_url(
                describe(marketplace, default=mcp.config.default_marketplace),
                result.item_id,
                sandbox=mcp.config.sandbox_mode
            )
            return success_response(
                data=data,
                message=f"Successfully created listing '{title}' with ID {result.item_id}"
            ).to_json_string()
    except Exception as e:
        return await _failure(ctx, "creating listing", e)


@mcp.tool
@log_performance(mcp.logger)
async def verify_listing(
    title: str,
    description: str,
    category_id: str,
    start_price: float,
    sku: Optional[str] = None,
    quantity: int = 1,
    condition: Optional[str] = None,
    picture_urls: Optional[List[str]] = None,
    item_specifics: Optional[Dict[str, Union[str, List[str]]]] = None,
    additional_fields: Optional[Dict[str, Any]] = None,
    marketplace: Optional[str] = None,
    *,
    ctx: Context
) -> str:
    """
    Check a listing with eBay without creating it.

    Takes the same arguments as create_listing and returns the fees eBay
    would charge plus any errors or warnings.
    """
    await ctx.info(f"Verifying eBay listing: {title}")

    if _credentials_missing():
        return _not_configured({"fees": [], "errors": [], "warnings": []})

    try:
        item = _listing_input(
            title=title,
            description=description,
            category_id=category_id,
            start_price=start_price,
            sku=sku,
            quantity=quantity,
            condition=condition,
            picture_urls=picture_urls,
            item_specifics=item_specifics,
            additional_fields=additional_fields
        ).to_trading_item()
    except ValueError as e:
        return await _failure(ctx, "verifying listing", e)

    try:
        async with _trading_session("verify_listing", marketplace) as service:
            await ctx.report_progress(0.5, "Verifying listing with eBay...")
            result = await service.verify_listing(item)

            if result.warnings:
                return warning_response(
                    data=_dump(result),
                    message=f"Listing is valid with {len(result.warnings)} warning(s)"
                ).to_json_string()
            return success_response(
                data=_dump(result),
                message="Listing passed eBay verification"
            ).to_json_string()
    except Exception as e:
        return await _failure(ctx, "verifying listing", e)


@mcp.tool
@log_performance(mcp.logger)
async def revise_listing(
    identifier: str,
    updates: Dict[str, Any],
    marketplace: Optional[str] = None,
    *,
    ctx: Context
) -> str:
    """
    Update a live eBay listing.

    Fields eBay does not allow on a live listing (category, condition,
    listing type, ...) are dropped and reported in removed_fields.

    Args:
        identifier: ItemID (all digits) or seller SKU
        updates: Listing fields to change, e.g. {"start_price": 24.99, "quantity": 3}
        marketplace: Marketplace code
        ctx: MCP context for logging

    Returns:
        JSON response with the revised listing, fees and removed fields
    """
    await ctx.info(f"Revising eBay listing: {identifier}")

    if _credentials_missing():
        return _not_configured({"item_id": None, "status": "Not Revised"})

    try:
        if not updates:
            raise ValueError("At least one field must be provided for update")
        target = ItemIdentifier.infer(identifier)
        item = validate_tool_input(TradingItem, updates)
    except ValueError as e:
        return await _failure(ctx, "revising listing", e)

    try:
        async with _trading_session("revise_listing", marketplace) as service:
            await ctx.report_progress(0.3, "Resolving listing...")
            result = await service.revise_listing(target, item)
            await ctx.report_progress(1.0, "Listing revised")

            message = f"Successfully revised listing {result.item_id or identifier}"
            if result.removed_fields:
                message += f"; ignored fields that cannot be revised: {', '.join(result.removed_fields)}"
            return success_response(data=_dump(result), message=message).to_json_string()
    except Exception as e:
        return await _failure(ctx, "revising listing", e)


@mcp.tool
@log_performance(mcp.logger)
async def relist_listing(
    item_id: str,
    updates: Optional[Dict[str, Any]] = None,
    marketplace: Optional[str] = None,
    *,
    ctx: Context
) -> str:
    """
    Relist an ended eBay listing.

    eBay assigns a new ItemID; the response carries both item_id (new)
    and original_item_id.

    Args:
        item_id: ItemID of the ended listing
        updates: Optional listing fields to change while relisting
        marketplace: Marketplace code
        ctx: MCP context for logging
    """
    await ctx.info(f"Relisting eBay item: {item_id}")

    if _credentials_missing():
        return _not_configured({"item_id": None, "original_item_id": item_id})

    try:
        target = ItemIdentifier.item_id(item_id)
        if not target.value.isdigit():
            raise ValueError("item_id must be a numeric eBay ItemID")
        item = validate_tool_input(TradingItem, updates) if updates else None
    except ValueError as e:
        return await _failure(ctx, "relisting item", e)

    try:
        async with _trading_session("relist_listing", marketplace) as service:
            result = await service.relist_listing(target.value, item)
            await ctx.info(f"Relisted {item_id} as {result.item_id}")
            return success_response(
                data=_dump(result),
                message=f"Relisted item {item_id} as new item {result.item_id}"
            ).to_json_string()
    except Exception as e:
        return await _failure(ctx, "relisting item", e)


@mcp.tool
@log_performance(mcp.logger)
async def end_listing(
    identifier: str,
    reason: str = EndingReason.OTHER_LISTING_ERROR.value,
    marketplace: Optional[str] = None,
    *,
    ctx: Context
) -> str:
    """
    End an active eBay listing before its scheduled end time.

    Args:
        identifier: ItemID (all digits) or seller SKU
        reason: Incorrect, LostOrBroken, NotAvailable, OtherListingError,
            ProductDeleted or SellToHighBidder
        marketplace: Marketplace code
        ctx: MCP context for logging
    """
    await ctx.info(f"Ending eBay listing: {identifier}")

    if _credentials_missing():
        return _not_configured({"item_id": None, "end_time": None, "reason": reason})

    if not EndingReason.is_valid(reason):
        await ctx.warning(
            f"Unrecognized ending reason '{reason}'. Known reasons: "
            f"{', '.join(EndingReason.get_all_values())}"
        )

    try:
        async with _trading_session("end_listing", marketplace) as service:
            await ctx.report_progress(0.5, "Ending listing...")
            result = await service.end_listing(ItemIdentifier.infer(identifier), reason)
            data = _dump(result)
            data["reason"] = reason
            return success_response(
                data=data,
                message=f"Successfully ended listing {result.item_id or identifier}"
            ).to_json_string()
    except Exception as e:
        return await _failure(ctx, "ending listing", e)


@mcp.tool
@log_performance(mcp.logger)
async def get_item(
    identifier: str,
    marketplace: Optional[str] = None,
    *,
    ctx: Context
) -> str:
    """
    Get the details of one of the seller's listings.

    Args:
        identifier: ItemID (all digits) or seller SKU
        marketplace: Marketplace code
        ctx: MCP context for logging

    Returns:
        JSON response with title, price, quantities, status and listing URL
    """
    await ctx.info(f"Getting eBay listing: {identifier}")

    if _credentials_missing():
        return _not_configured({"item": None})

    try:
        target = ItemIdentifier.infer(identifier)
    except ValueError as e:
        return await _failure(ctx, "getting item", e)

    try:
        async with _trading_session("get_item", marketplace) as service:
            item = await service.get_item(target)
            return success_response(
                data={"item": item.to_summary()},
                message=f"Retrieved listing {item.item_id or identifier}"
            ).to_json_string()
    except Exception as e:
        return await _failure(ctx, "getting item", e)


@mcp.tool
@log_performance(mcp.logger)
async def get_item_status(
    item_id: str,
    marketplace: Optional[str] = None,
    *,
    ctx: Context
) -> str:
    """
    Check whether a listing is active, ended or deleted.

    Deleted listings are reported with listing_status NotFound rather
    than as an error.

    Args:
        item_id: eBay ItemID
        marketplace: Marketplace code
        ctx: MCP context for logging
    """
    await ctx.info(f"Checking status of item {item_id}")

    if _credentials_missing():
        return _not_configured({"item_id": item_id, "listing_status": "Unknown"})

    try:
        async with _trading_session("get_item_status", marketplace) as service:
            status = await service.get_item_status(item_id)
            return success_response(
                data=_dump(status),
                message=f"Item {item_id} is {status.listing_status.value}"
            ).to_json_string()
    except Exception as e:
        return await _failure(ctx, "checking item status", e)


@mcp.tool
@log_performance(mcp.logger)
async def search_listing(
    sku: str,
    title: str,
    category_id: Optional[str] = None,
    created_at: Optional[str] = None,
    marketplace: Optional[str] = None,
    *,
    ctx: Context
) -> str:
    """
    Find one of the seller's listings by SKU and title.

    First asks eBay for the exact SKU, then scans the seller's listings for
    SKUs containing the given one. Titles match case-insensitively.

    Args:
        sku: Seller SKU
        title: Title text the listing must contain
        category_id: Restrict to one eBay category
        created_at: ISO timestamp the listing was created around (14 days either side)
        marketplace: Marketplace code
        ctx: MCP context for logging
    """
    await ctx.info(f"Searching listing for SKU {sku}")

    if _credentials_missing():
        return _not_configured({"item": None})

    try:
        request = validate_tool_input(SearchRequest, {
            "sku": sku,
            "title": title,
            "category_id": category_id,
            "created_at": datetime.fromisoformat(created_at.replace("Z", "+00:00")) if created_at else None,
        })
    except ValueError as e:
        return await _failure(ctx, "searching listing", e)

    try:
        async with _trading_session("search_listing", marketplace) as service:
            await ctx.report_progress(0.2, "Searching seller listings...")
            item = await service.search_listing(request)
            await ctx.report_progress(1.0, "Search complete")

            if item is None:
                return success_response(
                    data={"item": None},
                    message=f"No listing found for SKU {sku}"
                ).to_json_string()
            return success_response(
                data={"item": item.to_summary()},
                message=f"Found listing {item.item_id} for SKU {sku}"
            ).to_json_string()
    except Exception as e:
        return await _failure(ctx, "searching listing", e)


@mcp.tool
@log_performance(mcp.logger)
async def resolve_item_id(
    identifier: str,
    marketplace: Optional[str] = None,
    *,
    ctx: Context
) -> str:
    """
    Resolve a seller SKU to the ItemID of its active listing.

    All-digit identifiers are ItemIDs and are returned unchanged.

    Args:
        identifier: ItemID or SKU
        marketplace: Marketplace code
        ctx: MCP context for logging
    """
    if _credentials_missing():
        return _not_configured({"identifier": identifier, "item_id": None})

    try:
        target = ItemIdentifier.infer(identifier)
    except ValueError as e:
        return await _failure(ctx, "resolving identifier", e)

    try:
        async with _trading_session("resolve_item_id", marketplace) as service:
            item_id = await service.resolve_item_id(target)
            data = {"identifier": identifier, "kind": target.kind.value, "item_id": item_id}
            if item_id is None:
                return success_response(
                    data=data,
                    message=f"No active listing found for SKU {identifier}"
                ).to_json_string()
            return success_response(data=data, message=f"{identifier} resolves to {item_id}").to_json_string()
    except Exception as e:
        return await _failure(ctx, "resolving identifier", e)


@mcp.tool
@log_performance(mcp.logger)
async def get_user_info(
    marketplace: Optional[str] = None,
    *,
    ctx: Context
) -> str:
    """
    Get the authenticated seller's account information.

    Useful to confirm the configured token works.
    """
    await ctx.info("Getting information for authenticated user")

    if _credentials_missing():
        return _not_configured({"user_id": None, "status": "Unknown"})

    try:
        async with _trading_session("get_user_info", marketplace) as service:
            await ctx.report_progress(0.5, "Fetching user data...")
            user = await service.get_user()
            return success_response(
                data=_dump(user),
                message=f"Successfully retrieved information for {user.user_id}"
            ).to_json_string()
    except Exception as e:
        return await _failure(ctx, "getting user info", e)
