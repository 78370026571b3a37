"""
eBay Trading API Pydantic Models.

Listing records normalized from Trading API responses, the TradingItem
input model used to create and update listings, and the result models
returned by TradingService.
"""
from typing import Optional, List, Dict, Any, Union
from datetime import datetime
from decimal import Decimal, InvalidOperation
from pydantic import BaseModel, Field, field_validator, computed_field, ConfigDict

from api.ebay_enums import ListingStatus
from api.errors import ApiErrorDetail
from api.xml_codec import as_list


def _text(value: Any) -> Optional[str]:
    """Text of a parsed element that may carry attributes."""
    if isinstance(value, dict):
        return value.get("#text")
    return value


def _decimal(value: Any) -> Decimal:
    try:
        return Decimal(str(_text(value) or 0))
    except InvalidOperation:
        return Decimal("0")


def _int(value: Any) -> int:
    try:
        return int(_text(value) or 0)
    except (TypeError, ValueError):
        return 0


# ==================== Listing Records ====================

class Amount(BaseModel):
    """Monetary amount with currency."""
    value: Decimal = Field(..., description="Amount value")
    currency: str = Field(..., description="ISO 4217 currency code")

    @classmethod
    def from_trading(cls, value: Any, default_currency: str = "USD") -> "Amount":
        """Parse ``{"@currencyID": ..., "#text": ...}`` or a bare number."""
        currency = default_currency
        if isinstance(value, dict):
            currency = value.get("@currencyID") or default_currency
        return cls(value=_decimal(value), currency=currency)


class ListingQuantity(BaseModel):
    """Listed, sold and remaining quantity."""
    total: int = 0
    sold: int = 0

    @computed_field
    @property
    def available(self) -> int:
        return self.total - self.sold


class ListingItem(BaseModel):
    """A seller listing as returned by GetItem or GetSellerList."""
    item_id: str
    sku: Optional[str] = None
    title: str = ""
    current_price: Amount
    quantity: ListingQuantity
    listing_status: ListingStatus = ListingStatus.UNKNOWN
    listing_type: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    picture_urls: List[str] = Field(default_factory=list)
    listing_url: Optional[str] = None

    @classmethod
    def from_trading(cls, item: Dict[str, Any]) -> "ListingItem":
        """Normalize an ``Item`` element of a Trading API response."""
        selling_status = item.get("SellingStatus") or {}
        listing_details = item.get("ListingDetails") or {}
        category = item.get("PrimaryCategory") or {}
        pictures = item.get("PictureDetails") or {}

        return cls(
            item_id=str(item.get("ItemID") or ""),
            sku=item.get("SKU"),
            title=item.get("Title") or "",
            current_price=Amount.from_trading(
                selling_status.get("CurrentPrice"), _text(item.get("Currency")) or "USD"
            ),
            quantity=ListingQuantity(
                total=_int(item.get("Quantity")),
                sold=_int(selling_status.get("QuantitySold"))
            ),
            listing_status=ListingStatus.parse(selling_status.get("ListingStatus")),
            listing_type=item.get("ListingType"),
            start_time=listing_details.get("StartTime") or item.get("StartTime"),
            end_time=listing_details.get("EndTime") or item.get("EndTime"),
            category_id=category.get("CategoryID"),
            category_name=category.get("CategoryName"),
            picture_urls=[url for url in as_list(pictures.get("PictureURL")) if url],
            listing_url=listing_details.get("ViewItemURL")
        )

    def to_summary(self) -> Dict[str, Any]:
        """Serialize for tool output."""
        return self.model_dump(mode="json")


# ==================== Listing Input ====================

class ItemSpecific(BaseModel):
    """Item specific name with one or more values."""
    name: str
    value: Union[str, List[str]]


class ConditionDescriptor(BaseModel):
    name: str
    value: Union[str, List[str]]
    additional_info: Optional[str] = None


class ProductListingDetails(BaseModel):
    """Catalog identifiers."""
    upc: Optional[str] = None
    ean: Optional[str] = None
    isbn: Optional[str] = None
    brand: Optional[str] = None
    mpn: Optional[str] = None
    include_stock_photo_url: Optional[bool] = None


class ShippingServiceOption(BaseModel):
    service: str
    cost: Decimal = Field(Decimal("0"), ge=0)
    additional_cost: Optional[Decimal] = Field(None, ge=0)
    priority: int = 1
    free_shipping: Optional[bool] = None


class ShippingDetails(BaseModel):
    shipping_type: str = "Flat"
    options: List[ShippingServiceOption] = Field(default_factory=list)


class ShippingPackageDetails(BaseModel):
    measurement_unit: Optional[str] = None
    package_depth: Optional[Decimal] = None
    package_length: Optional[Decimal] = None
    package_width: Optional[Decimal] = None
    weight_major: Optional[Decimal] = None
    weight_minor: Optional[Decimal] = None
    shipping_package: Optional[str] = None
    shipping_irregular: Optional[bool] = None


class ReturnPolicy(BaseModel):
    returns_accepted_option: str = "ReturnsAccepted"
    refund_option: Optional[str] = None
    returns_within_option: Optional[str] = None
    shipping_cost_paid_by_option: Optional[str] = None
    description: Optional[str] = None


class SellerProfiles(BaseModel):
    """Business policy references."""
    payment_profile_id: Optional[str] = None
    payment_profile_name: Optional[str] = None
    return_profile_id: Optional[str] = None
    return_profile_name: Optional[str] = None
    shipping_profile_id: Optional[str] = None
    shipping_profile_name: Optional[str] = None


class VatDetails(BaseModel):
    business_seller: Optional[bool] = None
    restricted_to_business: Optional[bool] = None
    vat_percent: Optional[Decimal] = None


class TradingItem(BaseModel):
    """
    Listing fields accepted by the add, verify, revise and relist calls.

    Every field is optional so the same model carries partial updates.
    Fields the model does not cover can be passed through ``extra_fields``
    as an already-shaped Trading API tree. Unknown keys are rejected.
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    sku: Optional[str] = Field(None, max_length=50)
    title: Optional[str] = Field(None, max_length=80)
    subtitle: Optional[str] = Field(None, max_length=55)
    description: Optional[str] = None

    category_id: Optional[str] = Field(None, description="Shortcut for primary_category")
    primary_category: Optional[str] = None
    secondary_category: Optional[str] = None
    store_category_id: Optional[str] = None
    store_category2_id: Optional[str] = None

    start_price: Optional[Decimal] = Field(None, gt=0)
    buy_it_now_price: Optional[Decimal] = Field(None, gt=0)
    reserve_price: Optional[Decimal] = Field(None, gt=0)
    quantity: Optional[int] = Field(None, ge=0)
    lot_size: Optional[int] = Field(None, ge=1)

    country: Optional[str] = None
    location: Optional[str] = None
    postal_code: Optional[str] = None
    currency: Optional[str] = None

    listing_type: Optional[str] = None
    listing_duration: Optional[str] = None
    dispatch_time_max: Optional[int] = Field(None, ge=0)

    condition_id: Optional[int] = None
    condition: Optional[str] = None
    condition_description: Optional[str] = None
    condition_descriptors: Optional[List[ConditionDescriptor]] = None

    picture_urls: Optional[List[str]] = None
    gallery_type: Optional[str] = None
    item_specifics: Optional[List[ItemSpecific]] = None
    product_listing_details: Optional[ProductListingDetails] = None

    shipping_details: Optional[ShippingDetails] = None
    shipping_package_details: Optional[ShippingPackageDetails] = None
    return_policy: Optional[ReturnPolicy] = None
    seller_profiles: Optional[SellerProfiles] = None

    best_offer_enabled: Optional[bool] = None
    best_offer_auto_accept_price: Optional[Decimal] = Field(None, gt=0)
    minimum_best_offer_price: Optional[Decimal] = Field(None, gt=0)
    vat_details: Optional[VatDetails] = None

    regulatory: Optional[Dict[str, Any]] = None
    charity: Optional[Dict[str, Any]] = None
    item_compatibility_list: Optional[List[Dict[str, Any]]] = None
    payment_methods: Optional[List[str]] = None
    paypal_email_address: Optional[str] = None
    auto_pay: Optional[bool] = None
    private_listing: Optional[bool] = None
    schedule_time: Optional[datetime] = None
    ship_to_locations: Optional[List[str]] = None
    uuid: Optional[str] = None
    marketplace: Optional[str] = None
    verify_only: Optional[bool] = None

    extra_fields: Optional[Dict[str, Any]] = None

    @field_validator("picture_urls")
    @classmethod
    def validate_pictures(cls, v):
        if v and len(v) > 24:
            raise ValueError("Maximum 24 pictures allowed")
        return v

    def supplied_fields(self) -> List[str]:
        """Names of the fields carrying a value."""
        return [
            name for name in type(self).model_fields
            if getattr(self, name) is not None
        ]


# ==================== Operation Results ====================

class Fee(BaseModel):
    """One listing fee line."""
    name: str
    amount: Decimal
    currency: str = "USD"
    promotional_discount: Optional[Decimal] = None


def parse_fees(fees: Any) -> List[Fee]:
    """Parse the ``Fees`` container of an add/revise/relist response."""
    if not isinstance(fees, dict):
        return []
    parsed = []
    for fee in as_list(fees.get("Fee")):
        if not isinstance(fee, dict):
            continue
        amount = fee.get("Fee")
        discount = fee.get("PromotionalDiscount")
        parsed.append(Fee(
            name=fee.get("Name") or "Unknown",
            amount=_decimal(amount),
            currency=(amount.get("@currencyID") if isinstance(amount, dict) else None) or "USD",
            promotional_discount=_decimal(discount) if discount is not None else None
        ))
    return parsed


class ListingResult(BaseModel):
    """Result of an add or revise call."""
    item_id: Optional[str] = None
    sku: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    category_id: Optional[str] = None
    fees: List[Fee] = Field(default_factory=list)
    warnings: List[ApiErrorDetail] = Field(default_factory=list)
    removed_fields: List[str] = Field(default_factory=list)


class VerifyResult(BaseModel):
    """Result of a dry-run listing verification."""
    fees: List[Fee] = Field(default_factory=list)
    errors: List[ApiErrorDetail] = Field(default_factory=list)
    warnings: List[ApiErrorDetail] = Field(default_factory=list)


class RelistResult(BaseModel):
    """Result of relisting an ended listing; eBay assigns a new ItemID."""
    item_id: Optional[str] = None
    original_item_id: str
    sku: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    fees: List[Fee] = Field(default_factory=list)
    warnings: List[ApiErrorDetail] = Field(default_factory=list)


class EndListingResult(BaseModel):
    item_id: Optional[str] = None
    sku: Optional[str] = None
    end_time: Optional[datetime] = None


class ItemStatus(BaseModel):
    """Current lifecycle state of a single listing."""
    item_id: str
    sku: Optional[str] = None
    title: Optional[str] = None
    listing_status: ListingStatus
    is_active: bool = False
    is_ended: bool = False
    is_deleted: bool = False
    quantity: Optional[ListingQuantity] = None
    price: Optional[Amount] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    listing_duration: Optional[str] = None
    listing_type: Optional[str] = None
    watch_count: int = 0
    view_count: int = 0
    message: Optional[str] = None

    @classmethod
    def not_found(cls, item_id: str, message: Optional[str] = None) -> "ItemStatus":
        return cls(
            item_id=item_id,
            listing_status=ListingStatus.NOT_FOUND,
            is_active=False,
            is_ended=True,
            is_deleted=True,
            message=message
        )


class UserInfo(BaseModel):
    """Seller account details from GetUser."""
    user_id: Optional[str] = None
    email: Optional[str] = None
    feedback_score: int = 0
    positive_feedback_percent: Optional[float] = None
    registration_date: Optional[datetime] = None
    site: Optional[str] = None
    status: Optional[str] = None
    seller_level: Optional[str] = None
    store_owner: bool = False

    @classmethod
    def from_trading(cls, user: Dict[str, Any]) -> "UserInfo":
        seller_info = user.get("SellerInfo") or {}
        percent = user.get("PositiveFeedbackPercent")
        return cls(
            user_id=user.get("UserID"),
            email=user.get("Email"),
            feedback_score=_int(user.get("FeedbackScore")),
            positive_feedback_percent=float(percent) if percent else None,
            registration_date=user.get("RegistrationDate"),
            site=user.get("Site"),
            status=user.get("Status"),
            seller_level=seller_info.get("SellerLevel"),
            store_owner=str(seller_info.get("StoreOwner", "false")).lower() == "true"
        )
