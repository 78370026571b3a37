"""
eBay Trading API Enumerations for strongly-typed parameters.

Documentation references:
- https://developer.ebay.com/devzone/xml/docs/reference/ebay/types/ListingStatusCodeType.html
- https://developer.ebay.com/devzone/xml/docs/reference/ebay/types/EndReasonCodeType.html
- https://developer.ebay.com/devzone/xml/docs/reference/ebay/types/ListingTypeCodeType.html
"""
from enum import Enum
from typing import Optional, Dict, List


class BaseEbayEnum(Enum):
    """Base class for eBay enumerations with helper methods."""

    @classmethod
    def get_description(cls, value: str) -> Optional[str]:
        """Get human-readable description for enum value."""
        return cls._get_descriptions().get(value)

    @classmethod
    def _get_descriptions(cls) -> Dict[str, str]:
        """Override in subclasses to provide descriptions."""
        return {}

    @classmethod
    def from_string(cls, value: Optional[str]) -> Optional['BaseEbayEnum']:
        """Convert string to enum value, case-insensitive."""
        if not value:
            return None
        value_upper = value.upper()
        for member in cls:
            if member.value.upper() == value_upper:
                return member
        return None

    @classmethod
    def get_all_values(cls) -> List[str]:
        """Get all possible enum values."""
        return [member.value for member in cls]

    @classmethod
    def is_valid(cls, value: str) -> bool:
        """Check if a value is valid for this enum."""
        return value in cls.get_all_values()


class ListingStatus(BaseEbayEnum):
    """
    Lifecycle state of a listing.
    NotFound and Unknown are local states: eBay reports the former as
    errors 17/361 and the latter stands for a missing ListingStatus.
    """
    ACTIVE = "Active"
    COMPLETED = "Completed"
    ENDED = "Ended"
    NOT_FOUND = "NotFound"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ListingStatus":
        return cls.from_string(value) or cls.UNKNOWN

    @property
    def is_active(self) -> bool:
        return self is ListingStatus.ACTIVE

    @property
    def is_ended(self) -> bool:
        return self in (ListingStatus.COMPLETED, ListingStatus.ENDED, ListingStatus.NOT_FOUND)


class EndingReason(BaseEbayEnum):
    """
    Reason for ending a listing early.
    Docs: https://developer.ebay.com/devzone/xml/docs/reference/ebay/types/EndReasonCodeType.html
    """
    INCORRECT = "Incorrect"
    LOST_OR_BROKEN = "LostOrBroken"
    NOT_AVAILABLE = "NotAvailable"
    OTHER_LISTING_ERROR = "OtherListingError"
    PRODUCT_DELETED = "ProductDeleted"
    SELL_TO_HIGH_BIDDER = "SellToHighBidder"

    @classmethod
    def _get_descriptions(cls) -> Dict[str, str]:
        return {
            "Incorrect": "The start price or reserve price is incorrect",
            "LostOrBroken": "The item was lost or broken",
            "NotAvailable": "The item is no longer available for sale",
            "OtherListingError": "The listing contained an error other than price",
            "ProductDeleted": "The catalog product was removed",
            "SellToHighBidder": "Auction ended to sell to the current high bidder"
        }


class ListingType(BaseEbayEnum):
    """Listing format."""
    FIXED_PRICE_ITEM = "FixedPriceItem"
    CHINESE = "Chinese"
    LEAD_GENERATION = "LeadGeneration"
    AD_TYPE = "AdType"


class ListingDuration(BaseEbayEnum):
    """Listing duration codes."""
    DAYS_1 = "Days_1"
    DAYS_3 = "Days_3"
    DAYS_5 = "Days_5"
    DAYS_7 = "Days_7"
    DAYS_10 = "Days_10"
    DAYS_30 = "Days_30"
    GTC = "GTC"
