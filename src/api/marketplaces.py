"""
eBay marketplace registry for the Trading API.

Maps marketplace codes (EBAY_US, EBAY_DE, ...) to the numeric site IDs
sent in the X-EBAY-API-SITEID header, plus the country and currency
used when building listings.

Documentation references:
- https://developer.ebay.com/devzone/xml/docs/reference/ebay/types/SiteCodeType.html
"""
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict


DEFAULT_MARKETPLACE = "EBAY_US"


class MarketplaceDescriptor(BaseModel):
    """Site metadata for a single eBay marketplace."""
    model_config = ConfigDict(frozen=True)

    code: str
    site_id: int
    country_code: str
    currency_code: str
    domain: str


_SITES = [
    ("EBAY_US", 0, "US", "USD", "ebay.com"),
    ("EBAY_CA", 2, "CA", "CAD", "ebay.ca"),
    ("EBAY_GB", 3, "GB", "GBP", "ebay.co.uk"),
    ("EBAY_AU", 15, "AU", "AUD", "ebay.com.au"),
    ("EBAY_AT", 16, "AT", "EUR", "ebay.at"),
    ("EBAY_BE_FR", 23, "BE", "EUR", "befr.ebay.be"),
    ("EBAY_FR", 71, "FR", "EUR", "ebay.fr"),
    ("EBAY_DE", 77, "DE", "EUR", "ebay.de"),
    ("EBAY_IT", 101, "IT", "EUR", "ebay.it"),
    ("EBAY_BE_NL", 123, "BE", "EUR", "benl.ebay.be"),
    ("EBAY_NL", 146, "NL", "EUR", "ebay.nl"),
    ("EBAY_ES", 186, "ES", "EUR", "ebay.es"),
    ("EBAY_CH", 193, "CH", "CHF", "ebay.ch"),
    ("EBAY_HK", 201, "HK", "HKD", "ebay.com.hk"),
    ("EBAY_IN", 203, "IN", "INR", "ebay.in"),
    ("EBAY_IE", 205, "IE", "EUR", "ebay.ie"),
    ("EBAY_MY", 207, "MY", "MYR", "ebay.com.my"),
    ("EBAY_PH", 211, "PH", "PHP", "ebay.ph"),
    ("EBAY_PL", 212, "PL", "PLN", "ebay.pl"),
    ("EBAY_SG", 216, "SG", "SGD", "ebay.com.sg"),
]

MARKETPLACES: Dict[str, MarketplaceDescriptor] = {
    code: MarketplaceDescriptor(
        code=code, site_id=site_id, country_code=country, currency_code=currency, domain=domain
    )
    for code, site_id, country, currency, domain in _SITES
}


# Fallback shipping service by country when no shipping policy is given
_DEFAULT_SHIPPING_SERVICES = {
    "US": "USPSPriority",
    "GB": "UK_RoyalMailFirstClassStandard",
    "DE": "DE_DHLPaket",
    "AU": "AU_Regular",
    "CA": "CA_RegularParcel",
    "FR": "FR_ColiPoste",
    "IT": "IT_RegularMail",
    "ES": "ES_StandardInternational",
    "CH": "CH_SwissPostPriority",
    "AT": "AT_StandardDispatch",
    "BE": "BE_StandardDelivery",
    "NL": "NL_StandardDelivery",
}


CONDITION_IDS: Dict[str, int] = {
    "New": 1000,
    "New other": 1500,
    "New with defects": 1750,
    "Manufacturer refurbished": 2000,
    "Seller refurbished": 2500,
    "Used": 3000,
    "Very Good": 4000,
    "Good": 5000,
    "Acceptable": 6000,
    "For parts or not working": 7000,
}

DEFAULT_CONDITION_ID = CONDITION_IDS["New"]


def describe(
    code: Optional[str], default: Optional[str] = None
) -> MarketplaceDescriptor:
    """
    Look up a marketplace descriptor.

    Never fails: a missing or unknown code resolves to the default
    marketplace (EBAY_US unless another default code is given).

    Args:
        code: Marketplace code, matched case-insensitively
        default: Marketplace code used when ``code`` is unknown

    Returns:
        MarketplaceDescriptor for the marketplace
    """
    if code:
        descriptor = MARKETPLACES.get(code.strip().upper())
        if descriptor is not None:
            return descriptor
    fallback = (default or DEFAULT_MARKETPLACE).upper()
    return MARKETPLACES.get(fallback, MARKETPLACES[DEFAULT_MARKETPLACE])


def is_known(code: Optional[str]) -> bool:
    """Check whether a marketplace code is in the registry."""
    return bool(code) and code.strip().upper() in MARKETPLACES


def default_shipping_service(code: Optional[str]) -> str:
    """Get the fallback shipping service for a marketplace."""
    if not is_known(code):
        return "Other"
    country = MARKETPLACES[code.strip().upper()].country_code
    return _DEFAULT_SHIPPING_SERVICES.get(country, "Other")


def view_item_url(descriptor: MarketplaceDescriptor, item_id: str, sandbox: bool = False) -> str:
    """Public listing page on the marketplace's own site."""
    domain = "sandbox.ebay.com" if sandbox else descriptor.domain
    return f"https://www.{domain}/itm/{item_id}"


def condition_id_for(name: Optional[str]) -> int:
    """Map a condition name to its eBay condition ID, defaulting to New."""
    if not name:
        return DEFAULT_CONDITION_ID
    wanted = name.strip().lower()
    for condition, condition_id in CONDITION_IDS.items():
        if condition.lower() == wanted:
            return condition_id
    return DEFAULT_CONDITION_ID
