"""
Transform TradingItem models into Trading API ``Item`` trees.

Full transforms (add, verify, relist) fill in marketplace defaults for
country, currency, condition and, when no business policies are given,
shipping and returns. Partial transforms (revise) emit only the supplied
fields.
"""
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from api.marketplaces import (
    MarketplaceDescriptor,
    DEFAULT_CONDITION_ID,
    condition_id_for,
    default_shipping_service,
)
from api.models import TradingItem


# Item specifics names eBay Germany expects in German
GERMAN_ITEM_SPECIFICS = {
    "Brand": "Marke",
    "Model": "Modell",
    "Storage Capacity": "Speicherkapazität",
    "Color": "Farbe",
    "Colour": "Farbe",
    "Compatible Brand": "Kompatible Marke",
    "Compatible Model": "Kompatibles Modell",
    "Type": "Produktart",
    "Material": "Material",
    "Size": "Größe",
    "Manufacturer": "Hersteller",
    "MPN": "Herstellernummer",
    "Condition": "Zustand",
    "Style": "Stil",
    "Theme": "Thema",
    "Features": "Besonderheiten",
    "Country/Region of Manufacture": "Herstellungsland und -region",
}

DEFAULT_RETURN_POLICY = {
    "ReturnsAcceptedOption": "ReturnsAccepted",
    "RefundOption": "MoneyBack",
    "ReturnsWithinOption": "Days_30",
    "ShippingCostPaidByOption": "Buyer",
}


def amount(value: Union[Decimal, float, int, str], currency: str) -> Dict[str, str]:
    """Build a currency-tagged amount element."""
    return {"@currencyID": currency, "#text": str(value)}


def _values(value: Union[str, List[str]]) -> List[str]:
    return value if isinstance(value, list) else [value]


def _compact(tree: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in tree.items() if value is not None}


def _item_specifics(item: TradingItem, marketplace: MarketplaceDescriptor) -> Dict[str, Any]:
    translate = marketplace.code == "EBAY_DE"
    name_values = []
    for specific in item.item_specifics:
        name = specific.name
        if translate:
            name = GERMAN_ITEM_SPECIFICS.get(name, name)
        name_values.append({"Name": name, "Value": _values(specific.value)})
    return {"NameValueList": name_values}


def _shipping_details(item: TradingItem, currency: str) -> Dict[str, Any]:
    options = []
    for option in item.shipping_details.options:
        entry = {
            "ShippingServicePriority": option.priority,
            "ShippingService": option.service,
            "ShippingServiceCost": amount(option.cost, currency),
        }
        if option.additional_cost is not None:
            entry["ShippingServiceAdditionalCost"] = amount(option.additional_cost, currency)
        if option.free_shipping is not None:
            entry["FreeShipping"] = option.free_shipping
        options.append(entry)
    return {
        "ShippingType": item.shipping_details.shipping_type,
        "ShippingServiceOptions": options,
    }


def _default_shipping(marketplace: MarketplaceDescriptor) -> Dict[str, Any]:
    return {
        "ShippingType": "Flat",
        "ShippingServiceOptions": [{
            "ShippingServicePriority": 1,
            "ShippingService": default_shipping_service(marketplace.code),
            "ShippingServiceCost": amount("0.00", marketplace.currency_code),
        }],
    }


def _return_policy(item: TradingItem) -> Dict[str, Any]:
    policy = item.return_policy
    return _compact({
        "ReturnsAcceptedOption": policy.returns_accepted_option,
        "RefundOption": policy.refund_option,
        "ReturnsWithinOption": policy.returns_within_option,
        "ShippingCostPaidByOption": policy.shipping_cost_paid_by_option,
        "Description": policy.description,
    })


def _seller_profiles(item: TradingItem) -> Optional[Dict[str, Any]]:
    profiles = item.seller_profiles
    tree = {}
    if profiles.payment_profile_id or profiles.payment_profile_name:
        tree["SellerPaymentProfile"] = _compact({
            "PaymentProfileID": profiles.payment_profile_id,
            "PaymentProfileName": profiles.payment_profile_name,
        })
    if profiles.return_profile_id or profiles.return_profile_name:
        tree["SellerReturnProfile"] = _compact({
            "ReturnProfileID": profiles.return_profile_id,
            "ReturnProfileName": profiles.return_profile_name,
        })
    if profiles.shipping_profile_id or profiles.shipping_profile_name:
        tree["SellerShippingProfile"] = _compact({
            "ShippingProfileID": profiles.shipping_profile_id,
            "ShippingProfileName": profiles.shipping_profile_name,
        })
    return tree or None


def _product_listing_details(item: TradingItem) -> Optional[Dict[str, Any]]:
    details = item.product_listing_details
    tree = _compact({
        "UPC": details.upc,
        "EAN": details.ean,
        "ISBN": details.isbn,
        "IncludeStockPhotoURL": details.include_stock_photo_url,
    })
    if details.brand or details.mpn:
        tree["BrandMPN"] = _compact({"Brand": details.brand, "MPN": details.mpn})
    return tree or None


def _package_details(item: TradingItem) -> Optional[Dict[str, Any]]:
    details = item.shipping_package_details
    tree = _compact({
        "MeasurementUnit": details.measurement_unit,
        "PackageDepth": details.package_depth,
        "PackageLength": details.package_length,
        "PackageWidth": details.package_width,
        "WeightMajor": details.weight_major,
        "WeightMinor": details.weight_minor,
        "ShippingPackage": details.shipping_package,
        "ShippingIrregular": details.shipping_irregular,
    })
    return tree or None


def transform_item(
    item: TradingItem,
    marketplace: MarketplaceDescriptor,
    partial: bool = False
) -> Dict[str, Any]:
    """
    Build the Trading API ``Item`` tree for a listing.

    Args:
        item: Listing fields
        marketplace: Marketplace whose currency and country apply
        partial: Emit only supplied fields and add no defaults (revise)

    Returns:
        Item tree in xmltodict convention
    """
    currency = item.currency or marketplace.currency_code
    tree: Dict[str, Any] = {}

    tree["SKU"] = item.sku
    tree["Title"] = item.title
    tree["SubTitle"] = item.subtitle
    tree["Description"] = item.description

    primary_category = item.primary_category or item.category_id
    if primary_category:
        tree["PrimaryCategory"] = {"CategoryID": primary_category}
    if item.secondary_category:
        tree["SecondaryCategory"] = {"CategoryID": item.secondary_category}

    if item.start_price is not None:
        tree["StartPrice"] = amount(item.start_price, currency)
    if item.buy_it_now_price is not None:
        tree["BuyItNowPrice"] = amount(item.buy_it_now_price, currency)
    if item.reserve_price is not None:
        tree["ReservePrice"] = amount(item.reserve_price, currency)

    tree["Quantity"] = item.quantity
    tree["LotSize"] = item.lot_size

    if partial:
        tree["Country"] = item.country
        tree["Location"] = item.location
        tree["Currency"] = item.currency
    else:
        country = item.country or marketplace.country_code
        tree["Country"] = country
        tree["Location"] = item.location or country
        tree["Currency"] = currency
    tree["PostalCode"] = item.postal_code

    tree["ListingDuration"] = item.listing_duration
    tree["ListingType"] = item.listing_type
    tree["DispatchTimeMax"] = item.dispatch_time_max

    if item.condition_id is not None:
        tree["ConditionID"] = item.condition_id
    elif item.condition:
        tree["ConditionID"] = condition_id_for(item.condition)
    elif not partial:
        tree["ConditionID"] = DEFAULT_CONDITION_ID
    tree["ConditionDescription"] = item.condition_description
    if item.condition_descriptors:
        tree["ConditionDescriptors"] = {
            "ConditionDescriptor": [
                _compact({
                    "Name": descriptor.name,
                    "Value": _values(descriptor.value),
                    "AdditionalInfo": descriptor.additional_info,
                })
                for descriptor in item.condition_descriptors
            ]
        }

    if item.picture_urls or item.gallery_type:
        tree["PictureDetails"] = _compact({
            "GalleryType": item.gallery_type,
            "PictureURL": item.picture_urls or None,
        })

    if item.item_specifics:
        tree["ItemSpecifics"] = _item_specifics(item, marketplace)
    if item.product_listing_details:
        tree["ProductListingDetails"] = _product_listing_details(item)
    if item.shipping_package_details:
        tree["ShippingPackageDetails"] = _package_details(item)

    if item.seller_profiles:
        tree["SellerProfiles"] = _seller_profiles(item)

    if item.shipping_details and item.shipping_details.options:
        tree["ShippingDetails"] = _shipping_details(item, currency)
    elif not partial and not item.seller_profiles:
        tree["ShippingDetails"] = _default_shipping(marketplace)

    if item.return_policy:
        tree["ReturnPolicy"] = _return_policy(item)
    elif not partial and not item.seller_profiles:
        tree["ReturnPolicy"] = dict(DEFAULT_RETURN_POLICY)

    if item.best_offer_enabled is not None:
        tree["BestOfferDetails"] = {"BestOfferEnabled": item.best_offer_enabled}
    listing_details = {}
    if item.best_offer_auto_accept_price is not None:
        listing_details["BestOfferAutoAcceptPrice"] = amount(item.best_offer_auto_accept_price, currency)
    if item.minimum_best_offer_price is not None:
        listing_details["MinimumBestOfferPrice"] = amount(item.minimum_best_offer_price, currency)
    if listing_details:
        tree["ListingDetails"] = listing_details

    if item.vat_details:
        vat = _compact({
            "BusinessSeller": item.vat_details.business_seller,
            "RestrictedToBusiness": item.vat_details.restricted_to_business,
            "VATPercent": item.vat_details.vat_percent,
        })
        if vat:
            tree["VATDetails"] = vat

    if item.store_category_id or item.store_category2_id:
        tree["Storefront"] = _compact({
            "StoreCategoryID": item.store_category_id,
            "StoreCategory2ID": item.store_category2_id,
        })

    # Already-shaped trees
    tree["Regulatory"] = item.regulatory
    tree["Charity"] = item.charity
    if item.item_compatibility_list:
        tree["ItemCompatibilityList"] = {"Compatibility": item.item_compatibility_list}

    if item.payment_methods:
        tree["PaymentMethods"] = item.payment_methods
    tree["PayPalEmailAddress"] = item.paypal_email_address
    tree["AutoPay"] = item.auto_pay
    tree["PrivateListing"] = item.private_listing
    if item.schedule_time is not None:
        tree["ScheduleTime"] = item.schedule_time.isoformat()
    if item.ship_to_locations:
        tree["ShipToLocations"] = item.ship_to_locations
    tree["UUID"] = item.uuid

    tree = _compact(tree)
    if item.extra_fields:
        tree.update(item.extra_fields)
    return tree
