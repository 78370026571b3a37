"""Unit tests for TradingItem to Item tree transformation."""
from decimal import Decimal

import pytest

from api.listing_transformer import DEFAULT_RETURN_POLICY, amount, transform_item
from api.models import (
    ItemSpecific,
    ProductListingDetails,
    ReturnPolicy,
    SellerProfiles,
    ShippingDetails,
    ShippingServiceOption,
    TradingItem,
)


@pytest.fixture
def basic_item():
    return TradingItem(
        sku="SKU-1",
        title="iPhone 12 64GB",
        description="<p>Works great</p>",
        category_id="9355",
        start_price=Decimal("299.00"),
        quantity=2,
    )


class TestFullTransform:
    def test_marketplace_defaults(self, basic_item, marketplace_de):
        tree = transform_item(basic_item, marketplace_de)

        assert tree["SKU"] == "SKU-1"
        assert tree["PrimaryCategory"] == {"CategoryID": "9355"}
        assert tree["StartPrice"] == {"@currencyID": "EUR", "#text": "299.00"}
        assert tree["Country"] == "DE"
        assert tree["Location"] == "DE"
        assert tree["Currency"] == "EUR"
        assert tree["ConditionID"] == 1000
        assert tree["Quantity"] == 2

    def test_default_shipping_and_returns_without_profiles(self, basic_item, marketplace_de):
        tree = transform_item(basic_item, marketplace_de)

        option = tree["ShippingDetails"]["ShippingServiceOptions"][0]
        assert option["ShippingService"] == "DE_DHLPaket"
        assert option["ShippingServiceCost"] == {"@currencyID": "EUR", "#text": "0.00"}
        assert tree["ReturnPolicy"] == DEFAULT_RETURN_POLICY

    def test_seller_profiles_replace_inline_policies(self, basic_item, marketplace_de):
        item = basic_item.model_copy(update={
            "seller_profiles": SellerProfiles(shipping_profile_id="111", return_profile_name="Returns 30")
        })
        tree = transform_item(item, marketplace_de)

        assert tree["SellerProfiles"] == {
            "SellerReturnProfile": {"ReturnProfileName": "Returns 30"},
            "SellerShippingProfile": {"ShippingProfileID": "111"},
        }
        assert "ShippingDetails" not in tree
        assert "ReturnPolicy" not in tree

    def test_explicit_values_win(self, basic_item, marketplace_us):
        item = basic_item.model_copy(update={
            "country": "CA",
            "location": "Toronto",
            "currency": "CAD",
            "condition": "Used",
            "return_policy": ReturnPolicy(returns_accepted_option="ReturnsNotAccepted"),
            "shipping_details": ShippingDetails(options=[
                ShippingServiceOption(service="USPSFirstClass", cost=Decimal("3.50"), additional_cost=Decimal("1"))
            ]),
        })
        tree = transform_item(item, marketplace_us)

        assert tree["Country"] == "CA"
        assert tree["Location"] == "Toronto"
        assert tree["StartPrice"]["@currencyID"] == "CAD"
        assert tree["ConditionID"] == 3000
        assert tree["ReturnPolicy"] == {"ReturnsAcceptedOption": "ReturnsNotAccepted"}
        option = tree["ShippingDetails"]["ShippingServiceOptions"][0]
        assert option["ShippingService"] == "USPSFirstClass"
        assert option["ShippingServiceCost"] == {"@currencyID": "CAD", "#text": "3.50"}
        assert option["ShippingServiceAdditionalCost"] == {"@currencyID": "CAD", "#text": "1"}

    def test_condition_id_beats_condition_name(self, basic_item, marketplace_us):
        item = basic_item.model_copy(update={"condition_id": 2500, "condition": "Used"})
        assert transform_item(item, marketplace_us)["ConditionID"] == 2500

    def test_primary_category_beats_category_id(self, basic_item, marketplace_us):
        item = basic_item.model_copy(update={"primary_category": "111"})
        assert transform_item(item, marketplace_us)["PrimaryCategory"] == {"CategoryID": "111"}

    def test_item_specifics_translated_for_germany(self, basic_item, marketplace_de, marketplace_us):
        item = basic_item.model_copy(update={"item_specifics": [
            ItemSpecific(name="Brand", value="Apple"),
            ItemSpecific(name="Color", value=["Black", "Blue"]),
            ItemSpecific(name="Speicher", value="64 GB"),
        ]})

        german = transform_item(item, marketplace_de)["ItemSpecifics"]["NameValueList"]
        assert german == [
            {"Name": "Marke", "Value": ["Apple"]},
            {"Name": "Farbe", "Value": ["Black", "Blue"]},
            {"Name": "Speicher", "Value": ["64 GB"]},
        ]

        english = transform_item(item, marketplace_us)["ItemSpecifics"]["NameValueList"]
        assert english[0] == {"Name": "Brand", "Value": ["Apple"]}

    def test_pictures_and_product_details(self, basic_item, marketplace_us):
        item = basic_item.model_copy(update={
            "picture_urls": ["https://i.ebayimg.com/1.jpg"],
            "product_listing_details": ProductListingDetails(ean="0194252030", brand="Apple", mpn="A2172"),
        })
        tree = transform_item(item, marketplace_us)

        assert tree["PictureDetails"] == {"PictureURL": ["https://i.ebayimg.com/1.jpg"]}
        assert tree["ProductListingDetails"] == {
            "EAN": "0194252030",
            "BrandMPN": {"Brand": "Apple", "MPN": "A2172"},
        }

    def test_extra_fields_are_merged_last(self, basic_item, marketplace_us):
        item = basic_item.model_copy(update={"extra_fields": {"Country": "MX", "HitCounter": "NoHitCounter"}})
        tree = transform_item(item, marketplace_us)

        assert tree["Country"] == "MX"
        assert tree["HitCounter"] == "NoHitCounter"

    def test_no_none_values(self, basic_item, marketplace_us):
        tree = transform_item(basic_item, marketplace_us)
        assert all(value is not None for value in tree.values())


class TestPartialTransform:
    def test_only_supplied_fields(self, marketplace_de):
        tree = transform_item(
            TradingItem(start_price=Decimal("24.99"), quantity=3),
            marketplace_de,
            partial=True
        )

        assert tree == {
            "StartPrice": {"@currencyID": "EUR", "#text": "24.99"},
            "Quantity": 3,
        }

    def test_quantity_zero_is_kept(self, marketplace_de):
        tree = transform_item(TradingItem(quantity=0), marketplace_de, partial=True)
        assert tree == {"Quantity": 0}

    def test_empty_update(self, marketplace_de):
        assert transform_item(TradingItem(), marketplace_de, partial=True) == {}


def test_amount():
    assert amount(Decimal("5.00"), "GBP") == {"@currencyID": "GBP", "#text": "5.00"}
