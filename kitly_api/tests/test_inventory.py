"""
Tests for the catalog availability check.
"""
import pytest

from kitly.clients.shopify import Variant
from kitly.errors import PlatformSyncError
from kitly.services.inventory import UnavailableItem, validate_availability


class TestValidateAvailability:

    @pytest.mark.asyncio
    async def test_everything_in_stock(self, admin_client, fake_shopify):
        fake_shopify.add_variant(11, inventory_quantity=5)
        fake_shopify.add_variant(12, inventory_quantity=1)

        assert await validate_availability(admin_client, [(11, 5), (12, 1)]) == []

    @pytest.mark.asyncio
    async def test_reports_every_problem_not_just_the_first(self, admin_client, fake_shopify):
        fake_shopify.add_variant(11, inventory_quantity=1)
        fake_shopify.add_variant(12, inventory_quantity=50, available=False)
        fake_shopify.add_variant(13, inventory_quantity=50)

        result = await validate_availability(admin_client, [(11, 2), (12, 1), (13, 1), (14, 1)])

        assert result == [
            UnavailableItem(11, 2, 1, "insufficient_stock"),
            UnavailableItem(12, 1, 50, "unavailable"),
            UnavailableItem(14, 1, None, "not_found"),
        ]

    @pytest.mark.asyncio
    async def test_quantities_for_the_same_variant_add_up(self, admin_client, fake_shopify):
        fake_shopify.add_variant(11, inventory_quantity=3)

        result = await validate_availability(admin_client, [(11, 2), (11, 2)])

        assert result == [UnavailableItem(11, 4, 3, "insufficient_stock")]
        assert fake_shopify.count("GET", "variants") == 1

    @pytest.mark.asyncio
    async def test_no_items_makes_no_calls(self, admin_client, fake_shopify):
        assert await validate_availability(admin_client, []) == []
        assert fake_shopify.calls == []

    @pytest.mark.asyncio
    async def test_catalog_failure_propagates(self, admin_client, fake_shopify):
        fake_shopify.fail("GET", "variants", 500)

        with pytest.raises(PlatformSyncError):
            await validate_availability(admin_client, [(11, 1)])


class TestVariantPayload:

    def test_explicit_available_flag_wins(self):
        variant = Variant.from_payload({"id": 1, "available": False, "inventory_quantity": 9, "price": "2.00"})
        assert variant.available is False

    def test_tracked_variant_out_of_stock(self):
        variant = Variant.from_payload({
            "id": 1,
            "inventory_management": "shopify",
            "inventory_policy": "deny",
            "inventory_quantity": 0,
            "price": "2.00",
        })
        assert variant.available is False

    def test_oversellable_variant_is_available(self):
        variant = Variant.from_payload({
            "id": 1,
            "inventory_management": "shopify",
            "inventory_policy": "continue",
            "inventory_quantity": 0,
            "price": "2.00",
        })
        assert variant.available is True
