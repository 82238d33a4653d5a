"""
Tests for the bundle pricing engine.

These tests verify that:
1. Percentage and fixed-amount discounts produce the documented breakdowns
2. Fixed discounts are clamped so the final price is never negative
3. Rounding is half-up to the cent
4. Malformed input is rejected with the right error
"""
from decimal import Decimal

import pytest

from kitly.errors import InvalidBundleError, InvalidDiscountError
from kitly.schemas.bundle import BundleProductIn
from kitly.services.pricing import BundlePricingCalculator, PriceBreakdown, compute_price


def product(price: str, quantity: int = 1, **extra) -> BundleProductIn:
    return BundleProductIn(price=price, quantity=quantity, **extra)


class TestComputePrice:
    """Scenarios from the pricing rules."""

    def test_percentage_discount(self):
        result = compute_price([product("10.00", 2)], "percentage", 20)

        assert result == PriceBreakdown(
            original_price=Decimal("20.00"),
            discount_amount=Decimal("4.00"),
            final_price=Decimal("16.00"),
        )

    def test_fixed_discount_is_clamped_to_total(self):
        result = compute_price([product("5.00", 1)], "fixed_amount", "50.00")

        assert result.original_price == Decimal("5.00")
        assert result.discount_amount == Decimal("5.00")
        assert result.final_price == Decimal("0.00")

    def test_fixed_discount_below_total(self):
        result = compute_price([product("12.50", 2), product("3.99", 1)], "fixed_amount", "7.49")

        assert result.original_price == Decimal("28.99")
        assert result.discount_amount == Decimal("7.49")
        assert result.final_price == Decimal("21.50")

    @pytest.mark.parametrize("discount_type", ["percentage", "fixed_amount"])
    def test_zero_discount_keeps_original_price(self, discount_type):
        result = compute_price([product("19.99", 3)], discount_type, 0)

        assert result.final_price == result.original_price == Decimal("59.97")
        assert result.discount_amount == Decimal("0.00")

    @pytest.mark.parametrize("discount_type,value", [("percentage", 50), ("fixed_amount", 10)])
    def test_all_free_products_cost_nothing(self, discount_type, value):
        result = compute_price([product("0", 1), product("0.00", 4)], discount_type, value)

        assert result.original_price == Decimal("0.00")
        assert result.final_price == Decimal("0.00")

    def test_full_percentage_discount(self):
        result = compute_price([product("8.00", 1)], "percentage", 100)
        assert result.final_price == Decimal("0.00")

    def test_rounds_half_up_to_the_cent(self):
        # 10% of 0.25 is 0.025, which rounds up to 0.03 rather than to even
        result = compute_price([product("0.25")], "percentage", 10)

        assert result.discount_amount == Decimal("0.03")
        assert result.final_price == Decimal("0.22")

    def test_order_of_products_does_not_matter(self):
        a = [product("1.10", 3), product("7.45", 2)]
        b = list(reversed(a))

        assert compute_price(a, "percentage", 15) == compute_price(b, "percentage", 15)

    def test_deterministic(self):
        products = [product("3.33", 3), product("9.99", 1)]
        results = [compute_price(products, "percentage", "12.5") for _ in range(10)]

        assert all(r == results[0] for r in results)

    def test_amounts_have_two_decimal_places(self):
        result = compute_price([product("10", 1)], "percentage", 33)

        for value in result.as_dict().values():
            assert value.as_tuple().exponent == -2


class TestPricingProperties:
    """Invariants over a spread of inputs."""

    PRODUCT_SETS = [
        [product("10.00", 2)],
        [product("0.99", 7), product("15.49", 1)],
        [product("123.45", 3), product("0.01", 9), product("7.77", 2)],
        [product("0.05", 1)],
    ]

    @pytest.mark.parametrize("products", PRODUCT_SETS)
    @pytest.mark.parametrize("percent", ["0", "1", "12.5", "33.33", "50", "99.99", "100"])
    def test_percentage_final_price_within_a_cent(self, products, percent):
        result = compute_price(products, "percentage", percent)
        expected = result.original_price * (1 - Decimal(percent) / 100)

        assert abs(result.final_price - expected) <= Decimal("0.01")
        assert result.final_price == result.original_price - result.discount_amount

    @pytest.mark.parametrize("products", PRODUCT_SETS)
    @pytest.mark.parametrize("amount", ["0", "0.01", "5", "20.00", "1000000"])
    def test_fixed_final_price_never_negative(self, products, amount):
        result = compute_price(products, "fixed_amount", amount)

        assert result.final_price >= 0
        assert result.discount_amount <= result.original_price


class TestPricingValidation:
    """Malformed input raises the matching error."""

    def test_empty_products(self):
        with pytest.raises(InvalidBundleError, match="at least one product"):
            compute_price([], "percentage", 10)

    def test_unknown_discount_type(self):
        with pytest.raises(InvalidDiscountError, match="Unknown discount type"):
            compute_price([product("10.00")], "bogo", 10)

    @pytest.mark.parametrize("discount_type", ["percentage", "fixed_amount"])
    def test_negative_discount_value(self, discount_type):
        with pytest.raises(InvalidDiscountError, match="cannot be negative"):
            compute_price([product("10.00")], discount_type, -1)

    def test_percentage_above_hundred(self):
        with pytest.raises(InvalidDiscountError, match="cannot exceed 100"):
            compute_price([product("10.00")], "percentage", "100.01")

    def test_non_numeric_discount_value(self):
        with pytest.raises(InvalidDiscountError, match="not a number"):
            BundlePricingCalculator().validate_discount("percentage", "ten")

    def test_zero_quantity(self):
        with pytest.raises(InvalidBundleError, match="quantity of at least 1"):
            compute_price([product("10.00", 0)], "percentage", 10)

    def test_negative_price(self):
        with pytest.raises(InvalidBundleError, match="negative price"):
            compute_price([product("-1.00")], "percentage", 10)

    def test_more_than_two_decimal_places(self):
        """Discount values are stored to the cent, so finer values are refused."""
        with pytest.raises(InvalidDiscountError, match="two decimal places"):
            compute_price([product("10.00")], "percentage", "12.345")

    def test_fixed_amount_too_large_to_store(self):
        with pytest.raises(InvalidDiscountError, match="cannot exceed 99999999.99"):
            compute_price([product("10.00")], "fixed_amount", "100000000")

    def test_trailing_zeros_are_accepted(self):
        calc = BundlePricingCalculator()

        assert calc.validate_discount("percentage", "12.340") == Decimal("12.34")
        assert calc.validate_discount("fixed_amount", "99999999.99") == Decimal("99999999.99")
