"""
Bundle Pricing Service

Computes the price breakdown of a bundle:
- Original price as the sum of unit price times quantity
- Percentage or fixed-amount discount, clamped so the final price never goes negative
- Every amount rounded half-up to the cent

The calculator is pure: no I/O and no state between calls.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Sequence

from ..errors import InvalidBundleError, InvalidDiscountError
from ..schemas.bundle import BundleProductIn

PERCENTAGE = "percentage"
FIXED_AMOUNT = "fixed_amount"
DISCOUNT_TYPES = (PERCENTAGE, FIXED_AMOUNT)

CENT = Decimal("0.01")
HUNDRED = Decimal("100")
# Largest value the discount_value column (NUMERIC(10, 2)) holds
MAX_DISCOUNT_VALUE = Decimal("99999999.99")


def to_decimal(value: Any) -> Decimal:
    """Convert a price-like value to Decimal without float artifacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceBreakdown:
    original_price: Decimal
    discount_amount: Decimal
    final_price: Decimal

    def as_dict(self) -> Dict[str, Decimal]:
        return {
            "original_price": self.original_price,
            "discount_amount": self.discount_amount,
            "final_price": self.final_price,
        }


class BundlePricingCalculator:
    """Calculate pricing for bundles from their products and discount rule."""

    def validate_discount(self, discount_type: str, discount_value: Any) -> Decimal:
        """
        Check the discount rule and return its value as a Decimal.

        Raises:
            InvalidDiscountError: unknown type, non-numeric or negative value,
                a percentage above 100, more than two decimal places, or a
                value too large to store
        """
        if discount_type not in DISCOUNT_TYPES:
            raise InvalidDiscountError(
                f"Unknown discount type {discount_type!r}; expected one of {', '.join(DISCOUNT_TYPES)}"
            )
        try:
            value = to_decimal(discount_value)
        except (InvalidOperation, ValueError, TypeError):
            raise InvalidDiscountError(f"Discount value {discount_value!r} is not a number")

        if not value.is_finite():
            raise InvalidDiscountError(f"Discount value {discount_value!r} is not a number")
        if value < 0:
            raise InvalidDiscountError("Discount value cannot be negative")
        if discount_type == PERCENTAGE and value > HUNDRED:
            raise InvalidDiscountError("Percentage discount cannot exceed 100")
        if value > MAX_DISCOUNT_VALUE:
            raise InvalidDiscountError(f"Discount value cannot exceed {MAX_DISCOUNT_VALUE}")
        if value != value.quantize(CENT):
            raise InvalidDiscountError("Discount value cannot have more than two decimal places")
        return value

    def calculate_original_price(self, products: Sequence[BundleProductIn]) -> Decimal:
        """Sum of unit_price x quantity, rounded to the cent."""
        if not products:
            raise InvalidBundleError("A bundle needs at least one product")

        total = Decimal("0")
        for index, product in enumerate(products):
            try:
                unit_price = to_decimal(product.price)
            except (InvalidOperation, ValueError, TypeError):
                raise InvalidBundleError(f"Product #{index + 1} has an invalid price")
            if not unit_price.is_finite() or unit_price < 0:
                raise InvalidBundleError(f"Product #{index + 1} has a negative price")
            if product.quantity < 1:
                raise InvalidBundleError(f"Product #{index + 1} must have a quantity of at least 1")
            total += unit_price * product.quantity

        return round_cents(total)

    def calculate_discount_amount(self, original_price: Decimal, discount_type: str, discount_value: Decimal) -> Decimal:
        if discount_type == PERCENTAGE:
            amount = round_cents(original_price * discount_value / HUNDRED)
        else:
            amount = round_cents(discount_value)
        # Never discount more than the bundle is worth
        return min(amount, original_price)

    def calculate(self, products: Sequence[BundleProductIn], discount_type: str, discount_value: Any) -> PriceBreakdown:
        value = self.validate_discount(discount_type, discount_value)
        original_price = self.calculate_original_price(products)
        discount_amount = self.calculate_discount_amount(original_price, discount_type, value)

        return PriceBreakdown(
            original_price=original_price,
            discount_amount=discount_amount,
            final_price=original_price - discount_amount,
        )


def compute_price(products: Sequence[BundleProductIn], discount_type: str, discount_value: Any) -> PriceBreakdown:
    """
    Convenience function to price a bundle.

    Args:
        products: Bundle products (unit price and quantity)
        discount_type: "percentage" or "fixed_amount"
        discount_value: Percent (0-100) or amount in the shop's currency

    Returns:
        PriceBreakdown with original price, discount amount and final price
    """
    return BundlePricingCalculator().calculate(products, discount_type, discount_value)
