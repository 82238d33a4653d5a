from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Union
from pydantic import BaseModel, Field


class BundleProductIn(BaseModel):
    product_id: Optional[Union[int, str]] = None
    variant_id: Optional[Union[int, str]] = None
    title: Optional[str] = None
    image: Optional[str] = None
    price: Decimal = Field(description="Unit price in the shop's currency")
    quantity: int = 1
    # Stock snapshot taken when the bundle was saved
    available: Optional[bool] = None
    inventory_quantity: Optional[int] = None

    @property
    def line_id(self) -> Optional[Union[int, str]]:
        """Identifier used for cart lines; variant wins over product."""
        return self.variant_id if self.variant_id is not None else self.product_id


class BundleBase(BaseModel):
    title: str
    products: List[BundleProductIn]
    discount_type: str = "percentage"
    discount_value: Decimal = Decimal("0")


class BundleCreate(BundleBase):
    status: str = "draft"


class BundleUpdate(BaseModel):
    title: Optional[str] = None
    products: Optional[List[BundleProductIn]] = None
    discount_type: Optional[str] = None
    discount_value: Optional[Decimal] = None
    version: Optional[int] = Field(default=None, description="Version the caller last read; rejects stale writes")


class BundleStatusUpdate(BaseModel):
    status: str


class PriceBreakdownOut(BaseModel):
    original_price: Decimal
    discount_amount: Decimal
    final_price: Decimal


class BundleOut(BundleBase):
    id: int
    shop: str
    handle: str
    status: str
    price_rule_id: Optional[str] = None
    version: int
    pricing: Optional[PriceBreakdownOut] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BundleMutationOut(BaseModel):
    bundle: BundleOut
    warnings: List[str] = []


class BundleEnvelope(BaseModel):
    bundle: BundleOut


class PriceRequest(BaseModel):
    products: List[BundleProductIn]
    discount_type: str = "percentage"
    discount_value: Decimal = Decimal("0")


class CartItem(BaseModel):
    variant_id: Union[int, str]
    quantity: int = 1


class CartValidateRequest(BaseModel):
    items: List[CartItem]


class UnavailableItemOut(BaseModel):
    variant_id: Union[int, str]
    requested_quantity: int
    inventory_quantity: Optional[int] = None
    reason: str


class AvailabilityOut(BaseModel):
    available: bool
    checked: bool = True
    unavailable_items: List[UnavailableItemOut] = []
