"""
Public endpoints used by the theme app extension.
"""
from fastapi import APIRouter, Depends, Query
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
from typing import List

from ..clients.shopify import ShopifyAdminClient
from ..config import settings
from ..db import get_db
from ..dependencies import get_storefront_client
from ..errors import BundleNotFoundError
from ..repositories.bundles import get_bundle_by_handle, list_bundles_by_shop
from ..schemas.bundle import (
    AvailabilityOut,
    BundleEnvelope,
    BundleOut,
    CartValidateRequest,
    PriceBreakdownOut,
    PriceRequest,
    UnavailableItemOut,
)
from ..services.inventory import validate_availability
from ..services.pricing import compute_price
from .bundles import bundle_to_out

router = APIRouter()


@router.post("/bundle-price", response_model=PriceBreakdownOut)
def bundle_price(req: PriceRequest):
    breakdown = compute_price(req.products, req.discount_type, req.discount_value)
    return PriceBreakdownOut(**breakdown.as_dict())


@router.get("/bundle-data", response_model=List[BundleOut])
async def bundle_data(shop: str = Query(...), db: Session = Depends(get_db)):
    items = await run_in_threadpool(list_bundles_by_shop, db, shop, "active", 250, 0)
    return [bundle_to_out(b) for b in items]


@router.get("/bundles/handle/{handle}", response_model=BundleEnvelope)
async def bundle_by_handle(handle: str, shop: str = Query(...), db: Session = Depends(get_db)):
    b = await run_in_threadpool(get_bundle_by_handle, db, shop, handle)
    if b is None or b.status != "active":
        raise BundleNotFoundError(handle)
    return BundleEnvelope(bundle=bundle_to_out(b))


@router.post("/cart/validate", response_model=AvailabilityOut)
async def validate_cart(req: CartValidateRequest, client: ShopifyAdminClient = Depends(get_storefront_client)):
    if not settings.checks_inventory_on("add_to_cart"):
        return AvailabilityOut(available=True, checked=False)

    unavailable = await validate_availability(client, [(i.variant_id, i.quantity) for i in req.items])
    return AvailabilityOut(
        available=not unavailable,
        unavailable_items=[UnavailableItemOut(**vars(item)) for item in unavailable],
    )
