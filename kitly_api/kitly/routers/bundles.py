from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import JSONResponse
from typing import List, Optional

from ..errors import InvalidBundleError, InvalidDiscountError
from ..models.bundle import Bundle
from ..schemas.bundle import (
    BundleCreate,
    BundleMutationOut,
    BundleOut,
    BundleStatusUpdate,
    BundleUpdate,
    PriceBreakdownOut,
    UnavailableItemOut,
)
from ..dependencies import get_bundle_service
from ..services.bundles import BundleService, MutationResult
from ..services.pricing import compute_price
from ..utils.serialization import decode_products

router = APIRouter()


def bundle_to_out(b: Bundle) -> BundleOut:
    products = decode_products(b.products)
    try:
        pricing = PriceBreakdownOut(**compute_price(products, b.discount_type, b.discount_value).as_dict())
    except (InvalidBundleError, InvalidDiscountError):
        pricing = None
    return BundleOut(
        id=b.id,
        shop=b.shop,
        title=b.title,
        handle=b.handle,
        products=products,
        discount_type=b.discount_type,
        discount_value=b.discount_value,
        status=b.status,
        price_rule_id=b.price_rule_id,
        version=b.version,
        pricing=pricing,
        created_at=b.created_at,
        updated_at=b.updated_at,
    )


def _mutation_out(result: MutationResult) -> BundleMutationOut:
    return BundleMutationOut(bundle=bundle_to_out(result.bundle), warnings=result.warnings)


@router.get("", response_model=List[BundleOut])
async def list_bundles(
    response: Response,
    status: Optional[str] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=250),
    offset: int = Query(default=0, ge=0),
    service: BundleService = Depends(get_bundle_service),
):
    items = await service.list_bundles(status=status, limit=limit, offset=offset)
    response.headers["X-Total-Count"] = str(await service.count_bundles(status=status))
    return [bundle_to_out(b) for b in items]


@router.get("/{bundle_id}", response_model=BundleOut)
async def get_bundle_by_id(bundle_id: int, service: BundleService = Depends(get_bundle_service)):
    return bundle_to_out(await service.get(bundle_id))


@router.post("", response_model=BundleMutationOut, status_code=201)
async def create_bundle(data: BundleCreate, service: BundleService = Depends(get_bundle_service)):
    return _mutation_out(await service.create(data))


@router.put("/{bundle_id}", response_model=BundleMutationOut)
async def update_bundle(bundle_id: int, data: BundleUpdate, service: BundleService = Depends(get_bundle_service)):
    return _mutation_out(await service.update(bundle_id, data))


@router.patch("/{bundle_id}/status", response_model=BundleMutationOut)
async def change_bundle_status(bundle_id: int, data: BundleStatusUpdate, service: BundleService = Depends(get_bundle_service)):
    result = await service.change_status(bundle_id, data.status)
    if result.blocked:
        # Unavailable items are data, not an error: send them back so the merchant can fix the bundle
        return JSONResponse(
            status_code=409,
            content={
                "detail": "Some products in this bundle are unavailable",
                "bundle": bundle_to_out(result.bundle).model_dump(mode="json"),
                "unavailable_items": [
                    UnavailableItemOut(**vars(item)).model_dump(mode="json") for item in result.unavailable_items
                ],
            },
        )
    return BundleMutationOut(bundle=bundle_to_out(result.bundle))


@router.delete("/{bundle_id}")
async def delete_bundle(bundle_id: int, service: BundleService = Depends(get_bundle_service)):
    result = await service.delete(bundle_id)
    return {"success": True, "id": result.bundle.id, "warnings": result.warnings}
