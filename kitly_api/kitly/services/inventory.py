"""
Availability check against the platform catalog.

Every requested variant is looked up and all shortfalls are reported together
so the storefront can show the full picture at once.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..clients.shopify import ShopifyAdminClient, Variant

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnavailableItem:
    variant_id: Any
    requested_quantity: int
    inventory_quantity: Optional[int]
    reason: str  # "not_found", "unavailable" or "insufficient_stock"


def _merge_quantities(items: Iterable[Tuple[Any, int]]) -> Dict[Any, int]:
    """The same variant listed twice needs stock for both lines."""
    merged: Dict[Any, int] = {}
    for variant_id, quantity in items:
        merged[variant_id] = merged.get(variant_id, 0) + quantity
    return merged


def _check(variant_id: Any, quantity: int, variant: Optional[Variant]) -> Optional[UnavailableItem]:
    if variant is None:
        return UnavailableItem(variant_id, quantity, None, "not_found")
    if not variant.available:
        return UnavailableItem(variant_id, quantity, variant.inventory_quantity, "unavailable")
    if variant.inventory_quantity < quantity:
        return UnavailableItem(variant_id, quantity, variant.inventory_quantity, "insufficient_stock")
    return None


async def validate_availability(client: ShopifyAdminClient, items: Iterable[Tuple[Any, int]]) -> List[UnavailableItem]:
    """
    Check ``(variant_id, quantity)`` pairs against the catalog.

    Returns:
        Every unavailable item; an empty list means everything can be bought.

    Raises:
        PlatformSyncError: the catalog could not be queried
    """
    wanted = _merge_quantities(items)
    if not wanted:
        return []

    variant_ids = list(wanted)
    variants = await asyncio.gather(*(client.get_variant(v) for v in variant_ids))

    unavailable = []
    for variant_id, variant in zip(variant_ids, variants):
        problem = _check(variant_id, wanted[variant_id], variant)
        if problem is not None:
            unavailable.append(problem)

    if unavailable:
        logger.info(f"{len(unavailable)} of {len(variant_ids)} variants unavailable in {client.context.shop}")
    return unavailable
