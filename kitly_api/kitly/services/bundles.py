"""
Bundle lifecycle.

Ties pricing validation, the subscription gate, persistence and platform sync
together. Within one call the gate always finishes before anything is written,
and platform sync only runs after the bundle is persisted. A failed sync never
undoes the local write; it comes back as a warning instead.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from ..clients.shopify import ShopifyAdminClient
from ..errors import BundleNotFoundError, InvalidBundleError, PlatformSyncError
from ..models.bundle import Bundle
from ..repositories import bundles as repo
from ..repositories.shops import delete_shop
from ..schemas.bundle import BundleCreate, BundleProductIn, BundleUpdate
from ..utils.serialization import decode_products, encode_products
from .inventory import UnavailableItem, validate_availability
from .platform_sync import delete_discount_rule, sync_discount_rule
from .pricing import FIXED_AMOUNT, PriceBreakdown, compute_price, to_decimal
from .subscription import SubscriptionGate

logger = logging.getLogger(__name__)

STATUSES = ("draft", "active", "archived")
ALLOWED_TRANSITIONS = {
    "draft": {"active", "archived"},
    "active": {"draft", "archived"},
    "archived": {"draft"},
}


@dataclass
class MutationResult:
    bundle: Bundle
    warnings: List[str] = field(default_factory=list)


@dataclass
class StatusChangeResult:
    bundle: Bundle
    unavailable_items: List[UnavailableItem] = field(default_factory=list)

    @property
    def blocked(self) -> bool:
        return bool(self.unavailable_items)


def validate_bundle_input(
    title: str,
    products: Sequence[BundleProductIn],
    discount_type: str,
    discount_value: Any,
) -> tuple[PriceBreakdown, List[str]]:
    """Reject malformed bundles and price the valid ones.

    Returns the price breakdown and any non-fatal remarks about the input.
    """
    if not title or not title.strip():
        raise InvalidBundleError("Bundle title is required")

    breakdown = compute_price(products, discount_type, discount_value)

    warnings = []
    if discount_type == FIXED_AMOUNT and to_decimal(discount_value) > breakdown.original_price:
        warnings.append(
            f"Discount of {to_decimal(discount_value)} exceeds the bundle total of "
            f"{breakdown.original_price}; the bundle price is clamped to {breakdown.final_price}"
        )
    return breakdown, warnings


def inventory_items(products: Sequence[BundleProductIn]) -> List[tuple]:
    return [(p.line_id, p.quantity) for p in products if p.line_id is not None]


class BundleService:
    """Merchant-facing bundle operations for one shop."""

    def __init__(
        self,
        db: Session,
        client: ShopifyAdminClient,
        gate: Optional[SubscriptionGate] = None,
        check_inventory_on_publish: bool = True,
    ):
        self.db = db
        self.client = client
        self.gate = gate
        self.check_inventory_on_publish = check_inventory_on_publish
        self.shop = client.context.shop

    async def _require_subscription(self) -> None:
        if self.gate is not None:
            await self.gate.ensure_active(self.client)

    async def _claimed_rule_ids(self, bundle: Bundle) -> set[str]:
        return await run_in_threadpool(repo.price_rule_ids_in_shop, self.db, self.shop, bundle.id)

    async def _sync(self, bundle: Bundle) -> List[str]:
        try:
            claimed = await self._claimed_rule_ids(bundle)
            rule = await sync_discount_rule(self.client, bundle, claimed_rule_ids=claimed)
        except PlatformSyncError as e:
            logger.warning(f"Bundle {bundle.id} saved in {self.shop} but discount sync failed: {e}", extra={"shop": self.shop, "bundle_id": bundle.id})
            return [f"Bundle saved, but its discount could not be synced to the store: {e.message}"]

        if rule.id != bundle.price_rule_id:
            await run_in_threadpool(repo.attach_price_rule, self.db, bundle, rule.id)
        return []

    async def list_bundles(self, status: Optional[str] = None, limit: int = 50, offset: int = 0) -> List[Bundle]:
        return await run_in_threadpool(repo.list_bundles_by_shop, self.db, self.shop, status, limit, offset)

    async def count_bundles(self, status: Optional[str] = None) -> int:
        return await run_in_threadpool(repo.count_bundles_by_shop, self.db, self.shop, status)

    async def get(self, bundle_id: int) -> Bundle:
        bundle = await run_in_threadpool(repo.get_bundle, self.db, self.shop, bundle_id)
        if bundle is None:
            raise BundleNotFoundError(bundle_id)
        return bundle

    async def create(self, data: BundleCreate) -> MutationResult:
        _, warnings = validate_bundle_input(data.title, data.products, data.discount_type, data.discount_value)
        if data.status not in STATUSES:
            raise InvalidBundleError(f"Unknown status {data.status!r}")

        await self._require_subscription()

        bundle = await run_in_threadpool(repo.create_bundle, self.db, self.shop, data)
        logger.info(f"Created bundle {bundle.id} '{bundle.title}' in {self.shop}")

        warnings.extend(await self._sync(bundle))
        return MutationResult(bundle=bundle, warnings=warnings)

    async def update(self, bundle_id: int, data: BundleUpdate) -> MutationResult:
        bundle = await self.get(bundle_id)
        products = data.products if data.products is not None else decode_products(bundle.products)
        title = data.title if data.title is not None else bundle.title
        discount_type = data.discount_type if data.discount_type is not None else bundle.discount_type
        discount_value = data.discount_value if data.discount_value is not None else bundle.discount_value

        _, warnings = validate_bundle_input(title, products, discount_type, discount_value)

        fields: Dict[str, Any] = {}
        if data.title is not None:
            fields["title"] = data.title
        if data.products is not None:
            fields["products"] = encode_products(data.products)
        if data.discount_type is not None:
            fields["discount_type"] = data.discount_type
        if data.discount_value is not None:
            fields["discount_value"] = to_decimal(data.discount_value)

        # Title is part of the rule's lookup key, so renaming needs a re-sync too
        needs_sync = (
            title != bundle.title
            or discount_type != bundle.discount_type
            or to_decimal(discount_value) != Decimal(bundle.discount_value)
        )
        expected_version = data.version if data.version is not None else bundle.version

        await self._require_subscription()

        if not fields:
            return MutationResult(bundle=bundle, warnings=warnings)

        bundle = await run_in_threadpool(repo.update_bundle, self.db, bundle, fields, expected_version)
        logger.info(f"Updated bundle {bundle.id} in {self.shop} to version {bundle.version}")

        if needs_sync:
            warnings.extend(await self._sync(bundle))
        return MutationResult(bundle=bundle, warnings=warnings)

    async def delete(self, bundle_id: int) -> MutationResult:
        bundle = await self.get(bundle_id)

        await self._require_subscription()

        await run_in_threadpool(repo.delete_bundle, self.db, bundle)
        logger.info(f"Deleted bundle {bundle.id} from {self.shop}")

        warnings = []
        try:
            claimed = await self._claimed_rule_ids(bundle)
            await delete_discount_rule(self.client, bundle, claimed_rule_ids=claimed)
        except PlatformSyncError as e:
            logger.warning(f"Bundle {bundle.id} deleted from {self.shop} but its price rule was left behind: {e}", extra={"shop": self.shop, "bundle_id": bundle.id})
            warnings.append(f"Bundle deleted, but its store discount could not be removed: {e.message}")
        return MutationResult(bundle=bundle, warnings=warnings)

    async def change_status(self, bundle_id: int, status: str) -> StatusChangeResult:
        """Move a bundle between draft, active and archived. Does not touch the price rule."""
        bundle = await self.get(bundle_id)
        if status not in STATUSES:
            raise InvalidBundleError(f"Unknown status {status!r}")
        if status == bundle.status:
            return StatusChangeResult(bundle=bundle)
        if status not in ALLOWED_TRANSITIONS[bundle.status]:
            raise InvalidBundleError(f"Cannot move a bundle from {bundle.status} to {status}")

        await self._require_subscription()

        if status == "active" and self.check_inventory_on_publish:
            unavailable = await validate_availability(self.client, inventory_items(decode_products(bundle.products)))
            if unavailable:
                logger.info(f"Not publishing bundle {bundle.id} in {self.shop}: {len(unavailable)} items unavailable")
                return StatusChangeResult(bundle=bundle, unavailable_items=unavailable)

        bundle = await run_in_threadpool(repo.update_bundle, self.db, bundle, {"status": status}, bundle.version)
        logger.info(f"Bundle {bundle.id} in {self.shop} is now {status}")
        return StatusChangeResult(bundle=bundle)


def uninstall_shop(db: Session, shop: str) -> int:
    """Drop every bundle and the shop record. Safe to replay."""
    removed = repo.delete_bundles_for_shop(db, shop)
    shop_removed = delete_shop(db, shop)
    logger.info(f"Uninstall cleanup for {shop}: {removed} bundles removed, shop record {'removed' if shop_removed else 'already gone'}")
    return removed
