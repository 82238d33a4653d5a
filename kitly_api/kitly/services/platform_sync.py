"""
Projection of local bundle state onto the commerce platform.

The local bundle is the source of truth. Its discount is mirrored as a price
rule titled ``Bundle-<title>``; the rule is never read back into the bundle.
The billing plan is mirrored as a recurring application charge.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Collection, Dict, Optional

from ..clients.shopify import Charge, ExternalDiscountRule, ShopifyAdminClient
from ..config import settings
from ..utils.text import price_rule_title
from .pricing import BundlePricingCalculator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BillingPlan:
    name: str
    price: Decimal
    currency: str
    trial_days: int
    test: bool
    return_url: str


def billing_plan_for(shop: str) -> BillingPlan:
    """The configured plan, with a return URL pointing back at this shop's app."""
    return BillingPlan(
        name=settings.billing_plan_name,
        price=settings.billing_plan_price,
        currency=settings.billing_currency,
        trial_days=settings.billing_trial_days,
        test=settings.billing_test_mode,
        return_url=f"{settings.app_url.rstrip('/')}/?shop={shop}",
    )


def build_price_rule_spec(title: str, discount_type: str, discount_value: Any) -> Dict[str, Any]:
    """Map a bundle discount to a price rule applied across all line items."""
    value = BundlePricingCalculator().validate_discount(discount_type, discount_value)
    return {
        "title": price_rule_title(title),
        "target_type": "line_item",
        "target_selection": "all",
        "allocation_method": "across",
        "value_type": discount_type,
        "value": str(-value) if value else "0",
        "customer_selection": "all",
    }
def _log_context(client: ShopifyAdminClient, bundle, rule_id: Optional[str] = None) -> Dict[str, Any]:
    return {"shop": client.context.shop, "bundle_id": bundle.id, "price_rule_id": rule_id}


async def sync_discount_rule(
    client: ShopifyAdminClient,
    bundle,
    claimed_rule_ids: Collection[str] = (),
) -> ExternalDiscountRule:
    """
    Create or update the price rule mirroring ``bundle``'s discount.

    Lookup order: the rule id stored on the bundle, then the rule title. A new
    rule is only created when neither finds one, so repeated syncs of an
    unchanged bundle leave exactly one rule behind.

    Titles are not unique, so the title lookup skips ``claimed_rule_ids``:
    the rules already stored on other bundles of the shop.

    Raises:
        PlatformSyncError: the platform rejected a call or was unreachable
    """
    spec = build_price_rule_spec(bundle.title, bundle.discount_type, bundle.discount_value)
    shop = client.context.shop

    existing = None
    if bundle.price_rule_id and bundle.price_rule_id not in claimed_rule_ids:
        existing = await client.get_price_rule(bundle.price_rule_id)
        if existing is None:
            logger.warning(
                f"Price rule {bundle.price_rule_id} for bundle {bundle.id} in {shop} is gone; looking up by title",
                extra=_log_context(client, bundle, bundle.price_rule_id),
            )
    if existing is None:
        existing = await client.find_price_rule_by_title(spec["title"], exclude_ids=claimed_rule_ids)

    if existing is None:
        created = await client.create_price_rule({**spec, "starts_at": datetime.now(timezone.utc).isoformat()})
        logger.info(
            f"Created price rule {created.id} '{created.title}' for bundle {bundle.id} in {shop}",
            extra=_log_context(client, bundle, created.id),
        )
        return created

    if existing.matches(spec):
        logger.info(
            f"Price rule {existing.id} for bundle {bundle.id} in {shop} already up to date",
            extra=_log_context(client, bundle, existing.id),
        )
        return existing

    updated = await client.update_price_rule(existing.id, spec)
    logger.info(
        f"Updated price rule {updated.id} '{updated.title}' for bundle {bundle.id} in {shop}",
        extra=_log_context(client, bundle, updated.id),
    )
    return updated


async def delete_discount_rule(client: ShopifyAdminClient, bundle, claimed_rule_ids: Collection[str] = ()) -> bool:
    """
    Remove the price rule mirroring ``bundle``. Returns False if there was none.

    A rule whose id is in ``claimed_rule_ids`` belongs to another bundle and
    is left alone.
    """
    rule_id = bundle.price_rule_id
    if rule_id in claimed_rule_ids:
        logger.warning(
            f"Price rule {rule_id} of deleted bundle {bundle.id} is still used by another bundle; keeping it",
            extra=_log_context(client, bundle, rule_id),
        )
        return False
    if not rule_id:
        found = await client.find_price_rule_by_title(price_rule_title(bundle.title), exclude_ids=claimed_rule_ids)
        if found is None:
            return False
        rule_id = found.id

    deleted = await client.delete_price_rule(rule_id)
    if deleted:
        logger.info(
            f"Deleted price rule {rule_id} for bundle {bundle.id} in {client.context.shop}",
            extra=_log_context(client, bundle, rule_id),
        )
    return deleted


async def create_billing_charge(client: ShopifyAdminClient, plan: BillingPlan) -> Charge:
    """
    Create the recurring charge for ``plan``.

    The charge stays pending until the merchant approves it at
    ``confirmation_url``; it does not grant access by itself.
    """
    charge = await client.create_charge(
        name=plan.name,
        price=plan.price,
        return_url=plan.return_url,
        trial_days=plan.trial_days,
        test=plan.test,
        currency=plan.currency,
    )
    logger.info(
        f"Created {charge.status} charge {charge.id} '{plan.name}' for {client.context.shop}",
        extra={"shop": client.context.shop},
    )
    return charge
