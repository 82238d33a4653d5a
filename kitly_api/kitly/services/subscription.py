"""
Subscription gate.

Every gated request asks the platform for the shop's recurring charges and
lets the request through only if one of them is active. Nothing is cached:
cancellations and approvals happen on the platform side at any time.

When the platform cannot be asked (timeout, network error, non-2xx) the shop
is treated as unsubscribed.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from ..clients.shopify import Charge, ShopifyAdminClient
from ..errors import PlatformSyncError, SubscriptionRequiredError
from .platform_sync import BillingPlan, billing_plan_for, create_billing_charge

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubscriptionState:
    active: bool
    plan_name: Optional[str] = None
    charge_id: Optional[str] = None
    status: Optional[str] = None
    trial_ends_on: Optional[datetime] = None
    billing_on: Optional[datetime] = None
    # A charge the merchant has not approved yet, if any
    pending_confirmation_url: Optional[str] = None

    @classmethod
    def inactive(cls, pending: Optional[Charge] = None) -> "SubscriptionState":
        return cls(active=False, pending_confirmation_url=pending.confirmation_url if pending else None)

    @classmethod
    def from_charge(cls, charge: Charge) -> "SubscriptionState":
        return cls(
            active=charge.status == "active",
            plan_name=charge.name,
            charge_id=charge.id,
            status=charge.status,
            trial_ends_on=charge.trial_ends_on,
            billing_on=charge.billing_on,
        )


def _first(charges: List[Charge], status: str) -> Optional[Charge]:
    return next((c for c in charges if c.status == status), None)


class SubscriptionGate:
    """Checks for an active recurring charge before mutating operations."""

    def __init__(self, auto_request: bool = True, plan_factory: Callable[[str], BillingPlan] = billing_plan_for):
        self.auto_request = auto_request
        self.plan_factory = plan_factory

    async def check(self, client: ShopifyAdminClient) -> SubscriptionState:
        """Derive the current state from the platform. Never raises."""
        shop = client.context.shop
        try:
            charges = await client.list_charges()
        except PlatformSyncError as e:
            logger.warning(f"Billing lookup failed for {shop}, denying access: {e}", extra={"shop": shop})
            return SubscriptionState.inactive()

        active = _first(charges, "active")
        if active is not None:
            return SubscriptionState.from_charge(active)
        return SubscriptionState.inactive(pending=_first(charges, "pending"))

    async def ensure_active(self, client: ShopifyAdminClient) -> SubscriptionState:
        """
        Return the active state or refuse the request.

        Raises:
            SubscriptionRequiredError: no active charge; carries the URL where
                the merchant can approve one when auto-requesting is on
        """
        state = await self.check(client)
        if state.active:
            return state

        shop = client.context.shop
        confirmation_url = state.pending_confirmation_url
        if confirmation_url is None and self.auto_request:
            try:
                charge = await create_billing_charge(client, self.plan_factory(shop))
                confirmation_url = charge.confirmation_url
            except PlatformSyncError as e:
                logger.error(f"Could not request billing for {shop}: {e}", extra={"shop": shop})

        logger.info(f"Denied gated request for {shop}: no active subscription", extra={"shop": shop})
        raise SubscriptionRequiredError(confirmation_url=confirmation_url)
