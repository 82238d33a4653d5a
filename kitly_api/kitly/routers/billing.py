from fastapi import APIRouter, Depends

from ..clients.shopify import ShopifyAdminClient
from ..dependencies import get_admin_client, get_subscription_gate
from ..schemas.billing import ChargeOut, SubscriptionStateOut
from ..services.platform_sync import billing_plan_for, create_billing_charge
from ..services.subscription import SubscriptionGate

router = APIRouter()


@router.get("/status", response_model=SubscriptionStateOut)
async def subscription_status(
    client: ShopifyAdminClient = Depends(get_admin_client),
    gate: SubscriptionGate = Depends(get_subscription_gate),
):
    state = await gate.check(client)
    return SubscriptionStateOut(
        active=state.active,
        plan_name=state.plan_name,
        charge_id=state.charge_id,
        status=state.status,
        trial_ends_on=state.trial_ends_on,
        billing_on=state.billing_on,
    )


@router.post("/subscribe", response_model=ChargeOut, status_code=201)
async def subscribe(client: ShopifyAdminClient = Depends(get_admin_client)):
    """
    Create the recurring charge for the configured plan.
    The merchant must open confirmation_url to approve it; until then the
    subscription stays pending. Platform failures surface as 502.
    """
    charge = await create_billing_charge(client, billing_plan_for(client.context.shop))
    return ChargeOut(
        charge_id=charge.id,
        name=charge.name,
        price=charge.price,
        status=charge.status,
        confirmation_url=charge.confirmation_url,
    )
