"""
Request-scoped collaborators.

Each request gets its own ShopContext and Admin API client; nothing about a
shop outlives the request that needed it.
"""
from typing import AsyncIterator, Callable, Optional

from fastapi import Depends, Header, Query
from sqlalchemy.orm import Session

from .clients.shopify import ShopContext, ShopifyAdminClient
from .config import settings
from .db import get_db
from .errors import ShopNotInstalledError
from .repositories.shops import get_shop
from .services.bundles import BundleService
from .services.subscription import SubscriptionGate

ClientFactory = Callable[[ShopContext], ShopifyAdminClient]


def _context_for(db: Session, shop_domain: Optional[str]) -> ShopContext:
    shop = get_shop(db, shop_domain) if shop_domain else None
    if shop is None:
        raise ShopNotInstalledError(shop_domain)
    return ShopContext(shop=shop.shop_domain, access_token=shop.access_token)


def get_shop_context(
    x_shopify_shop_domain: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> ShopContext:
    """Admin requests: the shop comes from the X-Shopify-Shop-Domain header."""
    # Trusts the proxy-set shop header. Verify the App Bridge session token (HS256 JWT signed
    # with settings.shopify_api_secret, "dest" claim) here before serving untrusted traffic.
    return _context_for(db, x_shopify_shop_domain)


def get_storefront_context(shop: str = Query(...), db: Session = Depends(get_db)) -> ShopContext:
    """Storefront requests: the theme extension passes the shop as a query parameter."""
    return _context_for(db, shop)


def get_client_factory() -> ClientFactory:
    return ShopifyAdminClient


async def get_admin_client(
    context: ShopContext = Depends(get_shop_context),
    factory: ClientFactory = Depends(get_client_factory),
) -> AsyncIterator[ShopifyAdminClient]:
    client = factory(context)
    try:
        yield client
    finally:
        await client.aclose()


async def get_storefront_client(
    context: ShopContext = Depends(get_storefront_context),
    factory: ClientFactory = Depends(get_client_factory),
) -> AsyncIterator[ShopifyAdminClient]:
    client = factory(context)
    try:
        yield client
    finally:
        await client.aclose()


def get_subscription_gate() -> SubscriptionGate:
    return SubscriptionGate(auto_request=settings.billing_auto_request)


def get_bundle_service(
    db: Session = Depends(get_db),
    client: ShopifyAdminClient = Depends(get_admin_client),
    gate: SubscriptionGate = Depends(get_subscription_gate),
) -> BundleService:
    return BundleService(
        db,
        client,
        gate=gate if settings.billing_required else None,
        check_inventory_on_publish=settings.checks_inventory_on("publish"),
    )
