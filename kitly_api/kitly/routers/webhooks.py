import logging

from fastapi import APIRouter, Depends, Header, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
from typing import Optional

from ..config import settings
from ..db import get_db
from ..errors import WebhookVerificationError
from ..services.bundles import uninstall_shop
from ..utils.signatures import verify_webhook_signature

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/app/uninstalled")
async def app_uninstalled(
    request: Request,
    x_shopify_hmac_sha256: Optional[str] = Header(default=None),
    x_shopify_shop_domain: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
):
    """Platform-initiated teardown: no subscription check, safe to replay."""
    body = await request.body()
    if not verify_webhook_signature(body, x_shopify_hmac_sha256, settings.shopify_api_secret):
        logger.warning(f"Rejected app/uninstalled webhook for {x_shopify_shop_domain}: bad signature")
        raise WebhookVerificationError("Webhook signature verification failed")
    if not x_shopify_shop_domain:
        raise WebhookVerificationError("Missing shop domain header")

    removed = await run_in_threadpool(uninstall_shop, db, x_shopify_shop_domain)
    return {"success": True, "removed": removed}
