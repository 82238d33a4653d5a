from sqlalchemy import delete
from sqlalchemy.orm import Session
from typing import Optional

from ..models.shop import Shop


def get_shop(db: Session, shop_domain: str) -> Optional[Shop]:
    return db.get(Shop, shop_domain)


def upsert_shop(db: Session, shop_domain: str, access_token: str, scope: Optional[str] = None) -> Shop:
    """Store the offline token handed over by the install flow."""
    shop = db.get(Shop, shop_domain)
    if shop is None:
        shop = Shop(shop_domain=shop_domain, access_token=access_token, scope=scope)
        db.add(shop)
    else:
        shop.access_token = access_token
        shop.scope = scope
    db.commit()
    db.refresh(shop)
    return shop


def delete_shop(db: Session, shop_domain: str) -> bool:
    result = db.execute(delete(Shop).where(Shop.shop_domain == shop_domain))
    db.commit()
    return result.rowcount > 0
