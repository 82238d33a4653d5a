from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Any, Dict, List, Optional
import logging

from ..errors import ConcurrentModificationError, InvalidBundleError
from ..models.bundle import Bundle
from ..schemas.bundle import BundleCreate
from ..services.pricing import to_decimal
from ..utils.serialization import encode_products
from ..utils.text import slugify, unique_handle

logger = logging.getLogger(__name__)


def _handles_in_shop(db: Session, shop: str, base: str) -> set[str]:
    rows = db.execute(
        select(Bundle.handle).where(Bundle.shop == shop, Bundle.handle.like(f"{base}%"))
    ).scalars()
    return set(rows)


def create_bundle(db: Session, shop: str, data: BundleCreate) -> Bundle:
    """Insert a bundle with a handle that is unique within the shop.

    Raises:
        InvalidBundleError: If another bundle claimed the same handle concurrently
    """
    base = slugify(data.title)
    handle = unique_handle(base, _handles_in_shop(db, shop, base))

    bundle = Bundle(
        shop=shop,
        title=data.title,
        handle=handle,
        products=encode_products(data.products),
        discount_type=data.discount_type,
        discount_value=to_decimal(data.discount_value),
        status=data.status,
        version=1,
    )

    try:
        db.add(bundle)
        db.commit()
        db.refresh(bundle)
        return bundle
    except IntegrityError as e:
        db.rollback()
        if 'uq_bundle_shop_handle' in str(e.orig) or 'handle' in str(e.orig):
            raise InvalidBundleError(f"A bundle with handle '{handle}' already exists in {shop}")
        raise


def get_bundle(db: Session, shop: str, bundle_id: int) -> Optional[Bundle]:
    return db.query(Bundle).filter(Bundle.shop == shop, Bundle.id == bundle_id).first()


def get_bundle_by_handle(db: Session, shop: str, handle: str) -> Optional[Bundle]:
    return db.query(Bundle).filter(Bundle.shop == shop, Bundle.handle == handle).first()


def list_bundles_by_shop(db: Session, shop: str, status: Optional[str] = None, limit: int = 50, offset: int = 0) -> List[Bundle]:
    q = db.query(Bundle).filter(Bundle.shop == shop)
    if status:
        q = q.filter(Bundle.status == status)
    return q.order_by(Bundle.created_at.desc(), Bundle.id.desc()).offset(offset).limit(limit).all()


def update_bundle(db: Session, bundle: Bundle, fields: Dict[str, Any], expected_version: int) -> Bundle:
    """Apply ``fields`` only if the row is still at ``expected_version``.

    Raises:
        ConcurrentModificationError: If another writer got there first
    """
    values = dict(fields)
    values["version"] = expected_version + 1

    result = db.execute(
        update(Bundle)
        .where(Bundle.id == bundle.id, Bundle.version == expected_version)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        raise ConcurrentModificationError(bundle.id, expected_version)

    db.commit()
    db.refresh(bundle)
    return bundle


def attach_price_rule(db: Session, bundle: Bundle, price_rule_id: Optional[str]) -> Bundle:
    """Record the external rule id. Not a merchant edit, so the version is left alone."""
    bundle.price_rule_id = price_rule_id
    db.commit()
    db.refresh(bundle)
    return bundle


def delete_bundle(db: Session, bundle: Bundle) -> None:
    result = db.execute(
        delete(Bundle)
        .where(Bundle.id == bundle.id, Bundle.version == bundle.version)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        raise ConcurrentModificationError(bundle.id, bundle.version)
    db.commit()
    db.expunge(bundle)


def delete_bundles_for_shop(db: Session, shop: str) -> int:
    result = db.execute(delete(Bundle).where(Bundle.shop == shop))
    db.commit()
    return result.rowcount


def count_bundles_by_shop(db: Session, shop: str, status: Optional[str] = None) -> int:
    """Count the total number of bundles for a shop."""
    q = db.query(Bundle).filter(Bundle.shop == shop)
    if status:
        q = q.filter(Bundle.status == status)
    return q.count()


def price_rule_ids_in_shop(db: Session, shop: str, exclude_bundle_id: Optional[int] = None) -> set[str]:
    """Price rule ids stored on the shop's bundles, optionally leaving one bundle out."""
    q = select(Bundle.price_rule_id).where(Bundle.shop == shop, Bundle.price_rule_id.is_not(None))
    if exclude_bundle_id is not None:
        q = q.where(Bundle.id != exclude_bundle_id)
    return set(db.execute(q).scalars())
