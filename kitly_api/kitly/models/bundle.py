from datetime import datetime
from decimal import Decimal
from sqlalchemy import Integer, String, Text, DateTime, func, UniqueConstraint, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from ..db import Base


class Bundle(Base):
    __tablename__ = "bundles"

    # Storefront widget resolves bundles by handle, so it must be unique within a shop
    __table_args__ = (
        UniqueConstraint('shop', 'handle', name='uq_bundle_shop_handle'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Scoping
    shop: Mapped[str] = mapped_column(String, index=True, nullable=False)

    # Content
    title: Mapped[str] = mapped_column(Text, nullable=False)
    handle: Mapped[str] = mapped_column(String(255), nullable=False)
    products: Mapped[str] = mapped_column(Text, nullable=False)  # JSON-encoded list of bundle products

    # Discount
    discount_type: Mapped[str] = mapped_column(String(20), nullable=False, default="percentage")
    discount_value: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")

    # Platform mirror of the discount
    price_rule_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # Optimistic concurrency token, bumped on every update
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
