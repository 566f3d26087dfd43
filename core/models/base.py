"""Base model and mixins for all SQLAlchemy models.

Provides:
- Base: Declarative base class for all models
- ShopScopedMixin: Adds the shop partition key and an autoincrement id

Every row is owned by exactly one shop. The shop column is indexed so
per-shop queries stay cheap, and every repository query filters on it.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Declarative base for all storefront models."""
    pass


class ShopScopedMixin:
    """Mixin providing shop isolation and an integer primary key.

    Adds:
    - id: autoincrement integer primary key
    - shop: shop domain (e.g. ``acme.myshopify.com``), indexed
    """

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    shop: Mapped[str] = mapped_column(String(255), index=True, nullable=False)


class TimestampMixin:
    """created_at / updated_at audit columns.

    Timestamps are set from Python so they carry sub-second precision on
    every backend; recency ordering depends on it.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )
