"""Settings store: shop defaults and per-product overrides.

Both tables are written with a single INSERT ... ON CONFLICT DO UPDATE so a
create-or-update on the same key is atomic: concurrent writers never produce
two rows, the later statement wins. Only the columns that belong to the
written block (or the supplied shop fields) appear in the UPDATE clause.
"""

import logging
from enum import Enum
from typing import Any

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_session, storage_errors
from core.errors import DataIntegrityError, ValidationError
from core.models.base import utcnow
from patterns.repository import BaseRepository
from verticals.storefront.identifiers import validate_product_id, validate_shop
from verticals.storefront.models.db_models import ProductConfiguration, ShopSettings
from verticals.storefront.models.domain import (
    FeatureBlock,
    OutOfStockBlock,
    PreorderBlock,
    Presentation,
    ProductOverride,
    ShopDefaults,
    WarrantyBlock,
    tri_state_to_nullable,
)

logger = logging.getLogger(__name__)

SHOP_SETTINGS_FIELDS = {
    "warranty_enabled",
    "warranty_default_presentation",
    "warranty_default_percentage",
    "warranty_global_description",
    "warranty_product_id",
}


def _insert_for(dialect_name: str):
    if dialect_name == "postgresql":
        return pg_insert
    if dialect_name == "sqlite":
        return sqlite_insert
    raise NotImplementedError(f"Upserts are not supported on {dialect_name}")


def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def block_columns(block: FeatureBlock) -> dict[str, Any]:
    """Map a feature block onto its table columns."""
    if isinstance(block, OutOfStockBlock):
        return {
            "no_stock_enabled": block.enabled,
            "no_stock_button_text": block.button_text,
            "no_stock_button_color": block.button_color,
            "no_stock_notify_form_enabled": block.notify_form_enabled,
            "no_stock_timer_enabled": block.timer_enabled,
            "no_stock_restock_date": block.restock_date,
            "no_stock_recommendations_enabled": block.recommendations_enabled,
            "no_stock_recommended_product_gids": (
                ",".join(block.recommended_product_ids) or None
            ),
        }
    if isinstance(block, PreorderBlock):
        return {
            "preorder_enabled": block.enabled,
            "preorder_button_text": block.button_text,
            "preorder_button_color": block.button_color,
            "preorder_end_date": block.end_date,
            "preorder_payment_type": block.payment_type.value,
            "preorder_partial_payment_value": block.partial_payment_value,
            "preorder_terms": block.terms,
            "preorder_terms_display": block.terms_display.value,
        }
    if isinstance(block, WarrantyBlock):
        return {
            "warranty_enabled_override": tri_state_to_nullable(block.enabled),
            "warranty_presentation_override": _enum_value(
                tri_state_to_nullable(block.presentation)
            ),
            "warranty_price_type": block.price_type.value,
            "warranty_price_value": block.price_value,
            "warranty_variant_id": block.variant_id,
        }
    raise TypeError(f"Unknown feature block: {type(block).__name__}")


# ---------------------------------------------------------------------------
# Shop settings repository
# ---------------------------------------------------------------------------

class ShopSettingsRepository(BaseRepository[ShopSettings]):
    """Shop-level defaults, one row per shop."""

    model = ShopSettings

    async def get_shop_defaults(self, shop: str) -> ShopDefaults | None:
        """Return the shop's defaults, or None if it never saved any."""
        shop = validate_shop(shop)
        async with storage_errors("get shop defaults"):
            result = await self.session.execute(
                self.scoped(shop).execution_options(populate_existing=True)
            )
        row = result.scalar_one_or_none()
        return row.to_domain() if row else None

    async def upsert_shop_defaults(self, shop: str, partial: dict[str, Any]) -> ShopDefaults:
        """Create or merge shop defaults.

        Only keys present in ``partial`` are written; everything else keeps
        its stored (or column default) value.
        """
        shop = validate_shop(shop)
        unknown = set(partial) - SHOP_SETTINGS_FIELDS
        if unknown:
            raise ValidationError(f"Unknown shop settings fields: {sorted(unknown)}")

        values = {key: _enum_value(value) for key, value in partial.items()}
        if "warranty_default_presentation" in values:
            try:
                Presentation(values["warranty_default_presentation"])
            except ValueError:
                raise ValidationError(
                    f"Invalid presentation: {values['warranty_default_presentation']!r}"
                ) from None
        percentage = values.get("warranty_default_percentage")
        if "warranty_default_percentage" in values and (
            isinstance(percentage, bool)
            or not isinstance(percentage, (int, float))
            or not 0 <= percentage <= 100
        ):
            raise ValidationError("warranty_default_percentage must be a number between 0 and 100")
        if "warranty_enabled" in values and not isinstance(values["warranty_enabled"], bool):
            raise ValidationError("warranty_enabled must be true or false")

        now = utcnow()
        insert = _insert_for(self.dialect_name)
        stmt = insert(ShopSettings).values(shop=shop, created_at=now, updated_at=now, **values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["shop"],
            set_={**values, "updated_at": now},
        )
        async with storage_errors("upsert shop defaults"):
            await self.session.execute(stmt)

        logger.info("Saved shop defaults for %s: %s", shop, sorted(values))
        saved = await self.get_shop_defaults(shop)
        if saved is None:
            raise DataIntegrityError(f"Shop defaults for {shop} missing after upsert")
        return saved


# ---------------------------------------------------------------------------
# Product configuration repository
# ---------------------------------------------------------------------------

class ProductConfigurationRepository(BaseRepository[ProductConfiguration]):
    """Per-product overrides keyed by (shop, product_id)."""

    model = ProductConfiguration

    async def _get(self, shop: str, product_id: str) -> ProductConfiguration | None:
        stmt = (
            self.scoped(shop)
            .where(ProductConfiguration.product_id == product_id)
            .execution_options(populate_existing=True)
        )
        async with storage_errors("get product override"):
            result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_product_override(self, shop: str, product_id: str) -> ProductOverride | None:
        shop = validate_shop(shop)
        product_id = validate_product_id(product_id)
        row = await self._get(shop, product_id)
        return row.to_domain() if row else None

    async def get_product_override_dict(self, shop: str, product_id: str) -> dict | None:
        """Raw row as stored, for the admin editor."""
        shop = validate_shop(shop)
        product_id = validate_product_id(product_id)
        row = await self._get(shop, product_id)
        return row.to_dict() if row else None

    async def upsert_product_override(
        self, shop: str, product_id: str, block: FeatureBlock
    ) -> ProductOverride:
        """Write one feature block, creating the row if needed.

        The other two blocks are left exactly as they were (or at their
        disabled defaults when the row is new).
        """
        shop = validate_shop(shop)
        product_id = validate_product_id(product_id)
        values = block_columns(block)

        now = utcnow()
        insert = _insert_for(self.dialect_name)
        stmt = insert(ProductConfiguration).values(
            shop=shop,
            product_id=product_id,
            created_at=now,
            updated_at=now,
            **values,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["shop", "product_id"],
            set_={**values, "updated_at": now},
        )
        async with storage_errors("upsert product override"):
            await self.session.execute(stmt)

        logger.info(
            "Saved %s for %s on %s", type(block).__name__, product_id, shop
        )
        row = await self._get(shop, product_id)
        if row is None:
            raise DataIntegrityError(f"Override for {product_id} on {shop} missing after upsert")
        return row.to_domain()

    async def delete_product_override(self, shop: str, product_id: str) -> bool:
        """Remove a product's override. Returns False if none existed."""
        shop = validate_shop(shop)
        product_id = validate_product_id(product_id)
        row = await self._get(shop, product_id)
        if row is None:
            return False
        await self.delete_row(row)
        logger.info("Deleted configuration for %s on %s", product_id, shop)
        return True

    async def list_configured_products(
        self, shop: str, order_by_recency: bool = True
    ) -> list[str]:
        """Product ids with any saved configuration for the shop."""
        shop = validate_shop(shop)
        stmt = select(ProductConfiguration.product_id).where(ProductConfiguration.shop == shop)
        if order_by_recency:
            stmt = stmt.order_by(
                ProductConfiguration.updated_at.desc(), ProductConfiguration.id.desc()
            )
        else:
            stmt = stmt.order_by(ProductConfiguration.id)

        async with storage_errors("list configured products"):
            result = await self.session.execute(stmt)
        return list(result.scalars().all())


# ---------------------------------------------------------------------------
# FastAPI dependency factories
# ---------------------------------------------------------------------------

def get_shop_settings_repository(
    session: AsyncSession = Depends(get_session),
) -> ShopSettingsRepository:
    """FastAPI dependency for ShopSettingsRepository."""
    return ShopSettingsRepository(session)


def get_product_configuration_repository(
    session: AsyncSession = Depends(get_session),
) -> ProductConfigurationRepository:
    """FastAPI dependency for ProductConfigurationRepository."""
    return ProductConfigurationRepository(session)
