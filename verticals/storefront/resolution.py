"""Effective configuration resolution.

Pure functions: (ShopDefaults | None, ProductOverride | None) -> EffectiveConfig.
No database and no network access; the same inputs always give the same
result.

Only warranty settings fall back to the shop level. Out-of-stock and
preorder exist per product only: without an override they are disabled.
"""

from dataclasses import dataclass, field

from core.errors import DataIntegrityError
from patterns.domain_config import StorefrontConfig
from verticals.storefront.config import config as default_config
from verticals.storefront.models.domain import (
    Inherit,
    OutOfStockBlock,
    PaymentType,
    PreorderBlock,
    Presentation,
    ProductOverride,
    ShopDefaults,
    TriState,
    WarrantyPriceType,
)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EffectiveWarranty:
    """Warranty offer after merging product override and shop defaults."""

    enabled: bool
    presentation: Presentation
    price_type: WarrantyPriceType
    price_value: float
    description: str | None = None
    warranty_product_id: str | None = None
    variant_id: str | None = None

    @property
    def is_percentage(self) -> bool:
        return self.price_type is not WarrantyPriceType.PRODUCT_FIXED

    def price_for(self, product_price: float) -> float:
        """Warranty price for a product sold at ``product_price``."""
        if self.is_percentage:
            return round(product_price * self.price_value / 100, 2)
        return self.price_value


@dataclass(frozen=True)
class EffectivePreorder:
    block: PreorderBlock

    @property
    def enabled(self) -> bool:
        return self.block.enabled

    def deposit_for(self, product_price: float) -> float:
        """Amount charged at checkout for a preorder."""
        payment_type = self.block.payment_type
        value = self.block.partial_payment_value
        if payment_type is PaymentType.FULL or value is None:
            return product_price
        if payment_type is PaymentType.PARTIAL_PERCENTAGE:
            return round(product_price * value / 100, 2)
        return min(value, product_price)


@dataclass(frozen=True)
class EffectiveConfig:
    warranty: EffectiveWarranty
    out_of_stock: OutOfStockBlock = field(default_factory=OutOfStockBlock)
    preorder: EffectivePreorder = field(default_factory=lambda: EffectivePreorder(PreorderBlock()))


# ---------------------------------------------------------------------------
# Per-feature resolution
# ---------------------------------------------------------------------------

def _pick(state: TriState, inherited):
    return inherited if isinstance(state, Inherit) else state.value


def resolve_warranty(
    shop_defaults: ShopDefaults | None,
    override: ProductOverride | None,
    defaults: StorefrontConfig = default_config,
) -> EffectiveWarranty:
    """Merge warranty settings.

    Raises DataIntegrityError when a product-specific price type is stored
    without its value, or the shop percentage is missing.
    """
    if shop_defaults is not None:
        shop_enabled = shop_defaults.warranty_enabled
        shop_presentation = shop_defaults.warranty_default_presentation
        shop_percentage = shop_defaults.warranty_default_percentage
        description = shop_defaults.warranty_global_description
        warranty_product_id = shop_defaults.warranty_product_id
    else:
        shop_enabled = defaults.warranty.enabled
        shop_presentation = Presentation(defaults.warranty.presentation)
        shop_percentage = defaults.warranty.percentage
        description = None
        warranty_product_id = None

    if override is None:
        return EffectiveWarranty(
            enabled=shop_enabled,
            presentation=shop_presentation,
            price_type=WarrantyPriceType.GLOBAL_PERCENTAGE,
            price_value=shop_percentage,
            description=description,
            warranty_product_id=warranty_product_id,
        )

    block = override.warranty
    if block.price_type.is_product_specific:
        if block.price_value is None:
            raise DataIntegrityError(
                f"{override.product_id} uses {block.price_type.value} without a price value"
            )
        price_value = block.price_value
    else:
        if shop_percentage is None:
            raise DataIntegrityError(f"{override.shop} has no default warranty percentage")
        price_value = shop_percentage

    return EffectiveWarranty(
        enabled=_pick(block.enabled, shop_enabled),
        presentation=_pick(block.presentation, shop_presentation),
        price_type=block.price_type,
        price_value=price_value,
        description=description,
        warranty_product_id=warranty_product_id,
        variant_id=block.variant_id,
    )


def resolve_out_of_stock(override: ProductOverride | None) -> OutOfStockBlock:
    if override is None:
        return OutOfStockBlock()
    return override.out_of_stock


def resolve_preorder(override: ProductOverride | None) -> EffectivePreorder:
    """Preorder settings; an enabled partial payment needs its value."""
    if override is None:
        return EffectivePreorder(PreorderBlock())

    block = override.preorder
    if (
        block.enabled
        and block.payment_type is not PaymentType.FULL
        and block.partial_payment_value is None
    ):
        raise DataIntegrityError(
            f"{override.product_id} uses {block.payment_type.value} without a payment value"
        )
    return EffectivePreorder(block)


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------

def resolve(
    shop_defaults: ShopDefaults | None,
    override: ProductOverride | None,
    defaults: StorefrontConfig = default_config,
) -> EffectiveConfig:
    """Compute the effective configuration for one product.

    Example::

        effective = resolve(
            await shops.get_shop_defaults(shop),
            await products.get_product_override(shop, product_id),
        )
        if effective.warranty.enabled:
            offer_warranty(effective.warranty.price_for(price))
    """
    if shop_defaults is not None and override is not None and shop_defaults.shop != override.shop:
        raise DataIntegrityError("Shop defaults and product override belong to different shops")

    return EffectiveConfig(
        warranty=resolve_warranty(shop_defaults, override, defaults),
        out_of_stock=resolve_out_of_stock(override),
        preorder=resolve_preorder(override),
    )
