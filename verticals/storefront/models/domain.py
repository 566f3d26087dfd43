"""Strongly typed configuration objects.

The store hands these out and the resolution engine consumes them; neither
ever sees raw form values or nullable tri-state columns.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Generic, TypeVar, Union

from patterns.workflow_states import SubscriptionStatus


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Presentation(str, Enum):
    POPUP = "POPUP"
    EMBED = "EMBED"


class PaymentType(str, Enum):
    FULL = "FULL"
    PARTIAL_PERCENTAGE = "PARTIAL_PERCENTAGE"
    PARTIAL_FIXED = "PARTIAL_FIXED"


class TermsDisplay(str, Enum):
    INLINE = "INLINE"
    POPUP = "POPUP"


class WarrantyPriceType(str, Enum):
    GLOBAL_PERCENTAGE = "GLOBAL_PERCENTAGE"
    PRODUCT_PERCENTAGE = "PRODUCT_PERCENTAGE"
    PRODUCT_FIXED = "PRODUCT_FIXED"

    @property
    def is_product_specific(self) -> bool:
        return self is not WarrantyPriceType.GLOBAL_PERCENTAGE


# ---------------------------------------------------------------------------
# Tri-state override
# ---------------------------------------------------------------------------

T = TypeVar("T")


@dataclass(frozen=True)
class Inherit:
    """Use the shop-level value."""


@dataclass(frozen=True)
class Override(Generic[T]):
    """Replace the shop-level value with ``value``."""

    value: T


TriState = Union[Inherit, Override[T]]

INHERIT = Inherit()


def tri_state_from_nullable(value: T | None) -> "TriState[T]":
    return INHERIT if value is None else Override(value)


def tri_state_to_nullable(state: "TriState[T]") -> T | None:
    return state.value if isinstance(state, Override) else None


# ---------------------------------------------------------------------------
# Feature blocks
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OutOfStockBlock:
    """Out-of-stock button, notify form, restock timer and alternatives."""

    enabled: bool = False
    button_text: str | None = None
    button_color: str | None = None
    notify_form_enabled: bool = False
    timer_enabled: bool = False
    restock_date: datetime | None = None
    recommendations_enabled: bool = False
    recommended_product_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class PreorderBlock:
    """Preorder button, end date, payment terms.

    ``partial_payment_value`` is a percentage for PARTIAL_PERCENTAGE and an
    amount for PARTIAL_FIXED; it is ignored for FULL.
    """

    enabled: bool = False
    button_text: str | None = None
    button_color: str | None = None
    end_date: datetime | None = None
    payment_type: PaymentType = PaymentType.FULL
    partial_payment_value: float | None = None
    terms: str | None = None
    terms_display: TermsDisplay = TermsDisplay.INLINE


@dataclass(frozen=True)
class WarrantyBlock:
    """Per-product warranty settings layered over the shop defaults."""

    enabled: TriState[bool] = INHERIT
    presentation: TriState[Presentation] = INHERIT
    price_type: WarrantyPriceType = WarrantyPriceType.GLOBAL_PERCENTAGE
    price_value: float | None = None
    variant_id: str | None = None


FeatureBlock = Union[OutOfStockBlock, PreorderBlock, WarrantyBlock]


# ---------------------------------------------------------------------------
# Stored entities
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ShopDefaults:
    shop: str
    warranty_enabled: bool = False
    warranty_default_presentation: Presentation = Presentation.POPUP
    warranty_default_percentage: float = 10.0
    warranty_global_description: str | None = None
    warranty_product_id: str | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class ProductOverride:
    shop: str
    product_id: str
    out_of_stock: OutOfStockBlock = field(default_factory=OutOfStockBlock)
    preorder: PreorderBlock = field(default_factory=PreorderBlock)
    warranty: WarrantyBlock = field(default_factory=WarrantyBlock)
    id: int | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class Subscription:
    id: int
    shop: str
    product_id: str
    customer_email: str
    customer_name: str | None
    customer_phone: str | None
    subscribed_at: datetime
    notified_at: datetime | None
    status: SubscriptionStatus
