"""SQLAlchemy models for the storefront vertical.

Each model inherits from Base and uses ShopScopedMixin for shop isolation.
The to_dict() method provides the serialisation used by the API, and
to_domain() converts a row into the typed objects the engine works on.
"""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from core.models.base import Base, ShopScopedMixin, TimestampMixin, utcnow
from verticals.storefront.identifiers import split_ids
from verticals.storefront.models.domain import (
    OutOfStockBlock,
    PaymentType,
    PreorderBlock,
    Presentation,
    ProductOverride,
    ShopDefaults,
    Subscription,
    SubscriptionStatus,
    TermsDisplay,
    WarrantyBlock,
    WarrantyPriceType,
    tri_state_from_nullable,
)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class ShopSettings(ShopScopedMixin, TimestampMixin, Base):
    """Shop-level defaults. At most one row per shop."""

    __tablename__ = "shop_settings"
    __table_args__ = (UniqueConstraint("shop", name="uq_shop_settings_shop"),)

    warranty_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    warranty_default_presentation: Mapped[str] = mapped_column(
        String(16), nullable=False, default=Presentation.POPUP.value
    )
    warranty_default_percentage: Mapped[float] = mapped_column(Float, nullable=False, default=10.0)
    warranty_global_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    warranty_product_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def to_domain(self) -> ShopDefaults:
        return ShopDefaults(
            shop=self.shop,
            warranty_enabled=self.warranty_enabled,
            warranty_default_presentation=Presentation(self.warranty_default_presentation),
            warranty_default_percentage=self.warranty_default_percentage,
            warranty_global_description=self.warranty_global_description,
            warranty_product_id=self.warranty_product_id,
            updated_at=self.updated_at,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop": self.shop,
            "warranty_enabled": self.warranty_enabled,
            "warranty_default_presentation": self.warranty_default_presentation,
            "warranty_default_percentage": self.warranty_default_percentage,
            "warranty_global_description": self.warranty_global_description,
            "warranty_product_id": self.warranty_product_id,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class ProductConfiguration(ShopScopedMixin, TimestampMixin, Base):
    """Per-product override with three independent feature blocks."""

    __tablename__ = "product_configurations"
    __table_args__ = (
        UniqueConstraint("shop", "product_id", name="uq_product_configurations_shop_product"),
    )

    product_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    # Out-of-stock
    no_stock_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    no_stock_button_text: Mapped[str | None] = mapped_column(String(255), nullable=True)
    no_stock_button_color: Mapped[str | None] = mapped_column(String(32), nullable=True)
    no_stock_notify_form_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    no_stock_timer_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    no_stock_restock_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    no_stock_recommendations_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    no_stock_recommended_product_gids: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Preorder
    preorder_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    preorder_button_text: Mapped[str | None] = mapped_column(String(255), nullable=True)
    preorder_button_color: Mapped[str | None] = mapped_column(String(32), nullable=True)
    preorder_end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    preorder_payment_type: Mapped[str] = mapped_column(
        String(32), nullable=False, default=PaymentType.FULL.value
    )
    preorder_partial_payment_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    preorder_terms: Mapped[str | None] = mapped_column(Text, nullable=True)
    preorder_terms_display: Mapped[str] = mapped_column(
        String(16), nullable=False, default=TermsDisplay.INLINE.value
    )

    # Warranty (NULL means inherit from ShopSettings)
    warranty_enabled_override: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    warranty_presentation_override: Mapped[str | None] = mapped_column(String(16), nullable=True)
    warranty_price_type: Mapped[str] = mapped_column(
        String(32), nullable=False, default=WarrantyPriceType.GLOBAL_PERCENTAGE.value
    )
    warranty_price_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    warranty_variant_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def to_domain(self) -> ProductOverride:
        presentation = self.warranty_presentation_override
        return ProductOverride(
            id=self.id,
            shop=self.shop,
            product_id=self.product_id,
            updated_at=self.updated_at,
            out_of_stock=OutOfStockBlock(
                enabled=self.no_stock_enabled,
                button_text=self.no_stock_button_text,
                button_color=self.no_stock_button_color,
                notify_form_enabled=self.no_stock_notify_form_enabled,
                timer_enabled=self.no_stock_timer_enabled,
                restock_date=self.no_stock_restock_date,
                recommendations_enabled=self.no_stock_recommendations_enabled,
                recommended_product_ids=split_ids(self.no_stock_recommended_product_gids),
            ),
            preorder=PreorderBlock(
                enabled=self.preorder_enabled,
                button_text=self.preorder_button_text,
                button_color=self.preorder_button_color,
                end_date=self.preorder_end_date,
                payment_type=PaymentType(self.preorder_payment_type),
                partial_payment_value=self.preorder_partial_payment_value,
                terms=self.preorder_terms,
                terms_display=TermsDisplay(self.preorder_terms_display),
            ),
            warranty=WarrantyBlock(
                enabled=tri_state_from_nullable(self.warranty_enabled_override),
                presentation=tri_state_from_nullable(
                    Presentation(presentation) if presentation else None
                ),
                price_type=WarrantyPriceType(self.warranty_price_type),
                price_value=self.warranty_price_value,
                variant_id=self.warranty_variant_id,
            ),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop": self.shop,
            "product_id": self.product_id,
            "no_stock_enabled": self.no_stock_enabled,
            "no_stock_button_text": self.no_stock_button_text,
            "no_stock_button_color": self.no_stock_button_color,
            "no_stock_notify_form_enabled": self.no_stock_notify_form_enabled,
            "no_stock_timer_enabled": self.no_stock_timer_enabled,
            "no_stock_restock_date": _iso(self.no_stock_restock_date),
            "no_stock_recommendations_enabled": self.no_stock_recommendations_enabled,
            "no_stock_recommended_product_gids": self.no_stock_recommended_product_gids,
            "preorder_enabled": self.preorder_enabled,
            "preorder_button_text": self.preorder_button_text,
            "preorder_button_color": self.preorder_button_color,
            "preorder_end_date": _iso(self.preorder_end_date),
            "preorder_payment_type": self.preorder_payment_type,
            "preorder_partial_payment_value": self.preorder_partial_payment_value,
            "preorder_terms": self.preorder_terms,
            "preorder_terms_display": self.preorder_terms_display,
            "warranty_enabled_override": self.warranty_enabled_override,
            "warranty_presentation_override": self.warranty_presentation_override,
            "warranty_price_type": self.warranty_price_type,
            "warranty_price_value": self.warranty_price_value,
            "warranty_variant_id": self.warranty_variant_id,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class BackInStockSubscription(ShopScopedMixin, Base):
    """A shopper's request to be told when a product is back.

    Duplicate (shop, product_id, customer_email) rows are allowed.
    """

    __tablename__ = "back_in_stock_subscriptions"
    __table_args__ = (
        Index("ix_back_in_stock_shop_product_status", "shop", "product_id", "status"),
    )

    product_id: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    customer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    customer_phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    subscribed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    notified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=SubscriptionStatus.PENDING.value
    )

    def to_domain(self) -> Subscription:
        return Subscription(
            id=self.id,
            shop=self.shop,
            product_id=self.product_id,
            customer_email=self.customer_email,
            customer_name=self.customer_name,
            customer_phone=self.customer_phone,
            subscribed_at=self.subscribed_at,
            notified_at=self.notified_at,
            status=SubscriptionStatus(self.status),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop": self.shop,
            "product_id": self.product_id,
            "customer_email": self.customer_email,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "subscribed_at": _iso(self.subscribed_at),
            "notified_at": _iso(self.notified_at),
            "status": self.status,
        }
