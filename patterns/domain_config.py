"""Dataclass-based domain configuration pattern.

Each vertical defines its fallbacks, limits and feature flags as a frozen
dataclass. This gives you:
- Type safety (IDE autocompletion, mypy checking)
- Default values (sensible out-of-the-box)
- Immutability (frozen=True prevents accidental mutation)
- Easy overrides (from env vars or tests)

Example domain: the storefront's hard-coded defaults, used when a shop has
never saved any settings.
"""

from dataclasses import dataclass, field


# ---------------------------------------------------------------------------
# Nested config sections
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WarrantyDefaults:
    """Warranty behaviour for shops without a settings row."""

    enabled: bool = False
    presentation: str = "POPUP"
    percentage: float = 10.0


@dataclass(frozen=True)
class SubscriptionLimits:
    """Bounds for back-in-stock listing."""

    max_page_size: int = 100
    default_page_size: int = 50


# ---------------------------------------------------------------------------
# Top-level domain config
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StorefrontConfig:
    """System defaults for the storefront vertical.

    Usage::

        config = StorefrontConfig.default()
        percentage = shop.warranty_default_percentage if shop else config.warranty.percentage
    """

    warranty: WarrantyDefaults = field(default_factory=WarrantyDefaults)
    subscriptions: SubscriptionLimits = field(default_factory=SubscriptionLimits)

    @classmethod
    def default(cls) -> "StorefrontConfig":
        """Create config with all defaults."""
        return cls()
