"""Storefront vertical: per-product configuration for a Shopify app.

Pieces, leaf first:
- SQLAlchemy models with ShopScopedMixin
- Settings store (shop defaults + per-product overrides) with atomic upserts
- Pure-function resolution of effective configuration
- Back-in-stock subscription tracker
- Shopify catalog adapter
- Form decoding and the FastAPI router
"""
