"""
Core Integrations: vendor-agnostic product catalog contract.

- CatalogAdapter: search and id lookup interface implemented per platform
- CatalogProduct: the normalised product summary adapters return
- CachedCatalogAdapter: per-id TTL cache wrapped around any adapter
"""
from core.integrations.catalog import (
    CachedCatalogAdapter,
    CatalogAdapter,
    CatalogProduct,
)

__all__ = [
    "CachedCatalogAdapter",
    "CatalogAdapter",
    "CatalogProduct",
]
