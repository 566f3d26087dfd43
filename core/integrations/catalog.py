"""
Product catalog adapter contract.

The catalog is an external system: it owns product identity, titles and
images. Adapters implement two lookups and must tolerate partial failure:
ids the catalog cannot resolve are dropped from the result, they never fail
the whole call. A failure of the call itself raises UpstreamCatalogError.

CachedCatalogAdapter adds a per-id TTL cache for id lookups. Searches are
user-typed and never cached.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass
from typing import Sequence
import logging
import time

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogProduct:
    """Minimal product card returned by the catalog."""
    id: str
    title: str
    thumbnail_url: str | None = None


class CatalogAdapter(ABC):
    """Read-only view of an external product catalog."""

    @abstractmethod
    async def search_products(self, query: str, limit: int) -> list[CatalogProduct]:
        """Products whose title matches ``query``, at most ``limit``."""

    @abstractmethod
    async def get_products_by_ids(self, ids: Sequence[str]) -> list[CatalogProduct]:
        """Products for ``ids`` in request order; unknown ids are omitted."""


class CachedCatalogAdapter(CatalogAdapter):
    """TTL cache in front of another adapter's id lookups."""

    def __init__(
        self,
        inner: CatalogAdapter,
        ttl_seconds: float = 300.0,
        max_entries: int = 1000,
        clock=time.monotonic,
    ):
        self.inner = inner
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        # oldest write first, so eviction pops from the front
        self._cache: OrderedDict[str, tuple[float, CatalogProduct]] = OrderedDict()

    def __len__(self) -> int:
        return len(self._cache)

    def _purge_expired(self, now: float) -> None:
        expired = [key for key, (expires_at, _) in self._cache.items() if expires_at <= now]
        for key in expired:
            del self._cache[key]

    def _store(self, product: CatalogProduct, expires_at: float) -> None:
        self._cache.pop(product.id, None)
        self._cache[product.id] = (expires_at, product)
        while len(self._cache) > self.max_entries:
            self._cache.popitem(last=False)

    async def search_products(self, query: str, limit: int) -> list[CatalogProduct]:
        return await self.inner.search_products(query, limit)

    async def get_products_by_ids(self, ids: Sequence[str]) -> list[CatalogProduct]:
        now = self._clock()
        self._purge_expired(now)
        found: dict[str, CatalogProduct] = {}
        missing: list[str] = []

        for product_id in ids:
            entry = self._cache.get(product_id)
            if entry is not None:
                found[product_id] = entry[1]
            elif product_id not in missing:
                missing.append(product_id)

        if missing:
            fetched = await self.inner.get_products_by_ids(missing)
            expires_at = now + self.ttl_seconds
            for product in fetched:
                found[product.id] = product
                if self.ttl_seconds > 0:
                    self._store(product, expires_at)
            if len(fetched) < len(missing):
                logger.info(
                    "Catalog resolved %d of %d requested ids", len(fetched), len(missing)
                )

        return [found[i] for i in dict.fromkeys(ids) if i in found]

    def invalidate(self, product_id: str | None = None) -> None:
        """Drop one cached product, or everything."""
        if product_id is None:
            self._cache.clear()
        else:
            self._cache.pop(product_id, None)
