"""Shopify Admin GraphQL catalog adapter.

Implements the CatalogAdapter contract against the shop's Admin API. Every
call has an explicit timeout; expiry and transport errors surface as a
transient UpstreamCatalogError. There are no retries: the admin UI repeats
the lookup on the next keystroke anyway.
"""
from __future__ import annotations
from collections import OrderedDict
from typing import Any, Sequence
import logging

import httpx
from fastapi import Depends

from api.middleware import get_shop
from core.config import Settings, get_settings
from core.errors import UpstreamCatalogError
from core.integrations.catalog import CachedCatalogAdapter, CatalogAdapter, CatalogProduct

logger = logging.getLogger(__name__)

SEARCH_PRODUCTS_QUERY = """
query searchProducts($query: String!, $first: Int!) {
  products(first: $first, query: $query) {
    edges {
      node {
        id
        title
        featuredImage {
          url
        }
      }
    }
  }
}
"""

GET_PRODUCTS_BY_IDS_QUERY = """
query getProductsByIds($ids: [ID!]!) {
  nodes(ids: $ids) {
    ... on Product {
      id
      title
      featuredImage {
        url(transform: { maxWidth: 100, maxHeight: 100, preferredContentType: WEBP })
      }
    }
  }
}
"""


def _to_product(node: dict[str, Any]) -> CatalogProduct:
    image = node.get("featuredImage") or {}
    return CatalogProduct(id=node["id"], title=node.get("title") or "", thumbnail_url=image.get("url"))


def _escape_search_term(term: str) -> str:
    # Shopify search syntax treats these as operators
    for ch in ("\\", '"', "(", ")", ":"):
        term = term.replace(ch, f"\\{ch}")
    return term


class ShopifyCatalogAdapter(CatalogAdapter):
    """Catalog lookups for one shop through the Admin GraphQL API."""

    def __init__(
        self,
        shop: str,
        access_token: str,
        api_version: str = "2025-01",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.shop = shop
        self.access_token = access_token
        self.api_version = api_version
        self.timeout = timeout
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"https://{self.shop}/admin/api/{self.api_version}/graphql.json"

    async def _graphql(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """POST a GraphQL document and return its ``data`` member.

        Any GraphQL ``errors`` fail the call, as does a body without data.
        """
        headers = {
            "X-Shopify-Access-Token": self.access_token,
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(
                    self.endpoint,
                    json={"query": query, "variables": variables},
                    headers=headers,
                )
        except httpx.TimeoutException as exc:
            logger.warning("Catalog request to %s timed out after %ss", self.shop, self.timeout)
            raise UpstreamCatalogError("Product catalog timed out", transient=True) from exc
        except httpx.TransportError as exc:
            logger.warning("Catalog request to %s failed: %s", self.shop, exc)
            raise UpstreamCatalogError("Product catalog unreachable", transient=True) from exc

        if not resp.is_success:
            logger.error("Catalog request failed with HTTP %s: %s", resp.status_code, resp.text[:200])
            raise UpstreamCatalogError(f"Product catalog returned HTTP {resp.status_code}")

        try:
            payload = resp.json()
        except ValueError as exc:
            logger.error("Catalog returned a non-JSON body: %s", resp.text[:200])
            raise UpstreamCatalogError("Product catalog returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise UpstreamCatalogError("Product catalog returned invalid JSON")

        errors = payload.get("errors")
        if errors:
            logger.error("Catalog GraphQL errors: %s", errors)
            raise UpstreamCatalogError("Failed to fetch products")
        data = payload.get("data")
        if not data:
            logger.error("Catalog response for %s had no data", self.shop)
            raise UpstreamCatalogError("Failed to fetch products")
        return data

    async def search_products(self, query: str, limit: int) -> list[CatalogProduct]:
        data = await self._graphql(
            SEARCH_PRODUCTS_QUERY,
            {"query": f"title:*{_escape_search_term(query)}*", "first": limit},
        )
        edges = (data.get("products") or {}).get("edges") or []
        return [_to_product(edge["node"]) for edge in edges if edge.get("node")]

    async def get_products_by_ids(self, ids: Sequence[str]) -> list[CatalogProduct]:
        if not ids:
            return []
        data = await self._graphql(GET_PRODUCTS_BY_IDS_QUERY, {"ids": list(ids)})
        # unknown ids come back as null, non-product nodes as {}
        nodes = data.get("nodes") or []
        return [_to_product(node) for node in nodes if node and node.get("id")]


# ---------------------------------------------------------------------------
# FastAPI dependency
# ---------------------------------------------------------------------------

# Least recently used shop first; capped at CATALOG_MAX_SHOPS.
_adapters: OrderedDict[str, CachedCatalogAdapter] = OrderedDict()


def get_catalog_adapter(
    shop: str = Depends(get_shop),
    settings: Settings = Depends(get_settings),
) -> CatalogAdapter:
    """Cached Shopify adapter for the requesting shop.

    Raises UpstreamCatalogError when the shop has no Admin API token.
    """
    adapter = _adapters.get(shop)
    if adapter is not None:
        _adapters.move_to_end(shop)
        return adapter

    token = settings.admin_token_for(shop)
    if not token:
        logger.error("No Admin API token configured for %s", shop)
        raise UpstreamCatalogError("Product catalog is not configured for this shop")

    adapter = CachedCatalogAdapter(
        ShopifyCatalogAdapter(
            shop,
            access_token=token,
            api_version=settings.SHOPIFY_API_VERSION,
            timeout=settings.CATALOG_TIMEOUT_SECONDS,
        ),
        ttl_seconds=settings.CATALOG_CACHE_TTL_SECONDS,
        max_entries=settings.CATALOG_CACHE_MAX_ENTRIES,
    )
    _adapters[shop] = adapter
    while len(_adapters) > settings.CATALOG_MAX_SHOPS:
        evicted, _ = _adapters.popitem(last=False)
        logger.debug("Dropped catalog adapter for %s", evicted)
    return adapter
