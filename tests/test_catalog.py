"""Test the catalog adapter and its cache."""
import json

import httpx
import pytest

from core.config import Settings
from core.errors import UpstreamCatalogError
from core.integrations.catalog import CachedCatalogAdapter, CatalogAdapter, CatalogProduct
from verticals.storefront import catalog as catalog_module
from verticals.storefront.catalog import ShopifyCatalogAdapter, get_catalog_adapter
from verticals.storefront.identifiers import is_product_gid, parse_product_gids

SHOP = "a.myshopify.com"


def _adapter(handler) -> ShopifyCatalogAdapter:
    return ShopifyCatalogAdapter(
        SHOP,
        access_token="shpat_test",
        api_version="2025-01",
        timeout=2.0,
        transport=httpx.MockTransport(handler),
    )


class CountingCatalog(CatalogAdapter):
    def __init__(self, known: dict[str, str]):
        self.known = known
        self.id_calls: list[list[str]] = []

    async def search_products(self, query, limit):
        return []

    async def get_products_by_ids(self, ids):
        self.id_calls.append(list(ids))
        return [CatalogProduct(id=i, title=self.known[i]) for i in ids if i in self.known]


# -- Identifiers --

def test_product_gid_format():
    assert is_product_gid("gid://shopify/Product/1")
    assert not is_product_gid("not-a-gid")
    assert not is_product_gid("gid://shopify/ProductVariant/1")


def test_parse_product_gids_filters_and_dedupes():
    raw = "gid://shopify/Product/1,not-a-gid, gid://shopify/Product/2,gid://shopify/Product/1"
    assert parse_product_gids(raw) == ["gid://shopify/Product/1", "gid://shopify/Product/2"]


# -- Shopify adapter --

@pytest.mark.asyncio
async def test_search_builds_title_query():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["token"] = request.headers["X-Shopify-Access-Token"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"data": {"products": {"edges": [
            {"node": {"id": "gid://shopify/Product/1", "title": "Red Shoe",
                      "featuredImage": {"url": "https://cdn/x.webp"}}},
            {"node": {"id": "gid://shopify/Product/2", "title": "Red Hat", "featuredImage": None}},
        ]}}})

    products = await _adapter(handler).search_products("red", 10)

    assert seen["url"] == "https://a.myshopify.com/admin/api/2025-01/graphql.json"
    assert seen["token"] == "shpat_test"
    assert seen["body"]["variables"] == {"query": "title:*red*", "first": 10}
    assert products == [
        CatalogProduct("gid://shopify/Product/1", "Red Shoe", "https://cdn/x.webp"),
        CatalogProduct("gid://shopify/Product/2", "Red Hat", None),
    ]


@pytest.mark.asyncio
async def test_get_by_ids_drops_missing_nodes():
    def handler(request):
        return httpx.Response(200, json={"data": {"nodes": [
            {"id": "gid://shopify/Product/1", "title": "One", "featuredImage": None},
            None,
            {},
        ]}})

    products = await _adapter(handler).get_products_by_ids([
        "gid://shopify/Product/1", "gid://shopify/Product/404", "gid://shopify/Product/3",
    ])
    assert [p.id for p in products] == ["gid://shopify/Product/1"]


@pytest.mark.asyncio
async def test_graphql_errors_alongside_data_raise():
    def handler(request):
        return httpx.Response(200, json={
            "data": {"nodes": [{"id": "gid://shopify/Product/1", "title": "One"}, None]},
            "errors": [{"message": "Invalid id: gid://shopify/Product/abc"}],
        })

    with pytest.raises(UpstreamCatalogError, match="Failed to fetch products"):
        await _adapter(handler).get_products_by_ids(["gid://shopify/Product/1", "x"])


@pytest.mark.asyncio
async def test_graphql_errors_without_data_raise():
    def handler(request):
        return httpx.Response(200, json={"errors": [{"message": "Throttled"}]})

    with pytest.raises(UpstreamCatalogError) as excinfo:
        await _adapter(handler).search_products("red", 10)
    assert excinfo.value.status_code == 502
    assert not excinfo.value.transient


@pytest.mark.asyncio
async def test_non_json_body_raises():
    def handler(request):
        return httpx.Response(200, text="<html>maintenance</html>")

    with pytest.raises(UpstreamCatalogError, match="invalid JSON") as excinfo:
        await _adapter(handler).search_products("red", 10)
    assert excinfo.value.status_code == 502


@pytest.mark.asyncio
async def test_http_error_raises():
    def handler(request):
        return httpx.Response(401, text="Unauthorized")

    with pytest.raises(UpstreamCatalogError, match="HTTP 401"):
        await _adapter(handler).get_products_by_ids(["gid://shopify/Product/1"])


@pytest.mark.asyncio
async def test_timeout_is_transient():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(UpstreamCatalogError) as excinfo:
        await _adapter(handler).search_products("red", 10)
    assert excinfo.value.transient
    assert excinfo.value.status_code == 504


@pytest.mark.asyncio
async def test_empty_id_list_skips_request():
    def handler(request):
        raise AssertionError("no request expected")

    assert await _adapter(handler).get_products_by_ids([]) == []


# -- Cache --

@pytest.mark.asyncio
async def test_cache_serves_repeat_lookups():
    inner = CountingCatalog({"p1": "One", "p2": "Two"})
    cached = CachedCatalogAdapter(inner, ttl_seconds=60)

    assert [p.id for p in await cached.get_products_by_ids(["p1", "p2"])] == ["p1", "p2"]
    assert [p.id for p in await cached.get_products_by_ids(["p2", "p1"])] == ["p2", "p1"]
    assert inner.id_calls == [["p1", "p2"]]


@pytest.mark.asyncio
async def test_cache_only_fetches_missing_and_retries_unknown():
    inner = CountingCatalog({"p1": "One"})
    cached = CachedCatalogAdapter(inner, ttl_seconds=60)

    await cached.get_products_by_ids(["p1"])
    result = await cached.get_products_by_ids(["p1", "p9"])
    assert [p.id for p in result] == ["p1"]
    assert inner.id_calls == [["p1"], ["p9"]]


@pytest.mark.asyncio
async def test_cache_expires():
    now = [100.0]
    inner = CountingCatalog({"p1": "One"})
    cached = CachedCatalogAdapter(inner, ttl_seconds=10, clock=lambda: now[0])

    await cached.get_products_by_ids(["p1"])
    now[0] += 11
    await cached.get_products_by_ids(["p1"])
    assert len(inner.id_calls) == 2

    cached.invalidate("p1")
    await cached.get_products_by_ids(["p1"])
    assert len(inner.id_calls) == 3


@pytest.mark.asyncio
async def test_cache_purges_expired_entries():
    now = [100.0]
    inner = CountingCatalog({f"p{i}": str(i) for i in range(5)})
    cached = CachedCatalogAdapter(inner, ttl_seconds=10, clock=lambda: now[0])

    await cached.get_products_by_ids([f"p{i}" for i in range(5)])
    assert len(cached) == 5

    now[0] += 11
    await cached.get_products_by_ids([])
    assert len(cached) == 0


@pytest.mark.asyncio
async def test_cache_is_bounded():
    inner = CountingCatalog({f"p{i}": str(i) for i in range(10)})
    cached = CachedCatalogAdapter(inner, ttl_seconds=60, max_entries=3)

    await cached.get_products_by_ids([f"p{i}" for i in range(10)])
    assert len(cached) == 3

    # oldest entries were evicted first
    await cached.get_products_by_ids(["p9", "p0"])
    assert inner.id_calls[-1] == ["p0"]


# -- Per-shop adapters --

@pytest.fixture
def adapters():
    catalog_module._adapters.clear()
    yield catalog_module._adapters
    catalog_module._adapters.clear()


def test_each_shop_gets_its_own_token(adapters):
    settings = Settings(SHOPIFY_ADMIN_ACCESS_TOKENS={
        "a.myshopify.com": "shpat_a",
        "B.myshopify.com": "shpat_b",
    })

    a = get_catalog_adapter("a.myshopify.com", settings)
    b = get_catalog_adapter("b.myshopify.com", settings)
    assert a.inner.access_token == "shpat_a"
    assert b.inner.access_token == "shpat_b"
    assert get_catalog_adapter("a.myshopify.com", settings) is a


def test_single_shop_token_is_not_sent_to_other_shops(adapters):
    settings = Settings(
        SHOPIFY_ADMIN_ACCESS_TOKENS={},
        SHOPIFY_SHOP_DOMAIN="a.myshopify.com",
        SHOPIFY_ADMIN_ACCESS_TOKEN="shpat_single",
    )

    assert get_catalog_adapter("a.myshopify.com", settings).inner.access_token == "shpat_single"
    with pytest.raises(UpstreamCatalogError, match="not configured"):
        get_catalog_adapter("b.myshopify.com", settings)
    assert list(adapters) == ["a.myshopify.com"]


def test_adapter_map_is_bounded(adapters):
    tokens = {f"shop{i}.myshopify.com": f"shpat_{i}" for i in range(20)}
    settings = Settings(SHOPIFY_ADMIN_ACCESS_TOKENS=tokens, CATALOG_MAX_SHOPS=5)

    for shop in tokens:
        get_catalog_adapter(shop, settings)
    assert len(adapters) == 5
    assert list(adapters) == [f"shop{i}.myshopify.com" for i in range(15, 20)]

    # a hit refreshes recency
    get_catalog_adapter("shop15.myshopify.com", settings)
    get_catalog_adapter("shop0.myshopify.com", settings)
    assert "shop15.myshopify.com" in adapters
    assert "shop16.myshopify.com" not in adapters
