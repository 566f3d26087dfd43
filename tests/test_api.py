"""Test the storefront HTTP endpoints end to end."""
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from api.main import app
from core.database import get_session
from core.integrations.catalog import CatalogAdapter, CatalogProduct
from verticals.storefront.catalog import get_catalog_adapter

SHOP = "a.myshopify.com"
PRODUCT_1 = "gid://shopify/Product/1"
PRODUCT_2 = "gid://shopify/Product/2"


class FakeCatalog(CatalogAdapter):
    def __init__(self):
        self.search_calls: list[tuple[str, int]] = []
        self.id_calls: list[list[str]] = []
        self.products = {
            PRODUCT_1: CatalogProduct(PRODUCT_1, "Red Shoe", "https://cdn/1.webp"),
            PRODUCT_2: CatalogProduct(PRODUCT_2, "Blue Hat", None),
        }

    async def search_products(self, query, limit):
        self.search_calls.append((query, limit))
        return [p for p in self.products.values() if query.lower() in p.title.lower()]

    async def get_products_by_ids(self, ids):
        self.id_calls.append(list(ids))
        return [self.products[i] for i in ids if i in self.products]


@pytest.fixture
def catalog():
    return FakeCatalog()


@pytest_asyncio.fixture
async def client(session_factory, catalog):
    async def override_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_catalog_adapter] = lambda: catalog
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport, base_url="http://test", headers={"X-Shop-Domain": SHOP}
    ) as c:
        yield c
    app.dependency_overrides.clear()


# -- Catalog --

@pytest.mark.asyncio
async def test_search_returns_options(client, catalog):
    resp = await client.get("/api/products/search", params={"query": "red"})
    assert resp.status_code == 200
    assert resp.json() == {
        "products": [{"value": PRODUCT_1, "label": "Red Shoe", "media": "https://cdn/1.webp"}]
    }
    assert catalog.search_calls == [("red", 10)]


@pytest.mark.asyncio
async def test_empty_search_is_rejected_without_catalog_call(client, catalog):
    resp = await client.get("/api/products/search", params={"query": ""})
    assert resp.status_code == 400
    assert resp.json()["products"] == []
    assert "error" in resp.json()

    resp = await client.get("/api/products/search")
    assert resp.status_code == 400
    assert catalog.search_calls == []


@pytest.mark.asyncio
async def test_details_filters_non_gids(client, catalog):
    ids = f"{PRODUCT_1},not-a-gid,{PRODUCT_2}"
    resp = await client.get("/api/products/details", params={"ids": ids})
    assert resp.status_code == 200
    products = resp.json()["products"]
    assert len(products) <= 2
    assert catalog.id_calls == [[PRODUCT_1, PRODUCT_2]]
    assert products[0] == {
        "id": PRODUCT_1, "title": "Red Shoe", "featuredImage": {"url": "https://cdn/1.webp"},
    }
    assert products[1]["featuredImage"] is None


@pytest.mark.asyncio
async def test_details_with_no_valid_ids_is_empty_success(client, catalog):
    resp = await client.get("/api/products/details", params={"ids": "nope,also-nope"})
    assert resp.status_code == 200
    assert resp.json() == {"products": []}
    assert catalog.id_calls == []


@pytest.mark.asyncio
async def test_details_requires_ids(client):
    resp = await client.get("/api/products/details")
    assert resp.status_code == 400
    assert resp.json() == {"error": "Product IDs are required"}


# -- Configuration --

@pytest.mark.asyncio
async def test_config_requires_product_id(client):
    resp = await client.get("/api/product/config")
    assert resp.status_code == 400
    assert resp.json() == {"error": "Product ID is required"}


@pytest.mark.asyncio
async def test_config_missing_is_null(client):
    resp = await client.get("/api/product/config", params={"productId": PRODUCT_1})
    assert resp.status_code == 200
    assert resp.json() == {"config": None}


@pytest.mark.asyncio
async def test_save_out_of_stock_and_read_back(client):
    resp = await client.post("/api/product/config/out-of-stock", data={
        "productId": PRODUCT_1,
        "noStockEnabled": "on",
        "noStockButtonText": "Sold out",
        "noStockRestockDate": "garbage",
    })
    assert resp.status_code == 200
    assert resp.json() == {"success": True}

    config = (await client.get("/api/product/config", params={"productId": PRODUCT_1})).json()["config"]
    assert config["no_stock_enabled"] is True
    assert config["no_stock_button_text"] == "Sold out"
    assert config["no_stock_notify_form_enabled"] is False
    assert config["no_stock_restock_date"] is None
    assert config["preorder_enabled"] is False

    resp = await client.get("/api/products/configured")
    assert resp.json() == {"productIds": [PRODUCT_1]}


@pytest.mark.asyncio
async def test_save_requires_product_id(client):
    resp = await client.post("/api/product/config/out-of-stock", data={"noStockEnabled": "on"})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_invalid_warranty_form_is_400(client):
    resp = await client.post("/api/product/config/warranty", data={
        "productId": PRODUCT_1, "warrantyPriceType": "PRODUCT_FIXED",
    })
    assert resp.status_code == 400
    assert "warrantyPriceValue" in resp.json()["error"]


@pytest.mark.asyncio
async def test_effective_config_merges_shop_and_product(client):
    resp = await client.get("/api/product/effective", params={"productId": PRODUCT_1})
    warranty = resp.json()["effective"]["warranty"]
    assert warranty["enabled"] is False
    assert warranty["presentation"] == "POPUP"
    assert warranty["price_value"] == 10.0

    resp = await client.put("/api/shop/settings", json={
        "warranty_enabled": False, "warranty_default_percentage": 12.0,
    })
    assert resp.status_code == 200

    await client.post("/api/product/config/warranty", data={
        "productId": PRODUCT_1, "warrantyEnabledOverride": "true",
    })
    await client.post("/api/product/config/preorder", data={
        "productId": PRODUCT_1, "preorderEnabled": "on", "preorderTerms": "Ships soon",
    })

    effective = (await client.get(
        "/api/product/effective", params={"productId": PRODUCT_1}
    )).json()["effective"]
    assert effective["warranty"]["enabled"] is True
    assert effective["warranty"]["price_value"] == 12.0
    assert effective["preorder"]["block"]["enabled"] is True
    assert effective["out_of_stock"]["enabled"] is False


@pytest.mark.asyncio
async def test_shop_settings_defaults_and_merge(client):
    resp = await client.get("/api/shop/settings")
    assert resp.json()["configured"] is False
    assert resp.json()["settings"]["warranty_default_percentage"] == 10.0

    await client.put("/api/shop/settings", json={"warranty_global_description": "Cover"})
    resp = await client.put("/api/shop/settings", json={"warranty_default_presentation": "EMBED"})
    settings = resp.json()["settings"]
    assert settings["warranty_global_description"] == "Cover"
    assert settings["warranty_default_presentation"] == "EMBED"

    resp = await client.put("/api/shop/settings", json={"unknown": 1})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_delete_config(client):
    await client.post("/api/product/config/out-of-stock", data={"productId": PRODUCT_1})
    resp = await client.delete("/api/product/config", params={"productId": PRODUCT_1})
    assert resp.status_code == 204
    resp = await client.delete("/api/product/config", params={"productId": PRODUCT_1})
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_missing_or_malformed_shop_header(client):
    resp = await client.get("/api/products/configured", headers={"X-Shop-Domain": "evil.example.com"})
    assert resp.status_code == 400
    assert "Malformed shop" in resp.json()["error"]

    resp = await client.get("/api/shop/settings", headers={"X-Shop-Domain": ""})
    assert resp.status_code == 400


# -- Back in stock --

@pytest.mark.asyncio
async def test_subscription_lifecycle(client):
    resp = await client.post("/api/back-in-stock/subscribe", json={
        "productId": PRODUCT_1, "email": "ann@example.com", "name": "Ann",
    })
    assert resp.status_code == 201
    sub = resp.json()
    assert sub["status"] == "PENDING"

    resp = await client.get("/api/back-in-stock/pending", params={"productId": PRODUCT_1})
    assert resp.json()["count"] == 1

    resp = await client.post(f"/api/back-in-stock/{sub['id']}/notified")
    assert resp.status_code == 200
    assert resp.json()["status"] == "NOTIFIED"

    resp = await client.post(f"/api/back-in-stock/{sub['id']}/notified")
    assert resp.status_code == 409

    resp = await client.post("/api/back-in-stock/999/error")
    assert resp.status_code == 404

    resp = await client.get("/api/back-in-stock/subscriptions", params={"status": "NOTIFIED"})
    body = resp.json()
    assert body["pagination"]["total"] == 1
    assert body["data"][0]["customer_email"] == "ann@example.com"


@pytest.mark.asyncio
async def test_subscribe_rejects_bad_email(client):
    resp = await client.post("/api/back-in-stock/subscribe", json={
        "productId": PRODUCT_1, "email": "nope",
    })
    assert resp.status_code == 400


# -- Storage outages --

@pytest.mark.asyncio
async def test_storage_outage_is_503_with_retry_after(client, session_factory, monkeypatch):
    async def unavailable_session():
        async with session_factory() as session:
            async def lost_connection(*args, **kwargs):
                raise OperationalError("SELECT 1", {}, Exception("connection refused"))

            monkeypatch.setattr(session, "execute", lost_connection)
            yield session

    app.dependency_overrides[get_session] = unavailable_session
    resp = await client.get("/api/shop/settings")
    assert resp.status_code == 503
    assert resp.headers["Retry-After"] == "5"
    assert resp.json() == {"error": "Storage unavailable during get shop defaults"}
