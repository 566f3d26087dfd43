"""Storefront API router: product configuration, catalog lookups, subscriptions.

Demonstrates the standard router pattern:
- Shop identity injected explicitly via Depends(get_shop)
- Repository injection via FastAPI Depends
- Form posts decoded once in verticals.storefront.forms
- Domain errors raised and rendered by the app-level exception handler
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from api.middleware import get_shop
from core.config import get_settings
from core.errors import NotFoundError, ValidationError
from core.integrations.catalog import CatalogAdapter
from verticals.storefront.catalog import get_catalog_adapter
from verticals.storefront.config import config
from verticals.storefront.forms import (
    decode_out_of_stock,
    decode_preorder,
    decode_product_id,
    decode_warranty,
)
from verticals.storefront.identifiers import parse_product_gids, validate_product_id
from verticals.storefront.models.domain import FeatureBlock, SubscriptionStatus
from verticals.storefront.models.schemas import ShopSettingsUpdate, SubscriptionCreate
from verticals.storefront.repository import (
    ProductConfigurationRepository,
    ShopSettingsRepository,
    get_product_configuration_repository,
    get_shop_settings_repository,
)
from verticals.storefront.resolution import resolve
from verticals.storefront.subscriptions import SubscriptionTracker, get_subscription_tracker

router = APIRouter()


# ============================================================================
# Catalog Endpoints
# ============================================================================

@router.get("/products/search")
async def search_products(
    query: Optional[str] = None,
    catalog: CatalogAdapter = Depends(get_catalog_adapter),
):
    """Autocomplete products by title for the admin picker."""
    if not query or not query.strip():
        return JSONResponse(
            status_code=400,
            content={"products": [], "error": "Search query is required"},
        )

    products = await catalog.search_products(query.strip(), get_settings().CATALOG_SEARCH_LIMIT)
    return {
        "products": [
            {"value": p.id, "label": p.title, "media": p.thumbnail_url} for p in products
        ]
    }


@router.get("/products/details")
async def get_product_details(
    ids: Optional[str] = None,
    catalog: CatalogAdapter = Depends(get_catalog_adapter),
):
    """Titles and thumbnails for a comma-delimited list of product GIDs."""
    if not ids:
        raise ValidationError("Product IDs are required")

    product_ids = parse_product_gids(ids)
    if not product_ids:
        return {"products": []}

    products = await catalog.get_products_by_ids(product_ids)
    return {
        "products": [
            {
                "id": p.id,
                "title": p.title,
                "featuredImage": {"url": p.thumbnail_url} if p.thumbnail_url else None,
            }
            for p in products
        ]
    }


# ============================================================================
# Product Configuration Endpoints
# ============================================================================

@router.get("/products/configured")
async def list_configured_products(
    shop: str = Depends(get_shop),
    repo: ProductConfigurationRepository = Depends(get_product_configuration_repository),
):
    """Product ids with a saved configuration, most recently changed first."""
    product_ids = await repo.list_configured_products(shop, order_by_recency=True)
    return {"productIds": product_ids}


@router.get("/product/config")
async def get_product_config(
    product_id: Optional[str] = Query(None, alias="productId"),
    shop: str = Depends(get_shop),
    repo: ProductConfigurationRepository = Depends(get_product_configuration_repository),
):
    """Stored override for one product, or null when it has none."""
    product_id = validate_product_id(product_id)
    config_row = await repo.get_product_override_dict(shop, product_id)
    return {"config": config_row}


@router.delete("/product/config", status_code=204)
async def delete_product_config(
    product_id: Optional[str] = Query(None, alias="productId"),
    shop: str = Depends(get_shop),
    repo: ProductConfigurationRepository = Depends(get_product_configuration_repository),
):
    """Reset a product to "not configured"."""
    deleted = await repo.delete_product_override(shop, validate_product_id(product_id))
    if not deleted:
        raise NotFoundError("Product configuration not found")


async def _save_block(request: Request, shop: str, repo: ProductConfigurationRepository, decoder):
    form = await request.form()
    product_id = decode_product_id(form)
    block: FeatureBlock = decoder(form)
    await repo.upsert_product_override(shop, product_id, block)
    return {"success": True}


@router.post("/product/config/out-of-stock")
async def save_out_of_stock(
    request: Request,
    shop: str = Depends(get_shop),
    repo: ProductConfigurationRepository = Depends(get_product_configuration_repository),
):
    """Save the out-of-stock block from the editor form."""
    return await _save_block(request, shop, repo, decode_out_of_stock)


@router.post("/product/config/preorder")
async def save_preorder(
    request: Request,
    shop: str = Depends(get_shop),
    repo: ProductConfigurationRepository = Depends(get_product_configuration_repository),
):
    """Save the preorder block from the editor form."""
    return await _save_block(request, shop, repo, decode_preorder)


@router.post("/product/config/warranty")
async def save_warranty(
    request: Request,
    shop: str = Depends(get_shop),
    repo: ProductConfigurationRepository = Depends(get_product_configuration_repository),
):
    """Save the warranty block from the editor form."""
    return await _save_block(request, shop, repo, decode_warranty)


@router.get("/product/effective")
async def get_effective_config(
    product_id: Optional[str] = Query(None, alias="productId"),
    shop: str = Depends(get_shop),
    shops: ShopSettingsRepository = Depends(get_shop_settings_repository),
    products: ProductConfigurationRepository = Depends(get_product_configuration_repository),
):
    """Configuration the storefront should apply, after inheritance."""
    product_id = validate_product_id(product_id)
    effective = resolve(
        await shops.get_shop_defaults(shop),
        await products.get_product_override(shop, product_id),
    )
    return {"productId": product_id, "effective": effective}


# ============================================================================
# Shop Settings Endpoints
# ============================================================================

@router.get("/shop/settings")
async def get_shop_settings(
    shop: str = Depends(get_shop),
    repo: ShopSettingsRepository = Depends(get_shop_settings_repository),
):
    """Shop defaults; `configured` is false when the system defaults apply."""
    defaults = await repo.get_shop_defaults(shop)
    if defaults is None:
        return {
            "configured": False,
            "settings": {
                "shop": shop,
                "warranty_enabled": config.warranty.enabled,
                "warranty_default_presentation": config.warranty.presentation,
                "warranty_default_percentage": config.warranty.percentage,
                "warranty_global_description": None,
                "warranty_product_id": None,
            },
        }
    return {"configured": True, "settings": defaults}


@router.put("/shop/settings")
async def update_shop_settings(
    request: ShopSettingsUpdate,
    shop: str = Depends(get_shop),
    repo: ShopSettingsRepository = Depends(get_shop_settings_repository),
):
    """Merge the supplied fields into the shop defaults."""
    updates = request.model_dump(exclude_unset=True)
    defaults = await repo.upsert_shop_defaults(shop, updates)
    return {"configured": True, "settings": defaults}


# ============================================================================
# Back-in-stock Endpoints
# ============================================================================

@router.post("/back-in-stock/subscribe", status_code=201)
async def subscribe(
    request: SubscriptionCreate,
    shop: str = Depends(get_shop),
    tracker: SubscriptionTracker = Depends(get_subscription_tracker),
):
    """Register a shopper for a restock notification."""
    return await tracker.subscribe(
        shop,
        request.product_id,
        request.email,
        name=request.name,
        phone=request.phone,
    )


@router.get("/back-in-stock/pending")
async def list_pending(
    product_id: Optional[str] = Query(None, alias="productId"),
    shop: str = Depends(get_shop),
    tracker: SubscriptionTracker = Depends(get_subscription_tracker),
):
    """Pending subscribers for a product, earliest first."""
    subscriptions = await tracker.list_pending(shop, validate_product_id(product_id))
    return {"data": subscriptions, "count": len(subscriptions)}


@router.get("/back-in-stock/subscriptions")
async def list_subscriptions(
    product_id: Optional[str] = Query(None, alias="productId"),
    status: Optional[SubscriptionStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(
        config.subscriptions.default_page_size, ge=1, le=config.subscriptions.max_page_size
    ),
    shop: str = Depends(get_shop),
    tracker: SubscriptionTracker = Depends(get_subscription_tracker),
):
    """All subscriptions for the shop with optional product/status filters."""
    items, total = await tracker.list(
        shop,
        page=page,
        limit=limit,
        filters={"product_id": product_id, "status": status.value if status else None},
    )
    return {
        "data": items,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": (total + limit - 1) // limit,
        },
    }


@router.post("/back-in-stock/{subscription_id}/notified")
async def mark_notified(
    subscription_id: int,
    shop: str = Depends(get_shop),
    tracker: SubscriptionTracker = Depends(get_subscription_tracker),
):
    return await tracker.mark_notified(shop, subscription_id)


@router.post("/back-in-stock/{subscription_id}/error")
async def mark_error(
    subscription_id: int,
    shop: str = Depends(get_shop),
    tracker: SubscriptionTracker = Depends(get_subscription_tracker),
):
    return await tracker.mark_error(shop, subscription_id)
