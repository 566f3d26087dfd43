"""Shop and product identifier validation."""

import re

from core.errors import ValidationError

SHOP_DOMAIN_RE = re.compile(r"^[a-z0-9][a-z0-9\-]*\.myshopify\.com$")
PRODUCT_GID_RE = re.compile(r"^gid://shopify/Product/\d+$")


def validate_shop(shop: str | None) -> str:
    """Return the normalised shop domain or raise ValidationError."""
    normalised = (shop or "").strip().lower()
    if not SHOP_DOMAIN_RE.match(normalised):
        raise ValidationError(f"Malformed shop identifier: {shop!r}")
    return normalised


def validate_product_id(product_id: str | None) -> str:
    cleaned = (product_id or "").strip()
    if not cleaned:
        raise ValidationError("Product ID is required")
    return cleaned


def is_product_gid(value: str) -> bool:
    """True for ids of the form gid://shopify/Product/<digits>."""
    return bool(PRODUCT_GID_RE.match(value))


def parse_product_gids(raw: str) -> list[str]:
    """Split a comma-delimited id list, keeping only product GIDs.

    Order is preserved and duplicates are dropped.
    """
    seen: dict[str, None] = {}
    for part in raw.split(","):
        candidate = part.strip()
        if candidate and is_product_gid(candidate):
            seen.setdefault(candidate, None)
    return list(seen)


def split_ids(raw: str | None) -> tuple[str, ...]:
    """Split a comma-delimited id column into a tuple, no format check."""
    if not raw:
        return ()
    return tuple(part.strip() for part in raw.split(",") if part.strip())
