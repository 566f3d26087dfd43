"""Request-scoped shop identity and request logging.

The shop arrives in the X-Shop-Domain header (set by the embedded admin app
after session authentication). It is resolved by the `get_shop` dependency
and passed explicitly to every repository and engine call; nothing reads
it from ambient state.
"""

import logging
import time

from fastapi import Header
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from verticals.storefront.identifiers import validate_shop

logger = logging.getLogger("api.requests")

SHOP_HEADER = "X-Shop-Domain"


# ---------------------------------------------------------------------------
# Shop dependency
# ---------------------------------------------------------------------------

def get_shop(x_shop_domain: str | None = Header(default=None, alias=SHOP_HEADER)) -> str:
    """Return the validated shop domain for the current request.

    Usage::

        @router.get("/items")
        async def list_items(shop: str = Depends(get_shop)):
            return await repo.list(shop)
    """
    return validate_shop(x_shop_domain)


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status, shop and latency for every request."""

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s -> %s (%.1f ms) shop=%s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request.headers.get(SHOP_HEADER, "-"),
        )
        return response
