"""Storefront configuration API: FastAPI entry point.

Registers middleware, the error handler, routers and lifecycle hooks. Each
vertical adds its own router under /api/.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.middleware import RequestLoggingMiddleware
from core.config import get_settings
from core.database import close_db, init_db
from core.errors import StorefrontError, TransientStorageError
from core.logging_setup import setup_logging

logger = logging.getLogger(__name__)

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

settings = get_settings()
setup_logging(settings)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup/shutdown hooks."""
    if settings.DB_CREATE_TABLES:
        await init_db()
    logger.info("Storefront configuration API started")
    yield
    await close_db()
    logger.info("Storefront configuration API shutting down")


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Storefront Config",
    description="Per-product out-of-stock, preorder and warranty configuration with back-in-stock subscriptions",
    version=VERSION,
    lifespan=lifespan,
)

# CORS (the product search is called from the admin extension)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    headers = {"Retry-After": "5"} if isinstance(exc, TransientStorageError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message},
        headers=headers,
    )


# ---------------------------------------------------------------------------
# Routers: verticals register here
# ---------------------------------------------------------------------------

from verticals.storefront.router import router as storefront_router  # noqa: E402

app.include_router(storefront_router, prefix="/api", tags=["Storefront"])


# ---------------------------------------------------------------------------
# Health & root
# ---------------------------------------------------------------------------

@app.get("/health")
async def health():
    return {"status": "healthy", "version": VERSION}


@app.get("/")
async def root():
    return {
        "name": "Storefront Config",
        "version": VERSION,
        "docs": "/docs",
        "verticals": ["storefront"],
    }
