"""
FastAPI application entry point for the storefront backend.

This module creates the FastAPI app instance, installs middleware and
exception handlers, and registers all routers.
"""

import logging
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from storefront.config import settings
from storefront.routes.admin import router as admin_router
from storefront.routes.auth import router as auth_router
from storefront.routes.cart import router as cart_router
from storefront.routes.catalog import router as catalog_router
from storefront.routes.checkout import router as checkout_router
from storefront.routes.health import router as health_router
from storefront.routes.payments import router as payments_router
from storefront.routes.profile import router as profile_router
from storefront.routes.reviews import router as reviews_router
from storefront.routes.wishlists import router as wishlists_router
from storefront.services.rate_limit import RateLimitExceeded
from storefront.utils.constants import SECURITY_HEADERS

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


def _get_cors_origins() -> list[str]:
    """
    Get allowed CORS origins based on environment.

    - ENVIRONMENT=production: uses CORS_ALLOWED_ORIGINS (none allowed if unset)
    - anything else: CORS_ALLOWED_ORIGINS if set, otherwise the local Vite dev server

    Credentials (the sb_jwt and XSRF-TOKEN cookies) are allowed, so the
    wildcard origin is never used.
    """
    if settings.CORS_ALLOWED_ORIGINS:
        logger.info(f"CORS configured with {len(settings.CORS_ALLOWED_ORIGINS)} allowed origins")
        return settings.CORS_ALLOWED_ORIGINS

    if settings.is_production():
        logger.warning(
            "CORS_ALLOWED_ORIGINS not set in production. "
            "No web origins allowed. Set CORS_ALLOWED_ORIGINS for the storefront."
        )
        return []

    logger.info(f"CORS configured for {settings.ENVIRONMENT}: allowing local dev origins")
    return ["http://localhost:5173", "http://localhost:8080", "http://localhost:3000"]


# Create FastAPI app
app = FastAPI(
    title="Handloom Storefront API",
    description="Backend service for the handloom saree storefront",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc"
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Log validation errors and return them in the standard error shape.

    Request bodies are not logged: they may carry addresses and tokens.
    """
    logger.error(
        f"Validation error on {request.method} {request.url.path}: {exc.errors()}"
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "validation_error",
            "details": jsonable_errors(exc),
        }
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may hold exception instances that are not JSON serializable
    return [
        {key: value for key, value in error.items() if key != "ctx"}
        for error in exc.errors()
    ]


@app.exception_handler(RateLimitExceeded)
async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded):
    logger.warning(f"Rate limited: {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"error": "rate_limited", "details": str(exc) or "Too many requests"},
        headers={"Retry-After": "60"},
    )


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    for header, value in SECURITY_HEADERS.items():
        response.headers.setdefault(header, value)
    return response


# Configure CORS with environment-based origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=_get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(catalog_router)
app.include_router(reviews_router)
app.include_router(cart_router)
app.include_router(checkout_router)
app.include_router(payments_router)
app.include_router(wishlists_router)
app.include_router(profile_router)
app.include_router(admin_router)

logger.info("FastAPI app initialized successfully")
