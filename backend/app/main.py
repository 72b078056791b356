"""
Storefront Backend Application.

FastAPI application serving the catalog, checkout and
payment API plus the admin back office.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from loguru import logger

from app.api.v1 import router as api_v1_router
from app.core.config import settings
from app.core.database import close_db, init_db
from app.core.exceptions import ConfigurationError, StoreError


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info("Starting Storefront Backend...")

    if not settings.jwt_secret_key:
        logger.warning("JWT_SECRET_KEY not configured - login will fail")
    if not settings.razorpay_key_secret:
        logger.warning("RAZORPAY_KEY_SECRET not configured - card payments will fail")

    # Initialize database
    await init_db()
    logger.info("Database initialized")

    logger.info("Storefront Backend started successfully")

    yield

    # Shutdown
    logger.info("Shutting down Storefront Backend...")

    # Close database
    await close_db()

    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Storefront Backend

    ## Features

    - **Catalog**: Products and categories with search and pagination
    - **Auth**: Registration, login and role-based access
    - **Checkout**: Orders with Razorpay payments
    - **Admin**: Product, category and order management

    ## Documentation

    - [API Docs](/docs) - Interactive Swagger UI
    - [ReDoc](/redoc) - Alternative documentation
    """,
    openapi_url=f"{settings.api_v1_prefix}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    default_response_class=ORJSONResponse,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ==================== Error handlers ====================


def _field_errors(exc: RequestValidationError) -> dict[str, list[str]]:
    """Group pydantic errors by field path, dropping the body/query prefix."""
    fields: dict[str, list[str]] = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        if len(loc) > 1 and loc[0] in ("body", "query", "path", "cookie", "header"):
            loc = loc[1:]
        fields.setdefault(".".join(loc) or "body", []).append(error.get("msg", "Invalid value"))
    return fields


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> ORJSONResponse:
    return ORJSONResponse(
        status_code=400,
        content={"error": "Invalid request data", "details": _field_errors(exc)},
    )


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError) -> ORJSONResponse:
    if isinstance(exc, ConfigurationError):
        logger.error(f"Configuration error on {request.url.path}: {exc.message}")
        return ORJSONResponse(
            status_code=exc.status_code,
            content={"error": "Internal server error"},
        )
    return ORJSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> ORJSONResponse:
    logger.opt(exception=exc).error(
        f"Unhandled error on {request.method} {request.url.path}"
    )
    return ORJSONResponse(status_code=500, content={"error": "Internal server error"})


# Include API router
app.include_router(api_v1_router, prefix=settings.api_v1_prefix)


@app.get("/health", tags=["System"])
async def health_check() -> dict:
    """Health check endpoint for monitoring."""
    return {
        "status": "healthy",
        "version": settings.app_version,
    }


@app.get("/", tags=["System"])
async def root() -> dict:
    """Root endpoint with API information."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "api": settings.api_v1_prefix,
    }
