"""Catalog service main application module.

This module builds the FastAPI application and wires the store, cache,
middleware, exception handlers and routers.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI

from catalog_service.api import (
    attributes_router,
    categories_router,
    health_router,
    options_router,
    package_options_router,
    product_attributes_router,
    products_router,
    variant_listing_router,
    variants_router,
)
from catalog_service.api.errors import register_exception_handlers
from catalog_service.api.middleware import setup_middleware
from catalog_service.infrastructure.cache import CatalogCache
from catalog_service.infrastructure.config import Settings, settings as default_settings
from catalog_service.infrastructure.database import build_engine, build_session_factory, create_all
from catalog_service.infrastructure.logging import configure_logging

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the store and cache on startup and release them on shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        None after startup, cleanup happens after yield.
    """
    settings: Settings = app.state.settings
    configure_logging(settings)
    logger.info(
        "Starting catalog service",
        version=settings.api_version,
        debug=settings.debug,
    )

    engine = build_engine(settings)
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.cache = CatalogCache.from_settings(settings)

    if settings.create_tables:
        await create_all(engine)
        logger.info("Database tables created")

    yield

    # Shutdown
    logger.info("Shutting down catalog service")
    await app.state.cache.close()
    await engine.dispose()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application.

    Args:
        settings: Settings to use; the environment-loaded settings by default.

    Returns:
        Configured FastAPI application.
    """
    settings = settings or default_settings

    app = FastAPI(
        title="Catalog Service",
        description="Multi-tenant product catalog backend",
        version=settings.api_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings

    setup_middleware(app)
    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(categories_router)
    app.include_router(attributes_router)
    app.include_router(products_router)
    app.include_router(options_router)
    app.include_router(variants_router)
    app.include_router(variant_listing_router)
    app.include_router(product_attributes_router)
    app.include_router(package_options_router)

    return app


app = create_app()
