"""API layer module.

Contains FastAPI routers, dependencies and response envelopes.
"""

from catalog_service.api.attributes import router as attributes_router
from catalog_service.api.categories import router as categories_router
from catalog_service.api.health import router as health_router
from catalog_service.api.options import router as options_router
from catalog_service.api.package_options import router as package_options_router
from catalog_service.api.product_attributes import router as product_attributes_router
from catalog_service.api.products import router as products_router
from catalog_service.api.variants import listing_router as variant_listing_router
from catalog_service.api.variants import router as variants_router

__all__ = [
    "attributes_router",
    "categories_router",
    "health_router",
    "options_router",
    "package_options_router",
    "product_attributes_router",
    "products_router",
    "variant_listing_router",
    "variants_router",
]
