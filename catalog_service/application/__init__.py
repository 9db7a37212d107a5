"""Application layer module.

Contains the command and query services (use cases) that orchestrate
catalog rules over the repositories.
"""

from catalog_service.application.attribute_service import AttributeService
from catalog_service.application.category_service import CategoryService
from catalog_service.application.option_service import (
    ProductOptionService,
    ProductOptionValueService,
)
from catalog_service.application.product_attribute_service import (
    PackageOptionService,
    ProductAttributeService,
)
from catalog_service.application.product_query_service import ProductQuery, ProductQueryService
from catalog_service.application.product_service import ProductService
from catalog_service.application.variant_query_service import VariantQueryService
from catalog_service.application.variant_service import VariantBulkService, VariantService

__all__ = [
    "AttributeService",
    "CategoryService",
    "PackageOptionService",
    "ProductAttributeService",
    "ProductOptionService",
    "ProductOptionValueService",
    "ProductQuery",
    "ProductQueryService",
    "ProductService",
    "VariantBulkService",
    "VariantQueryService",
    "VariantService",
]
