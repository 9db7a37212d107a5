"""Repositories over the catalog tables."""

from catalog_service.catalog.repositories.attribute import AttributeRepository
from catalog_service.catalog.repositories.category import CategoryRepository
from catalog_service.catalog.repositories.option import OptionRepository
from catalog_service.catalog.repositories.product import ProductFilter, ProductRepository
from catalog_service.catalog.repositories.product_attribute import (
    PackageOptionRepository,
    ProductAttributeRepository,
)
from catalog_service.catalog.repositories.variant import VariantFilter, VariantRepository

__all__ = [
    "AttributeRepository",
    "CategoryRepository",
    "OptionRepository",
    "PackageOptionRepository",
    "ProductAttributeRepository",
    "ProductFilter",
    "ProductRepository",
    "VariantFilter",
    "VariantRepository",
]
