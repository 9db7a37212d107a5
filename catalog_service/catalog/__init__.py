"""Catalog persistence.

ORM models for the ten catalog tables and the repositories that query them.
"""

from catalog_service.catalog.models import (
    AttributeDefinition,
    Category,
    CategoryAttribute,
    PackageOption,
    Product,
    ProductAttribute,
    ProductOption,
    ProductOptionValue,
    ProductVariant,
    VariantOptionValue,
)

__all__ = [
    "AttributeDefinition",
    "Category",
    "CategoryAttribute",
    "PackageOption",
    "Product",
    "ProductAttribute",
    "ProductOption",
    "ProductOptionValue",
    "ProductVariant",
    "VariantOptionValue",
]
