"""Request payloads for catalog commands.

Update payloads are partial: services read ``present_fields()`` so that an
absent field is left alone while an explicit null or empty value is applied.
"""

from pydantic import ConfigDict, Field, field_validator

from catalog_service.application.base import CamelModel
from catalog_service.domain.attribute_values import AttributeDataType
from catalog_service.domain.normalization import is_valid_hex_color

MAX_TAGS = 20


# ============================================================================
# Categories
# ============================================================================


class CategoryCreate(CamelModel):
    name: str = Field(..., min_length=3, max_length=100)
    description: str | None = Field(None, max_length=500)
    parent_id: int | None = None
    seller_id: int | None = None


class CategoryUpdate(CamelModel):
    name: str | None = Field(None, min_length=3, max_length=100)
    description: str | None = Field(None, max_length=500)
    parent_id: int | None = None


class CategoryAttributeLink(CamelModel):
    """Flags for linking an attribute definition to a category."""

    attribute_id: int
    is_required: bool = False
    is_searchable: bool = False
    is_filterable: bool = False
    sort_order: int = 0
    default_value: str | None = Field(None, max_length=255)


# ============================================================================
# Attribute definitions
# ============================================================================


class AttributeCreate(CamelModel):
    key: str = Field(..., min_length=3, max_length=50)
    name: str = Field(..., min_length=1, max_length=100)
    data_type: AttributeDataType = AttributeDataType.STRING
    unit: str | None = Field(None, max_length=20)
    description: str | None = Field(None, max_length=500)
    allowed_values: list[str] | None = None


class AttributeCreateForCategory(AttributeCreate):
    """Attribute definition plus the flags of its link to a category."""

    is_required: bool = False
    is_searchable: bool = False
    is_filterable: bool = False
    sort_order: int = 0
    default_value: str | None = Field(None, max_length=255)


class AttributeUpdate(CamelModel):
    # key and data_type are accepted only so they can be rejected explicitly.
    key: str | None = None
    data_type: AttributeDataType | None = None
    name: str | None = Field(None, min_length=1, max_length=100)
    unit: str | None = Field(None, max_length=20)
    description: str | None = Field(None, max_length=500)
    allowed_values: list[str] | None = None


# ============================================================================
# Options
# ============================================================================


class OptionValueCreate(CamelModel):
    value: str = Field(..., min_length=1, max_length=100)
    display_name: str | None = Field(None, max_length=100)
    color_code: str | None = None
    position: int | None = None

    @field_validator("color_code")
    @classmethod
    def check_color_code(cls, v: str | None) -> str | None:
        if v is not None and not is_valid_hex_color(v):
            raise ValueError("colorCode must be a hex color such as #ff0000")
        return v


class OptionValueUpdate(CamelModel):
    value: str | None = Field(None, min_length=1, max_length=100)
    display_name: str | None = Field(None, max_length=100)
    color_code: str | None = None
    position: int | None = None

    @field_validator("color_code")
    @classmethod
    def check_color_code(cls, v: str | None) -> str | None:
        if v is not None and not is_valid_hex_color(v):
            raise ValueError("colorCode must be a hex color such as #ff0000")
        return v


class OptionValueBulkUpdateItem(OptionValueUpdate):
    value_id: int


class OptionCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=50)
    display_name: str | None = Field(None, max_length=100)
    position: int | None = None
    values: list[OptionValueCreate] = Field(default_factory=list)


class OptionUpdate(CamelModel):
    name: str | None = Field(None, min_length=1, max_length=50)
    display_name: str | None = Field(None, max_length=100)
    position: int | None = None


class OptionBulkUpdateItem(OptionUpdate):
    option_id: int


class OptionBulkUpdate(CamelModel):
    options: list[OptionBulkUpdateItem] = Field(..., min_length=1)


class OptionValueBulkCreate(CamelModel):
    values: list[OptionValueCreate] = Field(..., min_length=1)


class OptionValueBulkUpdate(CamelModel):
    values: list[OptionValueBulkUpdateItem] = Field(..., min_length=1)


# ============================================================================
# Variants
# ============================================================================


class VariantCreate(CamelModel):
    """New variant. ``options`` maps option name to value, e.g. ``{"color": "red"}``."""

    sku: str = Field(..., min_length=1, max_length=100)
    price: float = Field(..., gt=0)
    images: list[str] = Field(default_factory=list)
    allow_purchase: bool = True
    is_default: bool = False
    is_popular: bool = False
    position: int | None = None
    options: dict[str, str] = Field(default_factory=dict)


class VariantUpdate(CamelModel):
    sku: str | None = Field(None, min_length=1, max_length=100)
    price: float | None = Field(None, gt=0)
    images: list[str] | None = None
    allow_purchase: bool | None = None
    is_default: bool | None = None
    is_popular: bool | None = None
    position: int | None = None
    options: dict[str, str] | None = None


class VariantBulkUpdateItem(CamelModel):
    id: int
    sku: str | None = Field(None, min_length=1, max_length=100)
    price: float | None = Field(None, gt=0)
    images: list[str] | None = None
    allow_purchase: bool | None = None
    is_default: bool | None = None
    is_popular: bool | None = None
    position: int | None = None


class VariantBulkUpdate(CamelModel):
    variants: list[VariantBulkUpdateItem] = Field(..., min_length=1)


# ============================================================================
# Product attributes & package options
# ============================================================================


class ProductAttributeInput(CamelModel):
    attribute_id: int
    value: str = Field(..., max_length=1000)
    sort_order: int = 0


class ProductAttributeUpdate(CamelModel):
    value: str | None = Field(None, max_length=1000)
    sort_order: int | None = None


class ProductAttributeBulkUpdate(CamelModel):
    attributes: list[ProductAttributeInput] = Field(..., min_length=1)


class PackageOptionCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    price: float = Field(..., gt=0)
    quantity: int = Field(1, gt=0)


class PackageOptionUpdate(CamelModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    price: float | None = Field(None, gt=0)
    quantity: int | None = Field(None, gt=0)


# ============================================================================
# Products
# ============================================================================


class ProductCreate(CamelModel):
    """Full product aggregate: product row, options, variants, attributes."""

    name: str = Field(..., min_length=1, max_length=200)
    category_id: int
    brand: str | None = Field(None, max_length=100)
    base_sku: str | None = Field(None, max_length=100)
    short_description: str | None = Field(None, max_length=500)
    long_description: str | None = None
    tags: list[str] = Field(default_factory=list, max_length=MAX_TAGS)
    # Honoured for admin callers only.
    seller_id: int | None = None
    options: list[OptionCreate] = Field(default_factory=list)
    variants: list[VariantCreate] = Field(..., min_length=1)
    attributes: list[ProductAttributeInput] = Field(default_factory=list)
    package_options: list[PackageOptionCreate] = Field(default_factory=list)


class ProductUpdate(CamelModel):
    """Product-level fields only. The owning seller cannot be changed."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=1, max_length=200)
    category_id: int | None = None
    brand: str | None = Field(None, max_length=100)
    base_sku: str | None = Field(None, max_length=100)
    short_description: str | None = Field(None, max_length=500)
    long_description: str | None = None
    tags: list[str] | None = Field(None, max_length=MAX_TAGS)
