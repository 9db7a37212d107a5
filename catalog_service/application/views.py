"""Read records returned by catalog services.

Plain pydantic records serialised with camelCase keys. Services assemble
them from ORM rows; the API layer wraps them in the response envelope.
"""

from datetime import datetime

from pydantic import Field

from catalog_service.application.base import CamelModel


# ============================================================================
# Categories & attributes
# ============================================================================


class CategoryView(CamelModel):
    id: int
    name: str
    description: str | None = None
    parent_id: int | None = None
    seller_id: int | None = None
    created_at: datetime
    updated_at: datetime


class CategoryTreeNode(CategoryView):
    children: list["CategoryTreeNode"] = Field(default_factory=list)


class AttributeDefinitionView(CamelModel):
    id: int
    key: str
    name: str
    data_type: str
    unit: str | None = None
    description: str | None = None
    allowed_values: list[str] | None = None
    created_at: datetime
    updated_at: datetime


class CategoryAttributeView(CamelModel):
    """Attribute as seen from a category, own or inherited."""

    attribute_id: int
    key: str
    name: str
    data_type: str
    unit: str | None = None
    allowed_values: list[str] | None = None
    is_required: bool
    is_searchable: bool
    is_filterable: bool
    sort_order: int
    default_value: str | None = None
    category_id: int
    inherited: bool


# ============================================================================
# Options & variants
# ============================================================================


class OptionValueView(CamelModel):
    id: int
    option_id: int
    value: str
    display_name: str
    color_code: str | None = None
    position: int


class OptionView(CamelModel):
    id: int
    product_id: int
    name: str
    display_name: str
    position: int
    values: list[OptionValueView] = Field(default_factory=list)


class SelectedOptionView(CamelModel):
    option_id: int
    option_name: str
    option_display_name: str
    value_id: int
    value: str
    value_display_name: str
    color_code: str | None = None


class VariantView(CamelModel):
    id: int
    product_id: int
    sku: str
    price: float
    images: list[str]
    allow_purchase: bool
    is_default: bool
    is_popular: bool
    position: int
    selected_options: list[SelectedOptionView] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class ProductAttributeView(CamelModel):
    id: int
    attribute_id: int
    key: str
    name: str
    data_type: str
    unit: str | None = None
    value: str
    sort_order: int


class PackageOptionView(CamelModel):
    id: int
    product_id: int
    name: str
    description: str | None = None
    price: float
    quantity: int


# ============================================================================
# Products
# ============================================================================


class PriceRange(CamelModel):
    min: float
    max: float


class VariantPreviewOption(CamelModel):
    name: str
    display_name: str
    available_values: list[str]


class VariantPreview(CamelModel):
    total_variants: int
    options: list[VariantPreviewOption] = Field(default_factory=list)


class ProductSummaryView(CamelModel):
    """Listing record with aggregated variant information."""

    id: int
    name: str
    brand: str | None = None
    base_sku: str | None = None
    short_description: str | None = None
    tags: list[str] = Field(default_factory=list)
    category_id: int
    seller_id: int
    has_variants: bool
    allow_purchase: bool
    price_range: PriceRange | None = None
    images: list[str] = Field(default_factory=list)
    variant_preview: VariantPreview | None = None
    created_at: datetime
    updated_at: datetime


class CategoryRef(CamelModel):
    id: int
    name: str


class CategoryBreadcrumb(CategoryRef):
    parent: CategoryRef | None = None


class ProductDetailView(ProductSummaryView):
    long_description: str | None = None
    category: CategoryBreadcrumb | None = None
    options: list[OptionView] = Field(default_factory=list)
    variants: list[VariantView] = Field(default_factory=list)
    attributes: list[ProductAttributeView] = Field(default_factory=list)
    package_options: list[PackageOptionView] = Field(default_factory=list)


# ============================================================================
# Search, facets, related products
# ============================================================================


class SearchResultView(ProductSummaryView):
    relevance_score: float
    matched_fields: list[str]


class SearchResults(CamelModel):
    query: str
    results: list[SearchResultView]
    total: int
    search_time: float = Field(..., description="Milliseconds spent searching")


class CategoryFacet(CamelModel):
    id: int
    name: str
    product_count: int
    children: list["CategoryFacet"] = Field(default_factory=list)


class BrandFacet(CamelModel):
    name: str
    count: int


class PriceBucket(CamelModel):
    min: float
    max: float
    count: int


class PriceFacet(CamelModel):
    min: float
    max: float
    buckets: list[PriceBucket] = Field(default_factory=list)


class ValueCount(CamelModel):
    value: str
    count: int


class AttributeFacet(CamelModel):
    key: str
    name: str
    unit: str | None = None
    values: list[ValueCount]


class VariantTypeFacet(CamelModel):
    name: str
    display_name: str
    values: list[ValueCount]


class StockStatus(CamelModel):
    in_stock: int
    out_of_stock: int
    total: int


class ProductFilters(CamelModel):
    categories: list[CategoryFacet]
    brands: list[BrandFacet]
    price_range: PriceFacet | None = None
    attributes: list[AttributeFacet]
    variant_types: list[VariantTypeFacet]
    stock_status: StockStatus


class RelatedProductView(ProductSummaryView):
    score: float
    strategy_used: str
    relation_reason: str


class RelatedProductsMeta(CamelModel):
    strategies_used: list[str]
    avg_score: float
    total_strategies: int


class RelatedProducts(CamelModel):
    related_products: list[RelatedProductView]
    total: int
    meta: RelatedProductsMeta


# ============================================================================
# Bulk results
# ============================================================================


class BulkUpdateResult(CamelModel):
    updated_count: int


class VariantBulkResult(BulkUpdateResult):
    variants: list[VariantView]
