"""Product API endpoints.

Provides:
- GET /api/products - filtered, sorted, paginated listing
- GET /api/products/search - relevance-ranked text search
- GET /api/products/filters - facet aggregates for the caller's scope
- GET /api/products/{id} - full product aggregate
- GET /api/products/{id}/related - related products of the same seller
- POST/PUT/DELETE /api/products[/{id}] - product writes
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status

from catalog_service.api.dependencies import (
    PaginationDep,
    ReaderDep,
    WriterDep,
    get_product_query_service,
    get_product_service,
)
from catalog_service.api.schemas import (
    ApiResponse,
    ErrorResponse,
    PaginatedResponse,
    ok,
    paginated,
)
from catalog_service.application import ProductQuery, ProductQueryService, ProductService
from catalog_service.application.requests import ProductCreate, ProductUpdate
from catalog_service.application.views import (
    ProductDetailView,
    ProductFilters,
    ProductSummaryView,
    RelatedProducts,
    SearchResults,
)

router = APIRouter(prefix="/api/products", tags=["Products"])

QueryServiceDep = Annotated[ProductQueryService, Depends(get_product_query_service)]
CommandServiceDep = Annotated[ProductService, Depends(get_product_service)]

READ_ERRORS = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}
WRITE_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}


# ============================================================================
# Dependencies
# ============================================================================


def get_product_query(
    category_id: Annotated[int | None, Query(alias="categoryId")] = None,
    include_subcategories: Annotated[bool, Query(alias="includeSubcategories")] = True,
    brand: Annotated[str | None, Query()] = None,
    min_price: Annotated[float | None, Query(alias="minPrice", ge=0)] = None,
    max_price: Annotated[float | None, Query(alias="maxPrice", ge=0)] = None,
    in_stock: Annotated[bool | None, Query(alias="inStock")] = None,
    is_popular: Annotated[bool | None, Query(alias="isPopular")] = None,
    sort_by: Annotated[str, Query(alias="sortBy")] = "created_at",
    sort_order: Annotated[str, Query(alias="sortOrder")] = "desc",
) -> ProductQuery:
    """Listing criteria from query parameters."""
    return ProductQuery(
        category_id=category_id,
        include_subcategories=include_subcategories,
        brand=brand or None,
        min_price=min_price,
        max_price=max_price,
        in_stock=in_stock,
        is_popular=is_popular,
        sort_by=sort_by,
        sort_order=sort_order,
    )


ProductQueryDep = Annotated[ProductQuery, Depends(get_product_query)]


def split_strategies(raw: str | None) -> list[str] | None:
    """Split a comma-separated strategies parameter."""
    if raw is None:
        return None
    return [name for name in raw.split(",") if name.strip()]


# ============================================================================
# Reads
# ============================================================================


@router.get(
    "",
    response_model=PaginatedResponse[ProductSummaryView],
    responses=READ_ERRORS,
    summary="List products",
)
async def list_products(
    query: ProductQueryDep,
    pagination: PaginationDep,
    actor: ReaderDep,
    service: QueryServiceDep,
) -> PaginatedResponse[ProductSummaryView]:
    """List products in the caller's seller scope.

    Price bounds are inclusive and must both hold for the same variant.
    A category filter includes its subcategories unless
    includeSubcategories=false.

    Args:
        query: Filter and sort criteria.
        pagination: Page and page size.
        actor: Caller and tenant scope.
        service: Product query service.

    Returns:
        One page of product summaries.
    """
    return paginated(await service.list_products(query, pagination, actor))


@router.get(
    "/search",
    response_model=ApiResponse[SearchResults],
    responses=READ_ERRORS,
    summary="Search products",
    description="Matches query tokens against name, brand, tags and short description.",
)
async def search_products(
    q: Annotated[str, Query(description="Search text")],
    query: ProductQueryDep,
    pagination: PaginationDep,
    actor: ReaderDep,
    service: QueryServiceDep,
) -> ApiResponse[SearchResults]:
    return ok(await service.search(q, query, pagination, actor))


@router.get(
    "/filters",
    response_model=ApiResponse[ProductFilters],
    responses=READ_ERRORS,
    summary="Filter facets",
    description="Categories, brands, price buckets, attributes, variant types and stock status.",
)
async def product_filters(actor: ReaderDep, service: QueryServiceDep) -> ApiResponse[ProductFilters]:
    return ok(await service.filters(actor))


@router.get(
    "/{product_id}",
    response_model=ApiResponse[ProductDetailView],
    responses=READ_ERRORS,
    summary="Get product",
)
async def get_product(product_id: int, actor: ReaderDep, service: QueryServiceDep) -> ApiResponse[ProductDetailView]:
    """Full product aggregate.

    Products of other sellers are reported as not found.
    """
    return ok(await service.get_product(product_id, actor))


@router.get(
    "/{product_id}/related",
    response_model=ApiResponse[RelatedProducts],
    responses=READ_ERRORS,
    summary="Related products",
)
async def related_products(
    product_id: int,
    pagination: PaginationDep,
    actor: ReaderDep,
    service: QueryServiceDep,
    strategies: Annotated[
        str | None,
        Query(description="Comma-separated strategy names, or 'all'"),
    ] = None,
) -> ApiResponse[RelatedProducts]:
    return ok(
        await service.related_products(product_id, split_strategies(strategies), pagination, actor)
    )


# ============================================================================
# Writes
# ============================================================================


@router.post(
    "",
    response_model=ApiResponse[ProductDetailView],
    status_code=status.HTTP_201_CREATED,
    responses=WRITE_ERRORS,
    summary="Create product",
)
async def create_product(
    request: ProductCreate, actor: WriterDep, service: CommandServiceDep
) -> ApiResponse[ProductDetailView]:
    """Create a product with its options, variants, attributes and package options.

    Everything is written in one transaction; any failure leaves no rows.

    Args:
        request: Product aggregate.
        actor: Seller, or admin acting for sellerId / X-Seller-ID.
        service: Product command service.

    Returns:
        The created product as returned by GET /api/products/{id}.
    """
    return ok(await service.create(request, actor), message="Product created")


@router.put(
    "/{product_id}",
    response_model=ApiResponse[ProductDetailView],
    responses=WRITE_ERRORS,
    summary="Update product",
    description="Product-level fields only; options and variants have their own endpoints.",
)
async def update_product(
    product_id: int, request: ProductUpdate, actor: WriterDep, service: CommandServiceDep
) -> ApiResponse[ProductDetailView]:
    return ok(await service.update(product_id, request, actor), message="Product updated")


@router.delete(
    "/{product_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=WRITE_ERRORS,
    summary="Delete product",
)
async def delete_product(product_id: int, actor: WriterDep, service: CommandServiceDep) -> Response:
    await service.delete(product_id, actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
