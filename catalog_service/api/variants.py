"""Variant API endpoints.

Provides:
- GET /api/products/{pid}/variants - variants of one product
- GET /api/products/{pid}/variants/find - lookup by option selection
- PUT /api/products/{pid}/variants/bulk - atomic multi-variant patch
- GET/POST/PUT/DELETE /api/products/{pid}/variants[/{vid}]
- GET /api/variants - cross-product variant listing
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response, status

from catalog_service.api.dependencies import (
    PaginationDep,
    ReaderDep,
    WriterDep,
    get_variant_bulk_service,
    get_variant_query_service,
    get_variant_service,
)
from catalog_service.api.schemas import ApiResponse, ErrorResponse, PaginatedResponse, ok, paginated
from catalog_service.application import VariantBulkService, VariantQueryService, VariantService
from catalog_service.application.requests import VariantBulkUpdate, VariantCreate, VariantUpdate
from catalog_service.application.views import VariantBulkResult, VariantView
from catalog_service.catalog.repositories import VariantFilter
from catalog_service.domain.exceptions import ValidationError

router = APIRouter(prefix="/api/products/{product_id}/variants", tags=["Variants"])
listing_router = APIRouter(prefix="/api/variants", tags=["Variants"])

VariantServiceDep = Annotated[VariantService, Depends(get_variant_service)]
BulkServiceDep = Annotated[VariantBulkService, Depends(get_variant_bulk_service)]
QueryServiceDep = Annotated[VariantQueryService, Depends(get_variant_query_service)]

# Query parameters of GET /api/variants that are not option filters
LISTING_PARAMS = {
    "ids",
    "productIds",
    "sellerId",
    "skuPrefix",
    "minPrice",
    "maxPrice",
    "allowPurchase",
    "isDefault",
    "page",
    "limit",
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
# Helpers
# ============================================================================


def parse_id_list(raw: str | None, field: str) -> list[int] | None:
    """Parse ``1,2,3`` into ints.

    Raises:
        ValidationError: A member is not a positive integer.
    """
    if raw is None or not raw.strip():
        return None
    ids = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        if not part.isdigit() or int(part) <= 0:
            raise ValidationError.for_field(field, f"{field} must be a comma-separated list of positive integers")
        ids.append(int(part))
    return ids


# ============================================================================
# Per-product endpoints
# ============================================================================


@router.get(
    "",
    response_model=ApiResponse[list[VariantView]],
    responses={404: {"model": ErrorResponse}},
    summary="List product variants",
)
async def list_product_variants(
    product_id: int, actor: ReaderDep, service: QueryServiceDep
) -> ApiResponse[list[VariantView]]:
    return ok(await service.list_for_product(product_id, actor))


@router.get(
    "/find",
    response_model=ApiResponse[VariantView],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
    summary="Find variant by options",
    description="Query parameters are option selections, e.g. ?color=red&size=m.",
)
async def find_variant(
    product_id: int, request: Request, actor: ReaderDep, service: QueryServiceDep
) -> ApiResponse[VariantView]:
    """Find the variant identified by an option selection.

    A partial selection is accepted when it narrows the product down to a
    single variant.

    Args:
        product_id: Product ID.
        request: Request whose query parameters carry the selection.
        actor: Caller and tenant scope.
        service: Variant query service.

    Returns:
        The matching variant.

    Raises:
        InvalidOptionError: Unknown option name.
        VariantNotFoundWithOptionsError: Nothing matches.
        AmbiguousSelectionError: Several variants match.
    """
    selections = dict(request.query_params)
    if not selections:
        raise ValidationError.for_field("options", "At least one option selection is required")
    return ok(await service.find_by_options(product_id, selections, actor))


@router.put(
    "/bulk",
    response_model=ApiResponse[VariantBulkResult],
    responses=WRITE_ERRORS,
    summary="Bulk update variants",
    description="Every variant must belong to the product; all patches apply or none do.",
)
async def bulk_update_variants(
    product_id: int, request: VariantBulkUpdate, actor: WriterDep, service: BulkServiceDep
) -> ApiResponse[VariantBulkResult]:
    variants = await service.bulk_update(product_id, request, actor)
    return ok(VariantBulkResult(updated_count=len(variants), variants=variants), message="Variants updated")


@router.get(
    "/{variant_id}",
    response_model=ApiResponse[VariantView],
    responses={404: {"model": ErrorResponse}},
    summary="Get variant",
)
async def get_variant(
    product_id: int, variant_id: int, actor: ReaderDep, service: QueryServiceDep
) -> ApiResponse[VariantView]:
    return ok(await service.get_variant(product_id, variant_id, actor))


@router.post(
    "",
    response_model=ApiResponse[VariantView],
    status_code=status.HTTP_201_CREATED,
    responses=WRITE_ERRORS,
    summary="Create variant",
)
async def create_variant(
    product_id: int, request: VariantCreate, actor: WriterDep, service: VariantServiceDep
) -> ApiResponse[VariantView]:
    """Create a variant with a complete option selection.

    Raises:
        InvalidOptionError: Unknown option or value, or an incomplete selection.
        VariantOptionCombinationExistsError: Another variant has the same options.
        VariantSkuExistsError: SKU already used by the seller.
    """
    return ok(await service.create_variant(product_id, request, actor), message="Variant created")


@router.put(
    "/{variant_id}",
    response_model=ApiResponse[VariantView],
    responses=WRITE_ERRORS,
    summary="Update variant",
)
async def update_variant(
    product_id: int, variant_id: int, request: VariantUpdate, actor: WriterDep, service: VariantServiceDep
) -> ApiResponse[VariantView]:
    return ok(await service.update_variant(product_id, variant_id, request, actor), message="Variant updated")


@router.delete(
    "/{variant_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=WRITE_ERRORS,
    summary="Delete variant",
    description="The last live variant of a product cannot be deleted.",
)
async def delete_variant(
    product_id: int, variant_id: int, actor: WriterDep, service: VariantServiceDep
) -> Response:
    await service.delete_variant(product_id, variant_id, actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Cross-product listing
# ============================================================================


@listing_router.get(
    "",
    response_model=PaginatedResponse[VariantView],
    responses={400: {"model": ErrorResponse}},
    summary="List variants",
    description="Unknown query parameters are treated as option filters, e.g. ?color=red.",
)
async def list_variants(
    request: Request,
    pagination: PaginationDep,
    actor: ReaderDep,
    service: QueryServiceDep,
    ids: Annotated[str | None, Query(description="Comma-separated variant ids")] = None,
    product_ids: Annotated[str | None, Query(alias="productIds")] = None,
    seller_id: Annotated[int | None, Query(alias="sellerId", ge=1)] = None,
    sku_prefix: Annotated[str | None, Query(alias="skuPrefix")] = None,
    min_price: Annotated[float | None, Query(alias="minPrice", ge=0)] = None,
    max_price: Annotated[float | None, Query(alias="maxPrice", ge=0)] = None,
    allow_purchase: Annotated[bool | None, Query(alias="allowPurchase")] = None,
    is_default: Annotated[bool | None, Query(alias="isDefault")] = None,
) -> PaginatedResponse[VariantView]:
    """List variants in the caller's seller scope.

    Ordered by product, then position, then id.
    """
    if min_price is not None and max_price is not None and min_price > max_price:
        raise ValidationError.for_field("minPrice", "minPrice cannot be greater than maxPrice")

    filters = VariantFilter(
        ids=parse_id_list(ids, "ids"),
        product_ids=parse_id_list(product_ids, "productIds"),
        seller_id=seller_id,
        sku_prefix=sku_prefix or None,
        min_price=min_price,
        max_price=max_price,
        options={key: value for key, value in request.query_params.items() if key not in LISTING_PARAMS},
        allow_purchase=allow_purchase,
        is_default=is_default,
    )
    return paginated(await service.list_variants(filters, pagination, actor))
