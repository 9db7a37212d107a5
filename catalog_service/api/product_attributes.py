"""Product attribute value endpoints.

Values are checked against the attribute definitions the product's category
links directly or inherits from its ancestors.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from catalog_service.api.dependencies import ReaderDep, WriterDep, get_product_attribute_service
from catalog_service.api.schemas import ApiResponse, ErrorResponse, ok
from catalog_service.application import ProductAttributeService
from catalog_service.application.requests import (
    ProductAttributeBulkUpdate,
    ProductAttributeInput,
    ProductAttributeUpdate,
)
from catalog_service.application.views import ProductAttributeView

router = APIRouter(prefix="/api/products/{product_id}/attributes", tags=["Product Attributes"])

ServiceDep = Annotated[ProductAttributeService, Depends(get_product_attribute_service)]

WRITE_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}


@router.get(
    "",
    response_model=ApiResponse[list[ProductAttributeView]],
    responses={404: {"model": ErrorResponse}},
    summary="List product attributes",
)
async def list_product_attributes(
    product_id: int, actor: ReaderDep, service: ServiceDep
) -> ApiResponse[list[ProductAttributeView]]:
    return ok(await service.list_attributes(product_id, actor))


@router.post(
    "",
    response_model=ApiResponse[ProductAttributeView],
    status_code=status.HTTP_201_CREATED,
    responses=WRITE_ERRORS,
    summary="Add product attribute",
)
async def add_product_attribute(
    product_id: int, request: ProductAttributeInput, actor: WriterDep, service: ServiceDep
) -> ApiResponse[ProductAttributeView]:
    """Set an attribute value on a product.

    Raises:
        ValidationError: Attribute not available in the category, or bad value.
        ProductAttributeExistsError: The product already has this attribute.
    """
    return ok(await service.add_attribute(product_id, request, actor), message="Attribute added")


@router.put(
    "/bulk",
    response_model=ApiResponse[list[ProductAttributeView]],
    responses=WRITE_ERRORS,
    summary="Bulk set product attributes",
    description="Creates missing values and updates existing ones in one transaction.",
)
async def bulk_update_product_attributes(
    product_id: int, request: ProductAttributeBulkUpdate, actor: WriterDep, service: ServiceDep
) -> ApiResponse[list[ProductAttributeView]]:
    return ok(await service.bulk_update(product_id, request, actor), message="Attributes updated")


@router.put(
    "/{product_attribute_id}",
    response_model=ApiResponse[ProductAttributeView],
    responses=WRITE_ERRORS,
    summary="Update product attribute",
)
async def update_product_attribute(
    product_id: int,
    product_attribute_id: int,
    request: ProductAttributeUpdate,
    actor: WriterDep,
    service: ServiceDep,
) -> ApiResponse[ProductAttributeView]:
    return ok(
        await service.update_attribute(product_id, product_attribute_id, request, actor),
        message="Attribute updated",
    )


@router.delete(
    "/{product_attribute_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=WRITE_ERRORS,
    summary="Delete product attribute",
    description="Attributes the category marks as required cannot be removed.",
)
async def delete_product_attribute(
    product_id: int, product_attribute_id: int, actor: WriterDep, service: ServiceDep
) -> Response:
    await service.delete_attribute(product_id, product_attribute_id, actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
