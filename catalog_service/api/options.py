"""Product option and option value API endpoints.

Options are scoped to one product; values to one option. Reads follow the
product's visibility, writes require the owning seller or an admin.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from catalog_service.api.dependencies import (
    ReaderDep,
    WriterDep,
    get_option_service,
    get_option_value_service,
)
from catalog_service.api.schemas import ApiResponse, ErrorResponse, ok
from catalog_service.application import ProductOptionService, ProductOptionValueService
from catalog_service.application.requests import (
    OptionBulkUpdate,
    OptionCreate,
    OptionUpdate,
    OptionValueBulkCreate,
    OptionValueBulkUpdate,
    OptionValueCreate,
    OptionValueUpdate,
)
from catalog_service.application.views import BulkUpdateResult, OptionValueView, OptionView

router = APIRouter(prefix="/api/products/{product_id}/options", tags=["Options"])

OptionServiceDep = Annotated[ProductOptionService, Depends(get_option_service)]
ValueServiceDep = Annotated[ProductOptionValueService, Depends(get_option_value_service)]

WRITE_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


# ============================================================================
# Options
# ============================================================================


@router.get(
    "",
    response_model=ApiResponse[list[OptionView]],
    responses={404: {"model": ErrorResponse}},
    summary="List product options",
)
async def list_options(product_id: int, actor: ReaderDep, service: OptionServiceDep) -> ApiResponse[list[OptionView]]:
    return ok(await service.list_options(product_id, actor))


@router.post(
    "",
    response_model=ApiResponse[OptionView],
    status_code=status.HTTP_201_CREATED,
    responses=WRITE_ERRORS,
    summary="Create product option",
)
async def create_option(
    product_id: int, request: OptionCreate, actor: WriterDep, service: OptionServiceDep
) -> ApiResponse[OptionView]:
    """Create an option, optionally with its initial values.

    Raises:
        OptionNameExistsError: The product already has an option with this name.
    """
    return ok(await service.create_option(product_id, request, actor), message="Option created")


@router.put(
    "/bulk-update",
    response_model=ApiResponse[BulkUpdateResult],
    responses=WRITE_ERRORS,
    summary="Bulk update product options",
    description="All patches are applied in one transaction or none are.",
)
async def bulk_update_options(
    product_id: int, request: OptionBulkUpdate, actor: WriterDep, service: OptionServiceDep
) -> ApiResponse[BulkUpdateResult]:
    count = await service.bulk_update_options(product_id, request.options, actor)
    return ok(BulkUpdateResult(updated_count=count), message="Options updated")


@router.put(
    "/{option_id}",
    response_model=ApiResponse[OptionView],
    responses=WRITE_ERRORS,
    summary="Update product option",
)
async def update_option(
    product_id: int, option_id: int, request: OptionUpdate, actor: WriterDep, service: OptionServiceDep
) -> ApiResponse[OptionView]:
    return ok(await service.update_option(product_id, option_id, request, actor), message="Option updated")


@router.delete(
    "/{option_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=WRITE_ERRORS,
    summary="Delete product option",
    description="Refused while any live variant uses one of its values.",
)
async def delete_option(product_id: int, option_id: int, actor: WriterDep, service: OptionServiceDep) -> Response:
    await service.delete_option(product_id, option_id, actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Option values
# ============================================================================


@router.get(
    "/{option_id}/values",
    response_model=ApiResponse[list[OptionValueView]],
    responses={404: {"model": ErrorResponse}},
    summary="List option values",
)
async def list_values(
    product_id: int, option_id: int, actor: ReaderDep, service: ValueServiceDep
) -> ApiResponse[list[OptionValueView]]:
    return ok(await service.list_values(product_id, option_id, actor))


@router.post(
    "/{option_id}/values",
    response_model=ApiResponse[OptionValueView],
    status_code=status.HTTP_201_CREATED,
    responses=WRITE_ERRORS,
    summary="Add option value",
)
async def add_value(
    product_id: int, option_id: int, request: OptionValueCreate, actor: WriterDep, service: ValueServiceDep
) -> ApiResponse[OptionValueView]:
    return ok(await service.add_value(product_id, option_id, request, actor), message="Option value created")


@router.post(
    "/{option_id}/values/bulk",
    response_model=ApiResponse[list[OptionValueView]],
    status_code=status.HTTP_201_CREATED,
    responses=WRITE_ERRORS,
    summary="Bulk add option values",
)
async def add_values(
    product_id: int, option_id: int, request: OptionValueBulkCreate, actor: WriterDep, service: ValueServiceDep
) -> ApiResponse[list[OptionValueView]]:
    """Add several values at once.

    A duplicate within the batch or against existing values rejects the
    whole batch.
    """
    return ok(
        await service.add_values(product_id, option_id, request.values, actor),
        message="Option values created",
    )


@router.put(
    "/{option_id}/values/bulk-update",
    response_model=ApiResponse[BulkUpdateResult],
    responses=WRITE_ERRORS,
    summary="Bulk update option values",
)
async def bulk_update_values(
    product_id: int, option_id: int, request: OptionValueBulkUpdate, actor: WriterDep, service: ValueServiceDep
) -> ApiResponse[BulkUpdateResult]:
    count = await service.bulk_update_values(product_id, option_id, request.values, actor)
    return ok(BulkUpdateResult(updated_count=count), message="Option values updated")


@router.put(
    "/{option_id}/values/{value_id}",
    response_model=ApiResponse[OptionValueView],
    responses=WRITE_ERRORS,
    summary="Update option value",
)
async def update_value(
    product_id: int,
    option_id: int,
    value_id: int,
    request: OptionValueUpdate,
    actor: WriterDep,
    service: ValueServiceDep,
) -> ApiResponse[OptionValueView]:
    return ok(
        await service.update_value(product_id, option_id, value_id, request, actor),
        message="Option value updated",
    )


@router.delete(
    "/{option_id}/values/{value_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=WRITE_ERRORS,
    summary="Delete option value",
    description="Refused while any live variant uses the value.",
)
async def delete_value(
    product_id: int, option_id: int, value_id: int, actor: WriterDep, service: ValueServiceDep
) -> Response:
    await service.delete_value(product_id, option_id, value_id, actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
