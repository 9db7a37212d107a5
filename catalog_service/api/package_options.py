"""Package option endpoints (bundles sold alongside a product)."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from catalog_service.api.dependencies import ReaderDep, WriterDep, get_package_option_service
from catalog_service.api.schemas import ApiResponse, ErrorResponse, ok
from catalog_service.application import PackageOptionService
from catalog_service.application.requests import PackageOptionCreate, PackageOptionUpdate
from catalog_service.application.views import PackageOptionView

router = APIRouter(prefix="/api/products/{product_id}/package-options", tags=["Package Options"])

ServiceDep = Annotated[PackageOptionService, Depends(get_package_option_service)]

WRITE_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


@router.get(
    "",
    response_model=ApiResponse[list[PackageOptionView]],
    responses={404: {"model": ErrorResponse}},
    summary="List package options",
)
async def list_package_options(
    product_id: int, actor: ReaderDep, service: ServiceDep
) -> ApiResponse[list[PackageOptionView]]:
    return ok(await service.list_package_options(product_id, actor))


@router.post(
    "",
    response_model=ApiResponse[PackageOptionView],
    status_code=status.HTTP_201_CREATED,
    responses=WRITE_ERRORS,
    summary="Create package option",
)
async def create_package_option(
    product_id: int, request: PackageOptionCreate, actor: WriterDep, service: ServiceDep
) -> ApiResponse[PackageOptionView]:
    return ok(await service.create(product_id, request, actor), message="Package option created")


@router.put(
    "/{package_option_id}",
    response_model=ApiResponse[PackageOptionView],
    responses=WRITE_ERRORS,
    summary="Update package option",
)
async def update_package_option(
    product_id: int,
    package_option_id: int,
    request: PackageOptionUpdate,
    actor: WriterDep,
    service: ServiceDep,
) -> ApiResponse[PackageOptionView]:
    return ok(
        await service.update(product_id, package_option_id, request, actor),
        message="Package option updated",
    )


@router.delete(
    "/{package_option_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=WRITE_ERRORS,
    summary="Delete package option",
)
async def delete_package_option(
    product_id: int, package_option_id: int, actor: WriterDep, service: ServiceDep
) -> Response:
    await service.delete(product_id, package_option_id, actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
