"""Attribute definition API endpoints.

Definitions are global; reading them is open, writing them requires an admin.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from catalog_service.api.dependencies import AdminDep, get_attribute_service
from catalog_service.api.schemas import ApiResponse, ErrorResponse, ok
from catalog_service.application import AttributeService
from catalog_service.application.requests import (
    AttributeCreate,
    AttributeCreateForCategory,
    AttributeUpdate,
)
from catalog_service.application.views import AttributeDefinitionView, CategoryAttributeView

router = APIRouter(prefix="/api/attributes", tags=["Attributes"])

ServiceDep = Annotated[AttributeService, Depends(get_attribute_service)]

ADMIN_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
}


@router.get(
    "",
    response_model=ApiResponse[list[AttributeDefinitionView]],
    summary="List attribute definitions",
)
async def list_attributes(service: ServiceDep) -> ApiResponse[list[AttributeDefinitionView]]:
    return ok(await service.list_all())


@router.get(
    "/{attribute_id}",
    response_model=ApiResponse[AttributeDefinitionView],
    responses={404: {"model": ErrorResponse}},
    summary="Get attribute definition",
)
async def get_attribute(attribute_id: int, service: ServiceDep) -> ApiResponse[AttributeDefinitionView]:
    return ok(await service.get(attribute_id))


@router.post(
    "",
    response_model=ApiResponse[AttributeDefinitionView],
    status_code=status.HTTP_201_CREATED,
    responses={**ADMIN_ERRORS, 409: {"model": ErrorResponse}},
    summary="Create attribute definition",
)
async def create_attribute(
    request: AttributeCreate, actor: AdminDep, service: ServiceDep
) -> ApiResponse[AttributeDefinitionView]:
    """Create an attribute definition.

    Args:
        request: Key, name, data type and optional allowed values.
        actor: Admin caller.
        service: Attribute service.

    Returns:
        The created definition.
    """
    return ok(await service.create(request), message="Attribute created")


@router.post(
    "/{category_id}",
    response_model=ApiResponse[CategoryAttributeView],
    status_code=status.HTTP_201_CREATED,
    responses={**ADMIN_ERRORS, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Create attribute for category",
    description="Create a definition and link it to the category in one step.",
)
async def create_attribute_for_category(
    category_id: int, request: AttributeCreateForCategory, actor: AdminDep, service: ServiceDep
) -> ApiResponse[CategoryAttributeView]:
    return ok(await service.create_for_category(category_id, request, actor), message="Attribute created")


@router.put(
    "/{attribute_id}",
    response_model=ApiResponse[AttributeDefinitionView],
    responses={**ADMIN_ERRORS, 404: {"model": ErrorResponse}},
    summary="Update attribute definition",
    description="The key and data type cannot be changed.",
)
async def update_attribute(
    attribute_id: int, request: AttributeUpdate, actor: AdminDep, service: ServiceDep
) -> ApiResponse[AttributeDefinitionView]:
    return ok(await service.update(attribute_id, request), message="Attribute updated")


@router.delete(
    "/{attribute_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={**ADMIN_ERRORS, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Delete attribute definition",
    description="Refused while any category or product still references it.",
)
async def delete_attribute(attribute_id: int, actor: AdminDep, service: ServiceDep) -> Response:
    await service.delete(attribute_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
