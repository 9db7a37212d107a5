"""Category API endpoints.

- GET /api/categories - categories visible to the caller
- GET /api/categories/hierarchy - the same set as a tree
- GET /api/categories/by-parent - direct children of a category (or roots)
- GET /api/categories/{id}/attributes - own and inherited attributes
- POST/PUT/DELETE /api/categories[/{id}] - category writes
- POST/DELETE /api/categories/{id}/attributes[/{attrId}] - attribute links
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status

from catalog_service.api.dependencies import ReaderDep, WriterDep, get_category_service
from catalog_service.api.schemas import ApiResponse, ErrorResponse, ok
from catalog_service.application import CategoryService
from catalog_service.application.requests import CategoryAttributeLink, CategoryCreate, CategoryUpdate
from catalog_service.application.views import CategoryAttributeView, CategoryTreeNode, CategoryView

router = APIRouter(prefix="/api/categories", tags=["Categories"])

ServiceDep = Annotated[CategoryService, Depends(get_category_service)]

WRITE_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


# ============================================================================
# Reads
# ============================================================================


@router.get(
    "",
    response_model=ApiResponse[list[CategoryView]],
    summary="List categories",
    description="Global categories plus those owned by the caller's seller.",
)
async def list_categories(actor: ReaderDep, service: ServiceDep) -> ApiResponse[list[CategoryView]]:
    return ok(await service.list_all(actor))


@router.get(
    "/hierarchy",
    response_model=ApiResponse[list[CategoryTreeNode]],
    summary="Category tree",
)
async def category_hierarchy(actor: ReaderDep, service: ServiceDep) -> ApiResponse[list[CategoryTreeNode]]:
    """Visible categories nested under their parents.

    Categories whose parent is not visible are returned as roots.
    """
    return ok(await service.hierarchy(actor))


@router.get(
    "/by-parent",
    response_model=ApiResponse[list[CategoryView]],
    summary="List child categories",
    description="Direct children of parentId, or root categories when it is omitted.",
)
async def list_by_parent(
    actor: ReaderDep,
    service: ServiceDep,
    parent_id: Annotated[int | None, Query(alias="parentId")] = None,
) -> ApiResponse[list[CategoryView]]:
    return ok(await service.list_by_parent(parent_id, actor))


@router.get(
    "/{category_id}",
    response_model=ApiResponse[CategoryView],
    responses={404: {"model": ErrorResponse}},
    summary="Get category",
)
async def get_category(category_id: int, actor: ReaderDep, service: ServiceDep) -> ApiResponse[CategoryView]:
    return ok(await service.get(category_id, actor))


@router.get(
    "/{category_id}/attributes",
    response_model=ApiResponse[list[CategoryAttributeView]],
    responses={404: {"model": ErrorResponse}},
    summary="Category attributes",
    description="Attributes linked to the category and all of its ancestors.",
)
async def category_attributes(
    category_id: int, actor: ReaderDep, service: ServiceDep
) -> ApiResponse[list[CategoryAttributeView]]:
    """Resolve the inherited attribute set of a category.

    The nearest link wins when an attribute is attached at several levels.
    Results are ordered by sortOrder, with closer categories first on ties.

    Args:
        category_id: Category ID.
        actor: Caller and tenant scope.
        service: Category service.

    Returns:
        Attribute views flagged ``inherited`` when linked on an ancestor.
    """
    return ok(await service.inherited_attributes(category_id, actor))


# ============================================================================
# Writes
# ============================================================================


@router.post(
    "",
    response_model=ApiResponse[CategoryView],
    status_code=status.HTTP_201_CREATED,
    responses={**WRITE_ERRORS, 409: {"model": ErrorResponse}},
    summary="Create category",
)
async def create_category(
    request: CategoryCreate, actor: WriterDep, service: ServiceDep
) -> ApiResponse[CategoryView]:
    """Create a category.

    Sellers always create categories in their own scope; admins may create
    global categories by omitting sellerId.

    Raises:
        ParentNotFoundError: Parent is missing or not visible.
        MaxNestingExceededError: The new category would be too deep.
        CategoryExistsError: Sibling with the same name exists.
    """
    return ok(await service.create(request, actor), message="Category created")


@router.put(
    "/{category_id}",
    response_model=ApiResponse[CategoryView],
    responses={**WRITE_ERRORS, 409: {"model": ErrorResponse}},
    summary="Update category",
)
async def update_category(
    category_id: int, request: CategoryUpdate, actor: WriterDep, service: ServiceDep
) -> ApiResponse[CategoryView]:
    return ok(await service.update(category_id, request, actor), message="Category updated")


@router.delete(
    "/{category_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={**WRITE_ERRORS, 409: {"model": ErrorResponse}},
    summary="Delete category",
    description="Refused while the category has children or products.",
)
async def delete_category(category_id: int, actor: WriterDep, service: ServiceDep) -> Response:
    await service.delete(category_id, actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{category_id}/attributes",
    response_model=ApiResponse[CategoryAttributeView],
    status_code=status.HTTP_201_CREATED,
    responses={**WRITE_ERRORS, 409: {"model": ErrorResponse}},
    summary="Link attribute to category",
)
async def link_attribute(
    category_id: int, request: CategoryAttributeLink, actor: WriterDep, service: ServiceDep
) -> ApiResponse[CategoryAttributeView]:
    return ok(await service.link_attribute(category_id, request, actor), message="Attribute linked")


@router.delete(
    "/{category_id}/attributes/{attribute_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=WRITE_ERRORS,
    summary="Unlink attribute from category",
)
async def unlink_attribute(
    category_id: int, attribute_id: int, actor: WriterDep, service: ServiceDep
) -> Response:
    await service.unlink_attribute(category_id, attribute_id, actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
