"""FastAPI dependencies.

Resolve the request's session, cache and caller, and build per-request
services from the objects the application stores on ``app.state``.
"""

from collections.abc import AsyncGenerator
from typing import Annotated

import jwt
import structlog
from fastapi import Depends, Header, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_service.application import (
    AttributeService,
    CategoryService,
    PackageOptionService,
    ProductAttributeService,
    ProductOptionService,
    ProductOptionValueService,
    ProductQueryService,
    ProductService,
    VariantBulkService,
    VariantQueryService,
    VariantService,
)
from catalog_service.application.pagination import PaginationParams
from catalog_service.domain.exceptions import ForbiddenError, UnauthenticatedError, ValidationError
from catalog_service.domain.principal import Actor, Principal, RoleLevel
from catalog_service.infrastructure.cache import CatalogCache
from catalog_service.infrastructure.config import Settings
from catalog_service.infrastructure.database import session_scope

logger = structlog.get_logger()

bearer_scheme = HTTPBearer(auto_error=False)


# ============================================================================
# Infrastructure
# ============================================================================


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_cache(request: Request) -> CatalogCache:
    return request.app.state.cache


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Session for the request; closed when the response is done."""
    async for session in session_scope(request.app.state.session_factory):
        yield session


SettingsDep = Annotated[Settings, Depends(get_settings)]
CacheDep = Annotated[CatalogCache, Depends(get_cache)]
SessionDep = Annotated[AsyncSession, Depends(get_session)]


def get_pagination(
    settings: SettingsDep,
    page: Annotated[int, Query(ge=1, description="Page number (1-based)")] = 1,
    limit: Annotated[int | None, Query(ge=1, description="Items per page")] = None,
) -> PaginationParams:
    """Pagination from query parameters, capped at the configured maximum."""
    size = min(limit or settings.default_page_size, settings.max_page_size)
    return PaginationParams(page=page, limit=size)


PaginationDep = Annotated[PaginationParams, Depends(get_pagination)]


# ============================================================================
# Authentication & tenant scope
# ============================================================================


def decode_principal(token: str, settings: Settings) -> Principal:
    """Decode a bearer token into a Principal.

    Args:
        token: Encoded JWT.
        settings: Settings holding the secret and algorithm.

    Returns:
        The authenticated principal.

    Raises:
        UnauthenticatedError: Expired, tampered or incomplete token.
    """
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError as e:
        raise UnauthenticatedError("Token has expired", error_code="TOKEN_INVALID") from e
    except jwt.InvalidTokenError as e:
        raise UnauthenticatedError("Invalid authentication token", error_code="TOKEN_INVALID") from e

    try:
        seller_id = claims.get("seller_id")
        return Principal(
            user_id=int(claims["user_id"]),
            email=str(claims.get("email", "")),
            role_level=RoleLevel(int(claims["role_level"])),
            seller_id=int(seller_id) if seller_id else None,
        )
    except (KeyError, TypeError, ValueError) as e:
        raise UnauthenticatedError("Token is missing required claims", error_code="TOKEN_INVALID") from e


def get_principal(
    settings: SettingsDep,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> Principal | None:
    if credentials is None:
        return None
    return decode_principal(credentials.credentials, settings)


def get_seller_header(
    x_seller_id: Annotated[str | None, Header(alias="X-Seller-ID")] = None,
) -> int | None:
    if x_seller_id is None or not x_seller_id.strip():
        return None
    try:
        seller_id = int(x_seller_id)
    except ValueError:
        seller_id = 0
    if seller_id <= 0:
        raise ValidationError.for_field(
            "X-Seller-ID", "X-Seller-ID must be a positive integer", error_code="INVALID_SELLER_ID"
        )
    return seller_id


PrincipalDep = Annotated[Principal | None, Depends(get_principal)]
SellerHeaderDep = Annotated[int | None, Depends(get_seller_header)]


def resolve_actor(principal: Principal | None, header_seller_id: int | None) -> Actor:
    """Turn the caller and the ``X-Seller-ID`` header into a tenant scope.

    - seller token: the token's seller, header ignored
    - admin token: the header if present, otherwise every tenant
    - customer token: the token's seller, falling back to the header
    - anonymous: the header (None leaves reads limited to global rows)
    """
    if principal is None:
        return Actor.public(header_seller_id)
    if principal.is_admin:
        return Actor.admin(header_seller_id)
    if principal.is_seller:
        if principal.seller_id is None:
            raise ForbiddenError("Seller account has no seller id", error_code="INSUFFICIENT_PERMISSIONS")
        return Actor.seller(principal.seller_id)
    return Actor(role=principal.role_level, seller_id=principal.seller_id or header_seller_id)


def get_actor(principal: PrincipalDep, header_seller_id: SellerHeaderDep) -> Actor:
    return resolve_actor(principal, header_seller_id)


def require_writer(principal: PrincipalDep, header_seller_id: SellerHeaderDep) -> Actor:
    """Caller allowed to write the catalog (seller or admin)."""
    if principal is None:
        raise UnauthenticatedError("Authentication required", error_code="AUTH_REQUIRED")
    if not principal.can_write_catalog:
        raise ForbiddenError(
            "Seller or admin role required", error_code="INSUFFICIENT_PERMISSIONS"
        )
    return resolve_actor(principal, header_seller_id)


def require_admin(principal: PrincipalDep, header_seller_id: SellerHeaderDep) -> Actor:
    if principal is None:
        raise UnauthenticatedError("Authentication required", error_code="AUTH_REQUIRED")
    if not principal.is_admin:
        raise ForbiddenError("Admin role required", error_code="INSUFFICIENT_PERMISSIONS")
    return resolve_actor(principal, header_seller_id)


ReaderDep = Annotated[Actor, Depends(get_actor)]
WriterDep = Annotated[Actor, Depends(require_writer)]
AdminDep = Annotated[Actor, Depends(require_admin)]


# ============================================================================
# Services
# ============================================================================


def get_category_service(session: SessionDep, cache: CacheDep, settings: SettingsDep) -> CategoryService:
    return CategoryService(session, cache, max_depth=settings.max_category_depth)


def get_attribute_service(session: SessionDep, cache: CacheDep, settings: SettingsDep) -> AttributeService:
    return AttributeService(session, cache, max_depth=settings.max_category_depth)


def get_product_service(session: SessionDep, cache: CacheDep, settings: SettingsDep) -> ProductService:
    return ProductService(session, cache, max_depth=settings.max_category_depth)


def get_product_query_service(session: SessionDep, cache: CacheDep) -> ProductQueryService:
    return ProductQueryService(session, cache)


def get_option_service(session: SessionDep, cache: CacheDep) -> ProductOptionService:
    return ProductOptionService(session, cache)


def get_option_value_service(session: SessionDep, cache: CacheDep) -> ProductOptionValueService:
    return ProductOptionValueService(session, cache)


def get_variant_service(session: SessionDep, cache: CacheDep) -> VariantService:
    return VariantService(session, cache)


def get_variant_bulk_service(session: SessionDep, cache: CacheDep) -> VariantBulkService:
    return VariantBulkService(session, cache)


def get_variant_query_service(session: SessionDep) -> VariantQueryService:
    return VariantQueryService(session)


def get_product_attribute_service(
    session: SessionDep, cache: CacheDep, settings: SettingsDep
) -> ProductAttributeService:
    return ProductAttributeService(session, cache, max_depth=settings.max_category_depth)


def get_package_option_service(session: SessionDep, cache: CacheDep) -> PackageOptionService:
    return PackageOptionService(session, cache)
