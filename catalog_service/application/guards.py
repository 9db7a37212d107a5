"""Tenant-scoped loading of the product aggregate root."""

from catalog_service.catalog.models import Product
from catalog_service.catalog.repositories import ProductRepository
from catalog_service.domain.exceptions import ProductNotFoundError, ValidationError
from catalog_service.domain.principal import Actor


def product_scope(actor: Actor) -> int | None:
    """Seller id every product query is narrowed to; None for unscoped admins."""
    return None if actor.unscoped else actor.seller_id


async def load_product(
    products: ProductRepository,
    product_id: int,
    actor: Actor,
    for_update: bool = False,
) -> Product:
    """Load a live product the caller may see.

    A product owned by another seller is reported as not found, never as
    forbidden.

    Args:
        products: Product repository bound to the request session.
        product_id: Product ID.
        actor: Caller and tenant scope.
        for_update: Lock the product row for the rest of the transaction.

    Returns:
        The product.

    Raises:
        ProductNotFoundError: Absent, deleted or outside the caller's scope.
    """
    if not actor.unscoped and actor.seller_id is None:
        raise ProductNotFoundError(product_id)
    product = await products.get(product_id, seller_id=product_scope(actor), for_update=for_update)
    if product is None or not actor.owns(product.seller_id):
        raise ProductNotFoundError(product_id)
    return product


def require_scope(actor: Actor) -> int | None:
    """Scope for collection reads; only unscoped admins may omit a seller.

    Raises:
        ValidationError: A non-admin caller without a seller scope.
    """
    if not actor.unscoped and actor.seller_id is None:
        raise ValidationError(
            "A seller scope is required (X-Seller-ID header)",
            error_code="SELLER_ID_REQUIRED",
        )
    return product_scope(actor)
