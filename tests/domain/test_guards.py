"""Tests for tenant-scoped product loading."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from catalog_service.application.guards import load_product, require_scope
from catalog_service.catalog.models import Product
from catalog_service.domain.exceptions import ProductNotFoundError, ValidationError
from catalog_service.domain.principal import Actor


def products_returning(product: Product | None) -> MagicMock:
    repository = MagicMock()
    repository.get = AsyncMock(return_value=product)
    return repository


class TestLoadProduct:
    """Tests for load_product."""

    async def test_own_product(self) -> None:
        product = Product(id=5, seller_id=7, category_id=1, name="Mug")
        repository = products_returning(product)

        assert await load_product(repository, 5, Actor.seller(7), for_update=True) is product
        repository.get.assert_awaited_once_with(5, seller_id=7, for_update=True)

    async def test_row_of_another_seller_is_not_found(self) -> None:
        repository = products_returning(Product(id=5, seller_id=8, category_id=1, name="Mug"))
        with pytest.raises(ProductNotFoundError):
            await load_product(repository, 5, Actor.seller(7))

    async def test_unscoped_admin_loads_any_seller(self) -> None:
        product = Product(id=5, seller_id=8, category_id=1, name="Mug")
        repository = products_returning(product)

        assert await load_product(repository, 5, Actor.admin()) is product
        repository.get.assert_awaited_once_with(5, seller_id=None, for_update=False)

    async def test_missing_product(self) -> None:
        with pytest.raises(ProductNotFoundError):
            await load_product(products_returning(None), 5, Actor.admin(7))

    async def test_public_caller_without_scope(self) -> None:
        repository = products_returning(None)
        with pytest.raises(ProductNotFoundError):
            await load_product(repository, 5, Actor.public(None))
        repository.get.assert_not_awaited()


def test_require_scope() -> None:
    assert require_scope(Actor.admin()) is None
    assert require_scope(Actor.public(3)) == 3
    with pytest.raises(ValidationError) as exc_info:
        require_scope(Actor.public(None))
    assert exc_info.value.error_code == "SELLER_ID_REQUIRED"
