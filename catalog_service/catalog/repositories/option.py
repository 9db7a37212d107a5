"""Product option and option value persistence."""

from collections import defaultdict
from collections.abc import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_service.catalog.models import ProductOption, ProductOptionValue


class OptionRepository:
    """Repository for ProductOption and ProductOptionValue rows.

    All reads return live rows ordered by ``(position, id)``.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_for_products(self, product_ids: Sequence[int]) -> dict[int, list[ProductOption]]:
        """Live options grouped by product id, in one query."""
        grouped: dict[int, list[ProductOption]] = defaultdict(list)
        if not product_ids:
            return grouped
        query = (
            select(ProductOption)
            .where(ProductOption.product_id.in_(set(product_ids)), ProductOption.deleted_at.is_(None))
            .order_by(ProductOption.position, ProductOption.id)
        )
        for option in (await self.session.execute(query)).scalars():
            grouped[option.product_id].append(option)
        return grouped

    async def list_for_product(self, product_id: int) -> list[ProductOption]:
        grouped = await self.list_for_products([product_id])
        return grouped.get(product_id, [])

    async def values_for_options(self, option_ids: Sequence[int]) -> dict[int, list[ProductOptionValue]]:
        """Live values grouped by option id, in one query."""
        grouped: dict[int, list[ProductOptionValue]] = defaultdict(list)
        if not option_ids:
            return grouped
        query = (
            select(ProductOptionValue)
            .where(
                ProductOptionValue.option_id.in_(set(option_ids)),
                ProductOptionValue.deleted_at.is_(None),
            )
            .order_by(ProductOptionValue.position, ProductOptionValue.id)
        )
        for value in (await self.session.execute(query)).scalars():
            grouped[value.option_id].append(value)
        return grouped

    async def get_option(self, product_id: int, option_id: int) -> ProductOption | None:
        query = select(ProductOption).where(
            ProductOption.id == option_id,
            ProductOption.product_id == product_id,
            ProductOption.deleted_at.is_(None),
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_option_by_name(
        self, product_id: int, name: str, exclude_id: int | None = None
    ) -> ProductOption | None:
        query = select(ProductOption).where(
            ProductOption.product_id == product_id,
            ProductOption.name == name,
            ProductOption.deleted_at.is_(None),
        )
        if exclude_id is not None:
            query = query.where(ProductOption.id != exclude_id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_value(self, option_id: int, value_id: int) -> ProductOptionValue | None:
        query = select(ProductOptionValue).where(
            ProductOptionValue.id == value_id,
            ProductOptionValue.option_id == option_id,
            ProductOptionValue.deleted_at.is_(None),
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_value_by_value(
        self, option_id: int, value: str, exclude_id: int | None = None
    ) -> ProductOptionValue | None:
        query = select(ProductOptionValue).where(
            ProductOptionValue.option_id == option_id,
            ProductOptionValue.value == value,
            ProductOptionValue.deleted_at.is_(None),
        )
        if exclude_id is not None:
            query = query.where(ProductOptionValue.id != exclude_id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def values_by_ids(self, value_ids: Sequence[int]) -> dict[int, ProductOptionValue]:
        if not value_ids:
            return {}
        query = select(ProductOptionValue).where(ProductOptionValue.id.in_(set(value_ids)))
        result = await self.session.execute(query)
        return {value.id: value for value in result.scalars()}

    async def options_by_ids(self, option_ids: Sequence[int]) -> dict[int, ProductOption]:
        if not option_ids:
            return {}
        query = select(ProductOption).where(ProductOption.id.in_(set(option_ids)))
        result = await self.session.execute(query)
        return {option.id: option for option in result.scalars()}

    async def next_option_position(self, product_id: int) -> int:
        query = select(func.max(ProductOption.position)).where(
            ProductOption.product_id == product_id, ProductOption.deleted_at.is_(None)
        )
        current = (await self.session.execute(query)).scalar_one()
        return 0 if current is None else current + 1

    async def next_value_position(self, option_id: int) -> int:
        query = select(func.max(ProductOptionValue.position)).where(
            ProductOptionValue.option_id == option_id, ProductOptionValue.deleted_at.is_(None)
        )
        current = (await self.session.execute(query)).scalar_one()
        return 0 if current is None else current + 1

    async def add(self, row: ProductOption | ProductOptionValue) -> None:
        self.session.add(row)
        await self.session.flush()
