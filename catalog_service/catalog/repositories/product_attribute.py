"""Product attribute and package option persistence."""

from collections import defaultdict
from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_service.catalog.models import PackageOption, ProductAttribute


class ProductAttributeRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_for_products(self, product_ids: Sequence[int]) -> dict[int, list[ProductAttribute]]:
        grouped: dict[int, list[ProductAttribute]] = defaultdict(list)
        if not product_ids:
            return grouped
        query = (
            select(ProductAttribute)
            .where(ProductAttribute.product_id.in_(set(product_ids)), ProductAttribute.deleted_at.is_(None))
            .order_by(ProductAttribute.sort_order, ProductAttribute.id)
        )
        for row in (await self.session.execute(query)).scalars():
            grouped[row.product_id].append(row)
        return grouped

    async def list_for_product(self, product_id: int) -> list[ProductAttribute]:
        grouped = await self.list_for_products([product_id])
        return grouped.get(product_id, [])

    async def get(self, product_id: int, product_attribute_id: int) -> ProductAttribute | None:
        query = select(ProductAttribute).where(
            ProductAttribute.id == product_attribute_id,
            ProductAttribute.product_id == product_id,
            ProductAttribute.deleted_at.is_(None),
        )
        return (await self.session.execute(query)).scalar_one_or_none()

    async def get_by_definition(self, product_id: int, attribute_id: int) -> ProductAttribute | None:
        query = select(ProductAttribute).where(
            ProductAttribute.product_id == product_id,
            ProductAttribute.attribute_definition_id == attribute_id,
            ProductAttribute.deleted_at.is_(None),
        )
        return (await self.session.execute(query)).scalar_one_or_none()

    async def add(self, row: ProductAttribute) -> ProductAttribute:
        self.session.add(row)
        await self.session.flush()
        await self.session.refresh(row, ["attribute_definition"])
        return row


class PackageOptionRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_for_product(self, product_id: int) -> list[PackageOption]:
        query = (
            select(PackageOption)
            .where(PackageOption.product_id == product_id, PackageOption.deleted_at.is_(None))
            .order_by(PackageOption.id)
        )
        return list((await self.session.execute(query)).scalars().all())

    async def get(self, product_id: int, package_option_id: int) -> PackageOption | None:
        query = select(PackageOption).where(
            PackageOption.id == package_option_id,
            PackageOption.product_id == product_id,
            PackageOption.deleted_at.is_(None),
        )
        return (await self.session.execute(query)).scalar_one_or_none()

    async def add(self, row: PackageOption) -> PackageOption:
        self.session.add(row)
        await self.session.flush()
        return row
