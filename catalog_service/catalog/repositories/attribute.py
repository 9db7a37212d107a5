"""Attribute definition persistence."""

from collections.abc import Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_service.catalog.models import AttributeDefinition, CategoryAttribute, ProductAttribute


class AttributeRepository:
    """Repository for AttributeDefinition rows."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, attribute_id: int) -> AttributeDefinition | None:
        return await self.session.get(AttributeDefinition, attribute_id)

    async def get_by_key(self, key: str) -> AttributeDefinition | None:
        query = select(AttributeDefinition).where(AttributeDefinition.key == key)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_many(self, attribute_ids: Sequence[int]) -> dict[int, AttributeDefinition]:
        if not attribute_ids:
            return {}
        query = select(AttributeDefinition).where(AttributeDefinition.id.in_(set(attribute_ids)))
        result = await self.session.execute(query)
        return {definition.id: definition for definition in result.scalars()}

    async def list_all(self) -> Sequence[AttributeDefinition]:
        query = select(AttributeDefinition).order_by(AttributeDefinition.key)
        result = await self.session.execute(query)
        return result.scalars().all()

    async def add(self, definition: AttributeDefinition) -> AttributeDefinition:
        self.session.add(definition)
        await self.session.flush()
        return definition

    async def delete(self, definition: AttributeDefinition) -> None:
        await self.session.delete(definition)
        await self.session.flush()

    async def count_category_links(self, attribute_id: int) -> int:
        query = select(func.count(CategoryAttribute.id)).where(
            CategoryAttribute.attribute_definition_id == attribute_id
        )
        result = await self.session.execute(query)
        return result.scalar_one()

    async def count_product_values(self, attribute_id: int) -> int:
        query = select(func.count(ProductAttribute.id)).where(
            ProductAttribute.attribute_definition_id == attribute_id,
            ProductAttribute.deleted_at.is_(None),
        )
        result = await self.session.execute(query)
        return result.scalar_one()

    async def purge_deleted_product_values(self, attribute_id: int) -> None:
        """Hard-delete soft-deleted product values still pointing at the definition."""
        await self.session.execute(
            delete(ProductAttribute).where(
                ProductAttribute.attribute_definition_id == attribute_id,
                ProductAttribute.deleted_at.is_not(None),
            )
        )
