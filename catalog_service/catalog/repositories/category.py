"""Category and category-attribute link persistence."""

from collections.abc import Sequence

from sqlalchemy import ColumnElement, and_, delete, func, literal, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_service.catalog.models import (
    Category,
    CategoryAttribute,
    Product,
    ProductAttribute,
)


def visible_to(seller_scope: int | None, unscoped: bool) -> ColumnElement[bool]:
    """Visibility predicate: global rows plus the scoped seller's rows."""
    if unscoped:
        return literal(True)
    if seller_scope is None:
        return Category.seller_id.is_(None)
    return or_(Category.seller_id.is_(None), Category.seller_id == 0, Category.seller_id == seller_scope)


class CategoryRepository:
    """Repository for Category and CategoryAttribute rows.

    Tree walks are bounded by the maximum nesting depth, so ancestor chains
    are read one row at a time while subtrees use a recursive CTE.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, category_id: int) -> Category | None:
        query = select(Category).where(Category.id == category_id, Category.deleted_at.is_(None))
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_visible(self, seller_scope: int | None, unscoped: bool = False) -> Sequence[Category]:
        query = (
            select(Category)
            .where(Category.deleted_at.is_(None), visible_to(seller_scope, unscoped))
            .order_by(Category.name, Category.id)
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def list_by_parent(
        self,
        parent_id: int | None,
        seller_scope: int | None,
        unscoped: bool = False,
    ) -> Sequence[Category]:
        parent_clause = (
            or_(Category.parent_id.is_(None), Category.parent_id == 0)
            if not parent_id
            else Category.parent_id == parent_id
        )
        query = (
            select(Category)
            .where(Category.deleted_at.is_(None), parent_clause, visible_to(seller_scope, unscoped))
            .order_by(Category.name, Category.id)
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def find_sibling(
        self,
        parent_id: int | None,
        name: str,
        seller_id: int | None,
        exclude_id: int | None = None,
    ) -> Category | None:
        """Find a live category with the same (parent, name, seller) key."""
        query = select(Category).where(
            Category.deleted_at.is_(None),
            func.coalesce(Category.parent_id, 0) == (parent_id or 0),
            func.coalesce(Category.seller_id, 0) == (seller_id or 0),
            func.lower(Category.name) == name.lower(),
        )
        if exclude_id is not None:
            query = query.where(Category.id != exclude_id)
        result = await self.session.execute(query.limit(1))
        return result.scalar_one_or_none()

    async def ancestors(self, category: Category, limit: int = 32) -> list[Category]:
        """Return the chain from ``category`` up to its root, self first."""
        chain = [category]
        seen = {category.id}
        current = category
        while current.parent_id and len(chain) < limit:
            parent = await self.get(current.parent_id)
            if parent is None or parent.id in seen:
                break
            chain.append(parent)
            seen.add(parent.id)
            current = parent
        return chain

    def _subtree(self, category_id: int):
        tree = (
            select(Category.id.label("id"), literal(1).label("level"))
            .where(Category.id == category_id)
            .cte(name="subtree", recursive=True)
        )
        return tree.union_all(
            select(Category.id, tree.c.level + 1).where(
                Category.parent_id == tree.c.id,
                Category.deleted_at.is_(None),
            )
        )

    async def descendant_ids(self, category_id: int) -> list[int]:
        """Ids of the category and every live descendant."""
        tree = self._subtree(category_id)
        result = await self.session.execute(select(tree.c.id))
        return [row[0] for row in result.all()]

    async def parents_of(self, category_ids: Sequence[int]) -> dict[int, int | None]:
        """Map live category ids to their parent ids."""
        if not category_ids:
            return {}
        query = select(Category.id, Category.parent_id).where(
            Category.id.in_(set(category_ids)), Category.deleted_at.is_(None)
        )
        result = await self.session.execute(query)
        return {category_id: parent_id or None for category_id, parent_id in result.all()}

    async def subtree_height(self, category_id: int) -> int:
        """Number of levels in the subtree rooted at the category (1 = leaf)."""
        tree = self._subtree(category_id)
        result = await self.session.execute(select(func.max(tree.c.level)))
        return result.scalar_one() or 1

    async def has_children(self, category_id: int) -> bool:
        query = select(Category.id).where(
            Category.parent_id == category_id, Category.deleted_at.is_(None)
        )
        result = await self.session.execute(query.limit(1))
        return result.first() is not None

    async def has_products(self, category_id: int) -> bool:
        query = select(Product.id).where(
            Product.category_id == category_id, Product.deleted_at.is_(None)
        )
        result = await self.session.execute(query.limit(1))
        return result.first() is not None

    async def has_archived_references(self, category_id: int) -> bool:
        """Whether soft-deleted products or categories still point at the category."""
        products = select(Product.id).where(
            Product.category_id == category_id, Product.deleted_at.is_not(None)
        )
        children = select(Category.id).where(
            Category.parent_id == category_id, Category.deleted_at.is_not(None)
        )
        for query in (products, children):
            if (await self.session.execute(query.limit(1))).first() is not None:
                return True
        return False

    async def add(self, category: Category) -> Category:
        self.session.add(category)
        await self.session.flush()
        return category

    async def delete(self, category: Category) -> None:
        await self.session.execute(
            delete(CategoryAttribute).where(CategoryAttribute.category_id == category.id)
        )
        await self.session.delete(category)
        await self.session.flush()

    async def archive(self, category: Category) -> None:
        """Soft-delete a category that archived rows still reference."""
        await self.session.execute(
            delete(CategoryAttribute).where(CategoryAttribute.category_id == category.id)
        )
        category.soft_delete()
        await self.session.flush()

    # ------------------------------------------------------------------
    # Attribute links
    # ------------------------------------------------------------------

    async def links_for(self, category_ids: Sequence[int]) -> Sequence[CategoryAttribute]:
        if not category_ids:
            return []
        query = select(CategoryAttribute).where(CategoryAttribute.category_id.in_(category_ids))
        result = await self.session.execute(query)
        return result.scalars().all()

    async def get_link(self, category_id: int, attribute_id: int) -> CategoryAttribute | None:
        query = select(CategoryAttribute).where(
            and_(
                CategoryAttribute.category_id == category_id,
                CategoryAttribute.attribute_definition_id == attribute_id,
            )
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def add_link(self, link: CategoryAttribute) -> CategoryAttribute:
        self.session.add(link)
        await self.session.flush()
        await self.session.refresh(link, ["attribute_definition"])
        return link

    async def delete_link(self, link: CategoryAttribute) -> None:
        await self.session.delete(link)
        await self.session.flush()

    async def products_using_attribute(self, category_ids: Sequence[int], attribute_id: int) -> int:
        """Count live products in the given categories carrying the attribute."""
        if not category_ids:
            return 0
        query = (
            select(func.count(func.distinct(Product.id)))
            .join(ProductAttribute, ProductAttribute.product_id == Product.id)
            .where(
                Product.deleted_at.is_(None),
                Product.category_id.in_(category_ids),
                ProductAttribute.deleted_at.is_(None),
                ProductAttribute.attribute_definition_id == attribute_id,
            )
        )
        result = await self.session.execute(query)
        return result.scalar_one()
