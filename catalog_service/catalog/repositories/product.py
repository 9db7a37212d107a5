"""Product persistence: lookups, filtered listing, search candidates, facets."""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import Select, String, and_, cast, exists, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_service.catalog.models import (
    AttributeDefinition,
    PackageOption,
    Product,
    ProductAttribute,
    ProductOption,
    ProductOptionValue,
    ProductVariant,
    VariantOptionValue,
    utcnow,
)

SORT_FIELDS = ("name", "created_at", "price")


@dataclass
class ProductFilter:
    """Filter parameters for product listing.

    Attributes:
        seller_id: Tenant scope; None lists every seller.
        category_ids: Restrict to these categories (already expanded).
        brand: Case-insensitive brand match.
        min_price: Inclusive lower bound on any live variant price.
        max_price: Inclusive upper bound on the same variant's price.
        in_stock: Any live variant allows purchase (False: none does).
        is_popular: Any live variant is flagged popular.
    """

    seller_id: int | None = None
    category_ids: list[int] | None = None
    brand: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    in_stock: bool | None = None
    is_popular: bool | None = None


def live_variant(*criteria) -> Select:
    return select(ProductVariant.id).where(
        ProductVariant.product_id == Product.id,
        ProductVariant.deleted_at.is_(None),
        *criteria,
    )


class ProductRepository:
    """Repository for Product database operations.

    Example usage:
        repo = ProductRepository(session)
        products, total = await repo.find_page(
            ProductFilter(seller_id=7, brand="Acme"),
            offset=0,
            limit=20,
        )
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(
        self,
        product_id: int,
        seller_id: int | None = None,
        for_update: bool = False,
    ) -> Product | None:
        """Get a live product, optionally scoped to a seller and row-locked.

        Args:
            product_id: Product ID.
            seller_id: Tenant scope; a product of another seller is not found.
            for_update: Take ``SELECT ... FOR UPDATE`` on the product row.

        Returns:
            Product if found in scope, None otherwise.
        """
        query = select(Product).where(Product.id == product_id, Product.deleted_at.is_(None))
        if seller_id is not None:
            query = query.where(Product.seller_id == seller_id)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_many(self, product_ids: Sequence[int]) -> dict[int, Product]:
        if not product_ids:
            return {}
        query = select(Product).where(Product.id.in_(set(product_ids)), Product.deleted_at.is_(None))
        result = await self.session.execute(query)
        return {product.id: product for product in result.scalars()}

    async def base_sku_taken(self, seller_id: int, base_sku: str, exclude_id: int | None = None) -> bool:
        query = select(Product.id).where(
            Product.seller_id == seller_id,
            Product.base_sku == base_sku,
            Product.deleted_at.is_(None),
        )
        if exclude_id is not None:
            query = query.where(Product.id != exclude_id)
        result = await self.session.execute(query.limit(1))
        return result.first() is not None

    async def add(self, product: Product) -> Product:
        self.session.add(product)
        await self.session.flush()
        return product

    async def soft_delete_aggregate(self, product: Product, at: datetime | None = None) -> None:
        """Soft-delete the product and every row it owns."""
        at = at or utcnow()
        option_ids = select(ProductOption.id).where(ProductOption.product_id == product.id)
        owned = [
            (ProductOptionValue, ProductOptionValue.option_id.in_(option_ids)),
            (ProductOption, ProductOption.product_id == product.id),
            (ProductVariant, ProductVariant.product_id == product.id),
            (ProductAttribute, ProductAttribute.product_id == product.id),
            (PackageOption, PackageOption.product_id == product.id),
        ]
        for model, criterion in owned:
            await self.session.execute(
                update(model)
                .where(criterion, model.deleted_at.is_(None))
                .values(deleted_at=at)
                .execution_options(synchronize_session=False)
            )
        product.soft_delete(at)
        await self.session.flush()

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def _filtered(self, filters: ProductFilter) -> Select:
        query = select(Product).where(Product.deleted_at.is_(None))
        if filters.seller_id is not None:
            query = query.where(Product.seller_id == filters.seller_id)
        if filters.category_ids is not None:
            query = query.where(Product.category_id.in_(filters.category_ids))
        if filters.brand:
            query = query.where(func.lower(Product.brand) == filters.brand.strip().lower())

        price_criteria = []
        if filters.min_price is not None:
            price_criteria.append(ProductVariant.price >= filters.min_price)
        if filters.max_price is not None:
            price_criteria.append(ProductVariant.price <= filters.max_price)
        if price_criteria:
            # One variant must satisfy both bounds.
            query = query.where(exists(live_variant(and_(*price_criteria))))

        if filters.in_stock is not None:
            in_stock = exists(live_variant(ProductVariant.allow_purchase.is_(True)))
            query = query.where(in_stock if filters.in_stock else ~in_stock)
        if filters.is_popular is not None:
            popular = exists(live_variant(ProductVariant.is_popular.is_(True)))
            query = query.where(popular if filters.is_popular else ~popular)
        return query

    async def find_page(
        self,
        filters: ProductFilter,
        offset: int,
        limit: int,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> tuple[list[Product], int]:
        """Find one page of products matching the filters.

        Args:
            filters: Filter criteria.
            offset: Rows to skip.
            limit: Page size.
            sort_by: ``name``, ``created_at`` or ``price`` (minimum variant price).
            sort_order: ``asc`` or ``desc``.

        Returns:
            Tuple of (products on the page, total matching count).
        """
        query = self._filtered(filters)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.session.execute(count_query)).scalar_one()

        if sort_by == "price":
            sort_column = (
                select(func.min(ProductVariant.price))
                .where(ProductVariant.product_id == Product.id, ProductVariant.deleted_at.is_(None))
                .correlate(Product)
                .scalar_subquery()
            )
        elif sort_by == "name":
            sort_column = func.lower(Product.name)
        else:
            sort_column = Product.created_at

        if sort_order == "asc":
            query = query.order_by(sort_column.asc(), Product.id.asc())
        else:
            query = query.order_by(sort_column.desc(), Product.id.desc())

        result = await self.session.execute(query.offset(offset).limit(limit))
        return list(result.scalars().all()), total

    async def find_all(self, filters: ProductFilter) -> list[Product]:
        query = self._filtered(filters).order_by(Product.id)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def search_candidates(self, filters: ProductFilter, tokens: Sequence[str]) -> list[Product]:
        """Products with at least one token in a searchable field."""
        if not tokens:
            return []
        matchers = []
        for token in tokens:
            pattern = f"%{token}%"
            matchers.extend(
                [
                    Product.name.ilike(pattern),
                    Product.brand.ilike(pattern),
                    Product.short_description.ilike(pattern),
                    cast(Product.tags, String).ilike(pattern),
                ]
            )
        query = self._filtered(filters).where(or_(*matchers)).order_by(Product.id)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def newest_for_seller(self, seller_id: int, limit: int) -> list[int]:
        query = (
            select(Product.id)
            .where(Product.seller_id == seller_id, Product.deleted_at.is_(None))
            .order_by(Product.created_at.desc(), Product.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(query)
        return [row[0] for row in result.all()]

    # ------------------------------------------------------------------
    # Facets
    # ------------------------------------------------------------------

    def _scoped_ids(self, seller_id: int | None) -> Select:
        query = select(Product.id).where(Product.deleted_at.is_(None))
        if seller_id is not None:
            query = query.where(Product.seller_id == seller_id)
        return query

    async def count_by_category(self, seller_id: int | None) -> dict[int, int]:
        query = (
            select(Product.category_id, func.count(Product.id))
            .where(Product.id.in_(self._scoped_ids(seller_id)))
            .group_by(Product.category_id)
        )
        result = await self.session.execute(query)
        return {category_id: count for category_id, count in result.all()}

    async def count_by_brand(self, seller_id: int | None) -> list[tuple[str, int]]:
        query = (
            select(Product.brand, func.count(Product.id))
            .where(Product.id.in_(self._scoped_ids(seller_id)), Product.brand.is_not(None), Product.brand != "")
            .group_by(Product.brand)
            .order_by(func.count(Product.id).desc(), Product.brand)
        )
        result = await self.session.execute(query)
        return [(brand, count) for brand, count in result.all()]

    async def price_bounds(self, seller_id: int | None) -> list[tuple[int, float, float]]:
        """Per product: (product id, min variant price, max variant price)."""
        query = (
            select(ProductVariant.product_id, func.min(ProductVariant.price), func.max(ProductVariant.price))
            .where(
                ProductVariant.deleted_at.is_(None),
                ProductVariant.product_id.in_(self._scoped_ids(seller_id)),
            )
            .group_by(ProductVariant.product_id)
        )
        result = await self.session.execute(query)
        return [(pid, float(low), float(high)) for pid, low, high in result.all()]

    async def count_in_stock(self, seller_id: int | None) -> tuple[int, int]:
        """Return (products with a purchasable variant, all products)."""
        scoped = self._scoped_ids(seller_id).subquery()
        total = (await self.session.execute(select(func.count()).select_from(scoped))).scalar_one()
        in_stock_query = select(func.count(func.distinct(ProductVariant.product_id))).where(
            ProductVariant.deleted_at.is_(None),
            ProductVariant.allow_purchase.is_(True),
            ProductVariant.product_id.in_(self._scoped_ids(seller_id)),
        )
        in_stock = (await self.session.execute(in_stock_query)).scalar_one()
        return in_stock, total

    async def attribute_value_counts(
        self, seller_id: int | None
    ) -> list[tuple[AttributeDefinition, str, int]]:
        query = (
            select(
                ProductAttribute.attribute_definition_id,
                ProductAttribute.value,
                func.count(func.distinct(ProductAttribute.product_id)),
            )
            .where(
                ProductAttribute.deleted_at.is_(None),
                ProductAttribute.product_id.in_(self._scoped_ids(seller_id)),
            )
            .group_by(ProductAttribute.attribute_definition_id, ProductAttribute.value)
        )
        rows = (await self.session.execute(query)).all()
        if not rows:
            return []
        definition_ids = {row[0] for row in rows}
        definitions = await self.session.execute(
            select(AttributeDefinition).where(AttributeDefinition.id.in_(definition_ids))
        )
        by_id = {definition.id: definition for definition in definitions.scalars()}
        return [(by_id[def_id], value, count) for def_id, value, count in rows if def_id in by_id]

    async def option_value_counts(self, seller_id: int | None) -> list[tuple[str, str, str, int]]:
        """Per (option name, value): display name and number of products offering it."""
        query = (
            select(
                ProductOption.name,
                func.min(ProductOption.display_name),
                ProductOptionValue.value,
                func.count(func.distinct(ProductVariant.product_id)),
            )
            .join(VariantOptionValue, VariantOptionValue.option_value_id == ProductOptionValue.id)
            .join(ProductOption, ProductOption.id == VariantOptionValue.option_id)
            .join(ProductVariant, ProductVariant.id == VariantOptionValue.variant_id)
            .where(
                ProductVariant.deleted_at.is_(None),
                ProductOption.deleted_at.is_(None),
                ProductOptionValue.deleted_at.is_(None),
                ProductVariant.product_id.in_(self._scoped_ids(seller_id)),
            )
            .group_by(ProductOption.name, ProductOptionValue.value)
            .order_by(ProductOption.name, ProductOptionValue.value)
        )
        result = await self.session.execute(query)
        return [(name, display, value, count) for name, display, value, count in result.all()]
