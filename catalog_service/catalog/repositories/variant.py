"""Variant and option-signature persistence."""

from collections import defaultdict
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from sqlalchemy import delete, exists, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_service.catalog.models import (
    ProductOption,
    ProductOptionValue,
    ProductVariant,
    VariantOptionValue,
)


@dataclass
class VariantFilter:
    """Filter parameters for variant listing.

    Attributes:
        ids: Explicit variant ids.
        product_ids: Restrict to these products.
        seller_id: Tenant scope; None lists every seller.
        sku_prefix: Case-sensitive SKU prefix.
        min_price: Inclusive lower price bound.
        max_price: Inclusive upper price bound.
        options: Normalised ``option name -> value`` pairs, all must match.
        allow_purchase: Purchasable flag.
        is_default: Default flag.
    """

    ids: list[int] | None = None
    product_ids: list[int] | None = None
    seller_id: int | None = None
    sku_prefix: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    options: dict[str, str] = field(default_factory=dict)
    allow_purchase: bool | None = None
    is_default: bool | None = None


class VariantRepository:
    """Repository for ProductVariant and VariantOptionValue rows."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, product_id: int, variant_id: int) -> ProductVariant | None:
        query = select(ProductVariant).where(
            ProductVariant.id == variant_id,
            ProductVariant.product_id == product_id,
            ProductVariant.deleted_at.is_(None),
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_for_products(self, product_ids: Sequence[int]) -> dict[int, list[ProductVariant]]:
        """Live variants grouped by product id, ordered by (position, id), in one query."""
        grouped: dict[int, list[ProductVariant]] = defaultdict(list)
        if not product_ids:
            return grouped
        query = (
            select(ProductVariant)
            .where(ProductVariant.product_id.in_(set(product_ids)), ProductVariant.deleted_at.is_(None))
            .order_by(ProductVariant.product_id, ProductVariant.position, ProductVariant.id)
        )
        for variant in (await self.session.execute(query)).scalars():
            grouped[variant.product_id].append(variant)
        return grouped

    async def list_for_product(self, product_id: int) -> list[ProductVariant]:
        grouped = await self.list_for_products([product_id])
        return grouped.get(product_id, [])

    async def signatures(self, variant_ids: Sequence[int]) -> dict[int, dict[int, int]]:
        """Option signatures ``{variant_id: {option_id: option_value_id}}``."""
        signatures: dict[int, dict[int, int]] = defaultdict(dict)
        if not variant_ids:
            return signatures
        query = select(
            VariantOptionValue.variant_id,
            VariantOptionValue.option_id,
            VariantOptionValue.option_value_id,
        ).where(VariantOptionValue.variant_id.in_(set(variant_ids)))
        for variant_id, option_id, value_id in (await self.session.execute(query)).all():
            signatures[variant_id][option_id] = value_id
        return signatures

    async def sku_taken(self, seller_id: int, sku: str, exclude_id: int | None = None) -> bool:
        query = select(ProductVariant.id).where(
            ProductVariant.seller_id == seller_id,
            ProductVariant.sku == sku,
            ProductVariant.deleted_at.is_(None),
        )
        if exclude_id is not None:
            query = query.where(ProductVariant.id != exclude_id)
        result = await self.session.execute(query.limit(1))
        return result.first() is not None

    async def add(self, variant: ProductVariant) -> ProductVariant:
        self.session.add(variant)
        await self.session.flush()
        return variant

    async def set_signature(self, variant_id: int, signature: Mapping[int, int]) -> None:
        """Replace the variant's option signature."""
        await self.session.execute(
            delete(VariantOptionValue).where(VariantOptionValue.variant_id == variant_id)
        )
        self.session.add_all(
            VariantOptionValue(variant_id=variant_id, option_id=option_id, option_value_id=value_id)
            for option_id, value_id in signature.items()
        )
        await self.session.flush()

    async def extend_signatures(self, variant_ids: Sequence[int], option_id: int, value_id: int) -> None:
        """Give every listed variant a value for a newly added option."""
        self.session.add_all(
            VariantOptionValue(variant_id=variant_id, option_id=option_id, option_value_id=value_id)
            for variant_id in variant_ids
        )
        await self.session.flush()

    async def count_live(self, product_id: int) -> int:
        query = select(func.count(ProductVariant.id)).where(
            ProductVariant.product_id == product_id, ProductVariant.deleted_at.is_(None)
        )
        return (await self.session.execute(query)).scalar_one()

    async def clear_default(self, product_id: int, except_id: int | None = None) -> None:
        query = update(ProductVariant).where(
            ProductVariant.product_id == product_id,
            ProductVariant.is_default.is_(True),
            ProductVariant.deleted_at.is_(None),
        )
        if except_id is not None:
            query = query.where(ProductVariant.id != except_id)
        await self.session.execute(
            query.values(is_default=False).execution_options(synchronize_session="fetch")
        )

    async def next_position(self, product_id: int) -> int:
        query = select(func.max(ProductVariant.position)).where(
            ProductVariant.product_id == product_id, ProductVariant.deleted_at.is_(None)
        )
        current = (await self.session.execute(query)).scalar_one()
        return 0 if current is None else current + 1

    async def option_in_use(self, option_id: int) -> bool:
        query = (
            select(VariantOptionValue.id)
            .join(ProductVariant, ProductVariant.id == VariantOptionValue.variant_id)
            .where(VariantOptionValue.option_id == option_id, ProductVariant.deleted_at.is_(None))
        )
        return (await self.session.execute(query.limit(1))).first() is not None

    async def value_in_use(self, value_id: int) -> bool:
        query = (
            select(VariantOptionValue.id)
            .join(ProductVariant, ProductVariant.id == VariantOptionValue.variant_id)
            .where(VariantOptionValue.option_value_id == value_id, ProductVariant.deleted_at.is_(None))
        )
        return (await self.session.execute(query.limit(1))).first() is not None

    async def find_page(
        self, filters: VariantFilter, offset: int, limit: int
    ) -> tuple[list[ProductVariant], int]:
        """Find one page of variants ordered by (product_id, position, id).

        Args:
            filters: Filter criteria.
            offset: Rows to skip.
            limit: Page size.

        Returns:
            Tuple of (variants on the page, total matching count).
        """
        query = select(ProductVariant).where(ProductVariant.deleted_at.is_(None))
        if filters.ids is not None:
            query = query.where(ProductVariant.id.in_(filters.ids))
        if filters.product_ids is not None:
            query = query.where(ProductVariant.product_id.in_(filters.product_ids))
        if filters.seller_id is not None:
            query = query.where(ProductVariant.seller_id == filters.seller_id)
        if filters.sku_prefix:
            query = query.where(ProductVariant.sku.startswith(filters.sku_prefix, autoescape=True))
        if filters.min_price is not None:
            query = query.where(ProductVariant.price >= filters.min_price)
        if filters.max_price is not None:
            query = query.where(ProductVariant.price <= filters.max_price)
        if filters.allow_purchase is not None:
            query = query.where(ProductVariant.allow_purchase.is_(filters.allow_purchase))
        if filters.is_default is not None:
            query = query.where(ProductVariant.is_default.is_(filters.is_default))
        for name, value in filters.options.items():
            query = query.where(
                exists(
                    select(VariantOptionValue.id)
                    .join(ProductOption, ProductOption.id == VariantOptionValue.option_id)
                    .join(ProductOptionValue, ProductOptionValue.id == VariantOptionValue.option_value_id)
                    .where(
                        VariantOptionValue.variant_id == ProductVariant.id,
                        ProductOption.name == name,
                        ProductOptionValue.value == value,
                    )
                )
            )

        total = (await self.session.execute(select(func.count()).select_from(query.subquery()))).scalar_one()
        query = query.order_by(ProductVariant.product_id, ProductVariant.position, ProductVariant.id)
        result = await self.session.execute(query.offset(offset).limit(limit))
        return list(result.scalars().all()), total
