"""Assembly of product read records from catalog rows.

Listing pages are assembled from a fixed number of batched queries
(variants, options, signatures, option values) regardless of page size.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from catalog_service.application.views import (
    CategoryBreadcrumb,
    CategoryRef,
    OptionValueView,
    OptionView,
    PackageOptionView,
    PriceRange,
    ProductAttributeView,
    ProductDetailView,
    ProductSummaryView,
    SelectedOptionView,
    VariantPreview,
    VariantPreviewOption,
    VariantView,
)
from catalog_service.catalog.models import (
    Product,
    ProductAttribute,
    ProductOption,
    ProductOptionValue,
    ProductVariant,
)
from catalog_service.catalog.repositories import (
    CategoryRepository,
    OptionRepository,
    PackageOptionRepository,
    ProductAttributeRepository,
    VariantRepository,
)


@dataclass
class VariantAggregate:
    """Storefront aggregates over a product's live variants."""

    has_variants: bool
    allow_purchase: bool
    price_range: PriceRange | None
    images: list[str] = field(default_factory=list)


def aggregate_variants(variants: Sequence[ProductVariant]) -> VariantAggregate:
    """Compute price range, purchasability and main images.

    Images come from the default variant, falling back to the first variant.

    Args:
        variants: Live variants ordered by (position, id).

    Returns:
        VariantAggregate for the product.
    """
    if not variants:
        return VariantAggregate(has_variants=False, allow_purchase=False, price_range=None)
    prices = [float(variant.price) for variant in variants]
    main = next((variant for variant in variants if variant.is_default), variants[0])
    return VariantAggregate(
        has_variants=True,
        allow_purchase=any(variant.allow_purchase for variant in variants),
        price_range=PriceRange(min=min(prices), max=max(prices)),
        images=list(main.images or []),
    )


def build_preview(
    variants: Sequence[ProductVariant],
    options: Sequence[ProductOption],
    signatures: Mapping[int, Mapping[int, int]],
    values: Mapping[int, ProductOptionValue],
) -> VariantPreview:
    """Summarise, per option, the values actually used by live variants."""
    used: dict[int, set[int]] = {option.id: set() for option in options}
    for variant in variants:
        for option_id, value_id in signatures.get(variant.id, {}).items():
            if option_id in used:
                used[option_id].add(value_id)

    preview_options = []
    for option in options:
        option_values = sorted(
            (values[value_id] for value_id in used[option.id] if value_id in values),
            key=lambda value: (value.position, value.id),
        )
        preview_options.append(
            VariantPreviewOption(
                name=option.name,
                display_name=option.display_name,
                available_values=[value.value for value in option_values],
            )
        )
    return VariantPreview(total_variants=len(variants), options=preview_options)


def selected_options(
    signature: Mapping[int, int],
    options: Sequence[ProductOption],
    values: Mapping[int, ProductOptionValue],
) -> list[SelectedOptionView]:
    """Resolve a signature into display records, in option order."""
    selected = []
    for option in options:
        value = values.get(signature.get(option.id, -1))
        if value is None:
            continue
        selected.append(
            SelectedOptionView(
                option_id=option.id,
                option_name=option.name,
                option_display_name=option.display_name,
                value_id=value.id,
                value=value.value,
                value_display_name=value.display_name,
                color_code=value.color_code,
            )
        )
    return selected


def variant_view(
    variant: ProductVariant,
    signature: Mapping[int, int],
    options: Sequence[ProductOption],
    values: Mapping[int, ProductOptionValue],
) -> VariantView:
    return VariantView(
        id=variant.id,
        product_id=variant.product_id,
        sku=variant.sku,
        price=float(variant.price),
        images=list(variant.images or []),
        allow_purchase=variant.allow_purchase,
        is_default=variant.is_default,
        is_popular=variant.is_popular,
        position=variant.position,
        selected_options=selected_options(signature, options, values),
        created_at=variant.created_at,
        updated_at=variant.updated_at,
    )


def option_view(option: ProductOption, values: Sequence[ProductOptionValue]) -> OptionView:
    return OptionView(
        id=option.id,
        product_id=option.product_id,
        name=option.name,
        display_name=option.display_name,
        position=option.position,
        values=[OptionValueView.model_validate(value) for value in values],
    )


def attribute_view(row: ProductAttribute) -> ProductAttributeView:
    definition = row.attribute_definition
    return ProductAttributeView(
        id=row.id,
        attribute_id=definition.id,
        key=definition.key,
        name=definition.name,
        data_type=definition.data_type,
        unit=definition.unit,
        value=row.value,
        sort_order=row.sort_order,
    )


def summary_fields(product: Product, aggregate: VariantAggregate, preview: VariantPreview) -> dict:
    return {
        "id": product.id,
        "name": product.name,
        "brand": product.brand,
        "base_sku": product.base_sku,
        "short_description": product.short_description,
        "tags": list(product.tags or []),
        "category_id": product.category_id,
        "seller_id": product.seller_id,
        "has_variants": aggregate.has_variants,
        "allow_purchase": aggregate.allow_purchase,
        "price_range": aggregate.price_range,
        "images": aggregate.images,
        "variant_preview": preview,
        "created_at": product.created_at,
        "updated_at": product.updated_at,
    }


class ProductAssembler:
    """Builds product summaries and detail views with batched lookups.

    Example usage:
        assembler = ProductAssembler(session)
        summaries = await assembler.summaries(products)
    """

    def __init__(self, session: AsyncSession) -> None:
        self.categories = CategoryRepository(session)
        self.options = OptionRepository(session)
        self.variants = VariantRepository(session)
        self.attributes = ProductAttributeRepository(session)
        self.packages = PackageOptionRepository(session)

    async def summary_fields_for(self, products: Sequence[Product]) -> dict[int, dict]:
        """Summary fields per product id, from four batched queries."""
        product_ids = [product.id for product in products]
        variants_by_product = await self.variants.list_for_products(product_ids)
        options_by_product = await self.options.list_for_products(product_ids)
        variant_ids = [variant.id for rows in variants_by_product.values() for variant in rows]
        signatures = await self.variants.signatures(variant_ids)
        value_ids = {value_id for signature in signatures.values() for value_id in signature.values()}
        values = await self.options.values_by_ids(list(value_ids))

        fields = {}
        for product in products:
            variants = variants_by_product.get(product.id, [])
            options = options_by_product.get(product.id, [])
            fields[product.id] = summary_fields(
                product,
                aggregate_variants(variants),
                build_preview(variants, options, signatures, values),
            )
        return fields

    async def summaries(self, products: Sequence[Product]) -> list[ProductSummaryView]:
        fields = await self.summary_fields_for(products)
        return [ProductSummaryView(**fields[product.id]) for product in products]

    async def variant_views(self, product_id: int, variants: Sequence[ProductVariant]) -> list[VariantView]:
        options = await self.options.list_for_product(product_id)
        signatures = await self.variants.signatures([variant.id for variant in variants])
        value_ids = {value_id for signature in signatures.values() for value_id in signature.values()}
        values = await self.options.values_by_ids(list(value_ids))
        return [
            variant_view(variant, signatures.get(variant.id, {}), options, values)
            for variant in variants
        ]

    async def options_for(self, product_id: int) -> list[OptionView]:
        options = await self.options.list_for_product(product_id)
        values = await self.options.values_for_options([option.id for option in options])
        return [option_view(option, values.get(option.id, [])) for option in options]

    async def breadcrumb(self, category_id: int) -> CategoryBreadcrumb | None:
        category = await self.categories.get(category_id)
        if category is None:
            return None
        parent = await self.categories.get(category.parent_id) if category.parent_id else None
        return CategoryBreadcrumb(
            id=category.id,
            name=category.name,
            parent=CategoryRef(id=parent.id, name=parent.name) if parent else None,
        )

    async def detail(self, product: Product) -> ProductDetailView:
        """Full product view: options, variants, attributes, packages, breadcrumb."""
        variants = await self.variants.list_for_product(product.id)
        options = await self.options.list_for_product(product.id)
        option_values = await self.options.values_for_options([option.id for option in options])
        signatures = await self.variants.signatures([variant.id for variant in variants])
        values = {value.id: value for rows in option_values.values() for value in rows}
        missing = {
            value_id
            for signature in signatures.values()
            for value_id in signature.values()
            if value_id not in values
        }
        if missing:
            values.update(await self.options.values_by_ids(list(missing)))

        return ProductDetailView(
            **summary_fields(
                product,
                aggregate_variants(variants),
                build_preview(variants, options, signatures, values),
            ),
            long_description=product.long_description,
            category=await self.breadcrumb(product.category_id),
            options=[option_view(option, option_values.get(option.id, [])) for option in options],
            variants=[
                variant_view(variant, signatures.get(variant.id, {}), options, values)
                for variant in variants
            ],
            attributes=[attribute_view(row) for row in await self.attributes.list_for_product(product.id)],
            package_options=[
                PackageOptionView.model_validate(row)
                for row in await self.packages.list_for_product(product.id)
            ],
        )
