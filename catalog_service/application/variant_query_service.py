"""Variant read paths: single variant, option-based lookup, filtered listing."""

from collections.abc import Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from catalog_service.application.assembly import ProductAssembler, variant_view
from catalog_service.application.guards import load_product, require_scope
from catalog_service.application.pagination import PaginatedResult, PaginationParams
from catalog_service.application.signatures import OptionLattice
from catalog_service.application.views import VariantView
from catalog_service.catalog.repositories import (
    OptionRepository,
    ProductRepository,
    VariantFilter,
    VariantRepository,
)
from catalog_service.domain.exceptions import (
    AmbiguousSelectionError,
    InvalidOptionError,
    ValidationError,
    VariantNotFoundError,
    VariantNotFoundWithOptionsError,
)
from catalog_service.domain.normalization import normalize_option_name, normalize_option_value
from catalog_service.domain.principal import Actor


class VariantQueryService:
    """Read-only variant queries, all narrowed to the caller's tenant scope."""

    def __init__(self, session: AsyncSession) -> None:
        self.products = ProductRepository(session)
        self.options = OptionRepository(session)
        self.variants = VariantRepository(session)
        self.assembler = ProductAssembler(session)

    async def get_variant(self, product_id: int, variant_id: int, actor: Actor) -> VariantView:
        """Variant with its resolved option values for UI rendering."""
        product = await load_product(self.products, product_id, actor)
        variant = await self.variants.get(product.id, variant_id)
        if variant is None:
            raise VariantNotFoundError(variant_id)
        views = await self.assembler.variant_views(product.id, [variant])
        return views[0]

    async def list_for_product(self, product_id: int, actor: Actor) -> list[VariantView]:
        product = await load_product(self.products, product_id, actor)
        variants = await self.variants.list_for_product(product.id)
        return await self.assembler.variant_views(product.id, variants)

    async def find_by_options(self, product_id: int, selections: Mapping[str, str], actor: Actor) -> VariantView:
        """Find the single variant matching a (possibly partial) selection.

        Args:
            product_id: Product ID.
            selections: ``option name -> value`` pairs.
            actor: Caller and tenant scope.

        Returns:
            The only live variant matching every selected pair.

        Raises:
            InvalidOptionError: An option name the product does not have.
            VariantNotFoundWithOptionsError: No variant matches.
            AmbiguousSelectionError: More than one variant matches.
        """
        product = await load_product(self.products, product_id, actor)
        lattice = await OptionLattice.load(self.options, product.id)

        wanted: dict[int, int] = {}
        for name, raw in selections.items():
            option = lattice.option_named(name)
            if option is None:
                raise InvalidOptionError(f"Unknown option '{name}'", option_name=name)
            value = lattice.value_of(option, raw)
            if value is None or wanted.get(option.id, value.id) != value.id:
                raise VariantNotFoundWithOptionsError(dict(selections))
            wanted[option.id] = value.id

        variants = await self.variants.list_for_product(product.id)
        signatures = await self.variants.signatures([variant.id for variant in variants])
        matches = [
            variant
            for variant in variants
            if all(signatures.get(variant.id, {}).get(option_id) == value_id for option_id, value_id in wanted.items())
        ]
        if not matches:
            raise VariantNotFoundWithOptionsError(dict(selections))
        if len(matches) > 1:
            raise AmbiguousSelectionError(len(matches))

        variant = matches[0]
        return variant_view(variant, signatures.get(variant.id, {}), lattice.options, lattice.values_by_id)

    async def list_variants(
        self, filters: VariantFilter, pagination: PaginationParams, actor: Actor
    ) -> PaginatedResult[VariantView]:
        """List variants across products, ordered by (productId, position, id).

        An explicit ``filters.seller_id`` narrows an unscoped admin to one
        seller; any other caller may only name its own scope.
        """
        scope = require_scope(actor)
        if scope is not None:
            if filters.seller_id is not None and filters.seller_id != scope:
                raise ValidationError.for_field("sellerId", "sellerId must match the caller's seller scope")
            filters.seller_id = scope
        filters.options = {
            normalize_option_name(name): normalize_option_value(value) for name, value in filters.options.items()
        }
        variants, total = await self.variants.find_page(filters, pagination.offset, pagination.limit)

        product_ids = sorted({variant.product_id for variant in variants})
        options_by_product = await self.options.list_for_products(product_ids)
        signatures = await self.variants.signatures([variant.id for variant in variants])
        value_ids = {value_id for signature in signatures.values() for value_id in signature.values()}
        values = await self.options.values_by_ids(list(value_ids))

        items = [
            variant_view(
                variant,
                signatures.get(variant.id, {}),
                options_by_product.get(variant.product_id, []),
                values,
            )
            for variant in variants
        ]
        return PaginatedResult(items=items, total=total, page=pagination.page, limit=pagination.limit)
