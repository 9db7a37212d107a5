"""Variant command services.

Variants bind the option lattice to price and inventory. Every write here
runs in one transaction holding ``SELECT ... FOR UPDATE`` on the product
row, so signature checks and default-variant transitions are serialised
per product.
"""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_service.application.assembly import ProductAssembler
from catalog_service.application.guards import load_product
from catalog_service.application.requests import VariantBulkUpdate, VariantCreate, VariantUpdate
from catalog_service.application.signatures import OptionLattice, find_duplicate
from catalog_service.application.views import VariantView
from catalog_service.catalog.models import Product, ProductVariant
from catalog_service.catalog.repositories import OptionRepository, ProductRepository, VariantRepository
from catalog_service.domain.exceptions import (
    DefaultVariantRequiredError,
    InvalidOptionError,
    LastVariantDeleteNotAllowedError,
    NoFieldsProvidedError,
    ValidationError,
    VariantNotFoundError,
    VariantOptionCombinationExistsError,
    VariantSkuExistsError,
)
from catalog_service.domain.principal import Actor
from catalog_service.infrastructure.cache import CatalogCache
from catalog_service.infrastructure.database import transaction

logger = structlog.get_logger()

SCALAR_FIELDS = ("sku", "price", "images", "allow_purchase", "is_popular", "position")


def reject_nulls(fields: dict) -> None:
    for name in (*SCALAR_FIELDS, "is_default"):
        if name in fields and fields[name] is None:
            raise ValidationError.for_field(name, f"{name} cannot be null")


class _VariantWriter:
    def __init__(self, session: AsyncSession, cache: CatalogCache) -> None:
        self.session = session
        self.cache = cache
        self.products = ProductRepository(session)
        self.options = OptionRepository(session)
        self.variants = VariantRepository(session)
        self.assembler = ProductAssembler(session)

    async def _load_variant(self, product: Product, variant_id: int) -> ProductVariant:
        variant = await self.variants.get(product.id, variant_id)
        if variant is None:
            raise VariantNotFoundError(variant_id)
        return variant

    async def _check_sku(self, product: Product, sku: str, exclude_id: int | None = None) -> str:
        sku = sku.strip()
        if not sku:
            raise ValidationError.for_field("sku", "SKU cannot be empty")
        if await self.variants.sku_taken(product.seller_id, sku, exclude_id=exclude_id):
            raise VariantSkuExistsError(sku)
        return sku

    async def _view(self, product: Product, variant: ProductVariant) -> VariantView:
        views = await self.assembler.variant_views(product.id, [variant])
        return views[0]


class VariantService(_VariantWriter):
    """Create, update and delete single variants.

    Example usage:
        service = VariantService(session, cache)
        view = await service.create_variant(
            product_id,
            VariantCreate(sku="TEE-RED-M", price=10, options={"color": "red", "size": "m"}),
            Actor.seller(7),
        )
    """

    async def create_variant(self, product_id: int, request: VariantCreate, actor: Actor) -> VariantView:
        """Create a variant for a complete option selection.

        Raises:
            InvalidOptionError: Product has no options, or the selection names
                an unknown option or value, or leaves an option out.
            VariantOptionCombinationExistsError: Same signature already live.
            VariantSkuExistsError: SKU taken by another live variant of the seller.
        """
        async with transaction(self.session):
            product = await load_product(self.products, product_id, actor, for_update=True)
            lattice = await OptionLattice.load(self.options, product.id)
            if not lattice.options:
                raise InvalidOptionError("Product has no options; add options before adding variants")
            signature = lattice.resolve(request.options)

            existing = await self.variants.list_for_product(product.id)
            signatures = await self.variants.signatures([variant.id for variant in existing])
            duplicate = find_duplicate(signature, {v.id: signatures.get(v.id, {}) for v in existing})
            if duplicate is not None:
                raise VariantOptionCombinationExistsError(product.id, duplicate)

            sku = await self._check_sku(product, request.sku)
            is_default = request.is_default or not existing
            if is_default:
                await self.variants.clear_default(product.id)

            position = request.position
            if position is None:
                position = await self.variants.next_position(product.id)
            variant = await self.variants.add(
                ProductVariant(
                    product_id=product.id,
                    seller_id=product.seller_id,
                    sku=sku,
                    price=request.price,
                    images=list(request.images),
                    allow_purchase=request.allow_purchase,
                    is_default=is_default,
                    is_popular=request.is_popular,
                    position=position,
                )
            )
            await self.variants.set_signature(variant.id, signature)
            view = await self._view(product, variant)

        logger.info("Variant created", product_id=product_id, variant_id=variant.id, sku=sku)
        await self.cache.invalidate_product(product_id)
        return view

    async def update_variant(
        self, product_id: int, variant_id: int, request: VariantUpdate, actor: Actor
    ) -> VariantView:
        """Patch a variant, including its option signature.

        Raises:
            DefaultVariantRequiredError: Demoting the product's only default.
            VariantOptionCombinationExistsError: New signature already live.
            VariantSkuExistsError: New SKU already taken.
        """
        fields = request.present_fields()
        if not fields:
            raise NoFieldsProvidedError()
        reject_nulls(fields)

        async with transaction(self.session):
            product = await load_product(self.products, product_id, actor, for_update=True)
            variant = await self._load_variant(product, variant_id)

            if "sku" in fields and fields["sku"].strip() != variant.sku:
                variant.sku = await self._check_sku(product, fields["sku"], exclude_id=variant.id)
            for name in ("price", "images", "allow_purchase", "is_popular", "position"):
                if name in fields:
                    setattr(variant, name, fields[name])

            if fields.get("options") is not None:
                lattice = await OptionLattice.load(self.options, product.id)
                signature = lattice.resolve(fields["options"])
                others = [v for v in await self.variants.list_for_product(product.id) if v.id != variant.id]
                signatures = await self.variants.signatures([v.id for v in others])
                duplicate = find_duplicate(signature, {v.id: signatures.get(v.id, {}) for v in others})
                if duplicate is not None:
                    raise VariantOptionCombinationExistsError(product.id, duplicate)
                await self.variants.set_signature(variant.id, signature)

            if "is_default" in fields:
                if fields["is_default"]:
                    await self.variants.clear_default(product.id, except_id=variant.id)
                    variant.is_default = True
                elif variant.is_default:
                    raise DefaultVariantRequiredError(product.id)

            await self.session.flush()
            view = await self._view(product, variant)

        logger.info("Variant updated", product_id=product_id, variant_id=variant_id, fields=sorted(fields))
        await self.cache.invalidate_product(product_id)
        return view

    async def delete_variant(self, product_id: int, variant_id: int, actor: Actor) -> None:
        """Soft-delete a variant, promoting a new default if needed.

        Raises:
            LastVariantDeleteNotAllowedError: It is the product's only live variant.
        """
        async with transaction(self.session):
            product = await load_product(self.products, product_id, actor, for_update=True)
            variant = await self._load_variant(product, variant_id)
            if await self.variants.count_live(product.id) <= 1:
                raise LastVariantDeleteNotAllowedError(variant.id)

            was_default = variant.is_default
            variant.is_default = False
            variant.soft_delete()
            await self.session.flush()

            promoted = None
            if was_default:
                remaining = await self.variants.list_for_product(product.id)
                promoted = remaining[0]
                promoted.is_default = True
                await self.session.flush()

        logger.info(
            "Variant deleted",
            product_id=product_id,
            variant_id=variant_id,
            promoted_variant_id=promoted.id if promoted else None,
        )
        await self.cache.invalidate_product(product_id)


class VariantBulkService(_VariantWriter):
    """Atomic multi-variant updates of scalar fields."""

    async def bulk_update(self, product_id: int, request: VariantBulkUpdate, actor: Actor) -> list[VariantView]:
        """Apply every patch or none.

        At most one patch may set ``isDefault`` to true; after all patches
        the product must still have exactly one default variant.

        Raises:
            VariantNotFoundError: A patch names a variant of another product.
            ValidationError: Duplicate ids, several defaults, or null fields.
            DefaultVariantRequiredError: The patches leave no default.
            VariantSkuExistsError: A new SKU collides.
        """
        ids = [item.id for item in request.variants]
        if len(set(ids)) != len(ids):
            raise ValidationError.for_field("variants", "Each variant may appear only once")
        promoted = [item.id for item in request.variants if item.is_default]
        if len(promoted) > 1:
            raise ValidationError.for_field(
                "variants", "Only one variant can be marked default", error_code="MULTIPLE_DEFAULTS"
            )

        async with transaction(self.session):
            product = await load_product(self.products, product_id, actor, for_update=True)
            live = {variant.id: variant for variant in await self.variants.list_for_product(product.id)}
            for variant_id in ids:
                if variant_id not in live:
                    raise VariantNotFoundError(variant_id)

            final_skus = {variant.id: variant.sku for variant in live.values()}
            for item in request.variants:
                fields = item.present_fields()
                fields.pop("id", None)
                if not fields:
                    raise NoFieldsProvidedError()
                reject_nulls(fields)
                variant = live[item.id]
                if "sku" in fields and fields["sku"].strip() != variant.sku:
                    variant.sku = await self._check_sku(product, fields["sku"], exclude_id=variant.id)
                    final_skus[variant.id] = variant.sku
                for name in ("price", "images", "allow_purchase", "is_popular", "position"):
                    if name in fields:
                        setattr(variant, name, fields[name])
                if fields.get("is_default") is False:
                    variant.is_default = False

            if len(set(final_skus.values())) != len(final_skus):
                raise ValidationError.for_field("variants", "SKUs must be unique", error_code="VARIANT_SKU_EXISTS")

            if promoted:
                for variant in live.values():
                    variant.is_default = variant.id == promoted[0]
            if sum(1 for variant in live.values() if variant.is_default) != 1:
                raise DefaultVariantRequiredError(product.id)

            await self.session.flush()
            views = await self.assembler.variant_views(product.id, [live[variant_id] for variant_id in ids])

        logger.info("Variants bulk updated", product_id=product_id, count=len(ids))
        await self.cache.invalidate_product(product_id)
        return views
