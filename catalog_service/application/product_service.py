"""Product command service.

Creates the whole product aggregate (product row, options, option values,
variants, attribute values, package options) in one transaction, patches
product-level fields, and soft-deletes the aggregate.
"""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_service.application.assembly import ProductAssembler
from catalog_service.application.category_service import CategoryService, InheritedAttribute
from catalog_service.application.guards import load_product
from catalog_service.application.option_service import build_values, option_key
from catalog_service.application.product_attribute_service import check_attribute_value
from catalog_service.application.requests import (
    OptionCreate,
    ProductAttributeInput,
    ProductCreate,
    ProductUpdate,
    VariantCreate,
)
from catalog_service.application.signatures import OptionLattice, Signature, find_duplicate
from catalog_service.application.views import ProductDetailView
from catalog_service.catalog.models import (
    Category,
    PackageOption,
    Product,
    ProductAttribute,
    ProductOption,
    ProductVariant,
)
from catalog_service.catalog.repositories import (
    OptionRepository,
    PackageOptionRepository,
    ProductAttributeRepository,
    ProductRepository,
    VariantRepository,
)
from catalog_service.domain.exceptions import (
    InvalidCategoryError,
    NoFieldsProvidedError,
    OptionNameExistsError,
    ProductSkuExistsError,
    ProductAttributeExistsError,
    RequiredAttributeMissingError,
    ValidationError,
    VariantOptionCombinationExistsError,
    VariantSkuExistsError,
)
from catalog_service.domain.principal import Actor
from catalog_service.infrastructure.cache import CatalogCache
from catalog_service.infrastructure.database import transaction

logger = structlog.get_logger()


def clean_tags(tags: list[str]) -> list[str]:
    """Trim tags, dropping blanks and repeats while keeping order."""
    cleaned: list[str] = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in cleaned:
            cleaned.append(tag)
    return cleaned


def clean_product_name(name: str | None) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError.for_field("name", "Product name cannot be empty")
    return cleaned


def owning_seller(request: ProductCreate, actor: Actor) -> int:
    """Seller a new product belongs to.

    Sellers always create for themselves; admins name the seller in the
    body or through the request scope.

    Raises:
        ValidationError: No seller could be determined.
    """
    if actor.is_seller:
        return actor.seller_id
    seller_id = request.seller_id or actor.seller_id
    if not seller_id:
        raise ValidationError(
            "A seller is required to own the product (sellerId or X-Seller-ID)",
            error_code="SELLER_ID_REQUIRED",
        )
    return seller_id


class ProductService:
    """Service for product aggregate writes.

    Example usage:
        service = ProductService(session, cache)
        detail = await service.create(ProductCreate(...), Actor.seller(7))
    """

    def __init__(self, session: AsyncSession, cache: CatalogCache, max_depth: int = 5) -> None:
        self.session = session
        self.cache = cache
        self.products = ProductRepository(session)
        self.options = OptionRepository(session)
        self.variants = VariantRepository(session)
        self.attributes = ProductAttributeRepository(session)
        self.packages = PackageOptionRepository(session)
        self.assembler = ProductAssembler(session)
        self.category_service = CategoryService(session, cache, max_depth=max_depth)

    async def _category_for_seller(self, category_id: int, seller_id: int) -> Category:
        category = await self.category_service.categories.get(category_id)
        if category is None or category.seller_id not in (None, 0, seller_id):
            raise InvalidCategoryError(category_id)
        return category

    async def _check_base_sku(self, seller_id: int, base_sku: str | None, exclude_id: int | None = None) -> str | None:
        base_sku = (base_sku or "").strip() or None
        if base_sku and await self.products.base_sku_taken(seller_id, base_sku, exclude_id=exclude_id):
            raise ProductSkuExistsError(base_sku)
        return base_sku

    # ------------------------------------------------------------------
    # Aggregate construction
    # ------------------------------------------------------------------

    async def _create_options(self, product: Product, requests: list[OptionCreate]) -> OptionLattice:
        lattice = OptionLattice(options=[])
        for index, request in enumerate(requests):
            name = option_key(request.name)
            if lattice.option_named(name) is not None:
                raise OptionNameExistsError(name)
            option = ProductOption(
                product_id=product.id,
                name=name,
                display_name=(request.display_name or request.name).strip(),
                position=request.position if request.position is not None else index,
            )
            await self.options.add(option)
            rows = build_values(option, request.values)
            self.session.add_all(rows)
            await self.session.flush()
            lattice.options.append(option)
            lattice.values[option.id] = rows
        return lattice

    async def _create_variants(
        self, product: Product, lattice: OptionLattice, requests: list[VariantCreate]
    ) -> list[ProductVariant]:
        flagged = [index for index, request in enumerate(requests) if request.is_default]
        if len(flagged) > 1:
            raise ValidationError.for_field(
                "variants", "Only one variant can be marked default", error_code="MULTIPLE_DEFAULTS"
            )
        default_index = flagged[0] if flagged else 0

        signatures: dict[int, Signature] = {}
        skus: set[str] = set()
        variants: list[ProductVariant] = []
        for index, request in enumerate(requests):
            signature = lattice.resolve(request.options)
            if find_duplicate(signature, signatures) is not None:
                raise VariantOptionCombinationExistsError(product.id)
            signatures[index] = signature

            sku = request.sku.strip()
            if not sku:
                raise ValidationError.for_field("sku", "SKU cannot be empty")
            if sku in skus or await self.variants.sku_taken(product.seller_id, sku):
                raise VariantSkuExistsError(sku)
            skus.add(sku)

            variant = await self.variants.add(
                ProductVariant(
                    product_id=product.id,
                    seller_id=product.seller_id,
                    sku=sku,
                    price=request.price,
                    images=list(request.images),
                    allow_purchase=request.allow_purchase,
                    is_default=index == default_index,
                    is_popular=request.is_popular,
                    position=request.position if request.position is not None else index,
                )
            )
            await self.variants.set_signature(variant.id, signature)
            variants.append(variant)
        return variants

    async def _attach_attributes(
        self,
        product: Product,
        inherited: dict[int, InheritedAttribute],
        requests: list[ProductAttributeInput],
    ) -> None:
        seen: set[int] = set()
        for request in requests:
            if request.attribute_id in seen:
                raise ProductAttributeExistsError(request.attribute_id)
            seen.add(request.attribute_id)
            value = check_attribute_value(inherited, request.attribute_id, request.value)
            await self.attributes.add(
                ProductAttribute(
                    product_id=product.id,
                    attribute_definition_id=request.attribute_id,
                    value=value,
                    sort_order=request.sort_order,
                )
            )

        missing = []
        for definition_id, item in inherited.items():
            if not item.link.is_required or definition_id in seen:
                continue
            if item.link.default_value is None:
                missing.append(item.link.attribute_definition.key)
                continue
            await self.attributes.add(
                ProductAttribute(
                    product_id=product.id,
                    attribute_definition_id=definition_id,
                    value=check_attribute_value(inherited, definition_id, item.link.default_value),
                    sort_order=item.link.sort_order,
                )
            )
        if missing:
            raise RequiredAttributeMissingError(sorted(missing))

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def create(self, request: ProductCreate, actor: Actor) -> ProductDetailView:
        """Create a product with its whole aggregate.

        Every variant must select one value of every option in the request,
        signatures and SKUs must be unique, and exactly one variant ends up
        default (the flagged one, else the first). Required category
        attributes without a value take the link's default value.

        Args:
            request: Product aggregate payload.
            actor: Caller and tenant scope.

        Returns:
            Detail view of the created product.

        Raises:
            InvalidCategoryError: Category absent or not visible to the seller.
            ProductSkuExistsError: Base SKU already used by the seller.
            InvalidOptionError: A variant's option selection does not resolve.
            VariantOptionCombinationExistsError: Two variants share a signature.
            VariantSkuExistsError: SKU repeated or already taken.
            RequiredAttributeMissingError: Required attribute without value or default.
        """
        seller_id = owning_seller(request, actor)

        async with transaction(self.session):
            category = await self._category_for_seller(request.category_id, seller_id)
            product = await self.products.add(
                Product(
                    seller_id=seller_id,
                    category_id=category.id,
                    name=clean_product_name(request.name),
                    brand=(request.brand or "").strip() or None,
                    base_sku=await self._check_base_sku(seller_id, request.base_sku),
                    short_description=request.short_description,
                    long_description=request.long_description,
                    tags=clean_tags(request.tags),
                )
            )

            lattice = await self._create_options(product, request.options)
            variants = await self._create_variants(product, lattice, request.variants)

            resolved = await self.category_service.resolve_inherited(category)
            inherited = {item.link.attribute_definition_id: item for item in resolved}
            await self._attach_attributes(product, inherited, request.attributes)

            for package in request.package_options:
                await self.packages.add(
                    PackageOption(
                        product_id=product.id,
                        name=package.name.strip(),
                        description=package.description,
                        price=package.price,
                        quantity=package.quantity,
                    )
                )

            view = await self.assembler.detail(product)

        logger.info(
            "Product created",
            product_id=product.id,
            seller_id=seller_id,
            options=len(lattice.options),
            variants=len(variants),
        )
        await self.cache.invalidate_filters()
        return view

    async def update(self, product_id: int, request: ProductUpdate, actor: Actor) -> ProductDetailView:
        """Patch product-level fields.

        Raises:
            ProductNotFoundError: Absent or owned by another seller.
            InvalidCategoryError: New category not visible to the product's seller.
            ProductSkuExistsError: New base SKU already used.
        """
        fields = request.present_fields()
        if not fields:
            raise NoFieldsProvidedError()
        for name in ("name", "category_id"):
            if name in fields and fields[name] is None:
                raise ValidationError.for_field(name, f"{name} cannot be null")

        async with transaction(self.session):
            product = await load_product(self.products, product_id, actor, for_update=True)
            if "name" in fields:
                product.name = clean_product_name(fields["name"])
            if "category_id" in fields and fields["category_id"] != product.category_id:
                category = await self._category_for_seller(fields["category_id"], product.seller_id)
                product.category_id = category.id
            if "brand" in fields:
                product.brand = (fields["brand"] or "").strip() or None
            if "base_sku" in fields:
                product.base_sku = await self._check_base_sku(
                    product.seller_id, fields["base_sku"], exclude_id=product.id
                )
            for name in ("short_description", "long_description"):
                if name in fields:
                    setattr(product, name, fields[name])
            if "tags" in fields:
                product.tags = clean_tags(fields["tags"] or [])

            await self.session.flush()
            view = await self.assembler.detail(product)

        logger.info("Product updated", product_id=product_id, fields=sorted(fields))
        await self.cache.invalidate_product(product_id)
        return view

    async def delete(self, product_id: int, actor: Actor) -> None:
        """Soft-delete a product and everything it owns."""
        async with transaction(self.session):
            product = await load_product(self.products, product_id, actor, for_update=True)
            await self.products.soft_delete_aggregate(product)

        logger.info("Product deleted", product_id=product_id)
        await self.cache.invalidate_product(product_id)
