"""Product attribute and package option application services."""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_service.application.assembly import attribute_view
from catalog_service.application.category_service import CategoryService, InheritedAttribute
from catalog_service.application.guards import load_product
from catalog_service.application.requests import (
    PackageOptionCreate,
    PackageOptionUpdate,
    ProductAttributeBulkUpdate,
    ProductAttributeInput,
    ProductAttributeUpdate,
)
from catalog_service.application.views import PackageOptionView, ProductAttributeView
from catalog_service.catalog.models import Product, ProductAttribute, PackageOption
from catalog_service.catalog.repositories import (
    PackageOptionRepository,
    ProductAttributeRepository,
    ProductRepository,
)
from catalog_service.domain.attribute_values import AttributeDataType, validate_attribute_value
from catalog_service.domain.exceptions import (
    InvalidCategoryError,
    NoFieldsProvidedError,
    PackageOptionNotFoundError,
    ProductAttributeExistsError,
    ProductAttributeNotFoundError,
    RequiredAttributeMissingError,
    ValidationError,
)
from catalog_service.domain.principal import Actor
from catalog_service.infrastructure.cache import CatalogCache
from catalog_service.infrastructure.database import transaction

logger = structlog.get_logger()


def check_attribute_value(inherited: dict[int, InheritedAttribute], attribute_id: int, value: str) -> str:
    """Validate a value for an attribute available to the product's category.

    Args:
        inherited: Links resolved for the category, keyed by definition id.
        attribute_id: Attribute definition id.
        value: Raw value.

    Returns:
        Canonical string form of the value.

    Raises:
        ValidationError: The definition is not linked to the category tree.
        InvalidAttributeValueError: The value breaks the definition's rules.
    """
    item = inherited.get(attribute_id)
    if item is None:
        raise ValidationError.for_field(
            "attributeId",
            f"Attribute {attribute_id} is not available for this product's category",
            error_code="ATTRIBUTE_NOT_IN_CATEGORY",
        )
    definition = item.link.attribute_definition
    return validate_attribute_value(
        definition.key,
        AttributeDataType(definition.data_type),
        definition.allowed_values,
        value,
    )


class ProductAttributeService:
    """Attribute values carried by a product.

    Every value must belong to a definition linked to the product's category
    or one of its ancestors, and pass the definition's type and allowed set.
    """

    def __init__(self, session: AsyncSession, cache: CatalogCache, max_depth: int = 5) -> None:
        self.session = session
        self.cache = cache
        self.products = ProductRepository(session)
        self.rows = ProductAttributeRepository(session)
        self.category_service = CategoryService(session, cache, max_depth=max_depth)

    async def inherited_for(self, category_id: int) -> dict[int, InheritedAttribute]:
        category = await self.category_service.categories.get(category_id)
        if category is None:
            raise InvalidCategoryError(category_id)
        resolved = await self.category_service.resolve_inherited(category)
        return {item.link.attribute_definition_id: item for item in resolved}

    async def _load_row(self, product: Product, product_attribute_id: int) -> ProductAttribute:
        row = await self.rows.get(product.id, product_attribute_id)
        if row is None:
            raise ProductAttributeNotFoundError(product_attribute_id)
        return row

    async def list_attributes(self, product_id: int, actor: Actor) -> list[ProductAttributeView]:
        product = await load_product(self.products, product_id, actor)
        return [attribute_view(row) for row in await self.rows.list_for_product(product.id)]

    async def add_attribute(
        self, product_id: int, request: ProductAttributeInput, actor: Actor
    ) -> ProductAttributeView:
        """Attach a value for one attribute definition.

        Raises:
            ProductAttributeExistsError: The product already has this attribute.
        """
        async with transaction(self.session):
            product = await load_product(self.products, product_id, actor, for_update=True)
            inherited = await self.inherited_for(product.category_id)
            value = check_attribute_value(inherited, request.attribute_id, request.value)
            if await self.rows.get_by_definition(product.id, request.attribute_id):
                raise ProductAttributeExistsError(request.attribute_id)
            row = await self.rows.add(
                ProductAttribute(
                    product_id=product.id,
                    attribute_definition_id=request.attribute_id,
                    value=value,
                    sort_order=request.sort_order,
                )
            )
            view = attribute_view(row)

        logger.info("Product attribute added", product_id=product_id, attribute_id=request.attribute_id)
        await self.cache.invalidate_product(product_id)
        return view

    async def update_attribute(
        self,
        product_id: int,
        product_attribute_id: int,
        request: ProductAttributeUpdate,
        actor: Actor,
    ) -> ProductAttributeView:
        fields = request.present_fields()
        if not fields:
            raise NoFieldsProvidedError()

        async with transaction(self.session):
            product = await load_product(self.products, product_id, actor, for_update=True)
            row = await self._load_row(product, product_attribute_id)
            if "value" in fields:
                if fields["value"] is None:
                    raise ValidationError.for_field("value", "Value cannot be null")
                inherited = await self.inherited_for(product.category_id)
                row.value = check_attribute_value(inherited, row.attribute_definition_id, fields["value"])
            if fields.get("sort_order") is not None:
                row.sort_order = fields["sort_order"]
            await self.session.flush()
            view = attribute_view(row)

        logger.info("Product attribute updated", product_id=product_id, product_attribute_id=product_attribute_id)
        await self.cache.invalidate_product(product_id)
        return view

    async def delete_attribute(self, product_id: int, product_attribute_id: int, actor: Actor) -> None:
        """Soft-delete a value; values of required category attributes stay.

        Raises:
            RequiredAttributeMissingError: The category requires the attribute.
        """
        async with transaction(self.session):
            product = await load_product(self.products, product_id, actor, for_update=True)
            row = await self._load_row(product, product_attribute_id)
            inherited = await self.inherited_for(product.category_id)
            item = inherited.get(row.attribute_definition_id)
            if item is not None and item.link.is_required:
                raise RequiredAttributeMissingError([item.link.attribute_definition.key])
            row.soft_delete()
            await self.session.flush()

        logger.info("Product attribute deleted", product_id=product_id, product_attribute_id=product_attribute_id)
        await self.cache.invalidate_product(product_id)

    async def bulk_update(
        self, product_id: int, request: ProductAttributeBulkUpdate, actor: Actor
    ) -> list[ProductAttributeView]:
        """Create or update several attribute values atomically."""
        ids = [item.attribute_id for item in request.attributes]
        if len(set(ids)) != len(ids):
            raise ValidationError.for_field("attributes", "Each attribute may appear only once")

        async with transaction(self.session):
            product = await load_product(self.products, product_id, actor, for_update=True)
            inherited = await self.inherited_for(product.category_id)
            rows = []
            for item in request.attributes:
                value = check_attribute_value(inherited, item.attribute_id, item.value)
                row = await self.rows.get_by_definition(product.id, item.attribute_id)
                if row is None:
                    row = await self.rows.add(
                        ProductAttribute(
                            product_id=product.id,
                            attribute_definition_id=item.attribute_id,
                            value=value,
                            sort_order=item.sort_order,
                        )
                    )
                else:
                    row.value = value
                    row.sort_order = item.sort_order
                rows.append(row)
            await self.session.flush()
            views = [attribute_view(row) for row in rows]

        logger.info("Product attributes bulk updated", product_id=product_id, count=len(rows))
        await self.cache.invalidate_product(product_id)
        return views


class PackageOptionService:
    """Package options (bundles sold alongside a product), independent of variants."""

    def __init__(self, session: AsyncSession, cache: CatalogCache) -> None:
        self.session = session
        self.cache = cache
        self.products = ProductRepository(session)
        self.packages = PackageOptionRepository(session)

    async def _load(self, product: Product, package_option_id: int) -> PackageOption:
        row = await self.packages.get(product.id, package_option_id)
        if row is None:
            raise PackageOptionNotFoundError(package_option_id)
        return row

    async def list_package_options(self, product_id: int, actor: Actor) -> list[PackageOptionView]:
        product = await load_product(self.products, product_id, actor)
        return [PackageOptionView.model_validate(row) for row in await self.packages.list_for_product(product.id)]

    async def create(self, product_id: int, request: PackageOptionCreate, actor: Actor) -> PackageOptionView:
        async with transaction(self.session):
            product = await load_product(self.products, product_id, actor, for_update=True)
            row = await self.packages.add(
                PackageOption(
                    product_id=product.id,
                    name=request.name.strip(),
                    description=request.description,
                    price=request.price,
                    quantity=request.quantity,
                )
            )

        logger.info("Package option created", product_id=product_id, package_option_id=row.id)
        await self.cache.invalidate_product(product_id)
        return PackageOptionView.model_validate(row)

    async def update(
        self,
        product_id: int,
        package_option_id: int,
        request: PackageOptionUpdate,
        actor: Actor,
    ) -> PackageOptionView:
        fields = request.present_fields()
        if not fields:
            raise NoFieldsProvidedError()
        for name in ("name", "price", "quantity"):
            if name in fields and fields[name] is None:
                raise ValidationError.for_field(name, f"{name} cannot be null")

        async with transaction(self.session):
            product = await load_product(self.products, product_id, actor, for_update=True)
            row = await self._load(product, package_option_id)
            for name, value in fields.items():
                setattr(row, name, value.strip() if name == "name" else value)
            await self.session.flush()

        logger.info("Package option updated", product_id=product_id, package_option_id=package_option_id)
        await self.cache.invalidate_product(product_id)
        return PackageOptionView.model_validate(row)

    async def delete(self, product_id: int, package_option_id: int, actor: Actor) -> None:
        async with transaction(self.session):
            product = await load_product(self.products, product_id, actor, for_update=True)
            row = await self._load(product, package_option_id)
            row.soft_delete()
            await self.session.flush()

        logger.info("Package option deleted", product_id=product_id, package_option_id=package_option_id)
        await self.cache.invalidate_product(product_id)
