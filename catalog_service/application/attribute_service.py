"""Attribute definition application service."""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_service.application.category_service import CategoryService, InheritedAttribute
from catalog_service.application.requests import (
    AttributeCreate,
    AttributeCreateForCategory,
    AttributeUpdate,
    CategoryAttributeLink,
)
from catalog_service.application.views import AttributeDefinitionView, CategoryAttributeView
from catalog_service.catalog.models import AttributeDefinition
from catalog_service.catalog.repositories import AttributeRepository
from catalog_service.domain.attribute_values import AttributeDataType
from catalog_service.domain.exceptions import (
    AttributeExistsError,
    AttributeInUseError,
    AttributeNotFoundError,
    NoFieldsProvidedError,
    ValidationError,
)
from catalog_service.domain.normalization import is_valid_attribute_key
from catalog_service.domain.principal import Actor
from catalog_service.infrastructure.cache import CatalogCache
from catalog_service.infrastructure.database import transaction

logger = structlog.get_logger()


def clean_allowed_values(values: list[str] | None) -> list[str] | None:
    if not values:
        return None
    cleaned: list[str] = []
    for value in values:
        value = value.strip()
        if value and value not in cleaned:
            cleaned.append(value)
    return cleaned or None


class AttributeService:
    """CRUD over attribute definitions.

    ``key`` and ``dataType`` are fixed at creation. A definition can only be
    deleted once no category links it and no product carries a value for it.
    """

    def __init__(self, session: AsyncSession, cache: CatalogCache, max_depth: int = 5) -> None:
        self.session = session
        self.cache = cache
        self.attributes = AttributeRepository(session)
        self.category_service = CategoryService(session, cache, max_depth=max_depth)

    async def _load(self, attribute_id: int) -> AttributeDefinition:
        definition = await self.attributes.get(attribute_id)
        if definition is None:
            raise AttributeNotFoundError(attribute_id)
        return definition

    async def _insert(self, request: AttributeCreate) -> AttributeDefinition:
        key = request.key.strip()
        if not is_valid_attribute_key(key):
            raise ValidationError.for_field(
                "key",
                "Key must be 3-50 lowercase letters, digits or underscores, starting with a letter",
                error_code="INVALID_ATTRIBUTE_KEY",
            )
        if await self.attributes.get_by_key(key):
            raise AttributeExistsError(key)
        return await self.attributes.add(
            AttributeDefinition(
                key=key,
                name=request.name.strip(),
                data_type=request.data_type.value,
                unit=request.unit,
                description=request.description,
                allowed_values=clean_allowed_values(request.allowed_values),
            )
        )

    async def create(self, request: AttributeCreate) -> AttributeDefinitionView:
        """Create an attribute definition.

        Raises:
            ValidationError: Key does not match the key pattern.
            AttributeExistsError: Key already taken.
        """
        async with transaction(self.session):
            definition = await self._insert(request)

        logger.info("Attribute created", attribute_id=definition.id, key=definition.key)
        return AttributeDefinitionView.model_validate(definition)

    async def create_for_category(
        self, category_id: int, request: AttributeCreateForCategory, actor: Actor
    ) -> CategoryAttributeView:
        """Create a definition and link it to a category in one transaction."""
        async with transaction(self.session):
            category = await self.category_service.load_visible(category_id, actor)
            definition = await self._insert(request)
            link = await self.category_service.add_link(
                category,
                CategoryAttributeLink(
                    attribute_id=definition.id,
                    is_required=request.is_required,
                    is_searchable=request.is_searchable,
                    is_filterable=request.is_filterable,
                    sort_order=request.sort_order,
                    default_value=request.default_value,
                ),
            )

        logger.info(
            "Attribute created for category",
            attribute_id=definition.id,
            category_id=category_id,
        )
        await self.cache.invalidate_categories()
        return InheritedAttribute(link, 0).to_view()

    async def update(self, attribute_id: int, request: AttributeUpdate) -> AttributeDefinitionView:
        fields = request.present_fields()
        if not fields:
            raise NoFieldsProvidedError()

        async with transaction(self.session):
            definition = await self._load(attribute_id)
            if "key" in fields and fields["key"] != definition.key:
                raise ValidationError.for_field(
                    "key", "Attribute key cannot be changed", error_code="IMMUTABLE_FIELD"
                )
            data_type = fields.get("data_type")
            if data_type is not None and AttributeDataType(data_type).value != definition.data_type:
                raise ValidationError.for_field(
                    "dataType", "Attribute data type cannot be changed", error_code="IMMUTABLE_FIELD"
                )
            if "name" in fields:
                if not (fields["name"] or "").strip():
                    raise ValidationError.for_field("name", "Name cannot be empty")
                definition.name = fields["name"].strip()
            if "unit" in fields:
                definition.unit = fields["unit"]
            if "description" in fields:
                definition.description = fields["description"]
            if "allowed_values" in fields:
                definition.allowed_values = clean_allowed_values(fields["allowed_values"])
            await self.session.flush()

        logger.info("Attribute updated", attribute_id=attribute_id, fields=sorted(fields))
        await self.cache.invalidate_categories()
        await self.cache.invalidate_all_products()
        return AttributeDefinitionView.model_validate(definition)

    async def delete(self, attribute_id: int) -> None:
        """Delete an unreferenced definition.

        Raises:
            AttributeInUseError: Linked to a category or valued on a product.
        """
        async with transaction(self.session):
            definition = await self._load(attribute_id)
            if await self.attributes.count_category_links(attribute_id):
                raise AttributeInUseError(attribute_id, "linked to categories")
            if await self.attributes.count_product_values(attribute_id):
                raise AttributeInUseError(attribute_id, "used by products")
            await self.attributes.purge_deleted_product_values(attribute_id)
            await self.attributes.delete(definition)

        logger.info("Attribute deleted", attribute_id=attribute_id)

    async def get(self, attribute_id: int) -> AttributeDefinitionView:
        return AttributeDefinitionView.model_validate(await self._load(attribute_id))

    async def list_all(self) -> list[AttributeDefinitionView]:
        return [AttributeDefinitionView.model_validate(row) for row in await self.attributes.list_all()]
