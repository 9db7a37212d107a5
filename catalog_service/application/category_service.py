"""Category application service.

Manages the category tree and the attribute definitions linked to it:
- Create, update (rename / move) and delete categories
- Link and unlink attribute definitions
- Resolve the attributes a category inherits from its ancestors
"""

from dataclasses import dataclass

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_service.application.requests import (
    CategoryAttributeLink,
    CategoryCreate,
    CategoryUpdate,
)
from catalog_service.application.views import (
    CategoryAttributeView,
    CategoryTreeNode,
    CategoryView,
)
from catalog_service.catalog.models import Category, CategoryAttribute
from catalog_service.catalog.repositories import AttributeRepository, CategoryRepository
from catalog_service.domain.attribute_values import AttributeDataType, validate_attribute_value
from catalog_service.domain.exceptions import (
    AttributeAlreadyLinkedError,
    AttributeInUseError,
    AttributeNotFoundError,
    AttributeNotLinkedError,
    CategoryCycleError,
    CategoryExistsError,
    CategoryHasChildrenError,
    CategoryHasProductsError,
    CategoryNotFoundError,
    ForbiddenError,
    MaxNestingExceededError,
    NoFieldsProvidedError,
    ParentNotFoundError,
    ValidationError,
)
from catalog_service.domain.principal import Actor
from catalog_service.infrastructure.cache import CatalogCache
from catalog_service.infrastructure.database import transaction

logger = structlog.get_logger()

NAME_MIN_LENGTH = 3
NAME_MAX_LENGTH = 100


@dataclass
class InheritedAttribute:
    """A category-attribute link as resolved for a descendant.

    Attributes:
        link: The winning link row (closest to the category).
        distance: 0 for the category itself, 1 for its parent, and so on.
    """

    link: CategoryAttribute
    distance: int

    def to_view(self) -> CategoryAttributeView:
        definition = self.link.attribute_definition
        return CategoryAttributeView(
            attribute_id=definition.id,
            key=definition.key,
            name=definition.name,
            data_type=definition.data_type,
            unit=definition.unit,
            allowed_values=definition.allowed_values,
            is_required=self.link.is_required,
            is_searchable=self.link.is_searchable,
            is_filterable=self.link.is_filterable,
            sort_order=self.link.sort_order,
            default_value=self.link.default_value,
            category_id=self.link.category_id,
            inherited=self.distance > 0,
        )


def category_scope_token(actor: Actor) -> str:
    if actor.unscoped:
        return "all"
    if actor.seller_id is None:
        return "global"
    return str(actor.seller_id)


def clean_name(name: str | None) -> str:
    cleaned = (name or "").strip()
    if not NAME_MIN_LENGTH <= len(cleaned) <= NAME_MAX_LENGTH:
        raise ValidationError.for_field(
            "name", f"Name must be {NAME_MIN_LENGTH}-{NAME_MAX_LENGTH} characters"
        )
    return cleaned


class CategoryService:
    """Service for category tree management.

    Example usage:
        service = CategoryService(session, cache)
        view = await service.create(CategoryCreate(name="Phones"), Actor.seller(7))
    """

    def __init__(self, session: AsyncSession, cache: CatalogCache, max_depth: int = 5) -> None:
        """Initialize service.

        Args:
            session: Async SQLAlchemy session.
            cache: Catalog cache, invalidated after writes commit.
            max_depth: Maximum number of levels in the tree (a root is level 1).
        """
        self.session = session
        self.cache = cache
        self.max_depth = max_depth
        self.categories = CategoryRepository(session)
        self.attributes = AttributeRepository(session)

    # ------------------------------------------------------------------
    # Loading helpers
    # ------------------------------------------------------------------

    async def load_visible(self, category_id: int, actor: Actor) -> Category:
        category = await self.categories.get(category_id)
        if category is None or not actor.can_see(category.seller_id):
            raise CategoryNotFoundError(category_id)
        return category

    async def _load_writable(self, category_id: int, actor: Actor) -> Category:
        category = await self.load_visible(category_id, actor)
        if not actor.is_admin and not category.seller_id:
            raise ForbiddenError(
                "Only administrators can modify global categories",
                error_code="INSUFFICIENT_PERMISSIONS",
            )
        return category

    async def _resolve_parent(self, parent_id: int, seller_id: int | None, actor: Actor) -> Category:
        parent = await self.categories.get(parent_id)
        if parent is None or not actor.can_see(parent.seller_id):
            raise ParentNotFoundError(parent_id)
        if seller_id and parent.seller_id and parent.seller_id != seller_id:
            raise ParentNotFoundError(parent_id)
        return parent

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def create(self, request: CategoryCreate, actor: Actor) -> CategoryView:
        """Create a category.

        Sellers always create categories in their own scope; admins create
        global categories unless the request names a seller. A child of a
        seller-scoped parent belongs to that seller.

        Args:
            request: Create payload.
            actor: Caller and tenant scope.

        Returns:
            The created category.

        Raises:
            ValidationError: Name length out of range.
            ParentNotFoundError: Parent missing or not visible.
            MaxNestingExceededError: Parent already at maximum depth.
            CategoryExistsError: Live sibling with the same name.
        """
        name = clean_name(request.name)
        seller_id = actor.seller_id if actor.is_seller else (request.seller_id or None)

        async with transaction(self.session):
            parent_id = request.parent_id or None
            if parent_id is not None:
                parent = await self._resolve_parent(parent_id, seller_id, actor)
                seller_id = seller_id or parent.seller_id
                depth = len(await self.categories.ancestors(parent))
                if depth >= self.max_depth:
                    raise MaxNestingExceededError(self.max_depth)

            if await self.categories.find_sibling(parent_id, name, seller_id):
                raise CategoryExistsError(name, parent_id)

            category = await self.categories.add(
                Category(
                    name=name,
                    description=request.description,
                    parent_id=parent_id,
                    seller_id=seller_id,
                )
            )

        logger.info("Category created", category_id=category.id, parent_id=parent_id, seller_id=seller_id)
        await self.cache.invalidate_categories()
        return CategoryView.model_validate(category)

    async def update(self, category_id: int, request: CategoryUpdate, actor: Actor) -> CategoryView:
        """Rename, re-describe or move a category.

        Raises:
            NoFieldsProvidedError: Empty payload.
            CategoryCycleError: New parent is the category or a descendant.
            MaxNestingExceededError: Move would make the tree too deep.
            CategoryExistsError: Name collides with a live sibling.
        """
        fields = request.present_fields()
        if not fields:
            raise NoFieldsProvidedError()

        async with transaction(self.session):
            category = await self._load_writable(category_id, actor)
            name = clean_name(fields["name"]) if "name" in fields else category.name
            parent_id = category.parent_id

            if "parent_id" in fields:
                parent_id = fields["parent_id"] or None
                if parent_id is not None and parent_id != category.parent_id:
                    await self._check_move(category, parent_id, actor)

            relocated = name != category.name or parent_id != category.parent_id
            if relocated:
                if await self.categories.find_sibling(parent_id, name, category.seller_id, exclude_id=category.id):
                    raise CategoryExistsError(name, parent_id)

            category.name = name
            category.parent_id = parent_id
            if "description" in fields:
                category.description = fields["description"]
            await self.session.flush()

        logger.info("Category updated", category_id=category.id, fields=sorted(fields))
        await self.cache.invalidate_categories(include_products=relocated)
        return CategoryView.model_validate(category)

    async def _check_move(self, category: Category, parent_id: int, actor: Actor) -> None:
        if parent_id == category.id:
            raise CategoryCycleError(category.id, parent_id)
        parent = await self._resolve_parent(parent_id, category.seller_id, actor)
        if parent.seller_id and parent.seller_id != category.seller_id:
            raise ParentNotFoundError(parent_id)
        if parent_id in await self.categories.descendant_ids(category.id):
            raise CategoryCycleError(category.id, parent_id)
        parent_depth = len(await self.categories.ancestors(parent))
        height = await self.categories.subtree_height(category.id)
        if parent_depth + height > self.max_depth:
            raise MaxNestingExceededError(self.max_depth)

    async def delete(self, category_id: int, actor: Actor) -> None:
        """Delete a category with no live children and no live products.

        The row is removed outright unless soft-deleted products or
        categories still reference it, in which case it is archived.
        """
        async with transaction(self.session):
            category = await self._load_writable(category_id, actor)
            if await self.categories.has_children(category.id):
                raise CategoryHasChildrenError(category.id)
            if await self.categories.has_products(category.id):
                raise CategoryHasProductsError(category.id)
            if await self.categories.has_archived_references(category.id):
                await self.categories.archive(category)
            else:
                await self.categories.delete(category)

        logger.info("Category deleted", category_id=category_id)
        await self.cache.invalidate_categories()

    async def link_attribute(
        self, category_id: int, request: CategoryAttributeLink, actor: Actor
    ) -> CategoryAttributeView:
        """Link an attribute definition to a category."""
        async with transaction(self.session):
            category = await self._load_writable(category_id, actor)
            link = await self.add_link(category, request)

        logger.info("Attribute linked", category_id=category_id, attribute_id=request.attribute_id)
        await self.cache.invalidate_categories()
        return InheritedAttribute(link, 0).to_view()

    async def add_link(self, category: Category, request: CategoryAttributeLink) -> CategoryAttribute:
        definition = await self.attributes.get(request.attribute_id)
        if definition is None:
            raise AttributeNotFoundError(request.attribute_id)
        if await self.categories.get_link(category.id, definition.id):
            raise AttributeAlreadyLinkedError(category.id, definition.id)

        default_value = request.default_value
        if default_value is not None:
            default_value = validate_attribute_value(
                definition.key,
                AttributeDataType(definition.data_type),
                definition.allowed_values,
                default_value,
            )
        return await self.categories.add_link(
            CategoryAttribute(
                category_id=category.id,
                attribute_definition_id=definition.id,
                is_required=request.is_required,
                is_searchable=request.is_searchable,
                is_filterable=request.is_filterable,
                sort_order=request.sort_order,
                default_value=default_value,
            )
        )

    async def unlink_attribute(self, category_id: int, attribute_id: int, actor: Actor) -> None:
        """Remove a link; a required link still used by products in the subtree stays."""
        async with transaction(self.session):
            category = await self._load_writable(category_id, actor)
            link = await self.categories.get_link(category.id, attribute_id)
            if link is None:
                raise AttributeNotLinkedError(category.id, attribute_id)
            if link.is_required:
                subtree = await self.categories.descendant_ids(category.id)
                in_use = await self.categories.products_using_attribute(subtree, attribute_id)
                if in_use:
                    raise AttributeInUseError(
                        attribute_id, f"required by {in_use} product(s) in this category tree"
                    )
            await self.categories.delete_link(link)

        logger.info("Attribute unlinked", category_id=category_id, attribute_id=attribute_id)
        await self.cache.invalidate_categories()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get(self, category_id: int, actor: Actor) -> CategoryView:
        return CategoryView.model_validate(await self.load_visible(category_id, actor))

    async def list_all(self, actor: Actor) -> list[CategoryView]:
        """All categories visible to the caller, read through the cache."""
        key = self.cache.categories_key(category_scope_token(actor))
        cached = await self.cache.get_json(key)
        if cached is not None:
            return [CategoryView.model_validate(item) for item in cached]

        rows = await self.categories.list_visible(actor.seller_id, unscoped=actor.unscoped)
        views = [CategoryView.model_validate(row) for row in rows]
        await self.cache.set_json(
            key, [view.model_dump(mode="json") for view in views], self.cache.ttl_categories
        )
        return views

    async def list_by_parent(self, parent_id: int | None, actor: Actor) -> list[CategoryView]:
        if parent_id:
            await self.load_visible(parent_id, actor)
        rows = await self.categories.list_by_parent(parent_id, actor.seller_id, unscoped=actor.unscoped)
        return [CategoryView.model_validate(row) for row in rows]

    async def hierarchy(self, actor: Actor) -> list[CategoryTreeNode]:
        """Visible categories as a nested tree of roots."""
        views = await self.list_all(actor)
        nodes = {view.id: CategoryTreeNode(**view.model_dump()) for view in views}
        roots: list[CategoryTreeNode] = []
        for node in nodes.values():
            parent = nodes.get(node.parent_id) if node.parent_id else None
            if parent is None:
                roots.append(node)
            else:
                parent.children.append(node)
        return roots

    async def resolve_inherited(self, category: Category) -> list[InheritedAttribute]:
        """Resolve the attribute links a category has, own and inherited.

        Walks from the category to its root. When several levels link the
        same definition, the level closest to the category wins. Results
        are ordered by sort order, then own-before-inherited, then name.

        Args:
            category: Category to resolve.

        Returns:
            One InheritedAttribute per linked definition.
        """
        chain = await self.categories.ancestors(category, limit=self.max_depth * 2)
        distance_of = {node.id: distance for distance, node in enumerate(chain)}
        resolved: dict[int, InheritedAttribute] = {}
        for link in await self.categories.links_for(list(distance_of)):
            distance = distance_of[link.category_id]
            current = resolved.get(link.attribute_definition_id)
            if current is None or distance < current.distance:
                resolved[link.attribute_definition_id] = InheritedAttribute(link, distance)
        return sorted(
            resolved.values(),
            key=lambda item: (item.link.sort_order, item.distance, item.link.attribute_definition.name),
        )

    async def inherited_attributes(self, category_id: int, actor: Actor) -> list[CategoryAttributeView]:
        category = await self.load_visible(category_id, actor)
        return [item.to_view() for item in await self.resolve_inherited(category)]
