"""Product option and option value application services.

Options and their values live under a product. Names are normalised to
snake_case keys and values to lower-trimmed strings; display fields keep
what the seller typed.
"""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_service.application.assembly import option_view
from catalog_service.application.guards import load_product
from catalog_service.application.requests import (
    OptionBulkUpdateItem,
    OptionCreate,
    OptionUpdate,
    OptionValueBulkUpdateItem,
    OptionValueCreate,
    OptionValueUpdate,
)
from catalog_service.application.views import OptionValueView, OptionView
from catalog_service.catalog.models import Product, ProductOption, ProductOptionValue
from catalog_service.catalog.repositories import OptionRepository, ProductRepository, VariantRepository
from catalog_service.domain.exceptions import (
    NoFieldsProvidedError,
    OptionInUseError,
    OptionNameExistsError,
    OptionNotFoundError,
    OptionValueExistsError,
    OptionValueInUseError,
    OptionValueNotFoundError,
    ValidationError,
)
from catalog_service.domain.normalization import (
    is_color_option,
    normalize_option_name,
    normalize_option_value,
)
from catalog_service.domain.principal import Actor
from catalog_service.infrastructure.cache import CatalogCache
from catalog_service.infrastructure.database import transaction

logger = structlog.get_logger()


def option_key(name: str) -> str:
    key = normalize_option_name(name)
    if not key:
        raise ValidationError.for_field("name", "Option name must contain letters or digits")
    return key


def value_key(value: str) -> str:
    key = normalize_option_value(value)
    if not key:
        raise ValidationError.for_field("value", "Option value cannot be empty")
    return key


def check_color_code(option: ProductOption, color_code: str | None) -> None:
    if color_code is not None and not is_color_option(option.name):
        raise ValidationError.for_field(
            "colorCode", f"Color codes are only allowed on color options, not '{option.name}'"
        )


def display_name_of(raw: str | None) -> str:
    """Trimmed display name from an update; null or blank is rejected, not ignored."""
    if raw is None or not raw.strip():
        raise ValidationError.for_field("displayName", "Display name cannot be empty")
    return raw.strip()


def build_values(option: ProductOption, requests: list[OptionValueCreate], start: int = 0) -> list[ProductOptionValue]:
    """Build value rows for an option, rejecting duplicates inside the batch."""
    rows: list[ProductOptionValue] = []
    seen: set[str] = set()
    for offset, request in enumerate(requests):
        key = value_key(request.value)
        if key in seen:
            raise OptionValueExistsError(key)
        seen.add(key)
        check_color_code(option, request.color_code)
        rows.append(
            ProductOptionValue(
                option_id=option.id,
                value=key,
                display_name=(request.display_name or request.value).strip(),
                color_code=request.color_code,
                position=request.position if request.position is not None else start + offset,
            )
        )
    return rows


class _ProductScopedService:
    def __init__(self, session: AsyncSession, cache: CatalogCache) -> None:
        self.session = session
        self.cache = cache
        self.products = ProductRepository(session)
        self.options = OptionRepository(session)
        self.variants = VariantRepository(session)

    async def _load_option(self, product: Product, option_id: int) -> ProductOption:
        option = await self.options.get_option(product.id, option_id)
        if option is None:
            raise OptionNotFoundError(option_id)
        return option

    async def _option_view(self, option: ProductOption) -> OptionView:
        values = await self.options.values_for_options([option.id])
        return option_view(option, values.get(option.id, []))


class ProductOptionService(_ProductScopedService):
    """Service for a product's options.

    Example usage:
        service = ProductOptionService(session, cache)
        view = await service.create_option(
            product_id, OptionCreate(name="Color", values=[...]), actor
        )
    """

    async def list_options(self, product_id: int, actor: Actor) -> list[OptionView]:
        """Options with their ordered values, for storefront selectors."""
        product = await load_product(self.products, product_id, actor)
        options = await self.options.list_for_product(product.id)
        values = await self.options.values_for_options([option.id for option in options])
        return [option_view(option, values.get(option.id, [])) for option in options]

    async def create_option(self, product_id: int, request: OptionCreate, actor: Actor) -> OptionView:
        """Create an option, and its initial values, under a product.

        When the product already has variants, at least one value is required
        and every existing variant is assigned the first one, so each variant
        keeps exactly one value per option.

        Raises:
            OptionNameExistsError: Live option with the same normalised name.
            OptionValueExistsError: Duplicate value in the request.
            ValidationError: Values missing on a product that has variants.
        """
        async with transaction(self.session):
            product = await load_product(self.products, product_id, actor, for_update=True)
            name = option_key(request.name)
            if await self.options.get_option_by_name(product.id, name):
                raise OptionNameExistsError(name)

            live_variants = await self.variants.list_for_product(product.id)
            if live_variants and not request.values:
                raise ValidationError.for_field(
                    "values",
                    "A product with variants needs at least one value for a new option",
                    error_code="OPTION_VALUES_REQUIRED",
                )

            position = request.position
            if position is None:
                position = await self.options.next_option_position(product.id)
            option = ProductOption(
                product_id=product.id,
                name=name,
                display_name=(request.display_name or request.name).strip(),
                position=position,
            )
            await self.options.add(option)

            rows = build_values(option, request.values)
            self.session.add_all(rows)
            await self.session.flush()

            if live_variants:
                first = min(rows, key=lambda row: (row.position, row.id))
                await self.variants.extend_signatures(
                    [variant.id for variant in live_variants], option.id, first.id
                )
            view = await self._option_view(option)

        logger.info("Option created", product_id=product_id, option_id=option.id, name=name)
        await self.cache.invalidate_product(product_id)
        return view

    async def _apply_option_patch(self, product: Product, option: ProductOption, fields: dict) -> None:
        if "name" in fields:
            if fields["name"] is None:
                raise ValidationError.for_field("name", "Option name cannot be null")
            name = option_key(fields["name"])
            if name != option.name and await self.options.get_option_by_name(product.id, name, exclude_id=option.id):
                raise OptionNameExistsError(name)
            if name != option.name and not is_color_option(name):
                values = (await self.options.values_for_options([option.id])).get(option.id, [])
                if any(value.color_code for value in values):
                    raise ValidationError.for_field(
                        "name", "Option has color codes and must remain a color option"
                    )
            option.name = name
        if "display_name" in fields:
            option.display_name = display_name_of(fields["display_name"])
        if fields.get("position") is not None:
            option.position = fields["position"]

    async def update_option(
        self, product_id: int, option_id: int, request: OptionUpdate, actor: Actor
    ) -> OptionView:
        fields = request.present_fields()
        if not fields:
            raise NoFieldsProvidedError()

        async with transaction(self.session):
            product = await load_product(self.products, product_id, actor, for_update=True)
            option = await self._load_option(product, option_id)
            await self._apply_option_patch(product, option, fields)
            await self.session.flush()
            view = await self._option_view(option)

        logger.info("Option updated", product_id=product_id, option_id=option_id)
        await self.cache.invalidate_product(product_id)
        return view

    async def delete_option(self, product_id: int, option_id: int, actor: Actor) -> None:
        """Soft-delete an option and its values.

        Raises:
            OptionInUseError: A live variant still references the option.
        """
        async with transaction(self.session):
            product = await load_product(self.products, product_id, actor, for_update=True)
            option = await self._load_option(product, option_id)
            if await self.variants.option_in_use(option.id):
                raise OptionInUseError(option.id)
            for value in (await self.options.values_for_options([option.id])).get(option.id, []):
                value.soft_delete()
            option.soft_delete()
            await self.session.flush()

        logger.info("Option deleted", product_id=product_id, option_id=option_id)
        await self.cache.invalidate_product(product_id)

    async def bulk_update_options(
        self, product_id: int, items: list[OptionBulkUpdateItem], actor: Actor
    ) -> int:
        """Apply several option patches atomically.

        Returns:
            Number of options updated.
        """
        async with transaction(self.session):
            product = await load_product(self.products, product_id, actor, for_update=True)
            for item in items:
                fields = item.present_fields()
                fields.pop("option_id", None)
                if not fields:
                    raise NoFieldsProvidedError()
                option = await self._load_option(product, item.option_id)
                await self._apply_option_patch(product, option, fields)
                await self.session.flush()

        logger.info("Options bulk updated", product_id=product_id, count=len(items))
        await self.cache.invalidate_product(product_id)
        return len(items)


class ProductOptionValueService(_ProductScopedService):
    """Service for the values of a product option."""

    async def _load_value(self, option: ProductOption, value_id: int) -> ProductOptionValue:
        value = await self.options.get_value(option.id, value_id)
        if value is None:
            raise OptionValueNotFoundError(value_id)
        return value

    async def list_values(self, product_id: int, option_id: int, actor: Actor) -> list[OptionValueView]:
        product = await load_product(self.products, product_id, actor)
        option = await self._load_option(product, option_id)
        values = await self.options.values_for_options([option.id])
        return [OptionValueView.model_validate(value) for value in values.get(option.id, [])]

    async def add_values(
        self, product_id: int, option_id: int, requests: list[OptionValueCreate], actor: Actor
    ) -> list[OptionValueView]:
        """Add one or more values to an option in one transaction.

        Raises:
            OptionValueExistsError: A value already exists or repeats in the batch.
        """
        async with transaction(self.session):
            product = await load_product(self.products, product_id, actor, for_update=True)
            option = await self._load_option(product, option_id)
            start = await self.options.next_value_position(option.id)
            rows = build_values(option, requests, start=start)
            for row in rows:
                if await self.options.get_value_by_value(option.id, row.value):
                    raise OptionValueExistsError(row.value)
            self.session.add_all(rows)
            await self.session.flush()

        logger.info("Option values added", product_id=product_id, option_id=option_id, count=len(rows))
        await self.cache.invalidate_product(product_id)
        return [OptionValueView.model_validate(row) for row in rows]

    async def add_value(
        self, product_id: int, option_id: int, request: OptionValueCreate, actor: Actor
    ) -> OptionValueView:
        views = await self.add_values(product_id, option_id, [request], actor)
        return views[0]

    async def _apply_value_patch(self, option: ProductOption, value: ProductOptionValue, fields: dict) -> None:
        if "value" in fields:
            if fields["value"] is None:
                raise ValidationError.for_field("value", "Option value cannot be null")
            key = value_key(fields["value"])
            if key != value.value and await self.options.get_value_by_value(option.id, key, exclude_id=value.id):
                raise OptionValueExistsError(key)
            value.value = key
        if "display_name" in fields:
            value.display_name = display_name_of(fields["display_name"])
        if "color_code" in fields:
            check_color_code(option, fields["color_code"])
            value.color_code = fields["color_code"]
        if fields.get("position") is not None:
            value.position = fields["position"]

    async def update_value(
        self,
        product_id: int,
        option_id: int,
        value_id: int,
        request: OptionValueUpdate,
        actor: Actor,
    ) -> OptionValueView:
        fields = request.present_fields()
        if not fields:
            raise NoFieldsProvidedError()

        async with transaction(self.session):
            product = await load_product(self.products, product_id, actor, for_update=True)
            option = await self._load_option(product, option_id)
            value = await self._load_value(option, value_id)
            await self._apply_value_patch(option, value, fields)
            await self.session.flush()

        logger.info("Option value updated", product_id=product_id, option_id=option_id, value_id=value_id)
        await self.cache.invalidate_product(product_id)
        return OptionValueView.model_validate(value)

    async def delete_value(self, product_id: int, option_id: int, value_id: int, actor: Actor) -> None:
        """Soft-delete a value no live variant uses.

        Raises:
            OptionValueInUseError: A live variant references the value.
        """
        async with transaction(self.session):
            product = await load_product(self.products, product_id, actor, for_update=True)
            option = await self._load_option(product, option_id)
            value = await self._load_value(option, value_id)
            if await self.variants.value_in_use(value.id):
                raise OptionValueInUseError(value.id)
            value.soft_delete()
            await self.session.flush()

        logger.info("Option value deleted", product_id=product_id, option_id=option_id, value_id=value_id)
        await self.cache.invalidate_product(product_id)

    async def bulk_update_values(
        self,
        product_id: int,
        option_id: int,
        items: list[OptionValueBulkUpdateItem],
        actor: Actor,
    ) -> int:
        """Apply several value patches atomically.

        Returns:
            Number of values updated.
        """
        async with transaction(self.session):
            product = await load_product(self.products, product_id, actor, for_update=True)
            option = await self._load_option(product, option_id)
            for item in items:
                fields = item.present_fields()
                fields.pop("value_id", None)
                if not fields:
                    raise NoFieldsProvidedError()
                value = await self._load_value(option, item.value_id)
                await self._apply_value_patch(option, value, fields)
                await self.session.flush()

        logger.info("Option values bulk updated", product_id=product_id, option_id=option_id, count=len(items))
        await self.cache.invalidate_product(product_id)
        return len(items)
