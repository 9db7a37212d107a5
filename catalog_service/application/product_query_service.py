"""Product read path: listing, detail, search, facets and related products.

Every query is narrowed to the caller's tenant scope. Product detail and
filter facets are read through the catalog cache.
"""

import time
from collections import defaultdict
from dataclasses import dataclass

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_service.application.assembly import ProductAssembler
from catalog_service.application.guards import load_product, product_scope, require_scope
from catalog_service.application.pagination import PaginatedResult, PaginationParams
from catalog_service.application.scoring import (
    SELLER_POPULAR_POOL,
    ProductTraits,
    parse_strategies,
    query_tokens,
    relation_reason,
    score_related,
    score_search,
)
from catalog_service.application.views import (
    AttributeFacet,
    BrandFacet,
    CategoryFacet,
    PriceBucket,
    PriceFacet,
    ProductDetailView,
    ProductFilters,
    ProductSummaryView,
    RelatedProducts,
    RelatedProductsMeta,
    RelatedProductView,
    SearchResults,
    SearchResultView,
    StockStatus,
    ValueCount,
    VariantTypeFacet,
)
from catalog_service.catalog.models import Category
from catalog_service.catalog.repositories import CategoryRepository, ProductFilter, ProductRepository
from catalog_service.catalog.repositories.product import SORT_FIELDS
from catalog_service.domain.exceptions import CategoryNotFoundError, ValidationError
from catalog_service.domain.principal import Actor
from catalog_service.infrastructure.cache import CatalogCache

logger = structlog.get_logger()

PRICE_BUCKETS = 5
SORT_ALIASES = {"createdAt": "created_at", "created": "created_at"}


@dataclass
class ProductQuery:
    """Listing and search criteria as sent by the client.

    Attributes:
        category_id: Restrict to a category.
        include_subcategories: Cascade the category filter into descendants.
        brand: Case-insensitive brand match.
        min_price: Inclusive lower bound on a variant price.
        max_price: Inclusive upper bound on the same variant's price.
        in_stock: Any variant allows purchase.
        is_popular: Any variant is flagged popular.
        sort_by: ``name``, ``created_at`` or ``price``.
        sort_order: ``asc`` or ``desc``.
    """

    category_id: int | None = None
    include_subcategories: bool = True
    brand: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    in_stock: bool | None = None
    is_popular: bool | None = None
    sort_by: str = "created_at"
    sort_order: str = "desc"


def price_buckets(bounds: list[tuple[int, float, float]]) -> PriceFacet | None:
    """Split the scoped price span into equal-width buckets.

    Products are counted by their lowest variant price. A span of zero
    width yields a single bucket.
    """
    if not bounds:
        return None
    low = min(item[1] for item in bounds)
    high = max(item[2] for item in bounds)
    prices = [item[1] for item in bounds]
    if high <= low:
        return PriceFacet(min=low, max=high, buckets=[PriceBucket(min=low, max=high, count=len(prices))])

    width = (high - low) / PRICE_BUCKETS
    counts = [0] * PRICE_BUCKETS
    for price in prices:
        counts[min(int((price - low) / width), PRICE_BUCKETS - 1)] += 1
    buckets = [
        PriceBucket(
            min=round(low + index * width, 2),
            max=round(high if index == PRICE_BUCKETS - 1 else low + (index + 1) * width, 2),
            count=count,
        )
        for index, count in enumerate(counts)
    ]
    return PriceFacet(min=low, max=high, buckets=buckets)


def category_facets(categories: list[Category], counts: dict[int, int]) -> list[CategoryFacet]:
    """Category tree whose counts include every descendant's products."""
    nodes = {
        category.id: CategoryFacet(id=category.id, name=category.name, product_count=counts.get(category.id, 0))
        for category in categories
    }
    roots: list[CategoryFacet] = []
    for category in categories:
        parent = nodes.get(category.parent_id) if category.parent_id else None
        if parent is None:
            roots.append(nodes[category.id])
        else:
            parent.children.append(nodes[category.id])

    def roll_up(node: CategoryFacet) -> int:
        node.product_count += sum(roll_up(child) for child in node.children)
        return node.product_count

    for root in roots:
        roll_up(root)
    return roots


class ProductQueryService:
    """Read-only product queries.

    Example usage:
        service = ProductQueryService(session, cache)
        page = await service.list_products(
            ProductQuery(brand="Acme"), PaginationParams(page=1, limit=20), Actor.public(7)
        )
    """

    def __init__(self, session: AsyncSession, cache: CatalogCache) -> None:
        self.cache = cache
        self.products = ProductRepository(session)
        self.categories = CategoryRepository(session)
        self.assembler = ProductAssembler(session)

    async def _build_filter(self, query: ProductQuery, actor: Actor) -> ProductFilter:
        scope = require_scope(actor)
        category_ids = None
        if query.category_id:
            category = await self.categories.get(query.category_id)
            if category is None or not actor.can_see(category.seller_id):
                raise CategoryNotFoundError(query.category_id)
            if query.include_subcategories:
                category_ids = await self.categories.descendant_ids(category.id)
            else:
                category_ids = [category.id]
        if query.min_price is not None and query.max_price is not None and query.min_price > query.max_price:
            raise ValidationError.for_field("minPrice", "minPrice cannot exceed maxPrice")
        return ProductFilter(
            seller_id=scope,
            category_ids=category_ids,
            brand=query.brand,
            min_price=query.min_price,
            max_price=query.max_price,
            in_stock=query.in_stock,
            is_popular=query.is_popular,
        )

    async def list_products(
        self, query: ProductQuery, pagination: PaginationParams, actor: Actor
    ) -> PaginatedResult[ProductSummaryView]:
        """One page of product summaries.

        Raises:
            ValidationError: Bad sort field or order, or no seller scope.
            CategoryNotFoundError: Filter category not visible to the caller.
        """
        sort_by = SORT_ALIASES.get(query.sort_by, query.sort_by)
        if sort_by not in SORT_FIELDS:
            raise ValidationError.for_field(
                "sortBy", f"sortBy must be one of: {', '.join(SORT_FIELDS)}", error_code="INVALID_SORT"
            )
        sort_order = query.sort_order.lower()
        if sort_order not in ("asc", "desc"):
            raise ValidationError.for_field("sortOrder", "sortOrder must be asc or desc", error_code="INVALID_SORT")

        filters = await self._build_filter(query, actor)
        products, total = await self.products.find_page(
            filters, pagination.offset, pagination.limit, sort_by=sort_by, sort_order=sort_order
        )
        items = await self.assembler.summaries(products)
        return PaginatedResult(items=items, total=total, page=pagination.page, limit=pagination.limit)

    async def get_product(self, product_id: int, actor: Actor) -> ProductDetailView:
        """Full product view, read through the cache."""
        key = self.cache.product_key(product_scope(actor), product_id)
        if actor.unscoped or actor.seller_id is not None:
            cached = await self.cache.get_json(key)
            if cached is not None:
                return ProductDetailView.model_validate(cached)

        product = await load_product(self.products, product_id, actor)
        view = await self.assembler.detail(product)
        await self.cache.set_json(key, view.model_dump(mode="json"), self.cache.ttl_product)
        return view

    async def search(
        self, text: str, query: ProductQuery, pagination: PaginationParams, actor: Actor
    ) -> SearchResults:
        """Token-match search over name, brand, tags and short description.

        Results are ordered by relevance score, then product id.

        Raises:
            ValidationError: Query has no searchable tokens.
        """
        started = time.perf_counter()
        tokens = query_tokens(text)
        if not tokens:
            raise ValidationError.for_field("q", "Search query cannot be empty")

        filters = await self._build_filter(query, actor)
        candidates = await self.products.search_candidates(filters, tokens)
        hits = []
        for product in candidates:
            hit = score_search(tokens, product.name, product.brand, product.tags or [], product.short_description)
            if hit.score > 0:
                hits.append((product, hit))
        hits.sort(key=lambda item: (-item[1].score, item[0].id))

        page = pagination.slice(hits)
        fields = await self.assembler.summary_fields_for([product for product, _ in page])
        results = [
            SearchResultView(**fields[product.id], relevance_score=hit.score, matched_fields=hit.matched_fields)
            for product, hit in page
        ]
        elapsed = round((time.perf_counter() - started) * 1000, 2)
        logger.debug("Search completed", query=text, total=len(hits), search_time_ms=elapsed)
        return SearchResults(query=text, results=results, total=len(hits), search_time=elapsed)

    async def filters(self, actor: Actor) -> ProductFilters:
        """Facet aggregates over the scoped product set, read through the cache."""
        scope = require_scope(actor)
        key = self.cache.filters_key(scope)
        cached = await self.cache.get_json(key)
        if cached is not None:
            return ProductFilters.model_validate(cached)

        categories = list(await self.categories.list_visible(scope, unscoped=actor.unscoped))
        category_counts = await self.products.count_by_category(scope)

        attributes: dict[int, AttributeFacet] = {}
        for definition, value, count in await self.products.attribute_value_counts(scope):
            facet = attributes.setdefault(
                definition.id,
                AttributeFacet(key=definition.key, name=definition.name, unit=definition.unit, values=[]),
            )
            facet.values.append(ValueCount(value=value, count=count))
        for facet in attributes.values():
            facet.values.sort(key=lambda item: (-item.count, item.value))

        variant_types: dict[str, VariantTypeFacet] = {}
        for name, display_name, value, count in await self.products.option_value_counts(scope):
            facet = variant_types.setdefault(name, VariantTypeFacet(name=name, display_name=display_name, values=[]))
            facet.values.append(ValueCount(value=value, count=count))

        in_stock, total = await self.products.count_in_stock(scope)
        result = ProductFilters(
            categories=category_facets(categories, category_counts),
            brands=[BrandFacet(name=brand, count=count) for brand, count in await self.products.count_by_brand(scope)],
            price_range=price_buckets(await self.products.price_bounds(scope)),
            attributes=sorted(attributes.values(), key=lambda facet: facet.key),
            variant_types=list(variant_types.values()),
            stock_status=StockStatus(in_stock=in_stock, out_of_stock=total - in_stock, total=total),
        )
        await self.cache.set_json(key, result.model_dump(mode="json"), self.cache.ttl_filters)
        return result

    async def related_products(
        self,
        product_id: int,
        strategies: list[str] | None,
        pagination: PaginationParams,
        actor: Actor,
    ) -> RelatedProducts:
        """Related products of the source product's seller, scored per strategy.

        Raises:
            InvalidStrategyError: Unknown strategy name.
            ProductNotFoundError: Source product outside the caller's scope.
        """
        enabled = parse_strategies(strategies)
        source = await load_product(self.products, product_id, actor)

        pool = [
            product
            for product in await self.products.find_all(ProductFilter(seller_id=source.seller_id))
            if product.id != source.id
        ]
        parents = await self.categories.parents_of({source.category_id, *(p.category_id for p in pool)})
        bounds = {pid: (low, high) for pid, low, high in await self.products.price_bounds(source.seller_id)}
        popular = frozenset(await self.products.newest_for_seller(source.seller_id, SELLER_POPULAR_POOL))

        def traits(product) -> ProductTraits:
            low, high = bounds.get(product.id, (None, None))
            return ProductTraits(
                product_id=product.id,
                category_id=product.category_id,
                parent_category_id=parents.get(product.category_id),
                brand=product.brand,
                tags=frozenset(tag.lower() for tag in product.tags or []),
                min_price=low,
                max_price=high,
            )

        source_traits = traits(source)
        scored = []
        for product in pool:
            candidate = traits(product)
            result = score_related(source_traits, candidate, enabled, popular)
            if result.contributions:
                scored.append((product, candidate, result))
        scored.sort(key=lambda item: (-item[2].score, item[0].id))

        page = pagination.slice(scored)
        fields = await self.assembler.summary_fields_for([product for product, _, _ in page])
        items = [
            RelatedProductView(
                **fields[product.id],
                score=result.score,
                strategy_used=result.strategy_used,
                relation_reason=relation_reason(result.strategy_used, source_traits, candidate),
            )
            for product, candidate, result in page
        ]
        used = {name for _, _, result in scored for name in result.contributions}
        meta = RelatedProductsMeta(
            strategies_used=[name for name in enabled if name in used],
            avg_score=round(sum(item.score for item in items) / len(items), 2) if items else 0.0,
            total_strategies=len(enabled),
        )
        return RelatedProducts(related_products=items, total=len(scored), meta=meta)
