"""Redis cache layer for catalog reads.

Redis is ONLY a cache, never the source of truth. The relational store is
always authoritative, so every failure here degrades to a cache miss (reads)
or a logged warning (writes and invalidation).

Cache keys follow a clear naming pattern:
- catalog:product:{scope}:{product_id}   product detail view
- catalog:categories:{scope}             visible category list
- catalog:filters:{scope}                storefront filter facets

``scope`` is the seller id for tenant-scoped callers and ``all`` for
unscoped (admin) callers.
"""

import json
from typing import Any

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from catalog_service.infrastructure.config import Settings

logger = structlog.get_logger()

NAMESPACE = "catalog"


def scope_token(seller_scope: int | None) -> str:
    """Render a tenant scope for use inside a cache key."""
    return "all" if seller_scope is None else str(seller_scope)


class CatalogCache:
    """Advisory read-through cache for catalog views.

    A cache built without a client is disabled: reads always miss and
    writes are no-ops.

    Example usage:
        cache = CatalogCache.from_settings(settings)
        view = await cache.get_json(cache.product_key(7, 42))
    """

    def __init__(
        self,
        client: Redis | None,
        ttl_product: int = 300,
        ttl_categories: int = 1800,
        ttl_filters: int = 1800,
    ) -> None:
        self.client = client
        self.ttl_product = ttl_product
        self.ttl_categories = ttl_categories
        self.ttl_filters = ttl_filters

    @classmethod
    def from_settings(cls, settings: Settings) -> "CatalogCache":
        """Build the cache from settings.

        Args:
            settings: Application settings.

        Returns:
            CatalogCache, disabled when ``redis_url`` is not configured.
        """
        client = None
        if settings.redis_url:
            client = Redis.from_url(
                settings.redis_url,
                decode_responses=True,
                socket_connect_timeout=2,
                socket_timeout=2,
            )
        return cls(
            client,
            ttl_product=settings.cache_ttl_product_seconds,
            ttl_categories=settings.cache_ttl_category_seconds,
            ttl_filters=settings.cache_ttl_filters_seconds,
        )

    @property
    def enabled(self) -> bool:
        return self.client is not None

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    @staticmethod
    def product_key(seller_scope: int | None, product_id: int) -> str:
        return f"{NAMESPACE}:product:{scope_token(seller_scope)}:{product_id}"

    @staticmethod
    def categories_key(scope: str) -> str:
        return f"{NAMESPACE}:categories:{scope}"

    @staticmethod
    def filters_key(seller_scope: int | None) -> str:
        return f"{NAMESPACE}:filters:{scope_token(seller_scope)}"

    # ------------------------------------------------------------------
    # Primitive operations
    # ------------------------------------------------------------------

    async def get_json(self, key: str) -> Any | None:
        """Read a cached JSON value.

        Args:
            key: Cache key.

        Returns:
            Decoded value, or None on miss, when disabled, or on error.
        """
        if self.client is None:
            return None
        try:
            raw = await self.client.get(key)
        except RedisError as e:
            logger.warning("Cache read failed", key=key, error=str(e))
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Discarding undecodable cache entry", key=key)
            return None

    async def set_json(self, key: str, value: Any, ttl: int) -> None:
        """Store a JSON-serializable value with a TTL in seconds."""
        if self.client is None:
            return
        try:
            await self.client.set(key, json.dumps(value, default=str), ex=ttl)
        except RedisError as e:
            logger.warning("Cache write failed", key=key, error=str(e))

    async def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern.

        Failures are logged and reported as zero deletions; they never
        propagate to the writer that triggered the invalidation.

        Args:
            pattern: Redis glob pattern.

        Returns:
            Number of deleted keys.
        """
        if self.client is None:
            return 0
        deleted = 0
        try:
            async for key in self.client.scan_iter(match=pattern, count=200):
                deleted += await self.client.delete(key)
        except RedisError as e:
            logger.warning("Cache invalidation failed", pattern=pattern, error=str(e))
            return 0
        if deleted:
            logger.debug("Cache invalidated", pattern=pattern, deleted=deleted)
        return deleted

    # ------------------------------------------------------------------
    # Invalidation used by writers (always after commit)
    # ------------------------------------------------------------------

    async def invalidate_product(self, product_id: int) -> None:
        await self.delete_pattern(f"{NAMESPACE}:product:*:{product_id}")
        await self.invalidate_filters()

    async def invalidate_all_products(self) -> None:
        await self.delete_pattern(f"{NAMESPACE}:product:*")
        await self.invalidate_filters()

    async def invalidate_categories(self, include_products: bool = False) -> None:
        """Drop category listings, and product details when breadcrumbs changed."""
        await self.delete_pattern(f"{NAMESPACE}:categories:*")
        if include_products:
            await self.delete_pattern(f"{NAMESPACE}:product:*")
        await self.invalidate_filters()

    async def invalidate_filters(self) -> None:
        await self.delete_pattern(f"{NAMESPACE}:filters:*")

    async def close(self) -> None:
        if self.client is not None:
            await self.client.aclose()
