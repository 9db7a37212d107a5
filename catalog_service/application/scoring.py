"""Relevance scoring for product search and related products.

Both scorers are pure: the query service loads rows, these functions rank
them.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from catalog_service.domain.exceptions import InvalidStrategyError
from catalog_service.domain.normalization import tokenize

# ============================================================================
# Search
# ============================================================================

SEARCH_WEIGHTS = {
    "name": 3.0,
    "brand": 2.0,
    "tags": 1.5,
    "shortDescription": 1.0,
}


@dataclass
class SearchHit:
    score: float
    matched_fields: list[str]


def query_tokens(query: str) -> list[str]:
    """Distinct search tokens in query order."""
    return list(dict.fromkeys(tokenize(query)))


def score_search(
    tokens: Sequence[str],
    name: str,
    brand: str | None,
    tags: Iterable[str],
    short_description: str | None,
) -> SearchHit:
    """Field-weighted token match score.

    Each field contributes its weight times the number of query tokens found
    in it; the sum is divided by the number of tokens so that scores of
    short and long queries are comparable.

    Args:
        tokens: Distinct lowercase query tokens.
        name: Product name.
        brand: Product brand.
        tags: Product tags.
        short_description: Product short description.

    Returns:
        SearchHit with the score and the fields that matched, in weight order.
    """
    if not tokens:
        return SearchHit(0.0, [])
    texts = {
        "name": name.lower(),
        "brand": (brand or "").lower(),
        "tags": " ".join(tags).lower(),
        "shortDescription": (short_description or "").lower(),
    }
    total = 0.0
    matched: list[str] = []
    for field_name, weight in SEARCH_WEIGHTS.items():
        hits = sum(1 for token in tokens if token in texts[field_name])
        if hits:
            total += weight * hits
            matched.append(field_name)
    return SearchHit(round(total / len(tokens), 4), matched)


# ============================================================================
# Related products
# ============================================================================

SAME_CATEGORY = "same_category"
SAME_BRAND = "same_brand"
SIBLING_CATEGORY = "sibling_category"
PARENT_CATEGORY = "parent_category"
CHILD_CATEGORY = "child_category"
TAG_MATCHING = "tag_matching"
PRICE_RANGE = "price_range"
SELLER_POPULAR = "seller_popular"

# Schedule order doubles as the tie-break order for ``strategyUsed``.
STRATEGIES = (
    SAME_CATEGORY,
    SAME_BRAND,
    SIBLING_CATEGORY,
    PARENT_CATEGORY,
    CHILD_CATEGORY,
    TAG_MATCHING,
    PRICE_RANGE,
    SELLER_POPULAR,
)

FIXED_WEIGHTS = {
    SAME_CATEGORY: 100.0,
    SAME_BRAND: 80.0,
    SIBLING_CATEGORY: 70.0,
    PARENT_CATEGORY: 60.0,
    CHILD_CATEGORY: 55.0,
    PRICE_RANGE: 25.0,
    SELLER_POPULAR: 15.0,
}

PRICE_LOWER_FACTOR = 0.7
PRICE_UPPER_FACTOR = 1.3
SELLER_POPULAR_POOL = 50


def tag_weight(shared: int) -> float:
    """Weight for the number of tags two products share."""
    if shared <= 0:
        return 0.0
    if shared == 1:
        return 20.0
    if shared == 2:
        return 30.0
    if shared <= 4:
        return 40.0
    return 50.0


def parse_strategies(raw: Iterable[str] | None) -> list[str]:
    """Resolve requested strategy names.

    Accepts names in any case, ``all``, or nothing (meaning all).

    Raises:
        InvalidStrategyError: An unknown strategy name.
    """
    names = [name.strip().lower() for name in (raw or []) if name and name.strip()]
    if not names or "all" in names:
        return list(STRATEGIES)
    for name in names:
        if name not in STRATEGIES:
            raise InvalidStrategyError(name, ["all", *STRATEGIES])
    return [name for name in STRATEGIES if name in names]


@dataclass
class ProductTraits:
    """What related-product strategies compare between two products."""

    product_id: int
    category_id: int
    parent_category_id: int | None
    brand: str | None
    tags: frozenset[str]
    min_price: float | None
    max_price: float | None


@dataclass
class RelatedScore:
    product_id: int
    contributions: dict[str, float] = field(default_factory=dict)

    @property
    def score(self) -> float:
        return sum(self.contributions.values())

    @property
    def strategy_used(self) -> str:
        """Strategy with the largest single contribution."""
        return max(
            self.contributions,
            key=lambda name: (self.contributions[name], -STRATEGIES.index(name)),
        )


def relation_reason(strategy: str, source: ProductTraits, candidate: ProductTraits) -> str:
    if strategy == SAME_CATEGORY:
        return "In the same category"
    if strategy == SAME_BRAND:
        return f"Same brand: {candidate.brand}"
    if strategy == SIBLING_CATEGORY:
        return "In a sibling category"
    if strategy == PARENT_CATEGORY:
        return "In the parent category"
    if strategy == CHILD_CATEGORY:
        return "In a subcategory"
    if strategy == TAG_MATCHING:
        shared = len(source.tags & candidate.tags)
        return f"Shares {shared} tag{'s' if shared != 1 else ''}"
    if strategy == PRICE_RANGE:
        return "In a similar price range"
    return "Popular from this seller"


def score_related(
    source: ProductTraits,
    candidate: ProductTraits,
    strategies: Sequence[str],
    seller_popular_ids: frozenset[int] = frozenset(),
) -> RelatedScore:
    """Additive score of one candidate against the source product.

    Args:
        source: Source product traits.
        candidate: Candidate product traits.
        strategies: Enabled strategies.
        seller_popular_ids: Newest products of the source seller.

    Returns:
        RelatedScore; an empty contribution map means the candidate is unrelated.
    """
    result = RelatedScore(candidate.product_id)
    enabled = set(strategies)

    def add(strategy: str, weight: float) -> None:
        if strategy in enabled and weight > 0:
            result.contributions[strategy] = weight

    if candidate.category_id == source.category_id:
        add(SAME_CATEGORY, FIXED_WEIGHTS[SAME_CATEGORY])
    if source.brand and candidate.brand and source.brand.lower() == candidate.brand.lower():
        add(SAME_BRAND, FIXED_WEIGHTS[SAME_BRAND])
    if (
        source.parent_category_id is not None
        and candidate.category_id != source.category_id
        and candidate.parent_category_id == source.parent_category_id
    ):
        add(SIBLING_CATEGORY, FIXED_WEIGHTS[SIBLING_CATEGORY])
    if source.parent_category_id is not None and candidate.category_id == source.parent_category_id:
        add(PARENT_CATEGORY, FIXED_WEIGHTS[PARENT_CATEGORY])
    if candidate.parent_category_id == source.category_id:
        add(CHILD_CATEGORY, FIXED_WEIGHTS[CHILD_CATEGORY])
    add(TAG_MATCHING, tag_weight(len(source.tags & candidate.tags)))
    if source.min_price is not None and source.max_price is not None and candidate.min_price is not None:
        low = source.min_price * PRICE_LOWER_FACTOR
        high = source.max_price * PRICE_UPPER_FACTOR
        if low <= candidate.min_price <= high:
            add(PRICE_RANGE, FIXED_WEIGHTS[PRICE_RANGE])
    if candidate.product_id in seller_popular_ids:
        add(SELLER_POPULAR, FIXED_WEIGHTS[SELLER_POPULAR])
    return result
