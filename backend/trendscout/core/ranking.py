"""
Stateless filtering and sorting over canonical product records.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Callable, FrozenSet, List, Optional, Sequence, Tuple, TypeVar

from trendscout.models import CanonicalProduct

P = TypeVar("P", bound=CanonicalProduct)


@dataclass(frozen=True)
class FilterCriteria:
    """Optional bounds; an unset field imposes no constraint."""

    min_price_minor: Optional[int] = None
    max_price_minor: Optional[int] = None
    min_rating: Optional[float] = None
    in_stock_only: bool = False
    prime_only: bool = False
    brands: FrozenSet[str] = field(default_factory=frozenset)
    categories: FrozenSet[str] = field(default_factory=frozenset)


class SortKey(str, Enum):
    RELEVANCE = "relevance"
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"
    RATING = "rating"
    REVIEW_COUNT = "review_count"
    NEWEST = "newest"
    TREND_SCORE = "trend_score"


def matches(product: CanonicalProduct, criteria: FilterCriteria) -> bool:
    """True when the product satisfies every specified criterion."""
    price = product.price.amount_minor if product.price else None

    if criteria.min_price_minor is not None and (price is None or price < criteria.min_price_minor):
        return False
    if criteria.max_price_minor is not None and (price is None or price > criteria.max_price_minor):
        return False
    if criteria.min_rating is not None and product.reviews.rating < criteria.min_rating:
        return False
    if criteria.in_stock_only and not product.availability.in_stock:
        return False
    if criteria.prime_only and not product.shipping.is_prime:
        return False
    if criteria.brands and (not product.brand or product.brand not in criteria.brands):
        return False
    if criteria.categories and (not product.category or product.category not in criteria.categories):
        return False
    return True


def filter_products(products: Sequence[P], criteria: FilterCriteria) -> List[P]:
    """Keep products matching the criteria, preserving input order."""
    return [p for p in products if matches(p, criteria)]


def relevance_score(product: CanonicalProduct) -> float:
    return (
        0.4 * product.reviews.rating
        + 0.3 * (1 if product.shipping.is_prime else 0)
        + 0.3 * (1 if product.availability.in_stock else 0)
    )


def _price_asc(p: CanonicalProduct) -> Tuple[bool, int]:
    return (p.price is None, p.price.amount_minor if p.price else 0)


def _price_desc(p: CanonicalProduct) -> Tuple[bool, int]:
    return (p.price is None, -p.price.amount_minor if p.price else 0)


_SORT_KEYS: dict[SortKey, Callable[[CanonicalProduct], object]] = {
    SortKey.RELEVANCE: lambda p: -relevance_score(p),
    SortKey.PRICE_ASC: _price_asc,
    SortKey.PRICE_DESC: _price_desc,
    SortKey.RATING: lambda p: -p.reviews.rating,
    SortKey.REVIEW_COUNT: lambda p: -p.reviews.count,
    SortKey.NEWEST: lambda p: -p.last_updated.timestamp(),
    SortKey.TREND_SCORE: lambda p: -getattr(p, "trend_score", 0.0),
}


def sort_products(products: Sequence[P], key: SortKey | str) -> List[P]:
    """
    Sort products by the given key.

    The sort is stable: products with equal keys keep their input order.
    Products without a price sort last under both price orderings.
    """
    return sorted(products, key=_SORT_KEYS[SortKey(key)])


def parse_price_range(value: Optional[str]) -> Tuple[Optional[int], Optional[int]]:
    """
    Parse a "min-max" price range in major units into minor-unit bounds.

    Either side may be empty ("-50", "10-"). Raises ValueError on garbage.
    """
    if not value:
        return None, None
    low, sep, high = value.partition("-")
    if not sep:
        raise ValueError(f"price range must look like 'min-max': {value!r}")

    def to_minor(part: str) -> Optional[int]:
        part = part.strip()
        if not part:
            return None
        try:
            amount = Decimal(part)
        except InvalidOperation as e:
            raise ValueError(f"invalid price {part!r}") from e
        if not amount.is_finite() or amount < 0:
            raise ValueError(f"invalid price {part!r}")
        return int(amount * 100)

    low_minor, high_minor = to_minor(low), to_minor(high)
    if low_minor is not None and high_minor is not None and low_minor > high_minor:
        raise ValueError(f"price range minimum exceeds maximum: {value!r}")
    return low_minor, high_minor
