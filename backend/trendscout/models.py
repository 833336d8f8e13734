"""
File: trendscout/models.py
Internal data structures used during discovery, resolution and caching.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Generic, Mapping, Optional, Tuple, TypeVar


JsonDict = Dict[str, Any]
T = TypeVar("T")


class TrendscoutError(Exception):
    """Base class for engine errors."""


class SourceError(TrendscoutError):
    """A provider call failed; absorbed by the collector and the resolver."""

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source


class InvariantViolation(TrendscoutError):
    """A logic bug. Never absorbed."""


class SourceName(str, Enum):
    PERPLEXITY = "perplexity"
    REDDIT = "reddit"
    CATALOG = "catalog"


@dataclass(frozen=True)
class Source:
    name: SourceName
    priority: int
    enabled: bool
    last_updated: Optional[datetime] = None


@dataclass(frozen=True)
class Keyword:
    """A keyword signal from one source, or a consolidated one."""

    text: str
    score: float  # [0, 100]
    source_name: SourceName
    mention_count: int = 0
    category: Optional[str] = None
    related_terms: frozenset = field(default_factory=frozenset)

    @property
    def identity(self) -> str:
        return normalize_keyword(self.text)


def normalize_keyword(text: str) -> str:
    return (text or "").strip().lower()


@dataclass(frozen=True)
class Price:
    amount_minor: int
    currency: str
    display: str
    original_amount_minor: Optional[int] = None
    discount_percent: Optional[int] = None


@dataclass(frozen=True)
class Images:
    small: Optional[str] = None
    medium: Optional[str] = None
    large: Optional[str] = None


@dataclass(frozen=True)
class Availability:
    in_stock: bool = False
    raw_type: str = "Unknown"


@dataclass(frozen=True)
class Shipping:
    is_prime: bool = False
    is_free_shipping: bool = False
    is_fulfilled_by_platform: bool = False


@dataclass(frozen=True)
class Reviews:
    count: int = 0
    rating: float = 0.0  # [0, 5]


@dataclass(frozen=True)
class CanonicalProduct:
    """Provider-agnostic catalog product. Identity is ``catalog_id``."""

    id: str
    catalog_id: str
    title: str
    affiliate_url: str
    last_updated: datetime
    brand: Optional[str] = None
    features: Tuple[str, ...] = ()
    category: Optional[str] = None
    subcategory: Optional[str] = None
    price: Optional[Price] = None
    images: Images = field(default_factory=Images)
    availability: Availability = field(default_factory=Availability)
    shipping: Shipping = field(default_factory=Shipping)
    reviews: Reviews = field(default_factory=Reviews)
    condition_label: str = "New"


@dataclass(frozen=True)
class TrendingProduct(CanonicalProduct):
    trend_score: float = 0.0
    sources: frozenset = field(default_factory=frozenset)
    discovery_keywords: frozenset = field(default_factory=frozenset)

    @classmethod
    def from_product(cls, product: CanonicalProduct, keyword: Keyword) -> "TrendingProduct":
        base = {f.name: getattr(product, f.name) for f in fields(CanonicalProduct)}
        return cls(
            **base,
            trend_score=keyword.score,
            sources=frozenset({keyword.source_name}),
            discovery_keywords=frozenset({keyword.text}),
        )


def merge_trending_products(existing: TrendingProduct, incoming: TrendingProduct) -> TrendingProduct:
    """Merge two records of the same catalog item.

    Sources and discovery keywords are unioned, the trend score is the max.
    Every other field keeps the existing record's value.
    """
    if existing.catalog_id != incoming.catalog_id:
        raise InvariantViolation(
            f"cannot merge products {existing.catalog_id!r} and {incoming.catalog_id!r}"
        )
    return replace(
        existing,
        trend_score=max(existing.trend_score, incoming.trend_score),
        sources=existing.sources | incoming.sources,
        discovery_keywords=existing.discovery_keywords | incoming.discovery_keywords,
    )


@dataclass(frozen=True)
class HybridTrendsResult:
    keywords: Tuple[Keyword, ...]
    products: Tuple[TrendingProduct, ...]
    source_coverage: Mapping[SourceName, bool]
    generated_at: datetime

    def __post_init__(self):
        object.__setattr__(self, "keywords", tuple(self.keywords))
        object.__setattr__(self, "products", tuple(self.products))
        object.__setattr__(self, "source_coverage", MappingProxyType(dict(self.source_coverage)))


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    value: T
    stored_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


__all__ = [
    "Availability",
    "CacheEntry",
    "CanonicalProduct",
    "HybridTrendsResult",
    "Images",
    "InvariantViolation",
    "JsonDict",
    "Keyword",
    "Price",
    "Reviews",
    "Shipping",
    "Source",
    "SourceError",
    "SourceName",
    "TrendingProduct",
    "TrendscoutError",
    "merge_trending_products",
    "normalize_keyword",
]
