# trendscout/schemas.py
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from trendscout.models import CanonicalProduct, Keyword, Price, Source


class KeywordOut(BaseModel):
    keyword: str
    score: float
    source: str
    mentions: int
    category: Optional[str] = None
    related_terms: List[str] = Field(default_factory=list)

    @classmethod
    def from_record(cls, keyword: Keyword) -> "KeywordOut":
        return cls(
            keyword=keyword.text,
            score=keyword.score,
            source=keyword.source_name.value,
            mentions=keyword.mention_count,
            category=keyword.category,
            related_terms=sorted(keyword.related_terms),
        )


class PriceOut(BaseModel):
    amount_minor: int
    currency: str
    display: str
    original_amount_minor: Optional[int] = None
    discount_percent: Optional[int] = None

    @classmethod
    def from_record(cls, price: Optional[Price]) -> Optional["PriceOut"]:
        if price is None:
            return None
        return cls(
            amount_minor=price.amount_minor,
            currency=price.currency,
            display=price.display,
            original_amount_minor=price.original_amount_minor,
            discount_percent=price.discount_percent,
        )


class ImagesOut(BaseModel):
    small: Optional[str] = None
    medium: Optional[str] = None
    large: Optional[str] = None


class AvailabilityOut(BaseModel):
    in_stock: bool
    raw_type: str


class ShippingOut(BaseModel):
    is_prime: bool
    is_free_shipping: bool
    is_fulfilled_by_platform: bool


class ReviewsOut(BaseModel):
    count: int
    rating: float


class ProductOut(BaseModel):
    id: str
    catalog_id: str
    title: str
    brand: Optional[str] = None
    features: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    subcategory: Optional[str] = None
    price: Optional[PriceOut] = None
    images: ImagesOut
    availability: AvailabilityOut
    shipping: ShippingOut
    reviews: ReviewsOut
    affiliate_url: str
    last_updated: datetime
    condition_label: str
    trend_score: Optional[float] = None
    sources: List[str] = Field(default_factory=list)
    discovery_keywords: List[str] = Field(default_factory=list)

    @classmethod
    def from_record(cls, product: CanonicalProduct) -> "ProductOut":
        sources = getattr(product, "sources", frozenset())
        return cls(
            id=product.id,
            catalog_id=product.catalog_id,
            title=product.title,
            brand=product.brand,
            features=list(product.features),
            category=product.category,
            subcategory=product.subcategory,
            price=PriceOut.from_record(product.price),
            images=ImagesOut(
                small=product.images.small,
                medium=product.images.medium,
                large=product.images.large,
            ),
            availability=AvailabilityOut(
                in_stock=product.availability.in_stock,
                raw_type=product.availability.raw_type,
            ),
            shipping=ShippingOut(
                is_prime=product.shipping.is_prime,
                is_free_shipping=product.shipping.is_free_shipping,
                is_fulfilled_by_platform=product.shipping.is_fulfilled_by_platform,
            ),
            reviews=ReviewsOut(count=product.reviews.count, rating=product.reviews.rating),
            affiliate_url=product.affiliate_url,
            last_updated=product.last_updated,
            condition_label=product.condition_label,
            trend_score=getattr(product, "trend_score", None),
            sources=sorted(s.value for s in sources),
            discovery_keywords=sorted(getattr(product, "discovery_keywords", frozenset())),
        )


class SourceOut(BaseModel):
    name: str
    priority: int
    enabled: bool
    last_updated: Optional[datetime] = None

    @classmethod
    def from_record(cls, source: Source) -> "SourceOut":
        return cls(
            name=source.name.value,
            priority=source.priority,
            enabled=source.enabled,
            last_updated=source.last_updated,
        )


class DiscoverResponse(BaseModel):
    niche: Optional[str] = None
    source: str = "all"
    keywords: List[KeywordOut]
    products: List[ProductOut]
    sources: List[SourceOut]
    source_coverage: Dict[str, bool]
    total_sources: int
    generated_at: datetime


class KeywordsResponse(BaseModel):
    niche: Optional[str] = None
    source: str = "all"
    limit: int
    total: int
    keywords: List[KeywordOut]
    sources: List[SourceOut]
    generated_at: datetime


class ProductsResponse(BaseModel):
    niche: Optional[str] = None
    limit: int
    sort_by: str
    total_found: int
    products: List[ProductOut]
    source_coverage: Dict[str, bool]
    generated_at: datetime


class SourcesResponse(BaseModel):
    sources: List[SourceOut]
    enabled_sources: List[SourceOut]
    total_sources: int
    active_sources: int
    capabilities: Dict[str, bool]


class RefreshRequest(BaseModel):
    niche: Optional[str] = None


class RefreshResponse(BaseModel):
    message: str
    niche: Optional[str] = None
    keywords: int
    products: int
    sources: int
    generated_at: datetime
