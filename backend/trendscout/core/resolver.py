"""
Product resolution: map top keywords to catalog searches and rank the results.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Sequence

from trendscout.models import (
    CanonicalProduct,
    InvariantViolation,
    Keyword,
    TrendingProduct,
    merge_trending_products,
)

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 10
DEFAULT_PAGE_SIZE = 5
DEFAULT_CONCURRENCY = 3
DEFAULT_MIN_RATING = 4
DEFAULT_CONDITION = "New"


class ProductSearch(Protocol):
    async def search_products(
        self,
        query: str,
        niche: Optional[str] = None,
        limit: int = 5,
        min_rating: Optional[int] = 4,
        condition: Optional[str] = "New",
    ) -> List[CanonicalProduct]:
        ...


@dataclass
class ResolveOutcome:
    products: List[TrendingProduct] = field(default_factory=list)
    attempted: int = 0
    succeeded: int = 0


def dedupe_trending_products(products: Sequence[TrendingProduct]) -> List[TrendingProduct]:
    """
    Merge records sharing a catalog id, keeping first-seen order.
    """
    merged: Dict[str, TrendingProduct] = {}
    for product in products:
        existing = merged.get(product.catalog_id)
        merged[product.catalog_id] = product if existing is None else merge_trending_products(existing, product)
    return list(merged.values())


class ProductResolver:
    """Runs bounded-concurrency catalog searches for the strongest keywords."""

    def __init__(
        self,
        catalog: Optional[ProductSearch],
        top_k: int = DEFAULT_TOP_K,
        page_size: int = DEFAULT_PAGE_SIZE,
        concurrency: int = DEFAULT_CONCURRENCY,
        min_rating: Optional[int] = DEFAULT_MIN_RATING,
        condition: Optional[str] = DEFAULT_CONDITION,
        timeout: float = 5.0,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.catalog = catalog
        self.top_k = top_k
        self.page_size = page_size
        self.concurrency = concurrency
        self.min_rating = min_rating
        self.condition = condition
        self.timeout = timeout

    async def _search(
        self,
        keyword: Keyword,
        niche: Optional[str],
        semaphore: asyncio.Semaphore,
    ) -> Optional[List[CanonicalProduct]]:
        async with semaphore:
            try:
                return await asyncio.wait_for(
                    self.catalog.search_products(
                        keyword.text,
                        niche=niche,
                        limit=self.page_size,
                        min_rating=self.min_rating,
                        condition=self.condition,
                    ),
                    self.timeout,
                )
            except asyncio.TimeoutError:
                logger.warning("Product search timed out for keyword %r", keyword.text)
            except InvariantViolation:
                raise
            except Exception as e:
                logger.warning("Product search failed for keyword %r: %s", keyword.text, e)
        return None

    async def resolve(
        self,
        keywords: Sequence[Keyword],
        max_products: int,
        niche: Optional[str] = None,
    ) -> ResolveOutcome:
        """
        Resolve consolidated keywords into ranked trending products.

        Args:
            keywords: Consolidated keywords
            max_products: Output budget
            niche: Niche used to choose the catalog search index

        Returns:
            ResolveOutcome with products sorted by trend score desc and the
            number of searches attempted and succeeded
        """
        if self.catalog is None or max_products <= 0 or not keywords:
            return ResolveOutcome()

        top = sorted(keywords, key=lambda k: (-k.score, -k.mention_count, k.identity))[: self.top_k]
        semaphore = asyncio.Semaphore(self.concurrency)
        results = await asyncio.gather(*(self._search(k, niche, semaphore) for k in top))

        candidates: List[TrendingProduct] = []
        succeeded = 0
        for keyword, found in zip(top, results):
            if found is None:
                continue
            succeeded += 1
            candidates.extend(TrendingProduct.from_product(p, keyword) for p in found)

        products = dedupe_trending_products(candidates)
        products.sort(key=lambda p: (-p.trend_score, p.catalog_id))
        logger.info(
            "Resolved %d products from %d/%d keyword searches",
            len(products), succeeded, len(top),
        )
        return ResolveOutcome(products[:max_products], attempted=len(top), succeeded=succeeded)
