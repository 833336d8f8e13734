"""
Hybrid trend discovery orchestrator.

Fans out to every enabled keyword source, consolidates their signals,
resolves the strongest keywords into catalog products and caches the
assembled result per niche.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from enum import Enum
from typing import Dict, List, Optional, Sequence

from trendscout.config import SOURCE_PRIORITIES, Settings
from trendscout.core.consolidate import consolidate_keywords
from trendscout.core.resolver import ProductResolver, ResolveOutcome
from trendscout.models import HybridTrendsResult, Source, SourceName
from trendscout.services.cache import TTLCache, get_cache_key
from trendscout.sources.catalog import CatalogClient, CatalogSource
from trendscout.sources.collector import KeywordSource, collect_keywords
from trendscout.sources.perplexity import PerplexityKeywordSource
from trendscout.sources.reddit import RedditKeywordSource
from trendscout.utils import now_utc

logger = logging.getLogger(__name__)

DEFAULT_MAX_KEYWORDS = 50
DEFAULT_MAX_PRODUCTS = 30
RESULT_MAX_KEYWORDS = 100
RESULT_MAX_PRODUCTS = 100


class DiscoveryState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    CONSOLIDATING = "consolidating"
    RESOLVING = "resolving"
    CACHING = "caching"
    DONE = "done"


def within_budget(result: HybridTrendsResult, max_keywords: int, max_products: int) -> HybridTrendsResult:
    """Trim a cached result to the caller's budgets without touching the cached object."""
    max_keywords, max_products = max(0, max_keywords), max(0, max_products)
    if len(result.keywords) <= max_keywords and len(result.products) <= max_products:
        return result
    return replace(
        result,
        keywords=result.keywords[:max_keywords],
        products=result.products[:max_products],
    )


class HybridTrendsEngine:
    """
    Public entry point for trend discovery.

    The cache is passed in and owned by whoever builds the engine. Source
    enablement is fixed at construction time. Each niche's result is built
    and cached at the engine's capacity; callers get a trimmed view of it.
    """

    def __init__(
        self,
        sources: Sequence[Source],
        adapters: Dict[SourceName, KeywordSource],
        resolver: ProductResolver,
        cache: TTLCache,
        cache_ttl: float,
        adapter_timeout: float = 5.0,
        keyword_capacity: int = RESULT_MAX_KEYWORDS,
        product_capacity: int = RESULT_MAX_PRODUCTS,
    ):
        self.sources = tuple(sorted(sources, key=lambda s: s.priority))
        self.adapters = dict(adapters)
        self.resolver = resolver
        self.cache = cache
        self.cache_ttl = cache_ttl
        self.adapter_timeout = adapter_timeout
        self.keyword_capacity = keyword_capacity
        self.product_capacity = product_capacity

    def source(self, name: SourceName) -> Optional[Source]:
        return next((s for s in self.sources if s.name == name), None)

    @property
    def catalog_enabled(self) -> bool:
        catalog = self.source(SourceName.CATALOG)
        return bool(catalog and catalog.enabled)

    async def discover_trends(
        self,
        niche: Optional[str] = None,
        max_keywords: int = DEFAULT_MAX_KEYWORDS,
        max_products: int = DEFAULT_MAX_PRODUCTS,
        force_refresh: bool = False,
    ) -> HybridTrendsResult:
        """
        Discover trending keywords and products across all sources.

        Args:
            niche: Niche identifier, or None for all niches
            max_keywords: Keyword output budget, capped at the engine capacity
            max_products: Product output budget, capped at the engine capacity
            force_refresh: Skip the cache lookup; the result is still stored

        Returns:
            HybridTrendsResult, possibly empty with every coverage flag false
        """
        niche = (niche or "").strip().lower() or None
        cache_key = get_cache_key(niche)
        state = DiscoveryState.IDLE

        if not force_refresh:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug("Cache hit for %s", cache_key)
                return within_budget(cached, max_keywords, max_products)

        state = self._advance(state, DiscoveryState.FETCHING, cache_key)
        outcomes = await collect_keywords(self.sources, self.adapters, niche, self.adapter_timeout)
        coverage = {name: outcome.ok for name, outcome in outcomes.items()}

        state = self._advance(state, DiscoveryState.CONSOLIDATING, cache_key)
        raw = [k for outcome in outcomes.values() if outcome.ok for k in outcome.keywords]
        priorities = {s.name.value: s.priority for s in self.sources}
        keywords = consolidate_keywords(raw, priorities)[: self.keyword_capacity]

        state = self._advance(state, DiscoveryState.RESOLVING, cache_key)
        if self.catalog_enabled:
            resolved = await self.resolver.resolve(keywords, self.product_capacity, niche)
        else:
            resolved = ResolveOutcome()
        if resolved.attempted and not resolved.succeeded:
            coverage[SourceName.CATALOG] = False

        result = HybridTrendsResult(
            keywords=keywords,
            products=resolved.products[: self.product_capacity],
            source_coverage=coverage,
            generated_at=now_utc(),
        )

        state = self._advance(state, DiscoveryState.CACHING, cache_key)
        if any(coverage.values()):
            self.cache.set(cache_key, result, self.cache_ttl)
        else:
            logger.warning("Every source failed for %s; result not cached", cache_key)

        self._advance(state, DiscoveryState.DONE, cache_key)
        logger.info(
            "Discovered %d keywords and %d products for %s (coverage: %s)",
            len(result.keywords),
            len(result.products),
            cache_key,
            ", ".join(f"{name.value}={ok}" for name, ok in coverage.items()),
        )
        return within_budget(result, max_keywords, max_products)

    @staticmethod
    def _advance(current: DiscoveryState, target: DiscoveryState, cache_key: str) -> DiscoveryState:
        logger.debug("%s: %s -> %s", cache_key, current.value, target.value)
        return target


def build_sources(settings: Settings) -> List[Source]:
    return [
        Source(SourceName.PERPLEXITY, SOURCE_PRIORITIES["perplexity"], enabled=True),
        Source(SourceName.REDDIT, SOURCE_PRIORITIES["reddit"], enabled=True),
        Source(SourceName.CATALOG, SOURCE_PRIORITIES["catalog"], enabled=settings.amazon_configured),
    ]


def build_engine(settings: Settings, cache: Optional[TTLCache] = None) -> HybridTrendsEngine:
    """
    Wire adapters, resolver and cache from configuration.
    """
    timeout = settings.ADAPTER_TIMEOUT_S
    adapters: Dict[SourceName, KeywordSource] = {
        SourceName.PERPLEXITY: PerplexityKeywordSource(
            api_key=settings.PERPLEXITY_API_KEY,
            model=settings.PERPLEXITY_MODEL,
            base_url=settings.PERPLEXITY_BASE_URL,
            timeout=timeout,
            max_retries=settings.HTTP_RETRIES,
        ),
        SourceName.REDDIT: RedditKeywordSource(
            base_url=settings.REDDIT_BASE_URL,
            user_agent=settings.REDDIT_USER_AGENT,
            timeout=timeout,
            retries=settings.HTTP_RETRIES,
        ),
    }

    catalog: Optional[CatalogSource] = None
    if settings.amazon_configured:
        catalog = CatalogSource(
            CatalogClient(
                access_key=settings.AMAZON_ACCESS_KEY,
                secret_key=settings.AMAZON_SECRET_KEY,
                partner_tag=settings.AMAZON_PARTNER_TAG,
                region=settings.AMAZON_REGION,
                host=settings.AMAZON_API_HOST,
                timeout=timeout,
                retries=settings.HTTP_RETRIES,
            )
        )
        adapters[SourceName.CATALOG] = catalog
    else:
        logger.warning("Amazon PA-API not configured; catalog source disabled")

    resolver = ProductResolver(
        catalog,
        top_k=settings.RESOLVER_TOP_K,
        page_size=settings.RESOLVER_PAGE_SIZE,
        concurrency=settings.RESOLVER_CONCURRENCY,
        min_rating=settings.RESOLVER_MIN_RATING,
        timeout=timeout,
    )

    return HybridTrendsEngine(
        sources=build_sources(settings),
        adapters=adapters,
        resolver=resolver,
        cache=cache if cache is not None else TTLCache(default_ttl=settings.TRENDS_CACHE_TTL_S),
        cache_ttl=settings.TRENDS_CACHE_TTL_S,
        adapter_timeout=timeout,
        keyword_capacity=settings.RESULT_MAX_KEYWORDS,
        product_capacity=settings.RESULT_MAX_PRODUCTS,
    )
