"""
Main FastAPI application and routing layer.
"""
from __future__ import annotations

import logging
from typing import List, Literal, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from trendscout.config import settings
from trendscout.core.ranking import FilterCriteria, SortKey, filter_products, parse_price_range, sort_products
from trendscout.models import HybridTrendsResult, SourceName
from trendscout.schemas import (
    DiscoverResponse,
    KeywordOut,
    KeywordsResponse,
    ProductOut,
    ProductsResponse,
    RefreshRequest,
    RefreshResponse,
    SourceOut,
    SourcesResponse,
)
from trendscout.services.trends import HybridTrendsEngine, build_engine
from trendscout.utils import now_utc

# Configure logging
logging.basicConfig(level=settings.LOG_LEVEL, format=settings.LOG_FORMAT)
logger = logging.getLogger("trendscout")

SourceFilter = Literal["all", "perplexity", "reddit", "catalog"]


def select_by_source(result: HybridTrendsResult, source: str):
    """
    Narrow a result's keywords and products to one source.

    Args:
        result: Discovery result
        source: Source name or "all"

    Returns:
        Tuple of (keywords, products)
    """
    if source == "all":
        return list(result.keywords), list(result.products)
    name = SourceName(source)
    keywords = [k for k in result.keywords if k.source_name == name]
    products = [p for p in result.products if name in p.sources]
    return keywords, products


def coverage_out(result: HybridTrendsResult) -> dict[str, bool]:
    return {name.value: ok for name, ok in result.source_coverage.items()}


# Initialize FastAPI app
app = FastAPI(
    title="Hybrid Trends API",
    version="0.1.0",
    description="Trending keyword discovery and catalog product ranking across sources",
)


@app.on_event("startup")
async def build_trends_engine():
    """Build the discovery engine and its cache once per process."""
    if getattr(app.state, "engine", None) is None:
        app.state.engine = build_engine(settings)
        enabled = [s.name.value for s in app.state.engine.sources if s.enabled]
        logger.info("Trends engine ready; enabled sources: %s", ", ".join(enabled))


def get_engine(request: Request) -> HybridTrendsEngine:
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        engine = request.app.state.engine = build_engine(settings)
    return engine


# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "ok",
        "as_of": now_utc().isoformat(),
        "service": "hybrid-trends-api",
    }


@app.get("/api/hybrid-trends/discover", response_model=DiscoverResponse)
async def discover(
    niche: Optional[str] = Query(None, max_length=50, description="Niche, e.g. fitness"),
    max_keywords: int = Query(30, ge=1, le=100, alias="maxKeywords", description="Maximum keywords returned"),
    max_products: int = Query(20, ge=0, le=100, alias="maxProducts", description="Maximum products returned"),
    force_refresh: bool = Query(False, alias="forceRefresh", description="Bypass the cache"),
    source: SourceFilter = Query("all", description="Restrict output to one source"),
    engine: HybridTrendsEngine = Depends(get_engine),
):
    """
    Discover trending keywords and products across all sources.
    """
    try:
        result = await engine.discover_trends(
            niche=niche,
            max_keywords=max_keywords,
            max_products=max_products,
            force_refresh=force_refresh,
        )
        keywords, products = select_by_source(result, source)

        return DiscoverResponse(
            niche=niche,
            source=source,
            keywords=[KeywordOut.from_record(k) for k in keywords],
            products=[ProductOut.from_record(p) for p in products],
            sources=[SourceOut.from_record(s) for s in engine.sources],
            source_coverage=coverage_out(result),
            total_sources=sum(1 for s in engine.sources if s.enabled),
            generated_at=result.generated_at,
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Hybrid trends discovery failed for niche={niche}: {e}")
        raise HTTPException(status_code=500, detail="Trends discovery failed")


@app.get("/api/hybrid-trends/keywords", response_model=KeywordsResponse)
async def trending_keywords(
    niche: Optional[str] = Query(None, max_length=50),
    limit: int = Query(20, ge=1, le=100),
    source: SourceFilter = Query("all"),
    engine: HybridTrendsEngine = Depends(get_engine),
):
    """
    Trending keywords only (lighter endpoint).
    """
    try:
        result = await engine.discover_trends(niche=niche, max_keywords=limit, max_products=5)
        keywords, _ = select_by_source(result, source)

        return KeywordsResponse(
            niche=niche,
            source=source,
            limit=limit,
            total=len(keywords),
            keywords=[KeywordOut.from_record(k) for k in keywords[:limit]],
            sources=[SourceOut.from_record(s) for s in engine.sources if s.enabled],
            generated_at=result.generated_at,
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Keyword discovery failed for niche={niche}: {e}")
        raise HTTPException(status_code=500, detail="Keywords discovery failed")


@app.get("/api/hybrid-trends/products", response_model=ProductsResponse)
async def trending_products(
    niche: Optional[str] = Query(None, max_length=50),
    limit: int = Query(15, ge=1, le=50),
    min_rating: Optional[float] = Query(None, ge=1, le=5, alias="minRating"),
    price_range: Optional[str] = Query(None, alias="priceRange", description='Major units, "min-max"'),
    in_stock_only: bool = Query(False, alias="inStockOnly"),
    prime_only: bool = Query(False, alias="primeOnly"),
    brands: List[str] = Query([]),
    categories: List[str] = Query([]),
    sort_by: SortKey = Query(SortKey.TREND_SCORE, alias="sortBy"),
    engine: HybridTrendsEngine = Depends(get_engine),
):
    """
    Trending products mapped from keywords, filtered and sorted.
    """
    if not engine.catalog_enabled:
        raise HTTPException(
            status_code=503,
            detail="Product discovery requires Amazon PA-API configuration",
        )

    try:
        min_price, max_price = parse_price_range(price_range)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    criteria = FilterCriteria(
        min_price_minor=min_price,
        max_price_minor=max_price,
        min_rating=min_rating,
        in_stock_only=in_stock_only,
        prime_only=prime_only,
        brands=frozenset(brands),
        categories=frozenset(categories),
    )

    try:
        # Fetch extra so filtering still leaves enough to fill the page
        result = await engine.discover_trends(niche=niche, max_keywords=15, max_products=limit * 2)
        products = sort_products(filter_products(result.products, criteria), sort_by)

        return ProductsResponse(
            niche=niche,
            limit=limit,
            sort_by=sort_by.value,
            total_found=len(products),
            products=[ProductOut.from_record(p) for p in products[:limit]],
            source_coverage=coverage_out(result),
            generated_at=result.generated_at,
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Product discovery failed for niche={niche}: {e}")
        raise HTTPException(status_code=500, detail="Products discovery failed")


@app.get("/api/hybrid-trends/sources", response_model=SourcesResponse)
async def trend_sources(engine: HybridTrendsEngine = Depends(get_engine)):
    """Available trend sources and what they enable."""
    sources = [SourceOut.from_record(s) for s in engine.sources]
    enabled = [s for s in sources if s.enabled]
    return SourcesResponse(
        sources=sources,
        enabled_sources=enabled,
        total_sources=len(sources),
        active_sources=len(enabled),
        capabilities={
            "keyword_discovery": bool(enabled),
            "product_mapping": engine.catalog_enabled,
            "multi_source_aggregation": len(enabled) > 1,
        },
    )


@app.post("/api/hybrid-trends/refresh", response_model=RefreshResponse)
async def refresh_trends(
    body: RefreshRequest,
    engine: HybridTrendsEngine = Depends(get_engine),
):
    """Force a refresh of the cached trends for a niche."""
    try:
        result = await engine.discover_trends(
            niche=body.niche,
            max_keywords=settings.DEFAULT_MAX_KEYWORDS,
            max_products=settings.DEFAULT_MAX_PRODUCTS,
            force_refresh=True,
        )
        return RefreshResponse(
            message="Trends cache refreshed successfully",
            niche=body.niche,
            keywords=len(result.keywords),
            products=len(result.products),
            sources=sum(1 for ok in result.source_coverage.values() if ok),
            generated_at=result.generated_at,
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Trends refresh failed for niche={body.niche}: {e}")
        raise HTTPException(status_code=500, detail="Trends refresh failed")


if __name__ == "__main__":
    # For development
    import uvicorn
    uvicorn.run("trendscout.main:app", host="0.0.0.0", port=settings.PORT, reload=True)
