import asyncio

import pytest

from factories import FakeCatalog, FakeKeywordSource, make_engine, make_keyword, make_product
from trendscout.config import Settings
from trendscout.models import InvariantViolation, SourceName
from trendscout.services.cache import TTLCache, get_cache_key
from trendscout.services.trends import build_engine


def test_end_to_end_air_fryer():
    perplexity = FakeKeywordSource(SourceName.PERPLEXITY, [make_keyword("air fryer", 90, mentions=300)])
    reddit = FakeKeywordSource(SourceName.REDDIT, [make_keyword("Air Fryer", 40, SourceName.REDDIT, mentions=20)])
    catalog = FakeCatalog({"air fryer": [make_product("X1")]})
    engine = make_engine(perplexity, reddit, catalog)

    result = asyncio.run(engine.discover_trends())

    assert len(result.keywords) == 1
    keyword = result.keywords[0]
    assert (keyword.text, keyword.score, keyword.mention_count) == ("air fryer", 90, 320)
    assert len(result.products) == 1
    product = result.products[0]
    assert product.catalog_id == "X1"
    assert product.trend_score == 90
    assert dict(result.source_coverage) == {
        SourceName.PERPLEXITY: True,
        SourceName.REDDIT: True,
        SourceName.CATALOG: True,
    }


def test_catalog_failing_everywhere_keeps_keywords():
    perplexity = FakeKeywordSource(SourceName.PERPLEXITY, [make_keyword("air fryer", 90)])
    catalog = FakeCatalog(error=RuntimeError("keyword fetch down"), search_error=RuntimeError("search down"))
    engine = make_engine(perplexity=perplexity, catalog=catalog)

    result = asyncio.run(engine.discover_trends("kitchen"))

    assert [k.text for k in result.keywords] == ["air fryer"]
    assert result.products == ()
    assert result.source_coverage[SourceName.CATALOG] is False
    assert result.source_coverage[SourceName.PERPLEXITY] is True


def test_catalog_searches_failing_marks_catalog_uncovered():
    catalog = FakeCatalog(keywords=[make_keyword("lamp", 60, SourceName.CATALOG)], search_error=RuntimeError("throttled"))
    engine = make_engine(catalog=catalog)

    result = asyncio.run(engine.discover_trends())

    assert [k.text for k in result.keywords] == ["lamp"]
    assert result.source_coverage[SourceName.CATALOG] is False


def test_cache_hit_skips_adapters():
    perplexity = FakeKeywordSource(SourceName.PERPLEXITY, [make_keyword("lamp", 50)])
    engine = make_engine(perplexity=perplexity)

    first = asyncio.run(engine.discover_trends("Home"))
    second = asyncio.run(engine.discover_trends("home"))

    assert perplexity.calls == 1
    assert second is first


def test_cache_hit_is_trimmed_to_budget():
    perplexity = FakeKeywordSource(SourceName.PERPLEXITY, [make_keyword(f"kw{i}", 90 - i) for i in range(5)])
    engine = make_engine(perplexity=perplexity)
    asyncio.run(engine.discover_trends(max_keywords=5))

    trimmed = asyncio.run(engine.discover_trends(max_keywords=2))

    assert [k.text for k in trimmed.keywords] == ["kw0", "kw1"]
    assert len(engine.cache.get(get_cache_key(None)).keywords) == 5


def test_force_refresh_bypasses_lookup_but_stores(clock):
    perplexity = FakeKeywordSource(SourceName.PERPLEXITY, [make_keyword("lamp", 50)])
    cache = TTLCache(clock=clock)
    engine = make_engine(perplexity=perplexity, cache=cache)

    first = asyncio.run(engine.discover_trends())
    refreshed = asyncio.run(engine.discover_trends(force_refresh=True))

    assert perplexity.calls == 2
    assert refreshed is not first
    assert cache.get(get_cache_key(None)) is refreshed

    clock.advance(14399)
    assert cache.get(get_cache_key(None)) is refreshed


def test_every_source_failing_returns_empty_uncached_result():
    perplexity = FakeKeywordSource(SourceName.PERPLEXITY, error=RuntimeError("down"))
    reddit = FakeKeywordSource(SourceName.REDDIT, error=TimeoutError())
    engine = make_engine(perplexity, reddit, FakeCatalog(error=RuntimeError("down")))

    result = asyncio.run(engine.discover_trends("fitness"))

    assert result.keywords == ()
    assert result.products == ()
    assert not any(result.source_coverage.values())
    assert engine.cache.get(get_cache_key("fitness")) is None


def test_disabled_catalog_skips_resolution():
    perplexity = FakeKeywordSource(SourceName.PERPLEXITY, [make_keyword("air fryer", 90)])
    catalog = FakeCatalog({"air fryer": [make_product("X1")]})
    engine = make_engine(perplexity=perplexity, catalog=catalog, catalog_enabled=False)

    result = asyncio.run(engine.discover_trends())

    assert not engine.catalog_enabled
    assert result.products == ()
    assert catalog.queries == []
    assert catalog.calls == 0
    assert result.source_coverage[SourceName.CATALOG] is False


def test_small_request_does_not_shrink_later_large_request():
    perplexity = FakeKeywordSource(SourceName.PERPLEXITY, [make_keyword(f"kw{i}", 90 - i) for i in range(5)])
    catalog = FakeCatalog({f"kw{i}": [make_product(f"P{i}")] for i in range(5)})
    engine = make_engine(perplexity=perplexity, catalog=catalog)

    small = asyncio.run(engine.discover_trends("fitness", max_keywords=1, max_products=1))
    large = asyncio.run(engine.discover_trends("fitness", max_keywords=50, max_products=30))

    assert (len(small.keywords), len(small.products)) == (1, 1)
    assert (len(large.keywords), len(large.products)) == (5, 5)
    assert perplexity.calls == 1
    assert sorted(catalog.queries) == [f"kw{i}" for i in range(5)]


def test_budgets_above_capacity_are_capped():
    perplexity = FakeKeywordSource(SourceName.PERPLEXITY, [make_keyword(f"kw{i}", 90 - i) for i in range(5)])
    engine = make_engine(perplexity=perplexity)
    engine.keyword_capacity = 3

    result = asyncio.run(engine.discover_trends(max_keywords=50))

    assert [k.text for k in result.keywords] == ["kw0", "kw1", "kw2"]


def test_niche_is_normalized_before_fetching():
    perplexity = FakeKeywordSource(SourceName.PERPLEXITY, [make_keyword("kettlebell", 80)])
    catalog = FakeCatalog({"kettlebell": [make_product("K1")]})
    engine = make_engine(perplexity=perplexity, catalog=catalog)

    asyncio.run(engine.discover_trends("  Fitness "))
    asyncio.run(engine.discover_trends("fitness"))

    assert perplexity.niches == ["fitness"]
    assert catalog.niches == ["fitness"]
    assert catalog.search_niches == ["fitness"]


def test_blank_niche_means_all_niches():
    perplexity = FakeKeywordSource(SourceName.PERPLEXITY, [make_keyword("lamp", 50)])
    engine = make_engine(perplexity=perplexity)

    asyncio.run(engine.discover_trends("   "))

    assert perplexity.niches == [None]
    assert engine.cache.get(get_cache_key(None)) is not None


def test_build_engine_without_amazon_disables_catalog():
    settings = Settings(_env_file=None, AMAZON_ACCESS_KEY="", AMAZON_SECRET_KEY="", AMAZON_PARTNER_TAG="")

    engine = build_engine(settings)

    assert not engine.catalog_enabled
    assert SourceName.CATALOG not in engine.adapters
    assert [s.name for s in engine.sources] == [SourceName.PERPLEXITY, SourceName.REDDIT, SourceName.CATALOG]


def test_build_engine_with_amazon_enables_catalog():
    settings = Settings(
        _env_file=None,
        AMAZON_ACCESS_KEY="AKIDEXAMPLE",
        AMAZON_SECRET_KEY="secret",
        AMAZON_PARTNER_TAG="trendscout-20",
        TRENDS_CACHE_TTL_S=60,
    )

    engine = build_engine(settings)

    assert engine.catalog_enabled
    assert engine.resolver.catalog is engine.adapters[SourceName.CATALOG]
    assert engine.cache.default_ttl == 60


def test_invariant_violation_escapes():
    perplexity = FakeKeywordSource(SourceName.PERPLEXITY, error=InvariantViolation("bad merge"))
    engine = make_engine(perplexity=perplexity)

    with pytest.raises(InvariantViolation):
        asyncio.run(engine.discover_trends())
