import pytest

from trendscout.services.cache import TTLCache, get_cache_key


def test_round_trip_then_expiry(clock):
    cache = TTLCache(clock=clock)

    cache.set("k", "v", ttl=60)
    assert cache.get("k") == "v"

    clock.advance(59)
    assert cache.get("k") == "v"

    clock.advance(1)
    assert cache.get("k") is None


def test_default_ttl(clock):
    cache = TTLCache(default_ttl=10, clock=clock)
    cache.set("k", 1)

    clock.advance(10)

    assert cache.get("k") is None


def test_set_refreshes_window(clock):
    cache = TTLCache(clock=clock)
    cache.set("k", "old", ttl=10)
    clock.advance(8)

    cache.set("k", "new", ttl=10)
    clock.advance(8)

    assert cache.get("k") == "new"


def test_expired_entries_purged_on_write(clock):
    cache = TTLCache(clock=clock)
    cache.set("a", 1, ttl=5)
    clock.advance(6)
    assert cache.stats() == {"entries": 1, "live": 0}

    cache.set("b", 2, ttl=5)

    assert cache.stats() == {"entries": 1, "live": 1}


def test_invalidate_and_clear(clock):
    cache = TTLCache(clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)

    assert cache.invalidate("a") is True
    assert cache.invalidate("a") is False
    assert cache.get("a") is None

    cache.clear()
    assert cache.get("b") is None


def test_non_positive_ttl_rejected():
    with pytest.raises(ValueError):
        TTLCache().set("k", 1, ttl=0)


@pytest.mark.parametrize(
    "niche,key",
    [
        (None, "trends:hybrid:all"),
        ("", "trends:hybrid:all"),
        ("  ", "trends:hybrid:all"),
        ("Fitness", "trends:hybrid:fitness"),
    ],
)
def test_cache_keys(niche, key):
    assert get_cache_key(niche) == key
