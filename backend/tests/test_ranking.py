from datetime import timedelta

import pytest

from factories import FIXED_TIME, make_keyword, make_product
from trendscout.core.ranking import (
    FilterCriteria,
    SortKey,
    filter_products,
    parse_price_range,
    relevance_score,
    sort_products,
)
from trendscout.models import TrendingProduct


def test_min_rating_filter():
    low = make_product("A", price=1000, rating=3.5)
    high = make_product("B", price=2000, rating=4.8)

    assert filter_products([low, high], FilterCriteria(min_rating=4)) == [high]


def test_price_bounds_exclude_products_without_price():
    priced = make_product("A", price=1500)
    unpriced = make_product("B", price=None)

    assert filter_products([priced, unpriced], FilterCriteria(min_price_minor=1000)) == [priced]
    assert filter_products([priced, unpriced], FilterCriteria(max_price_minor=1000)) == []
    assert filter_products([priced, unpriced], FilterCriteria()) == [priced, unpriced]


def test_stock_prime_brand_and_category_filters():
    products = [
        make_product("A", in_stock=True, prime=True, brand="Acme", category="Kitchen"),
        make_product("B", in_stock=False, prime=True, brand="Acme", category="Kitchen"),
        make_product("C", in_stock=True, prime=False, brand="Zeta", category="Kitchen"),
        make_product("D", in_stock=True, prime=True, brand=None, category=None),
    ]

    assert [p.catalog_id for p in filter_products(products, FilterCriteria(in_stock_only=True))] == ["A", "C", "D"]
    assert [p.catalog_id for p in filter_products(products, FilterCriteria(prime_only=True))] == ["A", "B", "D"]
    assert [p.catalog_id for p in filter_products(products, FilterCriteria(brands=frozenset({"Acme"})))] == ["A", "B"]
    assert [p.catalog_id for p in filter_products(products, FilterCriteria(categories=frozenset({"Kitchen"})))] == [
        "A",
        "B",
        "C",
    ]


def test_trend_score_sort_is_stable():
    first = TrendingProduct.from_product(make_product("A"), make_keyword("lamp", 70))
    second = TrendingProduct.from_product(make_product("B"), make_keyword("desk", 70))
    top = TrendingProduct.from_product(make_product("C"), make_keyword("chair", 90))

    assert sort_products([first, second, top], SortKey.TREND_SCORE) == [top, first, second]
    assert sort_products([second, first, top], SortKey.TREND_SCORE) == [top, second, first]


@pytest.mark.parametrize("key", [SortKey.PRICE_ASC, SortKey.PRICE_DESC])
def test_products_without_price_sort_last(key):
    unpriced = make_product("A", price=None)
    cheap = make_product("B", price=500)
    dear = make_product("C", price=5000)

    result = sort_products([unpriced, cheap, dear], key)

    assert result[-1] is unpriced
    expected = [cheap, dear] if key == SortKey.PRICE_ASC else [dear, cheap]
    assert result[:2] == expected


def test_rating_review_count_and_newest():
    old = make_product("A", rating=4.9, count=5, last_updated=FIXED_TIME - timedelta(days=2))
    new = make_product("B", rating=4.1, count=900, last_updated=FIXED_TIME)

    assert sort_products([new, old], "rating") == [old, new]
    assert sort_products([old, new], SortKey.REVIEW_COUNT) == [new, old]
    assert sort_products([old, new], SortKey.NEWEST) == [new, old]


def test_relevance_weights_rating_prime_and_stock():
    product = make_product("A", rating=5.0, prime=True, in_stock=True)
    assert relevance_score(product) == pytest.approx(2.6)

    plain = make_product("B", rating=5.0, prime=False, in_stock=False)
    assert sort_products([plain, product], SortKey.RELEVANCE) == [product, plain]


def test_unknown_sort_key_raises():
    with pytest.raises(ValueError):
        sort_products([], "popularity")


@pytest.mark.parametrize(
    "value,expected",
    [
        (None, (None, None)),
        ("", (None, None)),
        ("10-50", (1000, 5000)),
        ("19.99-", (1999, None)),
        ("-25", (None, 2500)),
    ],
)
def test_parse_price_range(value, expected):
    assert parse_price_range(value) == expected


@pytest.mark.parametrize("value", ["cheap", "abc-10", "50-10", "10"])
def test_parse_price_range_rejects_garbage(value):
    with pytest.raises(ValueError):
        parse_price_range(value)
