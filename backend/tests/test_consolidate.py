import itertools

import pytest

from factories import make_keyword
from trendscout.core.consolidate import consolidate_keywords, merge_keyword_group
from trendscout.models import InvariantViolation, SourceName


def test_same_identity_merges_to_max_score_and_summed_mentions():
    keywords = [
        make_keyword("air fryer", 90, SourceName.PERPLEXITY, mentions=100),
        make_keyword("Air Fryer", 40, SourceName.REDDIT, mentions=25),
    ]

    result = consolidate_keywords(keywords)

    assert len(result) == 1
    assert result[0].text == "air fryer"
    assert result[0].score == 90
    assert result[0].mention_count == 125
    assert result[0].source_name == SourceName.PERPLEXITY


def test_output_is_identical_for_every_input_order():
    keywords = [
        make_keyword("home gym", 70, SourceName.PERPLEXITY, mentions=10, related=["weights"]),
        make_keyword("Home Gym", 70, SourceName.REDDIT, mentions=5, category="fitness"),
        make_keyword("yoga mat", 70, SourceName.CATALOG, mentions=15),
        make_keyword("kettlebell", 55, SourceName.REDDIT, mentions=3),
        make_keyword(" kettlebell ", 55, SourceName.CATALOG, mentions=2, related=["swing"]),
    ]

    expected = consolidate_keywords(keywords)
    for permutation in itertools.permutations(keywords):
        assert consolidate_keywords(list(permutation)) == expected


def test_ties_break_on_mentions_then_identity():
    keywords = [
        make_keyword("zebra", 50, mentions=1),
        make_keyword("apple", 50, mentions=1),
        make_keyword("mango", 50, mentions=9),
    ]

    result = consolidate_keywords(keywords)

    assert [k.text for k in result] == ["mango", "apple", "zebra"]


def test_category_comes_from_highest_priority_source():
    keywords = [
        make_keyword("protein powder", 80, SourceName.CATALOG, category="Sports"),
        make_keyword("protein powder", 60, SourceName.REDDIT, category="fitness"),
        make_keyword("protein powder", 50, SourceName.PERPLEXITY),
    ]

    result = consolidate_keywords(keywords)

    assert result[0].category == "fitness"
    assert result[0].source_name == SourceName.CATALOG


def test_equal_scores_prefer_higher_priority_source():
    keywords = [
        make_keyword("smart ring", 70, SourceName.REDDIT),
        make_keyword("Smart Ring", 70, SourceName.PERPLEXITY),
    ]

    merged = consolidate_keywords(keywords)[0]

    assert merged.source_name == SourceName.PERPLEXITY
    assert merged.text == "Smart Ring"


def test_custom_priorities_override_defaults():
    keywords = [
        make_keyword("smart ring", 70, SourceName.REDDIT),
        make_keyword("Smart Ring", 70, SourceName.PERPLEXITY),
    ]

    merged = consolidate_keywords(keywords, {"reddit": 1, "perplexity": 2})[0]

    assert merged.source_name == SourceName.REDDIT


def test_related_terms_are_unioned():
    keywords = [
        make_keyword("travel pillow", 60, related=["neck pillow"]),
        make_keyword("travel pillow", 30, SourceName.REDDIT, related=["memory foam", "neck pillow"]),
    ]

    merged = consolidate_keywords(keywords)[0]

    assert merged.related_terms == frozenset({"neck pillow", "memory foam"})


def test_blank_keywords_are_skipped():
    keywords = [make_keyword("   ", 99), make_keyword("", 80), make_keyword("lamp", 10)]

    assert [k.text for k in consolidate_keywords(keywords)] == ["lamp"]


def test_merge_rejects_mixed_identities():
    with pytest.raises(InvariantViolation):
        merge_keyword_group([make_keyword("lamp", 10), make_keyword("desk", 10)])


def test_merge_rejects_empty_group():
    with pytest.raises(InvariantViolation):
        merge_keyword_group([])
