"""
Common utilities for keyword and catalog source adapters.
"""
from __future__ import annotations

from typing import Iterable, List, Mapping, Optional, Sequence

import httpx

from trendscout.config import HTTP_HEADERS, KEYWORD_SCALES
from trendscout.models import Keyword, SourceName
from trendscout.utils import clamp, normalize_text


STOP_WORDS = frozenset(
    ["with", "and", "for", "the", "pack", "set", "new", "best", "top", "from"]
)


def clean_text(text: Optional[str]) -> str:
    """
    Clean and normalize text content.

    Args:
        text: Raw text string or None

    Returns:
        Cleaned text string, empty string if input is None
    """
    return normalize_text(text)


def lookup_niche(table: Mapping[str, Sequence[str]], niche: Optional[str], fallback: Sequence[str]) -> List[str]:
    """
    Resolve a niche against a static lookup table.

    Unknown, blank or missing niches resolve to the fallback list.
    """
    key = (niche or "").strip().lower()
    return list(table.get(key, fallback)) if key else list(fallback)


def extract_title_keywords(title: str, per_title: int = 3) -> List[str]:
    """
    Extract meaningful words from a product or post title.

    Args:
        title: Raw title string
        per_title: Maximum words taken from the title, in order of appearance

    Returns:
        Lower-cased words longer than three characters that are not stop words
    """
    words = []
    for raw in clean_text(title).lower().split():
        word = raw.strip(".,:;!?()[]{}\"'|/-")
        if len(word) > 3 and word not in STOP_WORDS and word.isalpha():
            words.append(word)
        if len(words) >= per_title:
            break
    return words


def unique_in_order(items: Iterable[str]) -> List[str]:
    seen: set[str] = set()
    result: List[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def scaled_keywords(
    terms: Sequence[str],
    source: SourceName,
    category: Optional[str] = None,
    related: Optional[Mapping[str, Sequence[str]]] = None,
) -> List[Keyword]:
    """
    Turn a ranked term list into keywords on the source's declining scale.

    Score and mention count decrease linearly with rank; both are clamped so
    that long lists never produce negative values.
    """
    score_base, score_step, mentions_base, mentions_step = KEYWORD_SCALES[source.value]
    related = related or {}
    return [
        Keyword(
            text=term,
            score=clamp(score_base - index * score_step, 0.0, 100.0),
            source_name=source,
            mention_count=max(0, mentions_base - index * mentions_step),
            category=category,
            related_terms=frozenset(related.get(term, ())),
        )
        for index, term in enumerate(terms)
    ]


def make_http_client(timeout: float, retries: int, headers: Optional[dict] = None, **kwargs) -> httpx.AsyncClient:
    """
    Build the shared async HTTP client.

    Connection retries live on the transport; adapters never loop themselves.
    """
    transport = kwargs.pop("transport", None) or httpx.AsyncHTTPTransport(retries=retries)
    return httpx.AsyncClient(
        headers={**HTTP_HEADERS, **(headers or {})},
        timeout=timeout,
        transport=transport,
        **kwargs,
    )
