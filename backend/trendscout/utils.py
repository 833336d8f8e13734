"""
Shared utility functions for the trend discovery engine.
"""
from __future__ import annotations

import re
from datetime import datetime, timezone

import tldextract

# Bundled public suffix snapshot only; no network fetch at runtime.
_extract = tldextract.TLDExtract(suffix_list_urls=())


def now_utc() -> datetime:
    """
    Get current UTC datetime with timezone information.

    Returns:
        Current UTC datetime
    """
    return datetime.now(timezone.utc)


def normalize_text(text: str | None) -> str:
    """
    Normalize whitespace in text content.

    Args:
        text: Input text string (can be None)

    Returns:
        Normalized text with single spaces and trimmed edges
    """
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip()


def registered_domain(url: str) -> str:
    """
    Extract the registrable domain name (without suffix) from a URL.

    Args:
        url: Full URL string

    Returns:
        Lower-cased domain label, e.g. "amazon" for https://www.amazon.co.uk/dp/X
    """
    if not url:
        return ""
    return _extract(url).domain.lower()


def clamp(value: float, low: float, high: float) -> float:
    """
    Clamp a float value to the range [low, high].
    """
    return max(low, min(high, value))
