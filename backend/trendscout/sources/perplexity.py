"""
Perplexity keyword adapter (AI-researched trending shopping keywords).
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from trendscout.models import Keyword, SourceName
from trendscout.sources.common import clean_text, lookup_niche, scaled_keywords
from trendscout.utils import clamp

logger = logging.getLogger(__name__)


NICHE_KEYWORDS: Dict[str, List[str]] = {
    "tech": ["AI gadgets", "smart home", "wireless charging", "productivity tools", "gaming setup"],
    "fitness": ["home gym", "workout gear", "protein powder", "fitness tracker", "yoga essentials"],
    "beauty": ["skincare routine", "makeup trends", "anti-aging", "natural beauty", "K-beauty"],
    "fashion": ["sustainable fashion", "streetwear", "vintage style", "minimalist wardrobe", "accessories"],
    "food": ["healthy snacks", "meal prep", "superfoods", "plant-based", "artisan coffee"],
    "travel": ["travel essentials", "packing hacks", "digital nomad", "adventure gear", "luggage"],
    "pets": ["pet toys", "pet health", "training tools", "pet grooming", "smart pet devices"],
}

GENERAL_KEYWORDS = [
    "trending now", "viral products", "bestsellers", "must have items", "game changing",
    "life hacks", "productivity boost", "self care", "sustainable living", "tech innovation",
]

RELATED_TERMS: Dict[str, List[str]] = {
    "AI gadgets": ["smart home", "automation", "tech innovation"],
    "skincare routine": ["anti-aging", "natural beauty", "glowing skin"],
    "home gym": ["fitness equipment", "workout gear", "exercise"],
    "sustainable fashion": ["eco-friendly", "ethical fashion", "slow fashion"],
}

SYSTEM_PROMPT = (
    "You are an e-commerce trend research analyst. Identify shopping keywords that are "
    "trending right now across web and social content. Return ONLY valid JSON, no markdown."
)


def seed_keywords(niche: Optional[str]) -> List[str]:
    """Static seed list for a niche; unknown niches get the general list."""
    return lookup_niche(NICHE_KEYWORDS, niche, GENERAL_KEYWORDS)


def strip_code_fences(content: str) -> str:
    content = content.strip()
    if content.startswith("```"):
        content = content.split("\n", 1)[1] if "\n" in content else ""
        if content.rstrip().endswith("```"):
            content = content.rstrip()[:-3]
    return content.strip()


def parse_keyword_payload(
    content: str,
    niche: Optional[str],
) -> List[Keyword]:
    """
    Parse the model's JSON answer into keywords.

    Entries without a keyword are dropped. Entries without a usable score fall
    back to the source's declining scale at their position.
    """
    data = json.loads(strip_code_fences(content))
    if isinstance(data, dict):
        data = data.get("keywords", [])
    if not isinstance(data, list):
        raise ValueError("Perplexity did not return a JSON array")

    entries: List[Dict[str, Any]] = []
    for entry in data:
        if isinstance(entry, str):
            entry = {"keyword": entry}
        if not isinstance(entry, dict):
            continue
        text = clean_text(entry.get("keyword"))
        if text:
            entries.append({**entry, "keyword": text})

    fallback = scaled_keywords([e["keyword"] for e in entries], SourceName.PERPLEXITY, category=niche)
    keywords: List[Keyword] = []
    for entry, default in zip(entries, fallback):
        try:
            score = clamp(float(entry["score"]), 0.0, 100.0)
        except (KeyError, TypeError, ValueError):
            score = default.score
        try:
            mentions = max(0, int(entry["mentions"]))
        except (KeyError, TypeError, ValueError):
            mentions = default.mention_count
        related = entry.get("relatedTerms")
        if not isinstance(related, list) or not related:
            related = RELATED_TERMS.get(entry["keyword"], [])
        keywords.append(
            Keyword(
                text=entry["keyword"],
                score=score,
                source_name=SourceName.PERPLEXITY,
                mention_count=mentions,
                category=niche,
                related_terms=frozenset(clean_text(str(t)) for t in related if clean_text(str(t))),
            )
        )
    return keywords


class PerplexityKeywordSource:
    """Keyword-trend provider A."""

    name = SourceName.PERPLEXITY

    def __init__(
        self,
        api_key: str = "",
        model: str = "sonar-pro",
        base_url: str = "https://api.perplexity.ai",
        timeout: float = 5.0,
        max_retries: int = 2,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.model = model
        self._client = client
        if self._client is None and api_key:
            self._client = AsyncOpenAI(
                api_key=api_key,
                base_url=base_url,
                timeout=timeout,
                max_retries=max_retries,
            )

    @property
    def is_live(self) -> bool:
        return self._client is not None

    async def fetch_keywords(self, niche: Optional[str] = None) -> List[Keyword]:
        """
        Fetch trending keywords for a niche.

        Without an API client this emits the static niche seed list on the
        declining scale, so the source always contributes something.
        """
        seeds = seed_keywords(niche)
        if self._client is None:
            return scaled_keywords(seeds, SourceName.PERPLEXITY, category=niche, related=RELATED_TERMS)

        niche_context = f" in the {niche} niche" if niche else ""
        user_prompt = (
            f"List the 10 most trending shopping keywords{niche_context} this week. "
            f"Useful starting points: {', '.join(seeds)}.\n\n"
            'Return a JSON array of objects: [{"keyword": str, "score": 0-100, '
            '"mentions": int, "relatedTerms": [str]}], strongest trend first.'
        )

        response = await self._client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": user_prompt},
            ],
            temperature=0.2,
            max_tokens=800,
        )
        content = (response.choices[0].message.content or "").strip()
        keywords = parse_keyword_payload(content, niche)
        logger.debug("Perplexity returned %d keywords for niche=%s", len(keywords), niche)
        return keywords
