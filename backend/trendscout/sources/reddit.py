"""
File: trendscout/sources/reddit.py
Reddit top-posts JSON keyword adapter (unauthenticated). For production, prefer OAuth API.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, List, Optional

import httpx

from trendscout.config import KEYWORD_SCALES
from trendscout.models import Keyword, SourceName
from trendscout.sources.common import extract_title_keywords, lookup_niche, make_http_client
from trendscout.utils import clamp

logger = logging.getLogger(__name__)


NICHE_SUBREDDITS: Dict[str, List[str]] = {
    "tech": ["gadgets", "technology", "homeautomation"],
    "fitness": ["homegym", "fitness", "bodyweightfitness"],
    "beauty": ["SkincareAddiction", "MakeupAddiction", "AsianBeauty"],
    "fashion": ["malefashionadvice", "femalefashionadvice", "streetwear"],
    "food": ["Cooking", "MealPrepSunday", "EatCheapAndHealthy"],
    "travel": ["onebag", "travel", "digitalnomad"],
    "pets": ["dogs", "cats", "Pets"],
}

GENERAL_SUBREDDITS = ["BuyItForLife", "shutupandtakemymoney", "gadgets"]


def subreddits_for(niche: Optional[str]) -> List[str]:
    return lookup_niche(NICHE_SUBREDDITS, niche, GENERAL_SUBREDDITS)


def rank_post_keywords(posts: List[dict], max_keywords: int = 10) -> List[tuple[str, int]]:
    """
    Rank title words by accumulated engagement.

    Returns (word, engagement) pairs, highest engagement first, ties broken
    alphabetically.
    """
    engagement: Dict[str, int] = defaultdict(int)
    for post in posts:
        weight = 1 + max(0, int(post.get("ups", 0) or 0)) + max(0, int(post.get("num_comments", 0) or 0))
        for word in set(extract_title_keywords(post.get("title", ""), per_title=5)):
            engagement[word] += weight
    ranked = sorted(engagement.items(), key=lambda kv: (-kv[1], kv[0]))
    return ranked[:max_keywords]


class RedditKeywordSource:
    """Keyword-trend provider B."""

    name = SourceName.REDDIT

    def __init__(
        self,
        base_url: str = "https://www.reddit.com",
        user_agent: str = "trendscout/0.1",
        timeout: float = 5.0,
        retries: int = 2,
        max_keywords: int = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent
        self.timeout = timeout
        self.retries = retries
        self.max_keywords = max_keywords
        self._transport = transport

    async def fetch_keywords(self, niche: Optional[str] = None) -> List[Keyword]:
        subs = "+".join(subreddits_for(niche))
        url = f"{self.base_url}/r/{subs}/top.json"

        async with make_http_client(
            self.timeout,
            self.retries,
            headers={"User-Agent": self.user_agent},
            transport=self._transport,
        ) as client:
            r = await client.get(url, params={"t": "week", "limit": 50})
            r.raise_for_status()
            data = r.json()

        posts = [child.get("data", {}) for child in data.get("data", {}).get("children", [])]
        posts = [p for p in posts if p.get("title") and not p.get("over_18")]

        score_base, score_step, _, _ = KEYWORD_SCALES[SourceName.REDDIT.value]
        keywords = [
            Keyword(
                text=word,
                score=clamp(score_base - index * score_step, 0.0, 100.0),
                source_name=SourceName.REDDIT,
                mention_count=engagement,
                category=niche,
            )
            for index, (word, engagement) in enumerate(rank_post_keywords(posts, self.max_keywords))
        ]
        logger.debug("Reddit r/%s yielded %d keywords", subs, len(keywords))
        return keywords
