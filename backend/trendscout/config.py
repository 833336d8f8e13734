"""
Application configuration with environment variable support.
"""
from __future__ import annotations

from typing import Dict, Tuple

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Provider A: Perplexity (OpenAI-compatible chat completions)
    PERPLEXITY_API_KEY: str = ""
    PERPLEXITY_BASE_URL: str = "https://api.perplexity.ai"
    PERPLEXITY_MODEL: str = "sonar-pro"

    # Provider B: Reddit public JSON
    REDDIT_BASE_URL: str = "https://www.reddit.com"
    REDDIT_USER_AGENT: str = "trendscout/0.1"

    # Catalog: Amazon Product Advertising API 5.0
    AMAZON_ACCESS_KEY: str = ""
    AMAZON_SECRET_KEY: str = ""
    AMAZON_PARTNER_TAG: str = ""
    AMAZON_REGION: str = "us-east-1"
    AMAZON_API_HOST: str = "webservices.amazon.com"

    # Transport
    ADAPTER_TIMEOUT_S: float = 5.0
    HTTP_RETRIES: int = 2

    # Product resolution
    RESOLVER_TOP_K: int = 10
    RESOLVER_PAGE_SIZE: int = 5
    RESOLVER_CONCURRENCY: int = 3
    RESOLVER_MIN_RATING: int = 4

    # Discovery defaults and caching
    TRENDS_CACHE_TTL_S: int = 14400
    DEFAULT_MAX_KEYWORDS: int = 50
    DEFAULT_MAX_PRODUCTS: int = 30
    # Size of the cached per-niche result; requests are trimmed from it
    RESULT_MAX_KEYWORDS: int = 100
    RESULT_MAX_PRODUCTS: int = 100

    # HTTP surface
    CORS_ALLOW_ORIGINS: str = "*"
    PORT: int = 8000

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @property
    def amazon_configured(self) -> bool:
        return bool(self.AMAZON_ACCESS_KEY and self.AMAZON_SECRET_KEY and self.AMAZON_PARTNER_TAG)

    @property
    def cors_origins(self) -> list[str]:
        return [item.strip() for item in self.CORS_ALLOW_ORIGINS.split(",") if item.strip()]


settings = Settings(_env_file=".env", _env_file_encoding="utf-8")


# Source priorities (lower wins ties; never used as a filter)
SOURCE_PRIORITIES: Dict[str, int] = {
    "perplexity": 1,
    "reddit": 2,
    "catalog": 3,
}

# Declining keyword scales per source:
# (score_base, score_step, mentions_base, mentions_step)
KEYWORD_SCALES: Dict[str, Tuple[float, float, int, int]] = {
    "perplexity": (90.0, 2.0, 50000, 2000),
    "reddit": (75.0, 3.0, 25000, 1500),
    "catalog": (60.0, 2.0, 15000, 1000),
}

# Cache key layout: "trends:hybrid:<niche>"
CACHE_KEY_PREFIX = "trends:hybrid"
ALL_NICHES_SENTINEL = "all"

# HTTP Client Configuration
USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
)
HTTP_HEADERS = {"User-Agent": USER_AGENT}
