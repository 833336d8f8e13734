"""
Amazon Product Advertising API 5.0 client and catalog adapter.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from trendscout.models import CanonicalProduct, Keyword, SourceError, SourceName
from trendscout.sources.common import (
    extract_title_keywords,
    lookup_niche,
    make_http_client,
    scaled_keywords,
    unique_in_order,
)
from trendscout.sources.normalize import dig, normalize_search_response
from trendscout.sources.signing import CatalogSigner

logger = logging.getLogger(__name__)


SEARCH_RESOURCES = [
    "BrowseNodeInfo.BrowseNodes",
    "CustomerReviews.Count",
    "CustomerReviews.StarRating",
    "Images.Primary.Small",
    "Images.Primary.Medium",
    "Images.Primary.Large",
    "ItemInfo.ByLineInfo",
    "ItemInfo.Features",
    "ItemInfo.ProductInfo",
    "ItemInfo.Title",
    "Offers.Listings.Availability.Type",
    "Offers.Listings.Condition",
    "Offers.Listings.DeliveryInfo.IsAmazonFulfilled",
    "Offers.Listings.DeliveryInfo.IsFreeShippingEligible",
    "Offers.Listings.DeliveryInfo.IsPrimeEligible",
    "Offers.Listings.Price",
    "Offers.Listings.SavingBasis",
    "Offers.Summaries.LowestPrice",
]

MARKETPLACES = {
    "us-east-1": "www.amazon.com",
    "us-west-2": "www.amazon.com",
    "eu-west-1": "www.amazon.co.uk",
    "eu-central-1": "www.amazon.de",
    "ap-northeast-1": "www.amazon.co.jp",
    "ap-southeast-1": "www.amazon.com.sg",
    "ap-southeast-2": "www.amazon.com.au",
}

NICHE_SEARCH_INDEX = {
    "tech": "Electronics",
    "fitness": "Sports",
    "beauty": "Beauty",
    "fashion": "Fashion",
    "food": "GroceryGourmetFood",
    "travel": "Luggage",
    "pets": "PetSupplies",
}

NICHE_SEARCH_TERMS = {
    "tech": ["electronics bestseller", "smart device", "wireless technology"],
    "fitness": ["fitness equipment", "workout gear", "sports nutrition"],
    "beauty": ["beauty bestseller", "skincare must have", "makeup trending"],
    "fashion": ["fashion trending", "style essentials", "wardrobe staples"],
    "food": ["gourmet food", "healthy snacks", "pantry essentials"],
    "travel": ["travel accessories", "luggage bestseller", "travel gear"],
    "pets": ["pet supplies", "dog toys", "cat essentials"],
}

GENERAL_SEARCH_TERMS = ["bestseller", "new arrivals", "trending now"]


def search_index_for(niche: Optional[str]) -> str:
    return NICHE_SEARCH_INDEX.get((niche or "").strip().lower(), "All")


class CatalogAPIError(SourceError):
    """Non-2xx response or transport failure from the catalog API."""

    def __init__(self, message: str, status_code: int, response_body: Optional[str] = None):
        super().__init__(SourceName.CATALOG.value, message)
        self.status_code = status_code
        self.response_body = response_body


class CatalogClient:
    """Signed PA-API client. One request per call; retries live on the transport."""

    def __init__(
        self,
        access_key: str,
        secret_key: str,
        partner_tag: str,
        region: str = "us-east-1",
        host: str = "webservices.amazon.com",
        timeout: float = 5.0,
        retries: int = 2,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.partner_tag = partner_tag
        self.host = host
        self.marketplace = MARKETPLACES.get(region, "www.amazon.com")
        self.timeout = timeout
        self.retries = retries
        self._signer = CatalogSigner(access_key, secret_key, region=region, host=host)
        self._transport = transport

    async def search_items(
        self,
        keywords: str,
        search_index: str = "All",
        item_count: int = 10,
        min_rating: Optional[int] = None,
        condition: Optional[str] = None,
        sort_by: str = "Relevance",
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "Keywords": keywords,
            "SearchIndex": search_index,
            "ItemCount": item_count,
            "SortBy": sort_by,
            "MinReviewsRating": min_rating,
            "Condition": condition,
            "PartnerTag": self.partner_tag,
            "PartnerType": "Associates",
            "Marketplace": self.marketplace,
            "Resources": SEARCH_RESOURCES,
        }
        payload = {k: v for k, v in payload.items() if v is not None}
        return await self._request("/paapi5/searchitems", payload)

    async def _request(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        body = json.dumps(payload)
        headers = self._signer.sign(path, body)

        try:
            async with make_http_client(self.timeout, self.retries, transport=self._transport) as client:
                r = await client.post(f"https://{self.host}{path}", content=body, headers=headers)
        except httpx.HTTPError as e:
            raise CatalogAPIError(f"Request failed: {e}", 500) from e

        if r.status_code >= 400:
            raise CatalogAPIError(
                f"Catalog API request failed: {r.status_code} {r.reason_phrase}",
                r.status_code,
                r.text[:500],
            )
        try:
            return r.json()
        except ValueError as e:
            raise CatalogAPIError("Catalog API returned invalid JSON", r.status_code, r.text[:500]) from e


class CatalogSource:
    """Catalog adapter: keyword signals from search results, plus product search."""

    name = SourceName.CATALOG

    def __init__(self, client: CatalogClient, max_terms: int = 3, term_page_size: int = 10):
        self.client = client
        self.max_terms = max_terms
        self.term_page_size = term_page_size

    async def fetch_keywords(self, niche: Optional[str] = None) -> List[Keyword]:
        """
        Derive keywords from titles of products returned for niche search terms.

        A failing term is skipped; if every term fails, the last error is raised.
        """
        terms = lookup_niche(NICHE_SEARCH_TERMS, niche, GENERAL_SEARCH_TERMS)[: self.max_terms]
        search_index = search_index_for(niche)
        words: List[str] = []
        last_error: Optional[Exception] = None
        succeeded = 0

        for term in terms:
            try:
                response = await self.client.search_items(
                    term, search_index=search_index, item_count=self.term_page_size
                )
            except SourceError as e:
                logger.warning("Catalog search failed for term %r: %s", term, e)
                last_error = e
                continue
            succeeded += 1
            for item in dig(response, "SearchResult", "Items") or []:
                words.extend(extract_title_keywords(dig(item, "ItemInfo", "Title", "DisplayValue") or ""))

        if not succeeded and last_error is not None:
            raise last_error

        return scaled_keywords(unique_in_order(words), SourceName.CATALOG, category=niche)

    async def search_products(
        self,
        query: str,
        niche: Optional[str] = None,
        limit: int = 5,
        min_rating: Optional[int] = 4,
        condition: Optional[str] = "New",
    ) -> List[CanonicalProduct]:
        response = await self.client.search_items(
            query,
            search_index=search_index_for(niche),
            item_count=limit,
            min_rating=min_rating,
            condition=condition,
        )
        return normalize_search_response(response, self.client.partner_tag)[:limit]
