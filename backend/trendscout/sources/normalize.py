"""
Catalog (PA-API) payload normalization into canonical product records.
"""
from __future__ import annotations

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from trendscout.models import (
    Availability,
    CanonicalProduct,
    Images,
    Price,
    Reviews,
    Shipping,
)
from trendscout.sources.common import clean_text
from trendscout.utils import clamp, now_utc, registered_domain

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 200
MAX_FEATURES = 10


def dig(data: Any, *path: Any) -> Any:
    """Walk nested dicts/lists, returning None on any missing step."""
    for step in path:
        if isinstance(step, int):
            if not isinstance(data, list) or len(data) <= step:
                return None
            data = data[step]
        else:
            if not isinstance(data, dict):
                return None
            data = data.get(step)
    return data


def to_minor_units(amount: Any) -> Optional[int]:
    """Convert a major-unit amount (e.g. 29.99) to integer minor units (2999)."""
    if amount is None or isinstance(amount, bool):
        return None
    try:
        value = Decimal(str(amount))
    except ArithmeticError:
        return None
    if not value.is_finite():
        return None
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def generate_affiliate_url(catalog_id: str, partner_tag: str, detail_url: Optional[str] = None) -> str:
    """
    Build the affiliate URL for a catalog item.

    The partner tag replaces any existing ``tag`` parameter on an Amazon
    detail-page URL; otherwise a canonical /dp/ URL is synthesized.
    """
    if detail_url and registered_domain(detail_url) == "amazon":
        parts = urlsplit(detail_url)
        query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != "tag"]
        query.append(("tag", partner_tag))
        return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))
    return f"https://www.amazon.com/dp/{catalog_id}?{urlencode({'tag': partner_tag})}"


def _normalize_price(listing: Any, summary: Any) -> Optional[Price]:
    current = dig(listing, "Price") or dig(summary, "LowestPrice")
    if not current:
        return None
    amount_minor = to_minor_units(current.get("Amount"))
    if amount_minor is None:
        return None

    original_minor = to_minor_units(dig(listing, "SavingBasis", "Amount"))
    discount_percent = None
    if original_minor and original_minor > 0:
        discount_percent = round((original_minor - amount_minor) * 100 / original_minor)

    return Price(
        amount_minor=amount_minor,
        currency=current.get("Currency") or "USD",
        display=current.get("DisplayAmount") or f"${amount_minor / 100:.2f}",
        original_amount_minor=original_minor,
        discount_percent=discount_percent,
    )


def normalize_catalog_item(item: Dict[str, Any], partner_tag: str) -> Optional[CanonicalProduct]:
    """
    Normalize a single PA-API item.

    Args:
        item: Raw item from SearchResult.Items
        partner_tag: Affiliate partner tag

    Returns:
        CanonicalProduct, or None when the item has no ASIN
    """
    catalog_id = clean_text(dig(item, "ASIN"))
    if not catalog_id:
        return None

    listing = dig(item, "Offers", "Listings", 0)
    summary = dig(item, "Offers", "Summaries", 0)
    browse_node = dig(item, "BrowseNodeInfo", "BrowseNodes", 0)
    features = [clean_text(f) for f in (dig(item, "ItemInfo", "Features", "DisplayValues") or []) if clean_text(f)]
    availability_type = dig(listing, "Availability", "Type") or "Unknown"

    rating = dig(item, "CustomerReviews", "StarRating", "Value") or 0
    count = dig(item, "CustomerReviews", "Count") or 0

    title = clean_text(dig(item, "ItemInfo", "Title", "DisplayValue")) or "Unknown Product"

    return CanonicalProduct(
        id=f"amazon_{catalog_id}",
        catalog_id=catalog_id,
        title=title[:MAX_TITLE_LENGTH],
        brand=clean_text(dig(item, "ItemInfo", "ByLineInfo", "Brand", "DisplayValue")) or None,
        features=tuple(features[:MAX_FEATURES]),
        category=dig(browse_node, "DisplayName"),
        subcategory=dig(browse_node, "ContextFreeName"),
        price=_normalize_price(listing, summary),
        images=Images(
            small=dig(item, "Images", "Primary", "Small", "URL"),
            medium=dig(item, "Images", "Primary", "Medium", "URL"),
            large=dig(item, "Images", "Primary", "Large", "URL"),
        ),
        availability=Availability(in_stock=availability_type == "Now", raw_type=availability_type),
        shipping=Shipping(
            is_prime=bool(dig(listing, "DeliveryInfo", "IsPrimeEligible")),
            is_free_shipping=bool(dig(listing, "DeliveryInfo", "IsFreeShippingEligible")),
            is_fulfilled_by_platform=bool(dig(listing, "DeliveryInfo", "IsAmazonFulfilled")),
        ),
        reviews=Reviews(count=max(0, int(count)), rating=clamp(float(rating), 0.0, 5.0)),
        affiliate_url=generate_affiliate_url(catalog_id, partner_tag, dig(item, "DetailPageURL")),
        last_updated=now_utc(),
        condition_label=dig(listing, "Condition", "Value") or "New",
    )


def normalize_search_response(response: Dict[str, Any], partner_tag: str) -> List[CanonicalProduct]:
    """Normalize every item of a SearchItems response, dropping unusable ones."""
    products: List[CanonicalProduct] = []
    for item in dig(response, "SearchResult", "Items") or []:
        try:
            product = normalize_catalog_item(item, partner_tag)
        except (TypeError, ValueError) as e:
            logger.warning("Skipping malformed catalog item %s: %s", dig(item, "ASIN"), e)
            continue
        if product is not None:
            products.append(product)
    return products
