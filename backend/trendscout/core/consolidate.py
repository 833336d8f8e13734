"""
Keyword consolidation across sources.

Raw keyword signals from every adapter are grouped by their normalized
identity (trimmed, lower-cased text) and merged into one scored record per
identity. The function is pure: the same multiset of input keywords always
yields the same output sequence, whatever order the adapters answered in.
"""
from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List, Mapping, Optional

from trendscout.config import SOURCE_PRIORITIES
from trendscout.models import InvariantViolation, Keyword


def _member_order(priorities: Mapping[str, int]):
    """Order group members: highest score, then source priority, then text."""
    def key(keyword: Keyword):
        return (-keyword.score, priorities.get(keyword.source_name.value, len(priorities)), keyword.text)
    return key


def merge_keyword_group(group: List[Keyword], priorities: Optional[Mapping[str, int]] = None) -> Keyword:
    """
    Merge keywords that share one identity.

    Args:
        group: Keywords with identical identity (at least one)
        priorities: Source priority per source name (lower wins ties)

    Returns:
        Consolidated keyword: max score, summed mentions, unioned related
        terms, first non-null category in source-priority order. Text and
        source come from the strongest member.
    """
    if not group:
        raise InvariantViolation("cannot merge an empty keyword group")
    identity = group[0].identity
    if any(k.identity != identity for k in group):
        raise InvariantViolation(f"keyword group mixes identities around {identity!r}")

    priorities = priorities or SOURCE_PRIORITIES
    ordered = sorted(group, key=_member_order(priorities))
    by_priority = sorted(
        group,
        key=lambda k: (priorities.get(k.source_name.value, len(priorities)), -k.score, k.text, k.category or ""),
    )
    lead = ordered[0]

    related: set[str] = set()
    for keyword in group:
        related.update(keyword.related_terms)

    return Keyword(
        text=lead.text.strip(),
        score=lead.score,
        source_name=lead.source_name,
        mention_count=sum(k.mention_count for k in group),
        category=next((k.category for k in by_priority if k.category), None),
        related_terms=frozenset(related),
    )


def consolidate_keywords(
    keywords: Iterable[Keyword],
    priorities: Optional[Mapping[str, int]] = None,
) -> List[Keyword]:
    """
    Deduplicate and score keywords from all sources.

    Args:
        keywords: Concatenated keyword signals from every adapter
        priorities: Source priority per source name (defaults to config)

    Returns:
        Consolidated keywords sorted by score desc, mention count desc,
        identity asc
    """
    groups: Dict[str, List[Keyword]] = defaultdict(list)
    for keyword in keywords:
        identity = keyword.identity
        if not identity:
            continue
        groups[identity].append(keyword)

    merged = [merge_keyword_group(group, priorities) for group in groups.values()]
    merged.sort(key=lambda k: (-k.score, -k.mention_count, k.identity))
    return merged
