"""
Keyword collection coordinator that fans out to every enabled source.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Sequence

from trendscout.models import InvariantViolation, Keyword, Source, SourceName

logger = logging.getLogger(__name__)


class KeywordSource(Protocol):
    name: SourceName

    async def fetch_keywords(self, niche: Optional[str] = None) -> List[Keyword]:
        ...


@dataclass
class SourceOutcome:
    source: SourceName
    keywords: List[Keyword] = field(default_factory=list)
    ok: bool = False


async def fetch_isolated(adapter: KeywordSource, niche: Optional[str], timeout: float) -> SourceOutcome:
    """
    Run one adapter call under a timeout.

    Any exception or timeout becomes an empty, not-ok outcome.
    """
    try:
        keywords = await asyncio.wait_for(adapter.fetch_keywords(niche), timeout)
    except asyncio.TimeoutError:
        logger.warning("%s keyword fetch timed out after %.1fs", adapter.name.value, timeout)
        return SourceOutcome(adapter.name)
    except InvariantViolation:
        raise
    except Exception as e:
        logger.warning("%s keyword fetch failed: %s", adapter.name.value, e)
        return SourceOutcome(adapter.name)
    return SourceOutcome(adapter.name, list(keywords), True)


async def collect_keywords(
    sources: Sequence[Source],
    adapters: Dict[SourceName, KeywordSource],
    niche: Optional[str],
    timeout: float,
) -> Dict[SourceName, SourceOutcome]:
    """
    Collect keywords from all enabled sources concurrently.

    Args:
        sources: Source descriptors; disabled ones are reported as not ok
        adapters: Adapter per source name
        niche: Niche identifier or None for all niches
        timeout: Per-adapter timeout in seconds

    Returns:
        Outcome per source, in the order of ``sources``
    """
    outcomes: Dict[SourceName, SourceOutcome] = {
        s.name: SourceOutcome(s.name) for s in sources
    }
    active = [s for s in sources if s.enabled and s.name in adapters]

    results = await asyncio.gather(
        *(fetch_isolated(adapters[s.name], niche, timeout) for s in active)
    )
    for outcome in results:
        outcomes[outcome.source] = outcome

    logger.info(
        "Collected keywords: %s",
        ", ".join(f"{o.source.value}={len(o.keywords) if o.ok else 'failed'}" for o in outcomes.values()),
    )
    return outcomes
