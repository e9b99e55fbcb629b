"""
Referrer attribution - per-source visitors, clicks and CTR.

Key behaviors:
- Each pool row's referrer is classified into a source
- Reverse index identity -> source (latest row wins)
- CLICKs are attributed through the reverse index
- Clicks from identities outside the pool are left unattributed
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

from src.core.services.analytics_attrib import classify_referrer

from ._common import ctr
from .models import MasterVisitorPool, ReferrerStat

_EPOCH = datetime.min.replace(tzinfo=UTC)


@dataclass
class _SourceBucket:
    domain: str | None
    visitors: set[str] = field(default_factory=set)
    clicks: int = 0


@dataclass(frozen=True)
class Attribution:
    """Intermediate attribution state, exposed for tests and geo top-source."""

    sources: dict[str, _SourceBucket]
    identity_source: dict[str, str]
    unattributed_clicks: int


def attribute_sources(pool: MasterVisitorPool) -> Attribution:
    """Build source buckets and the identity -> source reverse index."""
    sources: dict[str, _SourceBucket] = {}
    identity_source: dict[str, str] = {}

    ordered = sorted(pool.rows, key=lambda r: r.timestamp or _EPOCH)
    for row in ordered:
        ref = classify_referrer(row.event.referrer)
        bucket = sources.get(ref.name)
        if bucket is None:
            bucket = _SourceBucket(domain=ref.domain)
            sources[ref.name] = bucket
        bucket.visitors.add(row.identity)
        identity_source[row.identity] = ref.name

    unattributed = 0
    for click in pool.clicks:
        name = identity_source.get(click.visitor_id)
        if name is None:
            unattributed += 1
            continue
        sources[name].clicks += 1

    return Attribution(
        sources=sources,
        identity_source=identity_source,
        unattributed_clicks=unattributed,
    )


def build_referrer_ctr(pool: MasterVisitorPool, limit: int = 10) -> tuple[ReferrerStat, ...]:
    """Referrer table sorted by CTR desc, then visitors desc."""
    attribution = attribute_sources(pool)

    stats = [
        ReferrerStat(
            source=name,
            domain=bucket.domain,
            visitors=len(bucket.visitors),
            clicks=bucket.clicks,
            ctr=ctr(bucket.clicks, len(bucket.visitors)),
        )
        for name, bucket in attribution.sources.items()
    ]
    stats.sort(key=lambda s: (-s.ctr, -s.visitors, s.source))
    return tuple(stats[:limit])
