"""
Rescoring batch pass.

Engagement is counted as distinct (visitor, day) pairs per listing over the
configured window, so a single visitor reloading a page does not inflate it.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from datetime import datetime, timedelta

from src.core.entities import ConversionEvent, ConversionKind, parse_timestamp

from .component import calculate_trending_score
from .models import EngagementCounts, RescoreFailure, RescoreResult, ScoringConfig
from .ports import EventSourcePort, ListingRepoPort

logger = logging.getLogger(__name__)


def collect_engagement(events: Iterable[ConversionEvent]) -> dict[str, EngagementCounts]:
    """listing_id -> EngagementCounts from distinct (visitor, day) pairs."""
    views: dict[str, set[tuple[str, str]]] = defaultdict(set)
    clicks: dict[str, set[tuple[str, str]]] = defaultdict(set)

    for event in events:
        ts = parse_timestamp(event.timestamp)
        if ts is None or not event.listing_id:
            continue
        pair = (event.visitor_id, ts.date().isoformat())
        if event.kind == ConversionKind.VIEW:
            views[event.listing_id].add(pair)
        elif event.kind == ConversionKind.CLICK:
            clicks[event.listing_id].add(pair)

    return {
        listing_id: EngagementCounts(
            unique_views=len(views.get(listing_id, ())),
            outbound_clicks=len(clicks.get(listing_id, ())),
        )
        for listing_id in set(views) | set(clicks)
    }


def rescore_listings(
    *,
    source: EventSourcePort,
    listings: ListingRepoPort,
    now: datetime,
    config: ScoringConfig,
    listing_ids: tuple[str, ...] | None = None,
) -> RescoreResult:
    start = now - timedelta(days=config.window_days)
    engagement = collect_engagement(source.list_conversions(start, now))

    targets = listings.list_all()
    if listing_ids is not None:
        wanted = set(listing_ids)
        targets = [listing for listing in targets if listing.id in wanted]

    updated = 0
    failures: list[RescoreFailure] = []
    for listing in targets:
        counts = engagement.get(listing.id, EngagementCounts())
        breakdown = calculate_trending_score(listing, counts, now, config)
        try:
            listings.update_scores(
                listing.id,
                trending_score=breakdown.total,
                quality_score=breakdown.quality,
            )
        except Exception as e:
            logger.exception("Failed to store score for listing %s", listing.id)
            failures.append(RescoreFailure(listing_id=listing.id, message=str(e)))
            continue

        updated += 1
        logger.debug(
            "Rescored %s: engagement=%d quality=%d trust=%d recency=%d total=%d",
            listing.id,
            breakdown.engagement,
            breakdown.quality,
            breakdown.trust,
            breakdown.recency,
            breakdown.total,
        )

    logger.info("Rescored %d listings (%d failed)", updated, len(failures))
    return RescoreResult(updated_count=updated, failed=tuple(failures))
