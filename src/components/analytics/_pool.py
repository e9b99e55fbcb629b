"""
MasterVisitorPool builder.

Loads raw traffic and CLICK conversions for a range once, drops automated
traffic and resolves visitor identities. Every per-range visitor count in
the snapshot is derived from the pool built here.
"""

from __future__ import annotations

import logging
from datetime import datetime

from src.core.entities import ConversionKind, RawTrafficEvent, parse_timestamp
from src.core.services.analytics_dedupe import identity_of, is_bot

from .models import MasterVisitorPool, PoolRow, VisitorPoolError
from .ports import EventSourcePort

logger = logging.getLogger(__name__)


def filter_bots(events: list[RawTrafficEvent]) -> tuple[list[RawTrafficEvent], int]:
    """Split off bot rows. Returns (human rows, number of bot rows dropped)."""
    humans = [e for e in events if not is_bot(e.user_agent)]
    return humans, len(events) - len(humans)


def build_visitor_pool(
    source: EventSourcePort,
    start: datetime,
    now: datetime,
) -> MasterVisitorPool:
    """
    Build the bot-filtered visitor pool for [start, now].

    Raises:
        VisitorPoolError: if the underlying event reads fail.
    """
    try:
        traffic = source.list_traffic(start, now)
        clicks = source.list_conversions(start, now, kind=ConversionKind.CLICK)
    except Exception as e:
        logger.error("Visitor pool fetch failed: %s", e)
        raise VisitorPoolError(f"Failed to load events: {e}") from e

    humans, bots = filter_bots(traffic)

    rows = tuple(
        PoolRow(
            identity=identity_of(event),
            timestamp=parse_timestamp(event.timestamp),
            event=event,
        )
        for event in humans
    )
    unique_visitors = len({row.identity for row in rows})

    logger.debug(
        "Visitor pool built: %d rows, %d bots dropped, %d unique visitors",
        len(rows),
        bots,
        unique_visitors,
    )

    return MasterVisitorPool(
        start=start,
        now=now,
        rows=rows,
        clicks=tuple(clicks),
        unique_visitors=unique_visitors,
        bots_filtered=bots,
    )
