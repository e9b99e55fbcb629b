# trendboard - Ports (Protocol Interfaces)
# Abstract interfaces for adapters; no implementations here

from src.core.ports.db import EventSourcePort, ListingRepoPort
from src.core.ports.time import TimePort

__all__ = [
    "EventSourcePort",
    "ListingRepoPort",
    "TimePort",
]
