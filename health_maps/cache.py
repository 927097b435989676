"""
Grid-cell cache for environmental readings.

Readings are keyed by a quantized coordinate so that nearby samples, from
the same route or from different requests, share a single provider call.
The cache belongs to one event loop; all bookkeeping happens between awaits
so no lock is needed.
"""

import asyncio
import logging
import time
from collections import OrderedDict
from typing import Awaitable, Callable, Dict, Optional, Tuple

from health_maps.models import Coordinate, EnvironmentReading

logger = logging.getLogger(__name__)

Fetcher = Callable[[Coordinate], Awaitable[EnvironmentReading]]

GRID_PRECISION = 3


class EnvironmentCache:
    """
    Bounded cache with at most one in-flight fetch per grid cell.

    Args:
        fetcher: Coroutine function fetching a reading for a coordinate
        max_entries: Completed readings kept before least recently used ones go
        ttl_seconds: Age after which a reading is fetched again; None keeps it
        precision: Decimal places of the grid key
    """

    def __init__(self, fetcher: Fetcher, max_entries: int = 50000,
                 ttl_seconds: Optional[float] = None,
                 precision: int = GRID_PRECISION,
                 clock: Callable[[], float] = time.monotonic):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.fetcher = fetcher
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self.precision = precision
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[EnvironmentReading, float]]" = OrderedDict()
        self._inflight: Dict[str, asyncio.Future] = {}
        self.hits = 0
        self.misses = 0

    def key_for(self, coord: Coordinate) -> str:
        return coord.grid_key(self.precision)

    def __len__(self) -> int:
        return len(self._entries)

    def _lookup(self, key: str) -> Optional[EnvironmentReading]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        reading, stored_at = entry
        if self.ttl_seconds is not None and self._clock() - stored_at > self.ttl_seconds:
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return reading

    def _store(self, key: str, reading: EnvironmentReading) -> None:
        self._entries[key] = (reading, self._clock())
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    async def _fetch(self, key: str, coord: Coordinate) -> EnvironmentReading:
        try:
            reading = await self.fetcher(coord)
            self._store(key, reading)
            return reading
        finally:
            self._inflight.pop(key, None)

    async def get_or_fetch(self, coord: Coordinate) -> EnvironmentReading:
        """Cached reading for the coordinate's grid cell, fetching it once on a miss."""
        key = self.key_for(coord)

        reading = self._lookup(key)
        if reading is not None:
            self.hits += 1
            return reading

        task = self._inflight.get(key)
        if task is None:
            self.misses += 1
            logger.debug("Environment cache miss for %s", key)
            task = asyncio.ensure_future(self._fetch(key, coord))
            self._inflight[key] = task
        else:
            self.hits += 1

        # Shielded so one cancelled caller does not cancel a fetch others await
        return await asyncio.shield(task)

    def clear(self) -> None:
        """Drop all completed readings. In-flight fetches still finish."""
        self._entries.clear()

    def stats(self) -> Dict[str, int]:
        return {
            'entries': len(self._entries),
            'inflight': len(self._inflight),
            'hits': self.hits,
            'misses': self.misses,
            'max_entries': self.max_entries,
        }
