"""Time-bounded snapshot of the driver roster's name records."""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, Sequence

from fleetmatch import DriverNameRecord

log = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 5 * 60.0

RecordLoader = Callable[[], Awaitable[Sequence[DriverNameRecord]]]


class DriverRecordCache:
    """Memoizes the full set of active driver name records.

    The snapshot is refreshed wholesale once it is older than ``ttl`` seconds
    or after ``clear()``. A refresh fetches the complete set before it
    replaces the held tuple, so readers never see a partial snapshot.
    Concurrent readers during a refresh share a single fetch.
    """

    def __init__(
        self,
        loader: RecordLoader,
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._loader = loader
        self._ttl = ttl
        self._clock = clock
        self._records: Optional[tuple[DriverNameRecord, ...]] = None
        self._loaded_at = 0.0
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None

    def _get_lock(self) -> asyncio.Lock:
        # asyncio locks belong to one event loop; rebuild for a new one
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock, self._lock_loop = asyncio.Lock(), loop
        return self._lock

    def is_fresh(self) -> bool:
        """Whether a snapshot exists and is younger than the TTL."""
        return self._records is not None and self.age() < self._ttl

    def age(self) -> float:
        """Seconds since the last refresh (infinite when nothing is cached)."""
        if self._records is None:
            return float('inf')
        return self._clock() - self._loaded_at

    async def get(self) -> tuple[DriverNameRecord, ...]:
        """Return the current snapshot, refreshing it if expired.

        Raises:
            Whatever the loader raises; the previous snapshot stays in place.
        """
        if self.is_fresh():
            return self._records
        async with self._get_lock():
            # Another reader may have refreshed while we waited
            if self.is_fresh():
                return self._records
            records = tuple(await self._loader())
            self._records, self._loaded_at = records, self._clock()
            log.info("Driver name cache refreshed: %d records", len(records))
            return records

    def clear(self) -> None:
        """Force the next ``get()`` to refetch."""
        self._records = None
        self._loaded_at = 0.0
