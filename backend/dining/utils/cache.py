from __future__ import annotations

import time
import uuid
from datetime import date
from typing import Callable, Dict, Generic, Optional, Tuple, TypeVar

T = TypeVar("T")

GridKey = Tuple[uuid.UUID, date, date]


class AvailabilityCache(Generic[T]):
    """
    TTL cache for availability grids keyed by (room_id, start, end). A TTL of 0 disables it.

    Each room carries a generation that ``invalidate_room`` bumps. Readers capture it
    before querying and pass it to ``put``; a grid computed before an invalidation
    is then discarded instead of being cached for a full TTL.
    """

    def __init__(
        self,
        ttl_seconds: float,
        *,
        max_entries: int = 1024,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: Dict[GridKey, Tuple[float, T]] = {}
        self._generations: Dict[uuid.UUID, int] = {}

    @property
    def enabled(self) -> bool:
        return self._ttl > 0

    def __len__(self) -> int:
        return len(self._entries)

    def generation(self, room_id: uuid.UUID) -> int:
        return self._generations.get(room_id, 0)

    def get(self, key: GridKey) -> Optional[T]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return value

    def put(self, key: GridKey, value: T, *, generation: Optional[int] = None) -> bool:
        if not self.enabled:
            return False
        if generation is not None and generation != self.generation(key[0]):
            return False
        now = self._clock()
        self._purge_expired(now)
        self._entries.pop(key, None)
        while len(self._entries) >= self._max_entries:
            # Dicts keep insertion order, so the first key is the oldest write.
            del self._entries[next(iter(self._entries))]
        self._entries[key] = (now + self._ttl, value)
        return True

    def invalidate_room(self, room_id: uuid.UUID) -> int:
        self._generations[room_id] = self.generation(room_id) + 1
        stale = [key for key in self._entries if key[0] == room_id]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def _purge_expired(self, now: float) -> None:
        expired = [key for key, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
