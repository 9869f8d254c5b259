from __future__ import annotations

import logging
from collections import deque
from typing import Deque, List, Optional, Protocol

from tripspeed.utils.types import Trip


logger = logging.getLogger("tripspeed.output.trip_store")


class TripStore(Protocol):
    def save(self, trip: Trip) -> None:
        ...


class InMemoryTripStore(TripStore):
    """Newest-first trip history bounded to ``max_items`` entries."""

    def __init__(self, max_items: int = 50) -> None:
        self.max_items = max(1, int(max_items))
        self._trips: Deque[Trip] = deque(maxlen=self.max_items)

    def save(self, trip: Trip) -> None:
        self._trips.appendleft(trip)
        logger.info("Stored trip %s (%d in history)", trip.id, len(self._trips))

    def get(self, trip_id: str) -> Optional[Trip]:
        for t in self._trips:
            if t.id == trip_id:
                return t
        return None

    def delete(self, trip_id: str) -> bool:
        for t in list(self._trips):
            if t.id == trip_id:
                self._trips.remove(t)
                return True
        return False

    def clear(self) -> None:
        self._trips.clear()

    def history(self) -> List[Trip]:
        return list(self._trips)

    def __len__(self) -> int:
        return len(self._trips)
