"""Stay-trip correlation: attach origin and destination stays to each trip.

A trip's origin is the stay that ended closest to (at or before, within
TOLERANCE) the trip start; its destination is the first stay that starts no
earlier than TOLERANCE before the trip end, however long after it that is.
TOLERANCE absorbs the jitter upstream segmentation leaves at stay/trip
boundaries.

Tie-breaks:
- origin: greatest end wins; equal ends go to the later-starting stay, then
  to the stay that sorts later by start (input order for equal starts).
- destination: earliest start wins; equal starts go to input order.
"""

import datetime
import logging
from bisect import bisect_left, bisect_right

from timeline import Stay, Trip, as_utc

logger = logging.getLogger(__name__)

TOLERANCE = datetime.timedelta(minutes=10)


class StayIndex:
    """Stays sorted by start, with a secondary index sorted by end.

    Built once per correlation call; lookups are O(log S).
    """

    def __init__(self, stays, tolerance: datetime.timedelta = TOLERANCE):
        self.tolerance = tolerance

        # (stay, start, end) ordered by start; sorted() is stable
        entries = [(s, s.start, s.end) for s in stays if s.start is not None]
        self.entries = sorted(entries, key=lambda e: e[1])
        self._starts = [e[1] for e in self.entries]

        by_end = sorted(
            range(len(self.entries)),
            key=lambda i: (self.entries[i][2], self.entries[i][1], i),
        )
        self._by_end = by_end
        self._ends = [self.entries[i][2] for i in by_end]

    def __len__(self) -> int:
        return len(self.entries)

    def origin_for(self, trip_start: datetime.datetime) -> Stay | None:
        """Latest-ending stay within tolerance of the trip start."""
        lo = bisect_left(self._ends, trip_start - self.tolerance)
        hi = bisect_right(self._ends, trip_start + self.tolerance)
        for pos in range(hi - 1, lo - 1, -1):
            stay, start, _ = self.entries[self._by_end[pos]]
            if start <= trip_start:
                return stay
        return None

    def destination_for(self, trip_end: datetime.datetime) -> Stay | None:
        """First stay starting no earlier than tolerance before the trip end."""
        idx = bisect_left(self._starts, trip_end - self.tolerance)
        if idx < len(self.entries):
            return self.entries[idx][0]
        return None


def find_origin_stay(stays, trip_start, tolerance: datetime.timedelta = TOLERANCE) -> Stay | None:
    return StayIndex(stays, tolerance).origin_for(as_utc(trip_start))


def find_destination_stay(stays, trip_end, tolerance: datetime.timedelta = TOLERANCE) -> Stay | None:
    return StayIndex(stays, tolerance).destination_for(as_utc(trip_end))


def correlate_trips(stays, trips, tolerance: datetime.timedelta = TOLERANCE) -> list[Trip]:
    """Return copies of ``trips`` with ``origin``/``destination`` filled in.

    Inputs are not modified. Trips without a start get no origin or
    destination.
    """
    index = StayIndex(stays, tolerance)
    result = []
    matched = 0

    for trip in trips:
        if trip.start is None:
            result.append(trip.model_copy(update={"origin": None, "destination": None}))
            continue
        origin = index.origin_for(trip.start)
        destination = index.destination_for(trip.end)
        if origin is not None and destination is not None:
            matched += 1
        result.append(trip.model_copy(update={"origin": origin, "destination": destination}))

    logger.debug(
        "Correlated %d trips against %d stays (%d fully matched)",
        len(result), len(index), matched,
    )
    return result
