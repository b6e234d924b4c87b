"""Tests for stay-trip correlation: origin/destination lookup and tie-breaks."""

import datetime
import random

import pytest

from correlation import (
    TOLERANCE,
    StayIndex,
    correlate_trips,
    find_destination_stay,
    find_origin_stay,
)
from timeline import Stay, Trip
from tests.timeline_test_fixtures import (
    CAFE,
    DRIVE,
    HOME_NIGHT,
    HOTEL,
    OFFICE,
    STAYS,
    TRAIN,
    TRIPS,
    WALK,
)

UTC = datetime.timezone.utc
BASE = datetime.datetime(2025, 9, 21, 10, 0, tzinfo=UTC)


def _stay(stay_id, start, end, name=None):
    return Stay(
        id=stay_id,
        start=start,
        duration_seconds=int((end - start).total_seconds()),
        location_name=name or f"Stay {stay_id}",
    )


def _at(minutes, seconds=0):
    return BASE + datetime.timedelta(minutes=minutes, seconds=seconds)


# =====================================================================
# Origin lookup
# =====================================================================

class TestOrigin:
    def test_stay_ending_just_before_trip_is_origin(self):
        stay = _stay(1, _at(-120), _at(-5))  # ends 09:55
        assert find_origin_stay([stay], _at(0)) == stay

    def test_stay_ending_twenty_minutes_before_is_not_origin(self):
        stay = _stay(1, _at(-120), _at(-20))  # ends 09:40
        assert find_origin_stay([stay], _at(0)) is None

    def test_exact_tolerance_boundary_qualifies(self):
        stay = _stay(1, _at(-60), _at(-10))
        assert find_origin_stay([stay], _at(0)) == stay

    def test_one_second_outside_tolerance(self):
        stay = _stay(1, _at(-60), _at(-10, -1))
        assert find_origin_stay([stay], _at(0)) is None

    def test_stay_overlapping_trip_start_within_jitter(self):
        # Stay ends 5 min after the trip starts: segmentation jitter
        stay = _stay(1, _at(-60), _at(5))
        assert find_origin_stay([stay], _at(0)) == stay

    def test_stay_ending_beyond_tolerance_after_start(self):
        stay = _stay(1, _at(-60), _at(11))
        assert find_origin_stay([stay], _at(0)) is None

    def test_stay_starting_after_trip_start_is_never_origin(self):
        stay = _stay(1, _at(2), _at(4))
        assert find_origin_stay([stay], _at(0)) is None

    def test_closest_end_wins(self):
        earlier = _stay(1, _at(-60), _at(-8))
        closer = _stay(2, _at(-7), _at(-2))
        assert find_origin_stay([earlier, closer], _at(0)) == closer

    def test_tie_on_end_prefers_later_start(self):
        long_stay = _stay(1, _at(-300), _at(-5))
        short_stay = _stay(2, _at(-30), _at(-5))
        assert find_origin_stay([short_stay, long_stay], _at(0)) == short_stay
        assert find_origin_stay([long_stay, short_stay], _at(0)) == short_stay

    def test_full_tie_prefers_later_input(self):
        first = _stay(1, _at(-30), _at(-5))
        second = _stay(2, _at(-30), _at(-5))
        assert find_origin_stay([first, second], _at(0)).id == 2

    def test_empty_stays(self):
        assert find_origin_stay([], _at(0)) is None

    def test_stays_without_start_are_ignored(self):
        broken = Stay(id=9, start=None, duration_seconds=600)
        assert find_origin_stay([broken], _at(0)) is None

    def test_accepts_naive_trip_start_as_utc(self):
        stay = _stay(1, _at(-60), _at(-5))
        assert find_origin_stay([stay], _at(0).replace(tzinfo=None)) == stay


# =====================================================================
# Destination lookup
# =====================================================================

class TestDestination:
    def test_first_stay_after_trip_end(self):
        near = _stay(1, _at(3), _at(60))
        far = _stay(2, _at(8), _at(90))
        assert find_destination_stay([far, near], _at(0)) == near

    def test_stay_starting_slightly_before_trip_end(self):
        stay = _stay(1, _at(-4), _at(60))
        assert find_destination_stay([stay], _at(0)) == stay

    def test_stay_starting_too_early(self):
        stay = _stay(1, _at(-11), _at(60))
        assert find_destination_stay([stay], _at(0)) is None

    def test_stay_starting_long_after_trip_end(self):
        stay = _stay(1, _at(30), _at(90))
        assert find_destination_stay([stay], _at(0)) == stay

    def test_next_day_stay_is_still_destination(self):
        too_early = _stay(1, _at(-60), _at(-11))
        next_day = _stay(2, _at(18 * 60), _at(20 * 60))
        assert find_destination_stay([next_day, too_early], _at(0)) == next_day

    def test_tie_on_start_keeps_input_order(self):
        first = _stay(1, _at(2), _at(30))
        second = _stay(2, _at(2), _at(60))
        assert find_destination_stay([first, second], _at(0)).id == 1

    def test_empty_stays(self):
        assert find_destination_stay([], _at(0)) is None


# =====================================================================
# Whole-view correlation
# =====================================================================

class TestCorrelateTrips:
    def test_fixture_day(self):
        result = correlate_trips(STAYS, TRIPS)
        by_id = {t.id: t for t in result}

        assert by_id[WALK.id].origin == HOME_NIGHT
        assert by_id[WALK.id].destination == CAFE
        assert by_id[DRIVE.id].origin == CAFE
        assert by_id[DRIVE.id].destination == OFFICE
        assert by_id[TRAIN.id].origin == OFFICE
        assert by_id[TRAIN.id].destination == HOTEL

    def test_order_of_stays_does_not_matter(self):
        shuffled = list(reversed(STAYS))
        assert correlate_trips(shuffled, TRIPS) == correlate_trips(STAYS, TRIPS)

    def test_inputs_are_not_modified(self):
        correlate_trips(STAYS, TRIPS)
        assert all(t.origin is None and t.destination is None for t in TRIPS)

    def test_output_carries_full_stay_values(self):
        walk = correlate_trips(STAYS, [WALK])[0]
        assert walk.origin.location_name == "Home"
        assert walk.origin.latitude == HOME_NIGHT.latitude
        assert walk.destination.address == CAFE.address

    def test_empty_stays_give_no_matches(self):
        result = correlate_trips([], TRIPS)
        assert len(result) == len(TRIPS)
        assert all(t.origin is None and t.destination is None for t in result)

    def test_no_trips(self):
        assert correlate_trips(STAYS, []) == []

    def test_trip_without_start(self):
        trip = Trip(id=99, start=None, duration_seconds=600)
        result = correlate_trips(STAYS, [trip])
        assert result[0].origin is None
        assert result[0].destination is None

    def test_trip_without_duration_is_zero_length(self):
        trip = Trip(id=98, start=datetime.datetime(2025, 9, 21, 10, 35, tzinfo=UTC))
        result = correlate_trips(STAYS, [trip])[0]
        assert result.origin == CAFE
        # Office starts 25 minutes after this zero-length trip
        assert result.destination == OFFICE

    def test_custom_tolerance(self):
        tight = correlate_trips(STAYS, [WALK], tolerance=datetime.timedelta(minutes=2))[0]
        assert tight.origin is None
        # The destination window has no upper bound, so the cafe still matches
        assert tight.destination == CAFE


# =====================================================================
# Index vs. exhaustive search
# =====================================================================

def _reference_origin(stays, trip_start, tolerance=TOLERANCE):
    """Exhaustive search with the same rules as StayIndex.origin_for."""
    ordered = sorted((s for s in stays if s.start is not None), key=lambda s: s.start)
    best, best_key = None, None
    for position, stay in enumerate(ordered):
        if stay.start > trip_start:
            continue
        if not (trip_start - tolerance <= stay.end <= trip_start + tolerance):
            continue
        key = (stay.end, stay.start, position)
        if best_key is None or key > best_key:
            best, best_key = stay, key
    return best


def _reference_destination(stays, trip_end, tolerance=TOLERANCE):
    ordered = sorted((s for s in stays if s.start is not None), key=lambda s: s.start)
    for stay in ordered:
        if stay.start >= trip_end - tolerance:
            return stay
    return None


@pytest.mark.parametrize("seed", range(20))
def test_index_matches_exhaustive_search(seed):
    rng = random.Random(seed)
    stays = []
    for i in range(rng.randint(0, 40)):
        start = _at(rng.randint(-600, 600))
        stays.append(_stay(i, start, start + datetime.timedelta(minutes=rng.randint(0, 120))))
    index = StayIndex(stays)

    for _ in range(30):
        trip_start = _at(rng.randint(-600, 600))
        trip_end = trip_start + datetime.timedelta(minutes=rng.randint(0, 60))

        origin = index.origin_for(trip_start)
        assert origin is _reference_origin(stays, trip_start)
        if origin is not None:
            assert origin.end <= trip_start + TOLERANCE
            assert origin.start <= trip_start

        assert index.destination_for(trip_end) is _reference_destination(stays, trip_end)
