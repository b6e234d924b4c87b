"""Table filters for the stays, trips and data-gaps list views.

Each filter is a no-op when unset. Range options use inclusive bounds, and a
row with a missing or zero measure never matches an active range filter.
"""

import enum
import logging
from typing import Optional

from pydantic import BaseModel

from correlation import correlate_trips
from timeline import MovementType

logger = logging.getLogger(__name__)


class FilterOption(BaseModel):
    label: str
    value: str
    minimum: Optional[float] = None
    maximum: Optional[float] = None


DURATION_OPTIONS = [
    FilterOption(label="Less than 1 hour", value="short", maximum=3600),
    FilterOption(label="1-6 hours", value="medium", minimum=3600, maximum=21600),
    FilterOption(label="6+ hours", value="long", minimum=21600),
]

DISTANCE_OPTIONS = [
    FilterOption(label="Less than 1 km", value="short", maximum=1000),
    FilterOption(label="1-10 km", value="medium", minimum=1000, maximum=10000),
    FilterOption(label="10+ km", value="long", minimum=10000),
]

TRANSPORT_MODE_OPTIONS = [
    FilterOption(label=mode.value.capitalize(), value=mode.value) for mode in MovementType
]

STAY_SEARCH_FIELDS = ["location_name", "address"]
TRIP_SEARCH_FIELDS = ["origin.location_name", "destination.location_name", "movement_type"]


class TableFilters(BaseModel):
    search: Optional[str] = None
    duration: Optional[str] = None
    movement_type: Optional[MovementType] = None
    distance: Optional[str] = None


def get_nested(obj, path: str):
    """Resolve a dotted attribute path like ``origin.location_name``."""
    for name in path.split("."):
        if obj is None:
            return None
        obj = getattr(obj, name, None)
    return obj


def _text(value) -> str:
    if isinstance(value, enum.Enum):
        value = value.value
    return str(value)


def _find_option(options: list[FilterOption], value: str | None) -> FilterOption | None:
    if not value:
        return None
    return next((opt for opt in options if opt.value == value), None)


def _in_range(measure, option: FilterOption) -> bool:
    if not measure:
        return False
    if option.minimum and measure < option.minimum:
        return False
    if option.maximum and measure > option.maximum:
        return False
    return True


def _matches(row, needle: str, fields: list[str]) -> bool:
    for field in fields:
        value = get_nested(row, field)
        if value and needle in _text(value).lower():
            return True
    return False


def apply_search_filter(rows, term: str | None, fields: list[str]) -> list:
    if not term or not term.strip():
        return list(rows)
    needle = term.strip().lower()
    return [row for row in rows if _matches(row, needle, fields)]


def apply_duration_filter(rows, value: str | None, field: str = "duration_seconds",
                          options: list[FilterOption] | None = None) -> list:
    option = _find_option(options or DURATION_OPTIONS, value)
    if option is None:
        return list(rows)
    return [row for row in rows if _in_range(get_nested(row, field), option)]


def apply_movement_type_filter(rows, movement_type: MovementType | str | None) -> list:
    if not movement_type:
        return list(rows)
    wanted = _text(movement_type)
    return [row for row in rows if _text(row.movement_type) == wanted]


def apply_distance_filter(rows, value: str | None, options: list[FilterOption] | None = None) -> list:
    option = _find_option(options or DISTANCE_OPTIONS, value)
    if option is None:
        return list(rows)
    return [row for row in rows if _in_range(row.distance_meters, option)]


def filter_stays(stays, filters: TableFilters | None = None) -> list:
    filters = filters or TableFilters()
    rows = apply_search_filter(stays, filters.search, STAY_SEARCH_FIELDS)
    return apply_duration_filter(rows, filters.duration, "duration_seconds")


def filter_trips(trips, stays, filters: TableFilters | None = None) -> list:
    """Correlate trips with stays, then filter on the correlated rows."""
    filters = filters or TableFilters()
    correlated = correlate_trips(stays, trips)
    rows = apply_search_filter(correlated, filters.search, TRIP_SEARCH_FIELDS)
    rows = apply_movement_type_filter(rows, filters.movement_type)
    rows = apply_distance_filter(rows, filters.distance)
    logger.debug("Trip filter kept %d of %d rows", len(rows), len(correlated))
    return rows


def filter_data_gaps(data_gaps, filters: TableFilters | None = None) -> list:
    filters = filters or TableFilters()
    return apply_duration_filter(data_gaps, filters.duration, "duration_seconds")
