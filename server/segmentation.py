"""Day segmentation: render stays, trips and gaps onto one civil day.

Every function here is a pure function of (item, day, tz) where tz is an
explicit TimezoneService. An item's interval is half-open, [start, end), and
so is a civil day. An item that ends exactly at local midnight therefore
belongs to the day before, both for visibility and for its display role.
"""

import datetime
import enum
import logging
from typing import Optional

from pydantic import BaseModel

from formatting import format_duration, format_duration_compact
from timeline import TimelineItem, item_interval
from timezones import TimezoneService

logger = logging.getLogger(__name__)


class DisplayRole(str, enum.Enum):
    SINGLE_DAY = "single-day"
    START = "start"
    END = "end"
    CONTINUATION = "continuation"


class ClippedInterval(BaseModel):
    """The part of an item that falls within one civil day."""

    display_start: datetime.datetime
    display_end: datetime.datetime

    @property
    def duration_seconds(self) -> int:
        return max(0, int((self.display_end - self.display_start).total_seconds()))


class SegmentedItem(BaseModel):
    item: TimelineItem
    date: datetime.date
    display_role: DisplayRole
    day_ordinal: int
    total_days_spanned: int
    display_start: datetime.datetime
    display_end: datetime.datetime
    duration_seconds: int
    start_time_text: str
    end_time_text: str
    duration_text: str
    duration_long_text: str
    continuation_text: Optional[str] = None


def _civil_span(item, tz: TimezoneService) -> tuple[datetime.date, datetime.date] | None:
    """First and last civil dates covered by the item."""
    interval = item_interval(item)
    if interval is None:
        return None
    start, end = interval
    first = tz.civil_date(start)
    last = tz.civil_date(end)
    if end > start and last > first and end == tz.start_of_day(last):
        last -= datetime.timedelta(days=1)
    return first, last


def appears_on_day(item, day, tz: TimezoneService) -> bool:
    """True when the item overlaps the civil day. Touching a boundary does not count."""
    interval = item_interval(item)
    if interval is None:
        return False
    start, end = interval
    day_start, day_end = tz.day_bounds(day)
    return start < day_end and end > day_start


def display_role(item, day, tz: TimezoneService) -> DisplayRole | None:
    span = _civil_span(item, tz)
    if span is None:
        return None
    first, last = span
    d = tz.parse_day(day)
    if first == d and last == d:
        return DisplayRole.SINGLE_DAY
    if first == d:
        return DisplayRole.START
    if last == d:
        return DisplayRole.END
    return DisplayRole.CONTINUATION


def total_days_spanned(item, tz: TimezoneService) -> int | None:
    span = _civil_span(item, tz)
    if span is None:
        return None
    first, last = span
    return max(1, (last - first).days + 1)


def day_ordinal(item, day, tz: TimezoneService) -> int | None:
    span = _civil_span(item, tz)
    if span is None:
        return None
    return (tz.parse_day(day) - span[0]).days + 1


def is_overnight(item, tz: TimezoneService) -> bool:
    span = _civil_span(item, tz)
    return span is not None and span[0] != span[1]


def clipped_interval(item, day, tz: TimezoneService) -> ClippedInterval | None:
    interval = item_interval(item)
    if interval is None:
        return None
    start, end = interval
    day_start, day_end = tz.day_bounds(day)
    return ClippedInterval(display_start=max(start, day_start), display_end=min(end, day_end))


def continuation_label(item, day, tz: TimezoneService) -> str | None:
    """``Continued from yesterday, 23:00`` or ``Continued from Sep 19, 23:00``.

    None when the day is not after the item's start date.
    """
    if item.start is None:
        return None
    d = tz.parse_day(day)
    start_date = tz.civil_date(item.start)
    days = (d - start_date).days
    if days < 1:
        return None

    start_time = tz.format_time(item.start)
    if days == 1:
        return f"Continued from yesterday, {start_time}"
    if start_date.year == d.year:
        label = tz.format_date_short(item.start)
    else:
        label = tz.format_date_with_year(item.start)
    return f"Continued from {label}, {start_time}"


def _time_text(instant: datetime.datetime, day_end: datetime.datetime, tz: TimezoneService) -> str:
    if instant == day_end:
        return "24:00"
    return tz.format_time(instant)


def on_this_day_text(item, day, tz: TimezoneService) -> str | None:
    """``09:00 - 11:00 (2h)`` for the part of the item on this day."""
    clipped = clipped_interval(item, day, tz)
    if clipped is None:
        return None
    day_end = tz.end_of_day(day)
    return (
        f"{_time_text(clipped.display_start, day_end, tz)} - "
        f"{_time_text(clipped.display_end, day_end, tz)} "
        f"({format_duration_compact(clipped.duration_seconds)})"
    )


def segment_item(item, day, tz: TimezoneService) -> SegmentedItem | None:
    """Everything needed to render one item on one day, or None if not visible."""
    if not appears_on_day(item, day, tz):
        return None

    d = tz.parse_day(day)
    day_end = tz.end_of_day(d)
    clipped = clipped_interval(item, d, tz)
    role = display_role(item, d, tz)

    continuation = None
    if role in (DisplayRole.END, DisplayRole.CONTINUATION):
        continuation = continuation_label(item, d, tz)

    return SegmentedItem(
        item=item,
        date=d,
        display_role=role,
        day_ordinal=day_ordinal(item, d, tz),
        total_days_spanned=total_days_spanned(item, tz),
        display_start=clipped.display_start,
        display_end=clipped.display_end,
        duration_seconds=clipped.duration_seconds,
        start_time_text=_time_text(clipped.display_start, day_end, tz),
        end_time_text=_time_text(clipped.display_end, day_end, tz),
        duration_text=format_duration_compact(clipped.duration_seconds),
        duration_long_text=format_duration(clipped.duration_seconds),
        continuation_text=continuation,
    )


def _valid_items(items) -> list:
    """Drop items without a start and items whose end precedes their start."""
    valid = []
    for item in items:
        interval = item_interval(item)
        if interval is None:
            logger.debug("Skipping %s id=%s without a start time", item.type, item.id)
            continue
        start, end = interval
        if end < start:
            logger.warning(
                "Data quality: %s id=%s ends before it starts (%s < %s), excluded",
                item.type, item.id, end.isoformat(), start.isoformat(),
            )
            continue
        valid.append(item)
    return valid


def _segment_valid(items, day: datetime.date, tz: TimezoneService) -> list[SegmentedItem]:
    segments = []
    for item in items:
        seg = segment_item(item, day, tz)
        if seg is not None:
            segments.append(seg)
    segments.sort(key=lambda s: (s.display_start, s.item.start))
    return segments


def segment_day(items, day, tz: TimezoneService) -> list[SegmentedItem]:
    """Segment all items visible on ``day``, ordered by displayed start."""
    return _segment_valid(_valid_items(items), tz.parse_day(day), tz)


def segment_days(items, start_day, end_day, tz: TimezoneService) -> dict[datetime.date, list[SegmentedItem]]:
    """Segment every civil day from start_day to end_day inclusive."""
    valid = _valid_items(items)
    days = {}
    for d in tz.dates_between(start_day, end_day):
        days[d] = _segment_valid(valid, d, tz)
    logger.debug("Segmented %d items over %d days in %s", len(valid), len(days), tz.name)
    return days
