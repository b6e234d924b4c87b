"""Civil timezone service: UTC <-> wall clock, day boundaries, calendar math.

A TimezoneService is immutable and is passed explicitly to every caller that
needs wall-clock semantics. The active timezone identifier itself lives in a
persisted key/value store and is only reached through TimezoneSettings.

Day boundaries are half-open: a civil day is [local midnight, next local
midnight), so DST days are 23 or 25 hours long.
"""

import datetime
import logging
from collections.abc import MutableMapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

UTC = ZoneInfo("UTC")
DEFAULT_TIMEZONE = "UTC"
TIMEZONE_KEY = "user_info.timezone"


def resolve_timezone(name: str | None) -> ZoneInfo:
    """Look up an IANA timezone, failing closed to UTC with a warning."""
    if not name or not isinstance(name, str):
        logger.warning("No timezone configured, falling back to UTC")
        return UTC
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError) as e:
        logger.warning("Unrecognized timezone %r, falling back to UTC: %s", name, e)
        return UTC


def is_valid_timezone(name: str | None) -> bool:
    if not name or not isinstance(name, str):
        return False
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return False
    return True


def _parse_iso(text: str) -> datetime.datetime:
    text = text.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.datetime.fromisoformat(text)


class TimezoneService:
    """Conversions and calendar arithmetic in one civil timezone."""

    def __init__(self, name: str | None = DEFAULT_TIMEZONE):
        self.tzinfo = resolve_timezone(name)
        self.name = self.tzinfo.key

    def __repr__(self) -> str:
        return f"TimezoneService({self.name!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, TimezoneService) and other.name == self.name

    def __hash__(self) -> int:
        return hash(self.name)

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    @staticmethod
    def instant(value) -> datetime.datetime:
        """Normalize a datetime, ISO string or epoch seconds to aware UTC."""
        if isinstance(value, datetime.datetime):
            dt = value
        elif isinstance(value, str):
            dt = _parse_iso(value)
        elif isinstance(value, (int, float)):
            return datetime.datetime.fromtimestamp(value, tz=UTC)
        else:
            raise TypeError(f"Cannot interpret {value!r} as an instant")
        if dt.tzinfo is None:
            return dt.replace(tzinfo=UTC)
        return dt.astimezone(UTC)

    def from_utc(self, value) -> datetime.datetime:
        """Wall-clock datetime in this timezone for a UTC instant."""
        return self.instant(value).astimezone(self.tzinfo)

    def to_utc(self, wall_clock) -> datetime.datetime:
        """UTC instant for a wall-clock time. Naive input is local to this zone."""
        if isinstance(wall_clock, str):
            wall_clock = _parse_iso(wall_clock)
        if wall_clock.tzinfo is None:
            wall_clock = wall_clock.replace(tzinfo=self.tzinfo)
        return wall_clock.astimezone(UTC)

    def now(self) -> datetime.datetime:
        return datetime.datetime.now(self.tzinfo)

    def civil_date(self, value) -> datetime.date:
        return self.from_utc(value).date()

    def parse_day(self, value) -> datetime.date:
        """Accept a date, an instant, or a ``YYYY-MM-DD`` string."""
        if isinstance(value, datetime.datetime):
            return self.civil_date(value)
        if isinstance(value, datetime.date):
            return value
        if isinstance(value, str) and len(value.strip()) == 10:
            return datetime.date.fromisoformat(value.strip())
        return self.civil_date(value)

    # ------------------------------------------------------------------
    # Boundaries (returned as UTC instants)
    # ------------------------------------------------------------------

    def _midnight(self, day: datetime.date) -> datetime.datetime:
        return datetime.datetime.combine(day, datetime.time.min, tzinfo=self.tzinfo).astimezone(UTC)

    def start_of_day(self, day) -> datetime.datetime:
        return self._midnight(self.parse_day(day))

    def end_of_day(self, day) -> datetime.datetime:
        """Exclusive end: the next local midnight."""
        return self._midnight(self.parse_day(day) + datetime.timedelta(days=1))

    def day_bounds(self, day) -> tuple[datetime.datetime, datetime.datetime]:
        d = self.parse_day(day)
        return self._midnight(d), self._midnight(d + datetime.timedelta(days=1))

    def start_of_week(self, day) -> datetime.datetime:
        """Weeks start on Sunday."""
        d = self.parse_day(day)
        return self._midnight(d - datetime.timedelta(days=(d.weekday() + 1) % 7))

    def end_of_week(self, day) -> datetime.datetime:
        d = self.parse_day(day)
        week_start = d - datetime.timedelta(days=(d.weekday() + 1) % 7)
        return self._midnight(week_start + datetime.timedelta(days=7))

    def start_of_month(self, day) -> datetime.datetime:
        return self._midnight(self.parse_day(day).replace(day=1))

    def end_of_month(self, day) -> datetime.datetime:
        d = self.parse_day(day)
        if d.month == 12:
            first_of_next = datetime.date(d.year + 1, 1, 1)
        else:
            first_of_next = datetime.date(d.year, d.month + 1, 1)
        return self._midnight(first_of_next)

    def date_range_utc(self, start_day, end_day) -> tuple[datetime.datetime, datetime.datetime]:
        """UTC bounds covering every civil day from start_day to end_day inclusive."""
        return self.start_of_day(start_day), self.end_of_day(end_day)

    def dates_between(self, start, end) -> list[datetime.date]:
        """Every civil date from start's date to end's date, inclusive."""
        current = self.parse_day(start)
        last = self.parse_day(end)
        dates = []
        while current <= last:
            dates.append(current)
            current += datetime.timedelta(days=1)
        return dates

    # ------------------------------------------------------------------
    # Calendar arithmetic
    # ------------------------------------------------------------------

    def add_days(self, day, days: int) -> datetime.date:
        return self.parse_day(day) + datetime.timedelta(days=days)

    def diff_days(self, later, earlier) -> int:
        """Civil-day difference, ignoring time of day."""
        return (self.parse_day(later) - self.parse_day(earlier)).days

    def is_same_day(self, a, b) -> bool:
        return self.civil_date(a) == self.civil_date(b)

    def is_overnight(self, start, end) -> bool:
        return not self.is_same_day(start, end)

    def is_overnight_with_duration(self, start, duration_seconds: float) -> bool:
        end = self.instant(start) + datetime.timedelta(seconds=duration_seconds or 0)
        return self.is_overnight(start, end)

    # ------------------------------------------------------------------
    # Formatting (always in this timezone)
    # ------------------------------------------------------------------

    def format(self, value, fmt: str = "%Y-%m-%d %H:%M") -> str:
        return self.from_utc(value).strftime(fmt)

    def format_time(self, value) -> str:
        return self.format(value, "%H:%M")

    def format_date(self, value) -> str:
        return self.format(value, "%Y-%m-%d")

    def format_date_us(self, value) -> str:
        return self.format(value, "%m/%d/%Y")

    def format_date_short(self, value) -> str:
        local = self.from_utc(value)
        return f"{local:%b} {local.day}"

    def format_date_with_year(self, value) -> str:
        local = self.from_utc(value)
        return f"{local:%b} {local.day}, {local.year}"

    def format_date_long(self, day) -> str:
        d = self.parse_day(day)
        return f"{d:%A}, {d:%B} {d.day}, {d.year}"

    def time_ago(self, value, now: datetime.datetime | None = None) -> str:
        local = self.from_utc(value)
        current = self.from_utc(now) if now is not None else self.now()
        minutes = int((current - local).total_seconds() // 60)
        if minutes < 1:
            return "Just now"
        if minutes < 60:
            return f"{minutes} min ago"
        if minutes < 24 * 60:
            return f"{minutes // 60} hours ago"
        if minutes < 30 * 24 * 60:
            return f"{minutes // (24 * 60)} days ago"
        return local.strftime("%Y-%m-%d")

    # ------------------------------------------------------------------
    # Parsing and grouping
    # ------------------------------------------------------------------

    def parse_url_date(self, text: str | None, is_end_date: bool = False) -> datetime.datetime | None:
        """Parse ``MM/DD/YYYY`` into the UTC start (or exclusive end) of that day."""
        if not text:
            return None
        try:
            day = datetime.datetime.strptime(text, "%m/%d/%Y").date()
        except ValueError:
            return None
        return self.end_of_day(day) if is_end_date else self.start_of_day(day)

    def group_by_day(self, items) -> dict[datetime.date, list]:
        """Group timeline items by the civil date they start on."""
        groups: dict[datetime.date, list] = {}
        for item in items:
            if item.start is None:
                continue
            groups.setdefault(self.civil_date(item.start), []).append(item)
        return groups


class TimezoneSettings:
    """Accessor for the active timezone held in a persisted key/value store.

    The store is read once on construction. ``service`` always returns an
    immutable TimezoneService, so callers that captured it keep a consistent
    view even if the setting changes mid-render.
    """

    def __init__(self, store: MutableMapping, key: str = TIMEZONE_KEY):
        self.store = store
        self.key = key
        self._service = TimezoneService(store.get(key) or DEFAULT_TIMEZONE)

    @property
    def timezone(self) -> str:
        return self._service.name

    @property
    def service(self) -> TimezoneService:
        return self._service

    def set_timezone(self, name: str) -> TimezoneService:
        if not is_valid_timezone(name):
            raise ValueError(f"Unknown timezone: {name!r}")
        self.store[self.key] = name
        self._service = TimezoneService(name)
        logger.info("Active timezone set to %s", name)
        return self._service
