"""Timeline records produced upstream: stays, trips and data gaps.

All instants are normalized to timezone-aware UTC on ingestion. Naive
timestamps are read as UTC; epoch numbers are read as seconds.
"""

import datetime
import enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, computed_field, field_validator

UTC = datetime.timezone.utc

_FAR_FUTURE = datetime.datetime.max.replace(tzinfo=UTC)


class MovementType(str, enum.Enum):
    WALK = "WALK"
    CAR = "CAR"
    BICYCLE = "BICYCLE"
    RUNNING = "RUNNING"
    TRAIN = "TRAIN"
    FLIGHT = "FLIGHT"
    UNKNOWN = "UNKNOWN"


def as_utc(value: datetime.datetime | None) -> datetime.datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class _TimedRecord(BaseModel):
    id: Optional[int] = None
    start: Optional[datetime.datetime] = None

    @field_validator("start", mode="after")
    @classmethod
    def _start_to_utc(cls, value):
        return as_utc(value)


class Stay(_TimedRecord):
    """A dwell period at one location."""

    type: Literal["stay"] = "stay"
    duration_seconds: Optional[int] = None
    location_name: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @computed_field
    @property
    def end(self) -> datetime.datetime | None:
        if self.start is None:
            return None
        return self.start + datetime.timedelta(seconds=self.duration_seconds or 0)


class Trip(_TimedRecord):
    """A movement between two stays.

    ``origin`` and ``destination`` are filled in per view by the correlator.
    """

    type: Literal["trip"] = "trip"
    duration_seconds: Optional[int] = None
    movement_type: MovementType = MovementType.UNKNOWN
    distance_meters: Optional[float] = None
    origin: Optional[Stay] = None
    destination: Optional[Stay] = None

    @computed_field
    @property
    def end(self) -> datetime.datetime | None:
        if self.start is None:
            return None
        return self.start + datetime.timedelta(seconds=self.duration_seconds or 0)


class DataGap(_TimedRecord):
    """A period with no location data."""

    type: Literal["data_gap"] = "data_gap"
    end: Optional[datetime.datetime] = None

    @field_validator("end", mode="after")
    @classmethod
    def _end_to_utc(cls, value):
        return as_utc(value)

    @computed_field
    @property
    def duration_seconds(self) -> int | None:
        if self.start is None or self.end is None:
            return None
        return int((self.end - self.start).total_seconds())


TimelineItem = Annotated[Union[Stay, Trip, DataGap], Field(discriminator="type")]


def item_interval(item) -> tuple[datetime.datetime, datetime.datetime] | None:
    """Return the ``[start, end)`` interval of any timeline item.

    Returns None when the item has no start. A missing duration (or a gap
    without an end) gives a zero-length interval.
    """
    if item.start is None:
        return None
    end = item.end if item.end is not None else item.start
    return item.start, end


def build_timeline(stays=(), trips=(), data_gaps=()) -> list:
    """Merge stays, trips and gaps into one list ordered by start.

    Items without a start are kept at the end, in input order.
    """
    items = [*stays, *trips, *data_gaps]
    return sorted(items, key=lambda item: item.start or _FAR_FUTURE)
