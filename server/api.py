"""REST API endpoints for the timeline views (settings, day segmentation, tables)."""

import datetime
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from correlation import correlate_trips
from database import get_db
from filters import TableFilters, filter_data_gaps, filter_stays, filter_trips
from models import ConfigStore
from segmentation import SegmentedItem, segment_days
from timeline import DataGap, Stay, Trip, build_timeline
from timezones import TimezoneService, TimezoneSettings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

MAX_RANGE_DAYS = 366


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class TimezoneSetting(BaseModel):
    timezone: str


class TimelinePayload(BaseModel):
    stays: list[Stay] = Field(default_factory=list)
    trips: list[Trip] = Field(default_factory=list)
    data_gaps: list[DataGap] = Field(default_factory=list)


class TableRequest(TimelinePayload):
    filters: TableFilters = Field(default_factory=TableFilters)


class DaysRequest(TimelinePayload):
    start_date: datetime.date
    end_date: datetime.date
    timezone: Optional[str] = None


class DayResponse(BaseModel):
    date: datetime.date
    items: list[SegmentedItem]


class DaysResponse(BaseModel):
    timezone: str
    days: list[DayResponse]


# ---------------------------------------------------------------------------
# Settings dependency
# ---------------------------------------------------------------------------

def get_timezone_settings(db: Session = Depends(get_db)) -> TimezoneSettings:
    return TimezoneSettings(ConfigStore(db))


# ---------------------------------------------------------------------------
# Settings endpoints
# ---------------------------------------------------------------------------

@router.get("/settings/timezone", response_model=TimezoneSetting)
def get_timezone(settings: TimezoneSettings = Depends(get_timezone_settings)):
    return TimezoneSetting(timezone=settings.timezone)


@router.put("/settings/timezone", response_model=TimezoneSetting)
def update_timezone(req: TimezoneSetting, settings: TimezoneSettings = Depends(get_timezone_settings)):
    try:
        settings.set_timezone(req.timezone)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return TimezoneSetting(timezone=settings.timezone)


# ---------------------------------------------------------------------------
# Timeline endpoints
# ---------------------------------------------------------------------------

@router.post("/timeline/days", response_model=DaysResponse)
def timeline_days(req: DaysRequest, settings: TimezoneSettings = Depends(get_timezone_settings)):
    """Segment stays, trips and gaps onto each civil day of the requested range."""
    if req.end_date < req.start_date:
        raise HTTPException(status_code=400, detail="end_date must not be before start_date")
    if (req.end_date - req.start_date).days + 1 > MAX_RANGE_DAYS:
        raise HTTPException(status_code=400, detail=f"Date range is limited to {MAX_RANGE_DAYS} days")

    tz = TimezoneService(req.timezone) if req.timezone else settings.service

    trips = correlate_trips(req.stays, req.trips)
    items = build_timeline(req.stays, trips, req.data_gaps)
    days = segment_days(items, req.start_date, req.end_date, tz)

    logger.info(
        "Segmented %d items over %s..%s in %s",
        len(items), req.start_date, req.end_date, tz.name,
    )
    return DaysResponse(
        timezone=tz.name,
        days=[DayResponse(date=d, items=segments) for d, segments in days.items()],
    )


@router.post("/timeline/stays", response_model=list[Stay])
def timeline_stays(req: TableRequest):
    return filter_stays(req.stays, req.filters)


@router.post("/timeline/trips", response_model=list[Trip])
def timeline_trips(req: TableRequest):
    """Trips with their origin/destination stays, filtered for the trips table."""
    return filter_trips(req.trips, req.stays, req.filters)


@router.post("/timeline/data-gaps", response_model=list[DataGap])
def timeline_data_gaps(req: TableRequest):
    return filter_data_gaps(req.data_gaps, req.filters)
