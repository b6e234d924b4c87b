"""NiceGUI web pages: day timeline and display settings."""

import json
import logging
from zoneinfo import available_timezones

from nicegui import app, ui
from pydantic import ValidationError

from api import TimelinePayload
from correlation import correlate_trips
from database import SessionLocal
from formatting import format_distance
from models import ConfigStore
from segmentation import DisplayRole, SegmentedItem, segment_day
from timeline import build_timeline
from timezones import TimezoneSettings, is_valid_timezone

logger = logging.getLogger(__name__)

# app.storage.user keys: the last loaded timeline document and the zone the
# browser reports. The active timezone itself lives in the Config table,
# shared with the REST API.
TIMELINE_KEY = "timeline"
BROWSER_TZ_KEY = "browser_timezone"

_ROLE_COLORS = {
    DisplayRole.SINGLE_DAY: "blue-1",
    DisplayRole.START: "green-1",
    DisplayRole.END: "orange-1",
    DisplayRole.CONTINUATION: "grey-3",
}


def _load_timezone_settings() -> TimezoneSettings:
    """Read the active timezone from the Config table."""
    db = SessionLocal()
    try:
        return TimezoneSettings(ConfigStore(db))
    finally:
        db.close()


def _save_timezone(name: str) -> TimezoneSettings:
    db = SessionLocal()
    try:
        settings = TimezoneSettings(ConfigStore(db))
        settings.set_timezone(name)
        return settings
    finally:
        db.close()


async def _ensure_timezone() -> TimezoneSettings:
    """Detect the browser timezone via JS on first visit and remember it."""
    if BROWSER_TZ_KEY not in app.storage.user:
        tz = await ui.run_javascript(
            "Intl.DateTimeFormat().resolvedOptions().timeZone"
        )
        if tz and is_valid_timezone(tz):
            app.storage.user[BROWSER_TZ_KEY] = tz
        elif tz:
            logger.warning("Browser reported unknown timezone %r", tz)
    return _load_timezone_settings()


def _nav_link(icon: str, label: str, href: str):
    """Render a navigation link with an icon."""
    with ui.element("a").props(f'href="{href}"').classes(
        "flex items-center gap-3 q-pa-sm q-pl-md no-underline text-dark"
        " rounded-borders cursor-pointer hover:bg-blue-2"
    ).style("text-decoration: none; transition: background 0.15s"):
        ui.icon(icon).classes("text-blue-8")
        ui.label(label)


def _nav_drawer():
    """Shared left-drawer navigation."""
    with ui.left_drawer().classes("bg-blue-1"):
        ui.label("Location Timeline").classes("text-h6 q-pa-sm q-mb-sm")
        _nav_link("timeline", "Timeline", "/")
        ui.separator().classes("q-my-sm")
        _nav_link("settings", "Settings", "/settings")


def _header(settings: TimezoneSettings):
    with ui.header().classes("items-center justify-between"):
        ui.label("Location Timeline").classes("text-h6")
        ui.label(settings.timezone).classes("text-caption")


def _item_title(seg: SegmentedItem) -> str:
    item = seg.item
    if item.type == "stay":
        return item.location_name or item.address or "Unknown location"
    if item.type == "trip":
        origin = item.origin.location_name if item.origin and item.origin.location_name else "unknown"
        destination = (
            item.destination.location_name
            if item.destination and item.destination.location_name else "unknown"
        )
        return f"{item.movement_type.value.capitalize()}: {origin} → {destination}"
    return "No location data"


def _segment_card(seg: SegmentedItem):
    with ui.card().classes(f"w-full bg-{_ROLE_COLORS[seg.display_role]}"):
        with ui.row().classes("w-full items-center justify-between"):
            ui.label(_item_title(seg)).classes("text-subtitle1")
            ui.label(f"{seg.start_time_text} - {seg.end_time_text} ({seg.duration_text})").tooltip(
                seg.duration_long_text
            )
        if seg.display_role != DisplayRole.SINGLE_DAY:
            ui.label(f"Day {seg.day_ordinal} of {seg.total_days_spanned}").classes("text-caption")
        if seg.continuation_text:
            ui.label(seg.continuation_text).classes("text-caption text-grey-8")
        if seg.item.type == "trip" and seg.item.distance_meters:
            ui.label(format_distance(seg.item.distance_meters)).classes("text-caption")


def _stored_timeline() -> TimelinePayload | None:
    raw = app.storage.user.get(TIMELINE_KEY)
    if not raw:
        return None
    return TimelinePayload.model_validate(raw)


# ---------------------------------------------------------------------------
# Timeline page: one civil day at a time
# ---------------------------------------------------------------------------
@ui.page("/")
async def timeline_page():
    settings = await _ensure_timezone()
    tz = settings.service

    _header(settings)
    _nav_drawer()

    with ui.column().classes("q-pa-md w-full"):
        ui.label("Timeline").classes("text-h5 q-mb-md")
        day_input = ui.input("Day", value=tz.now().date().isoformat()).props("outlined dense type=date")
        cards = ui.column().classes("w-full q-mt-md")

        def render():
            cards.clear()
            payload = _stored_timeline()
            with cards:
                if payload is None:
                    ui.label("No timeline loaded yet.").classes("text-grey")
                    return
                try:
                    day = tz.parse_day(day_input.value)
                except ValueError:
                    ui.label("Pick a valid day.").classes("text-grey")
                    return

                trips = correlate_trips(payload.stays, payload.trips)
                items = build_timeline(payload.stays, trips, payload.data_gaps)
                segments = segment_day(items, day, tz)

                ui.label(tz.format_date_long(day)).classes("text-subtitle1 q-mb-sm")
                if not segments:
                    ui.label("Nothing recorded on this day.").classes("text-grey")
                for seg in segments:
                    _segment_card(seg)

        day_input.on_value_change(lambda _: render())

        with ui.expansion("Load timeline JSON", icon="upload").classes("w-full q-mt-md"):
            source = ui.textarea(
                "Paste a document with stays, trips and data_gaps",
            ).classes("w-full").props("outlined autogrow")

            def do_load():
                try:
                    payload = TimelinePayload.model_validate(json.loads(source.value or ""))
                except (json.JSONDecodeError, ValidationError) as e:
                    ui.notify(f"Invalid timeline document: {e}", type="negative")
                    return
                app.storage.user[TIMELINE_KEY] = payload.model_dump(mode="json")
                ui.notify(
                    f"Loaded {len(payload.stays)} stays, {len(payload.trips)} trips, "
                    f"{len(payload.data_gaps)} gaps",
                    type="positive",
                )
                render()

            ui.button("Load", on_click=do_load).classes("q-mt-sm")

        render()


# ---------------------------------------------------------------------------
# Settings page: display timezone
# ---------------------------------------------------------------------------
@ui.page("/settings")
async def settings_page():
    settings = await _ensure_timezone()

    _header(settings)
    _nav_drawer()

    with ui.column().classes("q-pa-md w-full"):
        ui.label("Settings").classes("text-h5 q-mb-md")

        with ui.card().classes("w-96"):
            ui.label("Display Timezone").classes("text-h6 q-mb-sm")
            tz_select = ui.select(
                options=sorted(available_timezones()),
                label="Timezone",
                value=settings.timezone,
                with_input=True,
            ).classes("w-full")

            def do_save():
                try:
                    saved = _save_timezone(tz_select.value)
                except ValueError as e:
                    ui.notify(str(e), type="negative")
                    return
                ui.notify(f"Timezone set to {saved.timezone}", type="positive")

            browser_tz = app.storage.user.get(BROWSER_TZ_KEY)
            with ui.row().classes("q-mt-md items-center"):
                ui.button("Save", on_click=do_save)
                if browser_tz and browser_tz != settings.timezone:
                    ui.button(
                        f"Use browser timezone ({browser_tz})",
                        on_click=lambda: tz_select.set_value(browser_tz),
                    ).props("flat")
