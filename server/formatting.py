"""Human-readable durations and distances for timeline cards and tables."""


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def format_duration_compact(seconds: float | None) -> str:
    """Format seconds as ``1d 2h 3m``, showing only non-zero units."""
    total = max(0, int(seconds or 0))
    days, rem = divmod(total, 86400)
    hours, rem = divmod(rem, 3600)
    minutes = rem // 60

    parts = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    return " ".join(parts) if parts else "0m"


def format_duration(seconds: float | None) -> str:
    """Format seconds into a long human-readable duration.

    Minutes are dropped once the duration reaches a full day.
    """
    total = max(0, int(seconds or 0))
    if total < 60:
        return "less than a minute"

    days, rem = divmod(total, 86400)
    hours, rem = divmod(rem, 3600)
    minutes = rem // 60

    if days:
        text = _plural(days, "day")
        return f"{text} {_plural(hours, 'hour')}" if hours else text
    if hours:
        text = _plural(hours, "hour")
        return f"{text} {_plural(minutes, 'minute')}" if minutes else text
    return _plural(minutes, "minute")


def _trim(value: float) -> str:
    return f"{value:.2f}".rstrip("0").rstrip(".")


def format_distance(meters: float | None) -> str:
    """Format a distance in metres as ``500 m`` or ``1.5 km``."""
    meters = float(meters or 0)
    if meters < 1000:
        return f"{_trim(meters)} m"
    return f"{_trim(meters / 1000)} km"
