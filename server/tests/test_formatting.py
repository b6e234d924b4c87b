import pytest

from formatting import format_distance, format_duration, format_duration_compact


@pytest.mark.parametrize(
    "seconds, expected",
    [
        (0, "0m"),
        (None, "0m"),
        (59, "0m"),
        (60, "1m"),
        (3600, "1h"),
        (5400, "1h 30m"),
        (86400, "1d"),
        (90060, "1d 1h 1m"),
        (-30, "0m"),
    ],
)
def test_format_duration_compact(seconds, expected):
    assert format_duration_compact(seconds) == expected


@pytest.mark.parametrize(
    "seconds, expected",
    [
        (0, "less than a minute"),
        (59, "less than a minute"),
        (60, "1 minute"),
        (120, "2 minutes"),
        (3600, "1 hour"),
        (5400, "1 hour 30 minutes"),
        (7260, "2 hours 1 minute"),
        (86400, "1 day"),
        (90060, "1 day 1 hour"),
        (3 * 86400 + 5 * 3600, "3 days 5 hours"),
    ],
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


@pytest.mark.parametrize(
    "meters, expected",
    [
        (0, "0 m"),
        (None, "0 m"),
        (500, "500 m"),
        (999.4, "999.4 m"),
        (1000, "1 km"),
        (1500, "1.5 km"),
        (1234.56, "1.23 km"),
        (140000, "140 km"),
    ],
)
def test_format_distance(meters, expected):
    assert format_distance(meters) == expected
