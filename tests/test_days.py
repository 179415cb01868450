import re
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

import pytest

from domain.days import day_key


@pytest.mark.parametrize(
    "now,expected",
    (
        (datetime(2026, 10, 18, 14, 59, tzinfo=UTC), "2026-10-18"),
        # Midnight in Seoul is 15:00 UTC.
        (datetime(2026, 10, 18, 15, 0, tzinfo=UTC), "2026-10-19"),
        (datetime(2026, 10, 18, 15, 0), "2026-10-19"),
        (datetime(2026, 10, 18, 9, 0, tzinfo=ZoneInfo("America/New_York")), "2026-10-18"),
        (datetime(2026, 12, 31, 20, 0, tzinfo=ZoneInfo("Europe/London")), "2027-01-01"),
    ),
)
def test_day_key(now: datetime, expected: str) -> None:
    assert day_key(now) == expected


def test_day_key_other_timezone() -> None:
    now = datetime(2026, 10, 18, 1, 0, tzinfo=UTC)
    assert day_key(now, ZoneInfo("America/Los_Angeles")) == "2026-10-17"


def test_day_key_defaults_to_now() -> None:
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}", day_key())
