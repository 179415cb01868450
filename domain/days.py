"""Calendar days as every member of a room sees them."""

from datetime import UTC, datetime
from zoneinfo import ZoneInfo


type DayKey = str


ASIA_SEOUL = ZoneInfo("Asia/Seoul")


def utcnow() -> datetime:
    return datetime.now(UTC)


def day_key(now: datetime | None = None, tz: ZoneInfo = ASIA_SEOUL) -> DayKey:
    """`YYYY-MM-DD` for `now` in `tz`. Naive datetimes are taken as UTC."""
    now = utcnow() if now is None else now
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return now.astimezone(tz).strftime("%Y-%m-%d")
