from datetime import date, datetime, timezone

import pytz


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; everything stored is UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_today(time_zone: str, now: datetime | None = None) -> date:
    """Return today's date in the operator's reference zone."""
    tz = pytz.timezone(time_zone)
    moment = as_utc(now) if now is not None else utcnow()
    return moment.astimezone(tz).date()
