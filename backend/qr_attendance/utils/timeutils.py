"""Clock and ISO-8601 helpers.

Every instant handled by the services is a timezone-aware UTC ``datetime``.
SQLite hands stored values back naive, so anything read from the database
goes through :func:`ensure_utc` before it is compared.
"""
import math
from datetime import date, datetime, time, timezone, timedelta
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def utc_now() -> datetime:
    """Server clock, the only source of in/out timestamps."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes, convert aware ones."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """Render an instant as ``YYYY-MM-DDTHH:MM:SS.mmmZ``.

    This is the form that gets signed into QR payloads, so it must be
    stable for a given instant.
    """
    if value is None:
        return None
    value = ensure_utc(value)
    return value.strftime('%Y-%m-%dT%H:%M:%S.') + f'{value.microsecond // 1000:03d}Z'


def parse_iso(value: str) -> datetime:
    """Parse an ISO-8601 instant; naive input is taken as UTC.

    Raises ``ValueError`` for anything unparseable.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError('Timestamp must be a non-empty string')
    text = value.strip()
    if text.endswith(('Z', 'z')):
        text = text[:-1] + '+00:00'
    return ensure_utc(datetime.fromisoformat(text))


def parse_date(value: str) -> date:
    """Parse ``YYYY-MM-DD``."""
    return datetime.strptime(value.strip(), '%Y-%m-%d').date()


def parse_clock_time(value: str) -> time:
    """Parse ``HH:MM`` or ``HH:MM:SS``."""
    text = value.strip()
    for fmt in ('%H:%M', '%H:%M:%S'):
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    raise ValueError(f'Invalid time: {value}')


def get_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f'Unknown timezone: {name}')


def combine_local(day: date, clock: time, zone_name: str) -> datetime:
    """Wall-clock date + time in ``zone_name`` as a UTC instant."""
    local = datetime.combine(day, clock, tzinfo=get_zone(zone_name))
    return local.astimezone(timezone.utc)


def local_date(instant: datetime, zone_name: str) -> date:
    """Calendar date of an instant as seen in ``zone_name``."""
    return ensure_utc(instant).astimezone(get_zone(zone_name)).date()


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end, halves rounded up."""
    seconds = (ensure_utc(end) - ensure_utc(start)) / timedelta(seconds=1)
    return int(math.floor(seconds / 60 + 0.5))
