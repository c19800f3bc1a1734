from __future__ import annotations

from datetime import datetime, time, timedelta, timezone
from typing import Iterable

from clinic_booking.domain.entities.booking import (
    DAY_NAMES,
    BookingRecord,
    BookingSettings,
    BookingStatus,
    BusinessHourEntry,
    Service,
    format_minutes,
    parse_date,
)


def _local_now(settings: BookingSettings, now: datetime | None) -> datetime:
    if now is None:
        now = datetime.now(timezone.utc)
    return now.astimezone(settings.tz)


def day_name(date_str: str) -> str:
    """Weekday name ("Mon".."Sun") for a YYYY-MM-DD string, independent of any timezone."""
    return DAY_NAMES[parse_date(date_str).weekday()]


def business_hours_for_date(date_str: str, settings: BookingSettings) -> BusinessHourEntry | None:
    """Opening hours for the date, or None when blocked, closed or unconfigured."""
    if date_str in settings.blocked_dates:
        return None
    hours = settings.hours_for_day(day_name(date_str))
    if hours is None or hours.closed:
        return None
    return hours


def _overlaps(start: int, end: int, other_start: int, other_end: int) -> bool:
    return start < other_end and end > other_start


def generate_available_slots(
    date_str: str,
    service: Service,
    settings: BookingSettings,
    existing_bookings: Iterable[BookingRecord],
    now: datetime | None = None,
) -> list[str]:
    """
    Bookable start times (HH:MM, site-local) for a service on a date.

    Candidates start at opening time and advance by the service duration plus
    the buffer, so the grid is anchored to opening time rather than the clock.
    A candidate survives if its absolute start instant is at or after now plus
    the minimum notice (compared in UTC, so DST changes count) and does not
    intersect any non-cancelled booking's [start, start + duration + buffer).
    """
    hours = business_hours_for_date(date_str, settings)
    if hours is None:
        return []

    tz = settings.tz
    day = parse_date(date_str)
    duration = service.duration_minutes
    step = duration + settings.buffer_minutes
    # Same-zone datetime arithmetic is wall-clock; notice is measured in elapsed time.
    cutoff = _local_now(settings, now).astimezone(timezone.utc) + timedelta(hours=settings.min_notice_hours)

    busy: list[tuple[int, int]] = []
    for booking in existing_bookings:
        if booking.status == BookingStatus.cancelled or booking.date != date_str:
            continue
        start = booking.start_minutes
        busy.append((start, start + booking.duration_minutes + settings.buffer_minutes))

    slots: list[str] = []
    start = hours.open_minutes
    while start + duration <= hours.close_minutes:
        slot_start = datetime.combine(day, time(start // 60, start % 60), tzinfo=tz).astimezone(timezone.utc)
        if slot_start >= cutoff and not any(
            _overlaps(start, start + duration, busy_start, busy_end) for busy_start, busy_end in busy
        ):
            slots.append(format_minutes(start))
        start += step
    return slots


def is_date_within_range(date_str: str, settings: BookingSettings, now: datetime | None = None) -> bool:
    """True iff today <= date <= today + maxDaysAhead, with "today" taken in the site's timezone."""
    try:
        target = parse_date(date_str)
    except ValueError:
        return False
    today = _local_now(settings, now).date()
    return today <= target <= today + timedelta(days=settings.max_days_ahead)
