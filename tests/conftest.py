"""Shared test fixtures and helpers."""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from clinic_booking.domain.entities.booking import (
    DAY_NAMES,
    BookingRecord,
    BookingSettings,
    BookingStatus,
    BusinessHourEntry,
    Service,
)
from clinic_booking.infrastructure.notifications.mock_notifier import MockNotifier
from clinic_booking.infrastructure.store.memory_store import MemoryBookingStore

NEW_YORK = "America/New_York"
SITE_ID = "clinic-a"


def make_settings(
    timezone: str = NEW_YORK,
    buffer_minutes: int = 10,
    min_notice_hours: float = 0,
    max_days_ahead: int = 60,
    open_days: tuple[str, ...] = ("Mon", "Tue", "Wed", "Thu", "Fri"),
    open_time: str = "09:00",
    close_time: str = "17:00",
    blocked_dates: tuple[str, ...] = (),
    notification_emails: tuple[str, ...] = (),
    notification_phones: tuple[str, ...] = (),
) -> BookingSettings:
    """Settings with one entry per weekday; days outside open_days are marked closed."""
    hours = tuple(
        BusinessHourEntry(day=day, open=open_time, close=close_time, closed=day not in open_days)
        for day in DAY_NAMES
    )
    return BookingSettings(
        timezone=timezone,
        buffer_minutes=buffer_minutes,
        min_notice_hours=min_notice_hours,
        max_days_ahead=max_days_ahead,
        business_hours=hours,
        blocked_dates=blocked_dates,
        notification_emails=notification_emails,
        notification_phones=notification_phones,
    )


def make_service(
    service_id: str = "consult",
    duration_minutes: int = 60,
    active: bool = True,
    name: str = "Initial consultation",
) -> Service:
    return Service(id=service_id, name=name, duration_minutes=duration_minutes, price=80.0, active=active)


def make_booking(
    booking_id: str = "bk_1",
    date: str = "2024-06-03",
    time: str = "10:10",
    duration_minutes: int = 60,
    status: BookingStatus = BookingStatus.confirmed,
    email: str = "pat@example.com",
    phone: str = "+1 (555) 010-2030",
    site_id: str = SITE_ID,
    updated_at: str = "2024-05-20T16:00:00.000Z",
) -> BookingRecord:
    return BookingRecord(
        id=booking_id,
        site_id=site_id,
        service_id="consult",
        date=date,
        time=time,
        duration_minutes=duration_minutes,
        name="Pat Doe",
        phone=phone,
        email=email,
        status=status,
        created_at="2024-05-20T16:00:00.000Z",
        updated_at=updated_at,
    )


def fixed_clock(value: datetime):
    return lambda: value


def new_york(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=ZoneInfo(NEW_YORK))


@pytest.fixture
def memory_store() -> MemoryBookingStore:
    store = MemoryBookingStore()
    store.save_settings(SITE_ID, make_settings(notification_emails=("desk@clinic.test",)))
    store.save_services(SITE_ID, [make_service(), make_service("retired", active=False, name="Retired")])
    return store


@pytest.fixture
def notifier() -> MockNotifier:
    return MockNotifier()
