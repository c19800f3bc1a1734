from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class BookingStatus(str, Enum):
    confirmed = "confirmed"
    rescheduled = "rescheduled"
    cancelled = "cancelled"


def parse_date(value: str) -> date:
    """Parse a strict YYYY-MM-DD string. Raises ValueError otherwise."""
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise ValueError(f"Invalid date {value!r}, expected YYYY-MM-DD")
    return date.fromisoformat(value)


def parse_time_to_minutes(value: str) -> int:
    """Parse a strict HH:MM string into minutes since midnight."""
    if not isinstance(value, str) or not _TIME_RE.match(value):
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def format_minutes(value: int) -> str:
    return f"{value // 60:02d}:{value % 60:02d}"


def month_key(date_str: str) -> str:
    """Partition key (YYYY-MM) for a booking date."""
    parse_date(date_str)
    return date_str[:7]


def normalize_email(value: str | None) -> str:
    return (value or "").strip().lower()


def normalize_phone(value: str | None) -> str:
    return re.sub(r"[^\d+]", "", value or "")


@dataclass(frozen=True)
class Service:
    id: str
    name: str
    duration_minutes: int
    price: float | None = None
    description: str | None = None
    active: bool = True

    def __post_init__(self) -> None:
        if not self.id or not self.id.strip():
            raise ValueError("Service id is required")
        if not self.name or not self.name.strip():
            raise ValueError(f"Service {self.id!r} needs a name")
        if isinstance(self.duration_minutes, bool) or not isinstance(self.duration_minutes, int):
            raise ValueError(f"Service {self.id!r} duration must be an integer")
        if self.duration_minutes <= 0:
            raise ValueError(f"Service {self.id!r} duration must be positive")
        if self.price is not None and self.price < 0:
            raise ValueError(f"Service {self.id!r} price cannot be negative")


@dataclass(frozen=True)
class BusinessHourEntry:
    day: str  # "Mon".."Sun"
    open: str  # HH:MM
    close: str  # HH:MM
    closed: bool = False

    def __post_init__(self) -> None:
        if self.day not in DAY_NAMES:
            raise ValueError(f"Unknown day {self.day!r}, expected one of {', '.join(DAY_NAMES)}")
        open_minutes = parse_time_to_minutes(self.open)
        close_minutes = parse_time_to_minutes(self.close)
        if not self.closed and open_minutes >= close_minutes:
            raise ValueError(f"{self.day}: opening time must be before closing time")

    @property
    def open_minutes(self) -> int:
        return parse_time_to_minutes(self.open)

    @property
    def close_minutes(self) -> int:
        return parse_time_to_minutes(self.close)


@dataclass(frozen=True)
class BookingSettings:
    timezone: str
    buffer_minutes: int = 0
    min_notice_hours: float = 0
    max_days_ahead: int = 60
    business_hours: tuple[BusinessHourEntry, ...] = ()
    blocked_dates: tuple[str, ...] = ()
    notification_emails: tuple[str, ...] = ()
    notification_phones: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError, TypeError):
            raise ValueError(f"Unknown timezone {self.timezone!r}") from None
        if self.buffer_minutes < 0:
            raise ValueError("bufferMinutes cannot be negative")
        if self.min_notice_hours < 0:
            raise ValueError("minNoticeHours cannot be negative")
        if self.max_days_ahead < 0:
            raise ValueError("maxDaysAhead cannot be negative")
        days = [entry.day for entry in self.business_hours]
        if len(days) != len(set(days)):
            raise ValueError("businessHours must contain at most one entry per day")
        for blocked in self.blocked_dates:
            parse_date(blocked)

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def hours_for_day(self, day: str) -> BusinessHourEntry | None:
        for entry in self.business_hours:
            if entry.day == day:
                return entry
        return None


@dataclass(frozen=True)
class BookingRecord:
    id: str
    site_id: str
    service_id: str
    date: str  # YYYY-MM-DD, site-local
    time: str  # HH:MM, site-local
    duration_minutes: int
    name: str
    phone: str
    email: str
    status: BookingStatus = BookingStatus.confirmed
    created_at: str = ""
    updated_at: str = ""
    note: str | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Booking id is required")
        parse_date(self.date)
        parse_time_to_minutes(self.time)
        if self.duration_minutes <= 0:
            raise ValueError(f"Booking {self.id!r} duration must be positive")
        # Accept raw strings from storage and payloads.
        object.__setattr__(self, "status", BookingStatus(self.status))

    @property
    def month_key(self) -> str:
        return month_key(self.date)

    @property
    def start_minutes(self) -> int:
        return parse_time_to_minutes(self.time)


class NotificationKind(str, Enum):
    created = "created"
    rescheduled = "rescheduled"
    cancelled = "cancelled"


@dataclass(frozen=True)
class BookingNotification:
    kind: NotificationKind
    booking: BookingRecord
    service: Service | None = None
    admin_emails: tuple[str, ...] = field(default_factory=tuple)
    admin_phones: tuple[str, ...] = field(default_factory=tuple)
