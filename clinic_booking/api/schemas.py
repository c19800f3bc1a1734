from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from clinic_booking.domain.entities.booking import (
    BookingRecord,
    BookingSettings,
    BookingStatus,
    BusinessHourEntry,
    Service,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ServiceSchema(CamelModel):
    id: str
    name: str
    duration_minutes: int = Field(gt=0)
    price: float | None = None
    description: str | None = None
    active: bool = True

    @classmethod
    def from_entity(cls, service: Service) -> "ServiceSchema":
        return cls(
            id=service.id,
            name=service.name,
            duration_minutes=service.duration_minutes,
            price=service.price,
            description=service.description,
            active=service.active,
        )

    def to_entity(self) -> Service:
        return Service(
            id=self.id,
            name=self.name,
            duration_minutes=self.duration_minutes,
            price=self.price,
            description=self.description,
            active=self.active,
        )


class BusinessHourSchema(CamelModel):
    day: str
    open: str
    close: str
    closed: bool = False


class SettingsSchema(CamelModel):
    timezone: str
    buffer_minutes: int = Field(default=0, ge=0)
    min_notice_hours: float = Field(default=0, ge=0)
    max_days_ahead: int = Field(default=60, ge=0)
    business_hours: list[BusinessHourSchema] = Field(default_factory=list)
    blocked_dates: list[str] = Field(default_factory=list)
    notification_emails: list[str] = Field(default_factory=list)
    notification_phones: list[str] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, settings: BookingSettings) -> "SettingsSchema":
        return cls(
            timezone=settings.timezone,
            buffer_minutes=settings.buffer_minutes,
            min_notice_hours=settings.min_notice_hours,
            max_days_ahead=settings.max_days_ahead,
            business_hours=[
                BusinessHourSchema(day=h.day, open=h.open, close=h.close, closed=h.closed)
                for h in settings.business_hours
            ],
            blocked_dates=list(settings.blocked_dates),
            notification_emails=list(settings.notification_emails),
            notification_phones=list(settings.notification_phones),
        )

    def to_entity(self) -> BookingSettings:
        return BookingSettings(
            timezone=self.timezone,
            buffer_minutes=self.buffer_minutes,
            min_notice_hours=self.min_notice_hours,
            max_days_ahead=self.max_days_ahead,
            business_hours=tuple(
                BusinessHourEntry(day=h.day, open=h.open, close=h.close, closed=h.closed)
                for h in self.business_hours
            ),
            blocked_dates=tuple(self.blocked_dates),
            notification_emails=tuple(self.notification_emails),
            notification_phones=tuple(self.notification_phones),
        )


class BookingSchema(CamelModel):
    id: str
    site_id: str
    service_id: str
    date: str
    time: str
    duration_minutes: int
    name: str
    phone: str
    email: str
    note: str | None = None
    status: BookingStatus
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_entity(cls, booking: BookingRecord) -> "BookingSchema":
        return cls(
            id=booking.id,
            site_id=booking.site_id,
            service_id=booking.service_id,
            date=booking.date,
            time=booking.time,
            duration_minutes=booking.duration_minutes,
            name=booking.name,
            phone=booking.phone,
            email=booking.email,
            note=booking.note,
            status=booking.status,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )

    def to_entity(self) -> BookingRecord:
        return BookingRecord(
            id=self.id,
            site_id=self.site_id,
            service_id=self.service_id,
            date=self.date,
            time=self.time,
            duration_minutes=self.duration_minutes,
            name=self.name,
            phone=self.phone,
            email=self.email,
            note=self.note,
            status=self.status,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


# Public requests


class CreateBookingRequest(CamelModel):
    service_id: str
    date: str
    time: str
    name: str
    phone: str
    email: str
    note: str | None = None


class RescheduleBookingRequest(CamelModel):
    booking_id: str
    email: str
    date: str
    time: str


class CancelBookingRequest(CamelModel):
    booking_id: str
    email: str


class LookupBookingsRequest(CamelModel):
    email: str
    phone: str


# Public responses


class ServicesResponse(CamelModel):
    services: list[ServiceSchema]


class SlotsResponse(CamelModel):
    slots: list[str]
    timezone: str


class BookingResponse(CamelModel):
    booking: BookingSchema


class BookingsResponse(CamelModel):
    bookings: list[BookingSchema]


# Admin


class SaveServicesRequest(CamelModel):
    site_id: str
    services: list[ServiceSchema]


class SaveSettingsRequest(CamelModel):
    site_id: str
    settings: SettingsSchema


class SettingsResponse(CamelModel):
    settings: SettingsSchema | None = None


class AdminUpdateBookingRequest(CamelModel):
    site_id: str
    booking: BookingSchema
    original_date: str | None = None


class StatusResponse(CamelModel):
    status: str = "ok"
