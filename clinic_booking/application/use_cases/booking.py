from __future__ import annotations

import calendar
import logging
import uuid
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from typing import Callable
from zoneinfo import ZoneInfo

from clinic_booking.application.exceptions import (
    ConfigurationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from clinic_booking.application.ports.booking_store import BookingStorePort
from clinic_booking.application.ports.notifications import NotificationPort
from clinic_booking.application.utils.availability import generate_available_slots, is_date_within_range
from clinic_booking.application.utils.keyed_lock import KeyedLock
from clinic_booking.domain.entities.booking import (
    BookingNotification,
    BookingRecord,
    BookingSettings,
    BookingStatus,
    NotificationKind,
    Service,
    month_key,
    normalize_email,
    normalize_phone,
    parse_date,
    parse_time_to_minutes,
)


@dataclass(frozen=True)
class SlotAvailability:
    slots: list[str]
    timezone: str


def add_months(value: date, months: int) -> date:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _require(**fields: str | None) -> None:
    missing = [name for name, value in fields.items() if not (value or "").strip()]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


def _check_date_time(date_str: str, time_str: str) -> None:
    try:
        parse_date(date_str)
        parse_time_to_minutes(time_str)
    except ValueError as e:
        raise ValidationError(str(e)) from None


class BookingUseCase:
    """
    Self-service booking flows (slots, create, reschedule, cancel, lookup) and
    the admin catalog/settings/booking edits for one store.

    Each mutating flow re-checks availability and persists while holding the
    lock for the affected (site, month) partitions, so two requests in this
    process cannot both claim the same slot.
    """

    def __init__(
        self,
        store: BookingStorePort,
        notifier: NotificationPort,
        lookup_window_months: int = 6,
        clock: Callable[[], datetime] | None = None,
        locks: KeyedLock | None = None,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._lookup_window_months = lookup_window_months
        self._clock = clock or _utc_now
        self._locks = locks or KeyedLock()
        self._logger = logging.getLogger(__name__)

    # Public flows

    def list_services(self, site_id: str) -> list[Service]:
        return [s for s in self._store.load_services(site_id) if s.active]

    def get_slots(self, site_id: str, date_str: str, service_id: str) -> SlotAvailability:
        _require(date=date_str, serviceId=service_id)
        try:
            parse_date(date_str)
        except ValueError as e:
            raise ValidationError(str(e)) from None

        settings = self._require_settings(site_id)
        service = self._find_service(site_id, service_id)
        if service is None or not service.active:
            raise NotFoundError("Service not found")

        now = self._clock()
        if not is_date_within_range(date_str, settings, now=now):
            return SlotAvailability(slots=[], timezone=settings.timezone)

        bookings = self._store.list_bookings(site_id, date_str, date_str)
        slots = generate_available_slots(date_str, service, settings, bookings, now=now)
        return SlotAvailability(slots=slots, timezone=settings.timezone)

    def create(
        self,
        site_id: str,
        *,
        service_id: str,
        date: str,
        time: str,
        name: str,
        phone: str,
        email: str,
        note: str | None = None,
    ) -> BookingRecord:
        _require(serviceId=service_id, date=date, time=time, name=name, phone=phone, email=email)
        _check_date_time(date, time)

        settings = self._require_settings(site_id)
        service = self._find_service(site_id, service_id)
        if service is None or not service.active:
            raise ValidationError("Service not available")

        with self._locks.hold((site_id, month_key(date))):
            self._ensure_slot_available(site_id, date, time, service, settings)

            now_iso = self._timestamp()
            booking = BookingRecord(
                id=f"bk_{uuid.uuid4()}",
                site_id=site_id,
                service_id=service.id,
                date=date,
                time=time,
                duration_minutes=service.duration_minutes,
                name=name.strip(),
                phone=phone.strip(),
                email=email.strip(),
                note=note if isinstance(note, str) and note else None,
                status=BookingStatus.confirmed,
                created_at=now_iso,
                updated_at=now_iso,
            )
            self._store.add_booking(site_id, booking)

        self._logger.info(
            "Booking created",
            extra={"site_id": site_id, "booking_id": booking.id, "service_id": service.id, "date": date, "time": time},
        )
        self._notify(NotificationKind.created, booking, service, settings)
        return booking

    def reschedule(
        self,
        site_id: str,
        *,
        booking_id: str,
        email: str,
        date: str,
        time: str,
    ) -> BookingRecord:
        _require(bookingId=booking_id, email=email, date=date, time=time)
        _check_date_time(date, time)

        settings = self._require_settings(site_id)
        if not is_date_within_range(date, settings, now=self._clock()):
            raise ValidationError("Date is outside booking window")

        existing = self._find_owned_booking(site_id, booking_id, email, settings)

        with self._locks.hold((site_id, existing.month_key), (site_id, month_key(date))):
            current = self._reload(site_id, existing)
            if current.status == BookingStatus.cancelled:
                raise ConflictError("Cancelled bookings cannot be rescheduled")

            service = self._find_service(site_id, current.service_id)
            if service is None:
                raise NotFoundError("Service not found")

            self._ensure_slot_available(site_id, date, time, service, settings, ignore_booking_id=current.id)

            # durationMinutes stays the snapshot taken at creation.
            updated = replace(
                current,
                date=date,
                time=time,
                status=BookingStatus.rescheduled,
                updated_at=self._timestamp(),
            )
            self._store.move_booking(site_id, current.date, updated)

        self._logger.info(
            "Booking rescheduled",
            extra={"site_id": site_id, "booking_id": updated.id, "date": date, "time": time},
        )
        self._notify(NotificationKind.rescheduled, updated, service, settings)
        return updated

    def cancel(self, site_id: str, *, booking_id: str, email: str) -> BookingRecord:
        _require(bookingId=booking_id, email=email)

        settings = self._store.load_settings(site_id)
        existing = self._find_owned_booking(site_id, booking_id, email, settings)

        with self._locks.hold((site_id, existing.month_key)):
            current = self._reload(site_id, existing)
            updated = replace(current, status=BookingStatus.cancelled, updated_at=self._timestamp())
            self._store.update_booking(site_id, updated)

        self._logger.info("Booking cancelled", extra={"site_id": site_id, "booking_id": updated.id})
        service = self._find_service(site_id, updated.service_id)
        self._notify(NotificationKind.cancelled, updated, service, settings)
        return updated

    def lookup(self, site_id: str, *, email: str, phone: str) -> list[BookingRecord]:
        """Bookings in the forward lookup window matching both email and phone (any status)."""
        _require(email=email, phone=phone)
        wanted_email = normalize_email(email)
        wanted_phone = normalize_phone(phone)

        start, end = self._lookup_window(self._store.load_settings(site_id))
        return [
            booking
            for booking in self._store.list_bookings(site_id, start, end)
            if normalize_email(booking.email) == wanted_email and normalize_phone(booking.phone) == wanted_phone
        ]

    # Admin flows

    def get_services(self, site_id: str) -> list[Service]:
        return self._store.load_services(site_id)

    def save_services(self, site_id: str, services: list[Service]) -> None:
        ids = [s.id for s in services]
        if len(ids) != len(set(ids)):
            raise ValidationError("Service ids must be unique")
        self._store.save_services(site_id, services)

    def get_settings(self, site_id: str) -> BookingSettings | None:
        return self._store.load_settings(site_id)

    def save_settings(self, site_id: str, settings: BookingSettings) -> None:
        self._store.save_settings(site_id, settings)

    def admin_list_bookings(self, site_id: str, from_date: str, to_date: str) -> list[BookingRecord]:
        _require(**{"from": from_date, "to": to_date})
        try:
            parse_date(from_date)
            parse_date(to_date)
        except ValueError as e:
            raise ValidationError(str(e)) from None
        return self._store.list_bookings(site_id, from_date, to_date)

    def admin_update_booking(
        self,
        site_id: str,
        booking_id: str,
        record: BookingRecord,
        original_date: str | None = None,
    ) -> BookingRecord:
        """Administrative edit: persisted as given, without an availability check."""
        if record.id != booking_id:
            raise ValidationError("Booking ID mismatch")
        if record.site_id != site_id:
            raise ValidationError("Booking belongs to another site")

        if original_date:
            try:
                parse_date(original_date)
            except ValueError as e:
                raise ValidationError(str(e)) from None

        keys = {(site_id, record.month_key)}
        if original_date:
            keys.add((site_id, month_key(original_date)))
        with self._locks.hold(*keys):
            if original_date and original_date != record.date:
                self._store.move_booking(site_id, original_date, record)
            else:
                self._store.update_booking(site_id, record)

        self._logger.info(
            "Booking edited by admin",
            extra={"site_id": site_id, "booking_id": record.id, "status": record.status.value},
        )
        return record

    # Helpers

    def _timestamp(self) -> str:
        return self._clock().astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

    def _require_settings(self, site_id: str) -> BookingSettings:
        settings = self._store.load_settings(site_id)
        if settings is None:
            raise ConfigurationError("Booking settings not configured")
        return settings

    def _find_service(self, site_id: str, service_id: str) -> Service | None:
        for service in self._store.load_services(site_id):
            if service.id == service_id:
                return service
        return None

    def _ensure_slot_available(
        self,
        site_id: str,
        date_str: str,
        time_str: str,
        service: Service,
        settings: BookingSettings,
        ignore_booking_id: str | None = None,
    ) -> None:
        now = self._clock()
        if not is_date_within_range(date_str, settings, now=now):
            raise ValidationError("Date is outside booking window")

        bookings = [
            b for b in self._store.list_bookings(site_id, date_str, date_str) if b.id != ignore_booking_id
        ]
        slots = generate_available_slots(date_str, service, settings, bookings, now=now)
        if time_str not in slots:
            self._logger.info(
                "Requested slot unavailable",
                extra={"site_id": site_id, "service_id": service.id, "date": date_str, "time": time_str},
            )
            raise ConflictError("Time slot is no longer available")

    def _lookup_window(self, settings: BookingSettings | None) -> tuple[str, str]:
        tz = settings.tz if settings else ZoneInfo("UTC")
        today = self._clock().astimezone(tz).date()
        return today.isoformat(), add_months(today, self._lookup_window_months).isoformat()

    def _find_owned_booking(
        self,
        site_id: str,
        booking_id: str,
        email: str,
        settings: BookingSettings | None,
    ) -> BookingRecord:
        wanted_id = booking_id.strip()
        wanted_email = normalize_email(email)
        start, end = self._lookup_window(settings)
        for booking in self._store.list_bookings(site_id, start, end):
            if booking.id == wanted_id and normalize_email(booking.email) == wanted_email:
                return booking
        self._logger.info("Booking ownership lookup failed", extra={"site_id": site_id, "booking_id": wanted_id})
        raise NotFoundError("Booking not found")

    def _reload(self, site_id: str, booking: BookingRecord) -> BookingRecord:
        """Re-read a booking from its partition once its lock is held."""
        for current in self._store.load_bookings_for_month(site_id, booking.month_key):
            if current.id == booking.id:
                return current
        raise NotFoundError("Booking not found")

    def _notify(
        self,
        kind: NotificationKind,
        booking: BookingRecord,
        service: Service | None,
        settings: BookingSettings | None,
    ) -> None:
        notification = BookingNotification(
            kind=kind,
            booking=booking,
            service=service,
            admin_emails=settings.notification_emails if settings else (),
            admin_phones=settings.notification_phones if settings else (),
        )
        try:
            self._notifier.notify(notification)
        except Exception as e:
            self._logger.warning(
                "Booking notification failed",
                extra={"booking_id": booking.id, "event": kind.value, "error": str(e)},
            )
