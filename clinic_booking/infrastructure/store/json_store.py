from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from clinic_booking.application.exceptions import StorageError
from clinic_booking.domain.entities.booking import (
    BookingRecord,
    BookingSettings,
    BusinessHourEntry,
    Service,
)
from clinic_booking.infrastructure.store.partitioned import PartitionedBookingStore, check_site_id


class JsonBookingStore(PartitionedBookingStore):
    """
    File layout per site:
        <data_dir>/<site_id>/booking/services.json
        <data_dir>/<site_id>/booking/settings.json
        <data_dir>/<site_id>/booking/bookings/<YYYY-MM>.json
    """

    def __init__(self, data_dir: str = "./content") -> None:
        super().__init__()
        self._data_dir = Path(data_dir)
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._logger = logging.getLogger(__name__)

    def _booking_root(self, site_id: str) -> Path:
        return self._data_dir / check_site_id(site_id) / "booking"

    def _services_path(self, site_id: str) -> Path:
        return self._booking_root(site_id) / "services.json"

    def _settings_path(self, site_id: str) -> Path:
        return self._booking_root(site_id) / "settings.json"

    def _partition_path(self, site_id: str, month: str) -> Path:
        return self._booking_root(site_id) / "bookings" / f"{month}.json"

    def _read_json(self, file_path: Path, default: Any) -> Any:
        """Load a JSON file. A missing file yields the default; an unreadable one is an error."""
        if not file_path.exists():
            return default
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            self._logger.error("Unparseable booking file", extra={"error": f"{file_path}: {e}"})
            raise StorageError(f"Booking data file {file_path.name} is corrupted") from e

    def _write_json(self, file_path: Path, payload: Any) -> None:
        """Save JSON atomically."""
        file_path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = file_path.with_suffix(".json.tmp")

        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            temp_path.replace(file_path)
        except Exception:
            if temp_path.exists():
                temp_path.unlink(missing_ok=True)
            raise

    def load_services(self, site_id: str) -> list[Service]:
        data = self._read_json(self._services_path(site_id), [])
        if not isinstance(data, list):
            raise StorageError("services.json must contain a list")
        return [self._deserialize_service(item) for item in data]

    def save_services(self, site_id: str, services: list[Service]) -> None:
        self._write_json(self._services_path(site_id), [self._serialize_service(s) for s in services])

    def load_settings(self, site_id: str) -> BookingSettings | None:
        data = self._read_json(self._settings_path(site_id), None)
        if data is None:
            return None
        return self._deserialize_settings(data)

    def save_settings(self, site_id: str, settings: BookingSettings) -> None:
        self._write_json(self._settings_path(site_id), self._serialize_settings(settings))

    def _read_partition(self, site_id: str, month: str) -> list[BookingRecord]:
        data = self._read_json(self._partition_path(site_id, month), [])
        if not isinstance(data, list):
            raise StorageError(f"Booking partition {month} must contain a list")
        return [self._deserialize_booking(item) for item in data]

    def _write_partition(self, site_id: str, month: str, bookings: list[BookingRecord]) -> None:
        self._write_json(
            self._partition_path(site_id, month),
            [self._serialize_booking(b) for b in bookings],
        )

    def _serialize_service(self, service: Service) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": service.id,
            "name": service.name,
            "durationMinutes": service.duration_minutes,
            "active": service.active,
        }
        if service.price is not None:
            result["price"] = service.price
        if service.description is not None:
            result["description"] = service.description
        return result

    def _deserialize_service(self, data: Any) -> Service:
        try:
            return Service(
                id=str(data["id"]),
                name=str(data["name"]),
                duration_minutes=data["durationMinutes"],
                price=data.get("price"),
                description=data.get("description"),
                active=data.get("active", True) is not False,
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise StorageError(f"Malformed service record: {e}") from e

    def _serialize_settings(self, settings: BookingSettings) -> dict[str, Any]:
        return {
            "timezone": settings.timezone,
            "bufferMinutes": settings.buffer_minutes,
            "minNoticeHours": settings.min_notice_hours,
            "maxDaysAhead": settings.max_days_ahead,
            "businessHours": [
                {"day": h.day, "open": h.open, "close": h.close, "closed": h.closed}
                for h in settings.business_hours
            ],
            "blockedDates": list(settings.blocked_dates),
            "notificationEmails": list(settings.notification_emails),
            "notificationPhones": list(settings.notification_phones),
        }

    def _deserialize_settings(self, data: Any) -> BookingSettings:
        try:
            hours = tuple(
                BusinessHourEntry(
                    day=entry["day"],
                    open=entry["open"],
                    close=entry["close"],
                    closed=bool(entry.get("closed", False)),
                )
                for entry in data.get("businessHours", [])
            )
            return BookingSettings(
                timezone=data["timezone"],
                buffer_minutes=int(data.get("bufferMinutes", 0)),
                min_notice_hours=float(data.get("minNoticeHours", 0)),
                max_days_ahead=int(data.get("maxDaysAhead", 60)),
                business_hours=hours,
                blocked_dates=tuple(data.get("blockedDates", [])),
                notification_emails=tuple(data.get("notificationEmails") or []),
                notification_phones=tuple(data.get("notificationPhones") or []),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise StorageError(f"Malformed booking settings: {e}") from e

    def _serialize_booking(self, booking: BookingRecord) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": booking.id,
            "siteId": booking.site_id,
            "serviceId": booking.service_id,
            "date": booking.date,
            "time": booking.time,
            "durationMinutes": booking.duration_minutes,
            "name": booking.name,
            "phone": booking.phone,
            "email": booking.email,
            "status": booking.status.value,
            "createdAt": booking.created_at,
            "updatedAt": booking.updated_at,
        }
        if booking.note is not None:
            result["note"] = booking.note
        return result

    def _deserialize_booking(self, data: Any) -> BookingRecord:
        try:
            return BookingRecord(
                id=str(data["id"]),
                site_id=str(data["siteId"]),
                service_id=str(data["serviceId"]),
                date=data["date"],
                time=data["time"],
                duration_minutes=int(data["durationMinutes"]),
                name=str(data["name"]),
                phone=str(data["phone"]),
                email=str(data["email"]),
                status=data["status"],
                created_at=str(data.get("createdAt", "")),
                updated_at=str(data.get("updatedAt", "")),
                note=data.get("note"),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise StorageError(f"Malformed booking record: {e}") from e
