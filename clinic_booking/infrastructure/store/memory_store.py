from __future__ import annotations

from clinic_booking.domain.entities.booking import BookingRecord, BookingSettings, Service
from clinic_booking.infrastructure.store.partitioned import PartitionedBookingStore, check_site_id


class MemoryBookingStore(PartitionedBookingStore):
    def __init__(self) -> None:
        super().__init__()
        self._services: dict[str, list[Service]] = {}
        self._settings: dict[str, BookingSettings] = {}
        self._partitions: dict[tuple[str, str], list[BookingRecord]] = {}

    def load_services(self, site_id: str) -> list[Service]:
        return list(self._services.get(check_site_id(site_id), []))

    def save_services(self, site_id: str, services: list[Service]) -> None:
        self._services[check_site_id(site_id)] = list(services)

    def load_settings(self, site_id: str) -> BookingSettings | None:
        return self._settings.get(check_site_id(site_id))

    def save_settings(self, site_id: str, settings: BookingSettings) -> None:
        self._settings[check_site_id(site_id)] = settings

    def _read_partition(self, site_id: str, month: str) -> list[BookingRecord]:
        return list(self._partitions.get((site_id, month), []))

    def _write_partition(self, site_id: str, month: str, bookings: list[BookingRecord]) -> None:
        self._partitions[(site_id, month)] = list(bookings)
