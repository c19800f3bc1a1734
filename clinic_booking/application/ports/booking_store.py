from __future__ import annotations

from abc import ABC, abstractmethod

from clinic_booking.domain.entities.booking import BookingRecord, BookingSettings, Service


class BookingStorePort(ABC):
    @abstractmethod
    def load_services(self, site_id: str) -> list[Service]:
        raise NotImplementedError

    @abstractmethod
    def save_services(self, site_id: str, services: list[Service]) -> None:
        raise NotImplementedError

    @abstractmethod
    def load_settings(self, site_id: str) -> BookingSettings | None:
        """Return the site's settings, or None if they were never saved."""
        raise NotImplementedError

    @abstractmethod
    def save_settings(self, site_id: str, settings: BookingSettings) -> None:
        raise NotImplementedError

    @abstractmethod
    def load_bookings_for_month(self, site_id: str, month_key: str) -> list[BookingRecord]:
        """Return one month partition (YYYY-MM). A partition never written is empty."""
        raise NotImplementedError

    @abstractmethod
    def list_bookings(self, site_id: str, from_date: str, to_date: str) -> list[BookingRecord]:
        """
        Return bookings with from_date <= date <= to_date (inclusive, YYYY-MM-DD).
        Each booking appears at most once regardless of how many partitions are scanned.
        """
        raise NotImplementedError

    @abstractmethod
    def add_booking(self, site_id: str, record: BookingRecord) -> None:
        raise NotImplementedError

    @abstractmethod
    def update_booking(self, site_id: str, record: BookingRecord) -> None:
        """Replace by id within the partition for record.date (append if missing)."""
        raise NotImplementedError

    @abstractmethod
    def move_booking(self, site_id: str, original_date: str, record: BookingRecord) -> None:
        """
        Persist a booking whose date may have changed from original_date.
        Afterwards exactly one copy exists, in the partition for record.date.
        """
        raise NotImplementedError
