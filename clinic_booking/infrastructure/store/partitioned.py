from __future__ import annotations

import logging
import re
from abc import abstractmethod
from datetime import date

from clinic_booking.application.exceptions import ValidationError
from clinic_booking.application.ports.booking_store import BookingStorePort
from clinic_booking.application.utils.keyed_lock import KeyedLock
from clinic_booking.domain.entities.booking import BookingRecord, month_key, parse_date

_SITE_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")


def check_site_id(site_id: str) -> str:
    if not site_id or not _SITE_ID_RE.match(site_id):
        raise ValidationError(f"Invalid site id {site_id!r}")
    return site_id


def month_keys_between(from_date: str, to_date: str) -> list[str]:
    """Month partition keys covering [from_date, to_date], in order."""
    start = parse_date(from_date)
    end = parse_date(to_date)
    keys: list[str] = []
    cursor = date(start.year, start.month, 1)
    last = date(end.year, end.month, 1)
    while cursor <= last:
        keys.append(f"{cursor.year:04d}-{cursor.month:02d}")
        if cursor.month == 12:
            cursor = date(cursor.year + 1, 1, 1)
        else:
            cursor = date(cursor.year, cursor.month + 1, 1)
    return keys


class PartitionedBookingStore(BookingStorePort):
    """
    Month-partitioned booking storage.

    Subclasses provide raw partition I/O; this class owns the partition
    algorithms and serializes every read-modify-write on a (site, month) key.
    """

    def __init__(self) -> None:
        self._partition_locks = KeyedLock()
        self._logger = logging.getLogger(__name__)

    @abstractmethod
    def _read_partition(self, site_id: str, month: str) -> list[BookingRecord]:
        raise NotImplementedError

    @abstractmethod
    def _write_partition(self, site_id: str, month: str, bookings: list[BookingRecord]) -> None:
        raise NotImplementedError

    def load_bookings_for_month(self, site_id: str, month_key: str) -> list[BookingRecord]:
        check_site_id(site_id)
        with self._partition_locks.hold((site_id, month_key)):
            return self._read_partition(site_id, month_key)

    def list_bookings(self, site_id: str, from_date: str, to_date: str) -> list[BookingRecord]:
        """
        Bookings dated within [from_date, to_date], one per id, sorted by date and time.

        Duplicates left by an interrupted cross-month move are resolved by newest
        updatedAt only when both copies fall inside the range. A narrower query
        (a single day, as slot lookup does) still sees the stale origin copy, and it
        keeps blocking its old slot until removed.
        """
        check_site_id(site_id)
        if parse_date(from_date) > parse_date(to_date):
            return []

        by_id: dict[str, BookingRecord] = {}
        for key in month_keys_between(from_date, to_date):
            for booking in self.load_bookings_for_month(site_id, key):
                if not (from_date <= booking.date <= to_date):
                    continue
                current = by_id.get(booking.id)
                # A stray second copy can only come from an interrupted move; keep the newest.
                if current is None or booking.updated_at > current.updated_at:
                    by_id[booking.id] = booking
        return sorted(by_id.values(), key=lambda b: (b.date, b.time, b.id))

    def add_booking(self, site_id: str, record: BookingRecord) -> None:
        check_site_id(site_id)
        key = record.month_key
        with self._partition_locks.hold((site_id, key)):
            bookings = self._read_partition(site_id, key)
            bookings.append(record)
            self._write_partition(site_id, key, bookings)

    def update_booking(self, site_id: str, record: BookingRecord) -> None:
        check_site_id(site_id)
        key = record.month_key
        with self._partition_locks.hold((site_id, key)):
            self._replace_without_lock(site_id, key, record)

    def move_booking(self, site_id: str, original_date: str, record: BookingRecord) -> None:
        check_site_id(site_id)
        origin_key = month_key(original_date)
        target_key = record.month_key
        if origin_key == target_key:
            self.update_booking(site_id, record)
            return

        with self._partition_locks.hold((site_id, origin_key), (site_id, target_key)):
            # Destination first: an interruption leaves a duplicate, never a lost booking.
            self._replace_without_lock(site_id, target_key, record, warn_if_missing=False)
            origin = self._read_partition(site_id, origin_key)
            remaining = [booking for booking in origin if booking.id != record.id]
            if len(remaining) != len(origin):
                self._write_partition(site_id, origin_key, remaining)
            else:
                self._logger.warning(
                    "Moved booking was not in its origin partition",
                    extra={"site_id": site_id, "booking_id": record.id, "date": original_date},
                )

    def _replace_without_lock(
        self, site_id: str, key: str, record: BookingRecord, warn_if_missing: bool = True
    ) -> None:
        """Replace by id in one partition. Use this only while holding the partition lock."""
        bookings = self._read_partition(site_id, key)
        for index, booking in enumerate(bookings):
            if booking.id == record.id:
                bookings[index] = record
                break
        else:
            if warn_if_missing:
                self._logger.warning(
                    "Booking missing from its partition, appending",
                    extra={"site_id": site_id, "booking_id": record.id, "date": record.date},
                )
            bookings.append(record)
        self._write_partition(site_id, key, bookings)
