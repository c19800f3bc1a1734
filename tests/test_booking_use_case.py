"""
Tests for the booking flows: slots, create, reschedule, cancel, lookup and admin edits.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date

import pytest

from clinic_booking.application.exceptions import (
    ConfigurationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from clinic_booking.application.use_cases.booking import BookingUseCase, add_months
from clinic_booking.domain.entities.booking import BookingStatus, NotificationKind
from clinic_booking.infrastructure.store.memory_store import MemoryBookingStore

from conftest import SITE_ID, fixed_clock, make_booking, make_service, new_york

NOW = new_york(2024, 5, 20, 12, 0)


@pytest.fixture
def use_case(memory_store, notifier) -> BookingUseCase:
    return BookingUseCase(store=memory_store, notifier=notifier, clock=fixed_clock(NOW))


def _create(uc: BookingUseCase, date_str: str = "2024-05-28", time_str: str = "09:00", **overrides):
    fields = {
        "service_id": "consult",
        "date": date_str,
        "time": time_str,
        "name": " Pat Doe ",
        "phone": "+1 (555) 010-2030",
        "email": "Pat@Example.com",
    }
    fields.update(overrides)
    return uc.create(SITE_ID, **fields)


class FailingNotifier:
    def notify(self, notification):
        raise RuntimeError("smtp down")


def test_list_services_hides_inactive(use_case):
    assert [s.id for s in use_case.list_services(SITE_ID)] == ["consult"]
    assert [s.id for s in use_case.get_services(SITE_ID)] == ["consult", "retired"]


def test_get_slots_returns_site_timezone(use_case):
    availability = use_case.get_slots(SITE_ID, "2024-06-03", "consult")

    assert availability.timezone == "America/New_York"
    assert availability.slots == ["09:00", "10:10", "11:20", "12:30", "13:40", "14:50", "16:00"]


def test_get_slots_outside_window_is_empty(use_case):
    assert use_case.get_slots(SITE_ID, "2024-05-19", "consult").slots == []
    assert use_case.get_slots(SITE_ID, "2024-09-02", "consult").slots == []


def test_get_slots_errors(use_case, memory_store, notifier):
    with pytest.raises(NotFoundError):
        use_case.get_slots(SITE_ID, "2024-06-03", "retired")
    with pytest.raises(NotFoundError):
        use_case.get_slots(SITE_ID, "2024-06-03", "unknown")
    with pytest.raises(ValidationError):
        use_case.get_slots(SITE_ID, "06/03/2024", "consult")
    with pytest.raises(ValidationError):
        use_case.get_slots(SITE_ID, "", "consult")

    unconfigured = BookingUseCase(store=MemoryBookingStore(), notifier=notifier, clock=fixed_clock(NOW))
    with pytest.raises(ConfigurationError):
        unconfigured.get_slots(SITE_ID, "2024-06-03", "consult")


def test_create_persists_and_notifies(use_case, memory_store, notifier):
    booking = _create(use_case, note="First visit")

    assert booking.id.startswith("bk_")
    assert booking.status == BookingStatus.confirmed
    assert booking.name == "Pat Doe"
    assert booking.duration_minutes == 60
    assert booking.created_at == booking.updated_at == "2024-05-20T16:00:00.000Z"
    assert memory_store.load_bookings_for_month(SITE_ID, "2024-05") == [booking]

    assert len(notifier.sent) == 1
    sent = notifier.sent[0]
    assert sent.kind == NotificationKind.created
    assert sent.booking == booking
    assert sent.service.id == "consult"
    assert sent.admin_emails == ("desk@clinic.test",)


def test_create_removes_slot_from_availability(use_case):
    _create(use_case, date_str="2024-06-03", time_str="10:10")

    slots = use_case.get_slots(SITE_ID, "2024-06-03", "consult").slots

    assert "10:10" not in slots
    assert "09:00" in slots
    assert "11:20" in slots


def test_create_same_slot_twice_conflicts(use_case, memory_store):
    _create(use_case)

    with pytest.raises(ConflictError):
        _create(use_case, email="other@example.com")
    assert len(memory_store.load_bookings_for_month(SITE_ID, "2024-05")) == 1


def test_create_off_grid_time_conflicts(use_case):
    with pytest.raises(ConflictError):
        _create(use_case, time_str="09:30")


@pytest.mark.parametrize("service_id", ["retired", "unknown"])
def test_create_with_unavailable_service(use_case, service_id):
    with pytest.raises(ValidationError, match="Service not available"):
        _create(use_case, service_id=service_id)


@pytest.mark.parametrize("date_str", ["2024-05-19", "2024-09-02"])
def test_create_outside_booking_window(use_case, date_str):
    with pytest.raises(ValidationError, match="outside booking window"):
        _create(use_case, date_str=date_str)


def test_create_requires_fields(use_case):
    with pytest.raises(ValidationError, match="name, phone"):
        _create(use_case, name="  ", phone="")
    with pytest.raises(ValidationError):
        _create(use_case, time_str="9am")


def test_create_without_settings(notifier):
    store = MemoryBookingStore()
    uc = BookingUseCase(store=store, notifier=notifier, clock=fixed_clock(NOW))

    with pytest.raises(ConfigurationError):
        _create(uc)


def test_notification_failure_does_not_fail_booking(memory_store, caplog):
    uc = BookingUseCase(store=memory_store, notifier=FailingNotifier(), clock=fixed_clock(NOW))

    booking = _create(uc)

    assert memory_store.load_bookings_for_month(SITE_ID, "2024-05") == [booking]
    assert "Booking notification failed" in caplog.text


def test_concurrent_creates_claim_slot_once(memory_store, notifier):
    uc = BookingUseCase(store=memory_store, notifier=notifier, clock=fixed_clock(NOW))
    barrier = threading.Barrier(4)
    outcomes: list[str] = []

    def attempt(index: int) -> None:
        barrier.wait()
        try:
            _create(uc, email=f"patient{index}@example.com")
            outcomes.append("created")
        except ConflictError:
            outcomes.append("conflict")

    threads = [threading.Thread(target=attempt, args=(i,)) for i in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(outcomes) == ["conflict", "conflict", "conflict", "created"]
    assert len(memory_store.load_bookings_for_month(SITE_ID, "2024-05")) == 1


def test_reschedule_across_months(use_case, memory_store, notifier):
    booking = _create(use_case)

    updated = use_case.reschedule(
        SITE_ID, booking_id=booking.id, email="pat@example.com", date="2024-06-03", time="10:10"
    )

    assert updated.status == BookingStatus.rescheduled
    assert (updated.date, updated.time) == ("2024-06-03", "10:10")
    assert memory_store.load_bookings_for_month(SITE_ID, "2024-05") == []
    assert memory_store.load_bookings_for_month(SITE_ID, "2024-06") == [updated]
    assert notifier.sent[-1].kind == NotificationKind.rescheduled


def test_reschedule_within_own_slot(use_case):
    """The booking being moved does not block its own time."""
    booking = _create(use_case)

    updated = use_case.reschedule(
        SITE_ID, booking_id=booking.id, email=booking.email, date=booking.date, time=booking.time
    )

    assert updated.status == BookingStatus.rescheduled


def test_reschedule_keeps_duration_snapshot(use_case, memory_store):
    """Changing the service length later does not rewrite existing bookings."""
    booking = _create(use_case)
    memory_store.save_services(SITE_ID, [make_service(duration_minutes=30)])

    updated = use_case.reschedule(
        SITE_ID, booking_id=booking.id, email=booking.email, date="2024-06-03", time="09:00"
    )

    assert updated.duration_minutes == 60
    assert memory_store.load_bookings_for_month(SITE_ID, "2024-06")[0].duration_minutes == 60


def test_reschedule_into_taken_slot_conflicts(use_case):
    booking = _create(use_case)
    _create(use_case, date_str="2024-06-03", time_str="10:10", email="other@example.com")

    with pytest.raises(ConflictError):
        use_case.reschedule(SITE_ID, booking_id=booking.id, email=booking.email, date="2024-06-03", time="10:10")


def test_reschedule_requires_matching_email(use_case):
    booking = _create(use_case)

    with pytest.raises(NotFoundError):
        use_case.reschedule(
            SITE_ID, booking_id=booking.id, email="someone@example.com", date="2024-06-03", time="10:10"
        )
    with pytest.raises(NotFoundError):
        use_case.reschedule(SITE_ID, booking_id="bk_missing", email=booking.email, date="2024-06-03", time="10:10")


def test_reschedule_outside_window(use_case):
    booking = _create(use_case)

    with pytest.raises(ValidationError):
        use_case.reschedule(SITE_ID, booking_id=booking.id, email=booking.email, date="2024-12-02", time="09:00")


def test_reschedule_cancelled_booking_conflicts(use_case):
    booking = _create(use_case)
    use_case.cancel(SITE_ID, booking_id=booking.id, email=booking.email)

    with pytest.raises(ConflictError, match="Cancelled"):
        use_case.reschedule(SITE_ID, booking_id=booking.id, email=booking.email, date="2024-06-03", time="10:10")


def test_cancel_keeps_record_and_frees_slot(use_case, memory_store, notifier):
    booking = _create(use_case, date_str="2024-06-03", time_str="10:10")

    cancelled = use_case.cancel(SITE_ID, booking_id=booking.id, email=" PAT@example.com ")

    assert cancelled.status == BookingStatus.cancelled
    assert memory_store.load_bookings_for_month(SITE_ID, "2024-06") == [cancelled]
    assert "10:10" in use_case.get_slots(SITE_ID, "2024-06-03", "consult").slots
    assert notifier.sent[-1].kind == NotificationKind.cancelled


def test_cancel_twice_is_allowed(use_case, memory_store):
    booking = _create(use_case)

    use_case.cancel(SITE_ID, booking_id=booking.id, email=booking.email)
    again = use_case.cancel(SITE_ID, booking_id=booking.id, email=booking.email)

    assert again.status == BookingStatus.cancelled
    assert len(memory_store.load_bookings_for_month(SITE_ID, "2024-05")) == 1


def test_cancel_requires_ownership(use_case):
    booking = _create(use_case)

    with pytest.raises(NotFoundError):
        use_case.cancel(SITE_ID, booking_id=booking.id, email="intruder@example.com")


def test_lookup_matches_normalized_email_and_phone(use_case):
    first = _create(use_case)
    second = _create(use_case, date_str="2024-06-03", time_str="10:10")
    use_case.cancel(SITE_ID, booking_id=second.id, email=second.email)
    _create(use_case, date_str="2024-06-04", phone="+1 555 999 0000")

    found = use_case.lookup(SITE_ID, email="pat@EXAMPLE.com", phone="+15550102030")

    assert [b.id for b in found] == [first.id, second.id]
    assert found[1].status == BookingStatus.cancelled


def test_lookup_ignores_past_bookings(use_case, memory_store):
    memory_store.add_booking(SITE_ID, make_booking("bk_old", date="2024-05-01"))

    assert use_case.lookup(SITE_ID, email="pat@example.com", phone="+1 (555) 010-2030") == []


def test_save_services_rejects_duplicate_ids(use_case, memory_store):
    services = memory_store.load_services(SITE_ID)

    with pytest.raises(ValidationError):
        use_case.save_services(SITE_ID, services + [services[0]])


def test_admin_list_validates_dates(use_case):
    _create(use_case)

    assert len(use_case.admin_list_bookings(SITE_ID, "2024-05-01", "2024-05-31")) == 1
    with pytest.raises(ValidationError):
        use_case.admin_list_bookings(SITE_ID, "2024-05", "2024-05-31")


def test_admin_update_moves_between_months(use_case, memory_store):
    booking = _create(use_case)
    edited = replace(booking, date="2024-06-10", time="08:00", note="Moved by phone")

    use_case.admin_update_booking(SITE_ID, booking.id, edited, original_date=booking.date)

    assert memory_store.load_bookings_for_month(SITE_ID, "2024-05") == []
    assert memory_store.load_bookings_for_month(SITE_ID, "2024-06") == [edited]


def test_admin_update_rejects_mismatches(use_case):
    booking = _create(use_case)

    with pytest.raises(ValidationError, match="mismatch"):
        use_case.admin_update_booking(SITE_ID, "bk_other", booking)
    with pytest.raises(ValidationError, match="another site"):
        use_case.admin_update_booking(SITE_ID, booking.id, replace(booking, site_id="clinic-b"))


def test_add_months_clamps_day():
    assert add_months(date(2024, 8, 31), 6) == date(2025, 2, 28)
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2024, 11, 15), 2) == date(2025, 1, 15)


if __name__ == "__main__":
    test_add_months_clamps_day()
    print("Booking use case tests passed")
