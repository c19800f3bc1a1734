from __future__ import annotations

import logging

from clinic_booking.application.ports.notifications import NotificationPort
from clinic_booking.domain.entities.booking import BookingNotification


class MockNotifier(NotificationPort):
    def __init__(self) -> None:
        self.sent: list[BookingNotification] = []
        self._logger = logging.getLogger(__name__)

    def notify(self, notification: BookingNotification) -> None:
        self.sent.append(notification)
        self._logger.info(
            "Mock booking notification",
            extra={
                "booking_id": notification.booking.id,
                "event": notification.kind.value,
                "status": notification.booking.status.value,
            },
        )
