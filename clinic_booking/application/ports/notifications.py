from abc import ABC, abstractmethod

from clinic_booking.domain.entities.booking import BookingNotification


class NotificationPort(ABC):
    @abstractmethod
    def notify(self, notification: BookingNotification) -> None:
        """Deliver a booking notification. Callers treat this as best-effort."""
        raise NotImplementedError
