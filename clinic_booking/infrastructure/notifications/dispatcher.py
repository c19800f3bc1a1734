from __future__ import annotations

import logging
from dataclasses import dataclass

from clinic_booking.application.ports.notifications import NotificationPort
from clinic_booking.domain.entities.booking import (
    BookingNotification,
    BookingRecord,
    NotificationKind,
    Service,
)
from clinic_booking.infrastructure.notifications.resend_client import ResendEmailClient
from clinic_booking.infrastructure.notifications.twilio_client import TwilioSmsClient


@dataclass(frozen=True)
class MessageTemplate:
    subject: str
    email_intro: str
    sms_intro: str


TEMPLATES: dict[NotificationKind, MessageTemplate] = {
    NotificationKind.created: MessageTemplate(
        subject="Your booking is confirmed",
        email_intro="Thank you for booking with us. Here are your appointment details:",
        sms_intro="Your booking is confirmed.",
    ),
    NotificationKind.rescheduled: MessageTemplate(
        subject="Your booking has been rescheduled",
        email_intro="Your appointment has been rescheduled. Updated details are below:",
        sms_intro="Your booking has been rescheduled.",
    ),
    NotificationKind.cancelled: MessageTemplate(
        subject="Your booking has been cancelled",
        email_intro="Your appointment has been cancelled. If this is a mistake, please contact us.",
        sms_intro="Your booking has been cancelled.",
    ),
}


def format_booking_details(booking: BookingRecord, service: Service | None = None) -> str:
    lines = [
        f"Service: {service.name if service else booking.service_id}",
        f"Date: {booking.date}",
        f"Time: {booking.time}",
        f"Name: {booking.name}",
        f"Phone: {booking.phone}",
        f"Email: {booking.email}",
        f"Note: {booking.note}" if booking.note else None,
        f"Status: {booking.status.value}",
        f"Booking ID: {booking.id}",
    ]
    return "\n".join(line for line in lines if line)


def format_booking_sms(booking: BookingRecord, service: Service | None = None) -> str:
    lines = [
        service.name if service else booking.service_id,
        f"{booking.date} {booking.time}",
        f"Name: {booking.name}",
        f"Note: {booking.note}" if booking.note else None,
        f"ID: {booking.id}",
    ]
    return "\n".join(line for line in lines if line)


class NotificationDispatcher(NotificationPort):
    """Sends booking emails and SMS to the customer and the site's admin recipients."""

    def __init__(
        self,
        email_client: ResendEmailClient | None = None,
        sms_client: TwilioSmsClient | None = None,
        enabled: bool = True,
    ) -> None:
        self._email = email_client
        self._sms = sms_client
        self._enabled = enabled
        self._logger = logging.getLogger(__name__)

    def notify(self, notification: BookingNotification) -> None:
        booking = notification.booking
        template = TEMPLATES[notification.kind]
        log_extra = {"booking_id": booking.id, "event": notification.kind.value}

        if not self._enabled:
            self._logger.info("NOTIFICATIONS_ENABLED=false -> skipping send", extra=log_extra)
            return

        self._send_emails(notification, template)
        self._send_sms(notification, template)

    def _send_emails(self, notification: BookingNotification, template: MessageTemplate) -> None:
        booking = notification.booking
        if self._email is None:
            self._logger.warning("Email provider not configured", extra={"booking_id": booking.id})
            return

        body = f"{template.email_intro}\n\n{format_booking_details(booking, notification.service)}"
        try:
            self._email.send(to=booking.email, subject=template.subject, text=body)
        except Exception as e:
            self._logger.warning(
                "Customer email failed", extra={"booking_id": booking.id, "error": str(e)}
            )

        if notification.admin_emails:
            try:
                self._email.send(
                    to=list(notification.admin_emails),
                    subject=f"[Admin] {template.subject}",
                    text=body,
                )
            except Exception as e:
                self._logger.warning(
                    "Admin email failed", extra={"booking_id": booking.id, "error": str(e)}
                )

    def _send_sms(self, notification: BookingNotification, template: MessageTemplate) -> None:
        booking = notification.booking
        if self._sms is None:
            self._logger.warning("SMS provider not configured", extra={"booking_id": booking.id})
            return

        body = f"{template.sms_intro}\n{format_booking_sms(booking, notification.service)}"
        try:
            self._sms.send(to=booking.phone, body=body)
        except Exception as e:
            self._logger.warning("Customer SMS failed", extra={"booking_id": booking.id, "error": str(e)})

        for phone in notification.admin_phones:
            try:
                self._sms.send(to=phone, body=f"[Admin]\n{body}")
            except Exception as e:
                self._logger.warning("Admin SMS failed", extra={"booking_id": booking.id, "error": str(e)})
