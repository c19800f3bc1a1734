from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import BackgroundTasks, Depends

from clinic_booking.application.ports.booking_store import BookingStorePort
from clinic_booking.application.ports.notifications import NotificationPort
from clinic_booking.application.use_cases.booking import BookingUseCase
from clinic_booking.application.utils.keyed_lock import KeyedLock
from clinic_booking.core.config import settings
from clinic_booking.domain.entities.booking import BookingNotification
from clinic_booking.infrastructure.notifications.dispatcher import NotificationDispatcher
from clinic_booking.infrastructure.notifications.mock_notifier import MockNotifier
from clinic_booking.infrastructure.notifications.resend_client import ResendEmailClient
from clinic_booking.infrastructure.notifications.twilio_client import TwilioSmsClient
from clinic_booking.infrastructure.store.json_store import JsonBookingStore


class BackgroundNotifier(NotificationPort):
    """Defers delivery until after the response has been sent."""

    def __init__(self, background_tasks: BackgroundTasks, delegate: NotificationPort) -> None:
        self._background_tasks = background_tasks
        self._delegate = delegate

    def notify(self, notification: BookingNotification) -> None:
        self._background_tasks.add_task(self._delegate.notify, notification)


@lru_cache
def get_booking_store() -> BookingStorePort:
    return JsonBookingStore(data_dir=settings.DATA_DIR)


@lru_cache
def get_booking_locks() -> KeyedLock:
    return KeyedLock()


@lru_cache
def get_notification_dispatcher() -> NotificationPort:
    logger = logging.getLogger(__name__)

    email_client = None
    if settings.RESEND_API_KEY and settings.RESEND_FROM:
        email_client = ResendEmailClient(
            api_key=settings.RESEND_API_KEY,
            sender=settings.RESEND_FROM,
            base_url=settings.RESEND_BASE_URL,
        )

    sms_client = None
    if settings.TWILIO_ACCOUNT_SID and settings.TWILIO_AUTH_TOKEN and settings.TWILIO_FROM:
        sms_client = TwilioSmsClient(
            account_sid=settings.TWILIO_ACCOUNT_SID,
            auth_token=settings.TWILIO_AUTH_TOKEN,
            sender=settings.TWILIO_FROM,
            base_url=settings.TWILIO_BASE_URL,
        )

    if email_client is None and sms_client is None and settings.ENV.lower() in {"dev", "local"}:
        logger.info("Using MockNotifier (no email/SMS provider configured, ENV=dev/local)")
        return MockNotifier()

    logger.info(
        "Notification providers email=%s sms=%s",
        email_client is not None,
        sms_client is not None,
    )
    return NotificationDispatcher(
        email_client=email_client,
        sms_client=sms_client,
        enabled=settings.NOTIFICATIONS_ENABLED,
    )


def get_notifier(background_tasks: BackgroundTasks) -> NotificationPort:
    return BackgroundNotifier(background_tasks, get_notification_dispatcher())


def get_booking_use_case(
    store: BookingStorePort = Depends(get_booking_store),
    notifier: NotificationPort = Depends(get_notifier),
) -> BookingUseCase:
    return BookingUseCase(
        store=store,
        notifier=notifier,
        lookup_window_months=settings.LOOKUP_WINDOW_MONTHS,
        locks=get_booking_locks(),
    )
