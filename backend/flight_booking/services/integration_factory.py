"""
Integration factory.
Picks the payment gateway and notification adapters from settings.
"""

from typing import Optional

from flight_booking.services.interfaces import PaymentGateway, NotificationService
from flight_booking.infrastructure import (
    NullPaymentGateway,
    HttpPaymentGateway,
    LoggingNotificationService,
    WebhookNotificationService,
)
from flight_booking.core.config import get_settings

settings = get_settings()


def build_payment_gateway() -> PaymentGateway:
    """
    PAYMENT_GATEWAY=http talks to the gateway adapter; anything else
    (development default "null") only logs refund requests.
    """
    if settings.PAYMENT_GATEWAY == "http":
        return HttpPaymentGateway(
            settings.PAYMENT_GATEWAY_URL, timeout=settings.INTEGRATION_TIMEOUT_SECONDS
        )
    return NullPaymentGateway()


def build_notification_service() -> NotificationService:
    if settings.NOTIFICATION_BACKEND == "webhook":
        return WebhookNotificationService(
            settings.NOTIFICATION_WEBHOOK_URL, timeout=settings.INTEGRATION_TIMEOUT_SECONDS
        )
    return LoggingNotificationService()


_gateway: Optional[PaymentGateway] = None
_notifier: Optional[NotificationService] = None


def get_payment_gateway() -> PaymentGateway:
    global _gateway
    if _gateway is None:
        _gateway = build_payment_gateway()
    return _gateway


def get_notification_service() -> NotificationService:
    global _notifier
    if _notifier is None:
        _notifier = build_notification_service()
    return _notifier
