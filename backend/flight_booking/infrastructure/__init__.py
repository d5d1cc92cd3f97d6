"""
Infrastructure layer - external system integrations.
Keeps business logic clean from implementation details.
"""

from .payment_gateway import NullPaymentGateway, HttpPaymentGateway
from .notifier import LoggingNotificationService, WebhookNotificationService

__all__ = [
    'NullPaymentGateway', 'HttpPaymentGateway',
    'LoggingNotificationService', 'WebhookNotificationService',
]
