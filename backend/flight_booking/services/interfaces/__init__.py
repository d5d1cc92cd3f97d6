"""
Service interfaces for dependency inversion.
Allows swapping integrations without changing booking logic.
"""

from .payment_gateway import PaymentGateway
from .notification import NotificationService

__all__ = ['PaymentGateway', 'NotificationService']
