"""
Payment gateway interface.

The gateway's own protocol (signatures, redirect URLs, callback formats)
lives behind this seam. The booking core only needs to ask for a refund
by order id; confirmations arrive inbound via the callback route.
"""

from abc import ABC, abstractmethod
from decimal import Decimal


class PaymentGateway(ABC):
    """
    Implementations:
    - NullPaymentGateway: logs refund requests, for development and tests
    - HttpPaymentGateway: posts refund requests to the gateway adapter service
    """

    @abstractmethod
    async def refund(self, order_id: str, amount: Decimal) -> None:
        """
        Ask the gateway to return `amount` for a settled order.

        Raises:
            PaymentGatewayError: the gateway could not be reached or refused
        """
        pass
