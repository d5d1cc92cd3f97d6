"""
Payment gateway adapters.
"""

from decimal import Decimal

import httpx

from flight_booking.services.interfaces.payment_gateway import PaymentGateway
from flight_booking.core.exceptions import PaymentGatewayError
from flight_booking.core.logging import get_logger

logger = get_logger(__name__)


class NullPaymentGateway(PaymentGateway):
    """Accepts every refund without contacting anyone."""

    async def refund(self, order_id: str, amount: Decimal) -> None:
        logger.info("refund_requested", order_id=order_id, amount=str(amount), gateway="null")


class HttpPaymentGateway(PaymentGateway):
    """Talks to the gateway adapter service over HTTP."""

    def __init__(self, base_url: str, timeout: float = 5.0, client: httpx.AsyncClient = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    async def refund(self, order_id: str, amount: Decimal) -> None:
        payload = {"order_id": order_id, "amount": str(amount)}
        try:
            if self._client is not None:
                response = await self._client.post(f"{self.base_url}/refunds", json=payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(f"{self.base_url}/refunds", json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("refund_failed", order_id=order_id, error=str(e))
            raise PaymentGatewayError(f"Refund for order {order_id} failed: {e}") from e

        logger.info("refund_requested", order_id=order_id, amount=str(amount), gateway="http")
