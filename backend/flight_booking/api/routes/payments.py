"""
Payment endpoints: order creation and the gateway callback.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from flight_booking.db.session import get_db, get_sessionmaker
from flight_booking.schemas.payment import PaymentOrderResponse, GatewayCallback, PaymentResultResponse
from flight_booking.services.payment_service import create_payment_order, handle_gateway_callback
from flight_booking.services.integration_factory import get_notification_service
from flight_booking.services.interfaces import NotificationService

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("/{confirmation_code}/order", response_model=PaymentOrderResponse)
async def create_order(confirmation_code: str, db: AsyncSession = Depends(get_db)):
    """Order id and amount to hand to the payment gateway."""
    order = await create_payment_order(db, confirmation_code)
    return PaymentOrderResponse(
        confirmation_code=order.confirmation_code,
        order_id=order.order_id,
        amount=order.amount,
    )


@router.post("/callback", response_model=PaymentResultResponse)
async def gateway_callback(
    callback: GatewayCallback,
    sessionmaker: async_sessionmaker[AsyncSession] = Depends(get_sessionmaker),
    notifier: NotificationService = Depends(get_notification_service),
):
    """
    Confirm or fail a payment. The gateway may deliver the same callback
    more than once; replays return the same outcome.
    """
    result = await handle_gateway_callback(
        sessionmaker,
        notifier,
        order_id=callback.order_id,
        success=callback.success,
        transaction_id=callback.transaction_id,
        reason=callback.reason,
    )
    return PaymentResultResponse(
        confirmation_code=result.confirmation_code,
        paid=result.paid,
        already_paid=result.already_paid,
        skipped=result.skipped,
        status=result.status if callback.success else "failed",
    )
