"""
Pydantic schemas for payment orders and gateway callbacks.
"""

from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field


class PaymentOrderResponse(BaseModel):
    confirmation_code: str
    order_id: str
    amount: Decimal


class GatewayCallback(BaseModel):
    order_id: str = Field(..., min_length=1, max_length=100)
    success: bool
    transaction_id: Optional[str] = None
    reason: Optional[str] = None


class PaymentResultResponse(BaseModel):
    confirmation_code: str
    paid: list[int] = []
    already_paid: list[int] = []
    skipped: list[int] = []
    status: str
