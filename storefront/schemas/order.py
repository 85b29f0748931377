import math
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Literal, Optional

OrderStatus = Literal["pending", "processing", "settled", "expired", "invalid"]

MIN_QUANTITY = 1
MAX_QUANTITY = 99


def clamp_quantity(value: Any) -> int:
    """Coerce a client-supplied quantity into [1, 99]; anything unusable becomes 1."""
    if value is None or isinstance(value, (dict, list)):
        return MIN_QUANTITY
    try:
        number = float(value)
    except (TypeError, ValueError):
        return MIN_QUANTITY
    if math.isnan(number):
        return MIN_QUANTITY
    if math.isinf(number):
        return MAX_QUANTITY if number > 0 else MIN_QUANTITY
    qty = math.floor(number) or MIN_QUANTITY
    return max(MIN_QUANTITY, min(MAX_QUANTITY, qty))


class BtcpayCheckoutIn(BaseModel):
    productId: str = Field(min_length=1)
    quantity: int = MIN_QUANTITY
    size: Optional[str] = None

    @field_validator("quantity", mode="before")
    @classmethod
    def _clamp(cls, v):
        return clamp_quantity(v)

    @field_validator("size", mode="before")
    @classmethod
    def _size_text_only(cls, v):
        return v if isinstance(v, str) else None


class BtcpayCheckoutOut(BaseModel):
    checkoutUrl: str
    orderId: str


class StripeCheckoutOut(BaseModel):
    checkoutUrl: str


class StripeConfigOut(BaseModel):
    publishableKey: str


class BtcpayWebhookEvent(BaseModel):
    """Subset of a BTCPay Greenfield webhook delivery that drives order status."""

    model_config = ConfigDict(extra="ignore")

    # Non-string types are kept and treated as unmapped events
    type: Optional[Any] = None
    invoiceId: Optional[str] = None
    deliveryId: Optional[str] = None
