import logging
from datetime import datetime
from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from storefront.config import Settings, get_settings
from storefront.models.base import get_db
from storefront.models.order import BtcpayOrder, TERMINAL_STATUSES
from storefront.schemas.order import BtcpayWebhookEvent
from storefront.utils.btcpay import EVENT_TO_STATUS, SIG_HEADER, verify_webhook_signature

logger = logging.getLogger(__name__)

router = APIRouter()


def can_transition(current: str, new: str) -> bool:
    """Orders move forward only: terminal states are final and repeats are no-ops."""
    return current != new and current not in TERMINAL_STATUSES


async def raw_body(request: Request) -> bytes:
    return await request.body()


@router.post("/webhooks/btcpay", response_class=PlainTextResponse)
def btcpay_webhook(
    request: Request,
    body: bytes = Depends(raw_body),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    secret = settings.BTCPAY_WEBHOOK_SECRET
    if not secret:
        logger.error("BTCPAY_WEBHOOK_SECRET not configured")
        return PlainTextResponse("Webhook not configured", status_code=500)

    if not verify_webhook_signature(secret, body, request.headers.get(SIG_HEADER)):
        logger.warning("BTCPay webhook: invalid signature")
        return PlainTextResponse("Invalid signature", status_code=401)

    try:
        event = BtcpayWebhookEvent.model_validate_json(body)
    except ValidationError:
        return PlainTextResponse("Invalid JSON", status_code=400)

    if not event.invoiceId:
        return PlainTextResponse("Missing invoiceId", status_code=400)

    status = EVENT_TO_STATUS.get(event.type) if isinstance(event.type, str) else None
    if not status:
        # Unknown event (e.g. InvoiceCreated): acknowledge without touching the order
        return PlainTextResponse("OK", status_code=200)

    order = (
        db.query(BtcpayOrder)
        .filter(BtcpayOrder.btcpay_invoice_id == event.invoiceId)
        .with_for_update()
        .first()
    )
    if not order:
        logger.warning("BTCPay webhook: order not found for invoice %s", event.invoiceId)
        return PlainTextResponse("Order not found", status_code=404)

    if not can_transition(order.status, status):
        if order.status != status:
            logger.warning(
                "BTCPay webhook: ignoring %s for order %s already %s", event.type, order.id, order.status
            )
        db.rollback()
        return PlainTextResponse("OK", status_code=200)

    logger.info("BTCPay order %s: %s -> %s", order.id, order.status, status)
    order.status = status
    order.updated_at = datetime.utcnow()
    db.commit()
    return PlainTextResponse("OK", status_code=200)
