import logging
import uuid
from decimal import Decimal, ROUND_HALF_UP
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Optional

from storefront.config import Settings, get_settings
from storefront.models.base import get_db
from storefront.models.order import BtcpayOrder
from storefront.models.product import Product
from storefront.schemas.order import BtcpayCheckoutIn, BtcpayCheckoutOut, StripeCheckoutOut, StripeConfigOut
from storefront.services import catalog
from storefront.utils.btcpay import BTCPayClient, BTCPayError

logger = logging.getLogger(__name__)

router = APIRouter()

CENT = Decimal("0.01")


def get_btcpay_client(settings: Settings = Depends(get_settings)) -> BTCPayClient:
    if not settings.btcpay_configured:
        raise HTTPException(status_code=503, detail="Bitcoin payment is not available")
    return BTCPayClient.from_settings(settings)


def order_total(unit_price: Decimal, quantity: int) -> Decimal:
    return (Decimal(unit_price) * quantity).quantize(CENT, rounding=ROUND_HALF_UP)


def confirmation_url(settings: Settings, order_id: str) -> Optional[str]:
    if not settings.SITE_URL:
        return None
    return f"{settings.SITE_URL.rstrip('/')}/order-confirmation?order={order_id}"


# Publishable key for the storefront's Stripe.js
@router.get("/stripe-config", response_model=StripeConfigOut)
def stripe_config(settings: Settings = Depends(get_settings)):
    if not settings.STRIPE_PUBLISHABLE_KEY:
        raise HTTPException(status_code=503, detail="Card payment is not available")
    return StripeConfigOut(publishableKey=settings.STRIPE_PUBLISHABLE_KEY)


# Card path: hosted Stripe link stored on the product
@router.get("/stripe-checkout", response_model=StripeCheckoutOut)
def stripe_checkout(productId: Optional[str] = Query(None), db: Session = Depends(get_db)):
    if not productId:
        raise HTTPException(status_code=400, detail="Product ID is required")
    try:
        checkout_url = catalog.get_product_stripe_url(db, productId)
    except SQLAlchemyError:
        logger.error("Error fetching Stripe checkout URL for %s", productId, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch checkout URL")
    if not checkout_url:
        raise HTTPException(status_code=404, detail="Checkout URL not found for this product")
    return StripeCheckoutOut(checkoutUrl=checkout_url)


# Bitcoin path: create a BTCPay invoice, then record the pending order
@router.post("/btcpay-checkout", response_model=BtcpayCheckoutOut)
def btcpay_checkout(
    payload: BtcpayCheckoutIn,
    db: Session = Depends(get_db),
    client: BTCPayClient = Depends(get_btcpay_client),
    settings: Settings = Depends(get_settings),
):
    product = db.query(Product).filter(Product.id == payload.productId).first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    if product.price is None or Decimal(product.price) <= 0:
        raise HTTPException(status_code=400, detail="Product has no valid price")

    amount = order_total(product.price, payload.quantity)
    order_id = str(uuid.uuid4())
    currency = settings.BTCPAY_CURRENCY

    try:
        invoice = client.create_invoice(
            amount=amount,
            currency=currency,
            order_id=order_id,
            metadata={"productId": product.id, "productName": product.name},
            redirect_url=confirmation_url(settings, order_id),
        )
    except BTCPayError:
        logger.error("BTCPay checkout error for product %s", product.id, exc_info=True)
        raise HTTPException(status_code=502, detail="Failed to create payment")

    # Only persisted once the invoice exists, so a gateway failure leaves no orphan row
    db.add(BtcpayOrder(
        id=order_id,
        product_id=product.id,
        product_name=product.name,
        quantity=payload.quantity,
        size=payload.size,
        amount=amount,
        currency=currency,
        status="pending",
        btcpay_invoice_id=invoice.id,
    ))
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.error("Failed to record BTCPay order %s for invoice %s", order_id, invoice.id, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create payment")

    return BtcpayCheckoutOut(checkoutUrl=invoice.checkout_link, orderId=order_id)
