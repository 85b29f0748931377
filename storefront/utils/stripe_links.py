"""Stripe Payment Links for the card checkout path.

A link is created once per product and stored on the product row; the
storefront then redirects shoppers to it without any further Stripe calls.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP

import stripe

logger = logging.getLogger(__name__)


class StripeLinkError(Exception):
    pass


def to_minor_units(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def create_payment_link(secret_key: str, product_name: str, unit_amount: Decimal, currency: str = "usd") -> str:
    """Create a reusable Stripe Payment Link for a single product and return its URL."""
    stripe.api_key = secret_key
    try:
        price = stripe.Price.create(
            currency=currency.lower(),
            unit_amount=to_minor_units(unit_amount),
            product_data={"name": product_name},
        )
        link = stripe.PaymentLink.create(
            line_items=[{"price": price.id, "quantity": 1}],
            metadata={"productName": product_name},
        )
    except stripe.StripeError as e:
        raise StripeLinkError(f"Stripe error: {e}") from e
    logger.info("Created Stripe payment link for %s", product_name)
    return link.url
