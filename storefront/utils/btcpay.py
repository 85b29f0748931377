"""BTCPay Server integration (Greenfield API).

Creates invoices for Bitcoin/Lightning payments and verifies webhook
signatures on deliveries coming back from the server.
"""
import hashlib
import hmac
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional

import requests

from storefront.config import Settings

logger = logging.getLogger(__name__)

SIG_HEADER = "BTCPAY-SIG"
SIG_ALG = "sha256"

# BTCPay webhook event type -> local order status
EVENT_TO_STATUS = {
    "InvoiceProcessing": "processing",
    "InvoiceSettled": "settled",
    "InvoiceExpired": "expired",
    "InvoiceInvalid": "invalid",
}


class BTCPayError(Exception):
    pass


@dataclass
class Invoice:
    id: str
    checkout_link: str


class BTCPayClient:
    def __init__(self, server_url: str, store_id: str, api_key: str, timeout: int = 30):
        self.server_url = server_url.rstrip("/")
        self.store_id = store_id
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Authorization": f"token {api_key}",
        })

    @classmethod
    def from_settings(cls, settings: Settings) -> "BTCPayClient":
        if not settings.btcpay_configured:
            raise BTCPayError(
                "BTCPay Server is not configured. Set BTCPAY_SERVER_URL, BTCPAY_STORE_ID, and BTCPAY_API_KEY."
            )
        return cls(settings.BTCPAY_SERVER_URL, settings.BTCPAY_STORE_ID, settings.BTCPAY_API_KEY)

    def create_invoice(
        self,
        amount: Decimal,
        currency: str,
        order_id: str,
        metadata: Optional[Dict[str, str]] = None,
        redirect_url: Optional[str] = None,
    ) -> Invoice:
        payload = {
            "amount": str(amount),
            "currency": currency,
            "metadata": {"orderId": order_id, **(metadata or {})},
        }
        if redirect_url:
            payload["checkout"] = {"redirectURL": redirect_url}

        url = f"{self.server_url}/api/v1/stores/{self.store_id}/invoices"
        try:
            resp = self.session.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise BTCPayError(f"BTCPay request failed: {e}") from e
        if not resp.ok:
            raise BTCPayError(f"BTCPay API error ({resp.status_code}): {resp.text}")

        try:
            data = resp.json()
        except ValueError as e:
            raise BTCPayError(f"BTCPay returned a non-JSON response: {e}") from e
        if not isinstance(data, dict):
            raise BTCPayError("BTCPay returned an unexpected response body")
        invoice_id = data.get("id")
        checkout_link = data.get("checkoutLink")
        if not invoice_id or not checkout_link:
            raise BTCPayError("BTCPay invoice response is missing id or checkoutLink")
        logger.info("Created BTCPay invoice %s for order %s (%s %s)", invoice_id, order_id, amount, currency)
        return Invoice(id=invoice_id, checkout_link=checkout_link)


def compute_signature(secret: str, raw_body: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
    return f"{SIG_ALG}={digest}"


def verify_webhook_signature(secret: Optional[str], raw_body: bytes, signature_header: Optional[str]) -> bool:
    if not secret or not signature_header:
        return False
    expected = compute_signature(secret, raw_body)
    return hmac.compare_digest(signature_header.encode("utf-8"), expected.encode("utf-8"))
