from decimal import Decimal

import pytest

from storefront.main import app
from storefront.models.order import BtcpayOrder
from storefront.routers.checkout import get_btcpay_client, order_total
from storefront.schemas.order import clamp_quantity
from storefront.utils.btcpay import BTCPayClient, BTCPayError, Invoice


class FakeBTCPayClient:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def create_invoice(self, **kwargs):
        self.calls.append(kwargs)
        if self.fail:
            raise BTCPayError("BTCPay API error (500): boom")
        return Invoice(id="inv_123", checkout_link="https://btcpay.example.com/i/inv_123")


@pytest.fixture()
def btcpay(make_client):
    fake = FakeBTCPayClient()
    client = make_client(SITE_URL="https://shop.example.com")
    app.dependency_overrides[get_btcpay_client] = lambda: fake
    return client, fake


@pytest.mark.parametrize("raw, expected", [
    (None, 1), ("3", 3), (2.7, 2), (0, 1), (-5, 1), (1000, 99),
    ("abc", 1), ({"n": 2}, 1), (float("nan"), 1), (float("inf"), 99),
])
def test_clamp_quantity(raw, expected):
    assert clamp_quantity(raw) == expected


def test_order_total_rounds_half_up():
    assert order_total(Decimal("19.99"), 3) == Decimal("59.97")
    assert order_total(Decimal("0.125"), 1) == Decimal("0.13")


def test_btcpay_checkout_creates_invoice_then_order(btcpay, db, make_product):
    client, fake = btcpay
    product = make_product("Logo Tee", price="19.99")

    resp = client.post("/api/btcpay-checkout", json={"productId": product.id, "quantity": 3, "size": "M"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["checkoutUrl"] == "https://btcpay.example.com/i/inv_123"
    call = fake.calls[0]
    assert call["amount"] == Decimal("59.97")
    assert call["order_id"] == body["orderId"]
    assert call["redirect_url"] == f"https://shop.example.com/order-confirmation?order={body['orderId']}"

    order = db.query(BtcpayOrder).filter(BtcpayOrder.id == body["orderId"]).one()
    assert order.status == "pending"
    assert order.btcpay_invoice_id == "inv_123"
    assert order.quantity == 3
    assert order.size == "M"
    assert order.amount == Decimal("59.97")


def test_btcpay_checkout_clamps_quantity(btcpay, make_product):
    client, fake = btcpay
    product = make_product("Logo Tee", price="10.00")

    client.post("/api/btcpay-checkout", json={"productId": product.id, "quantity": 500, "size": 12})

    assert fake.calls[0]["amount"] == Decimal("990.00")


def test_btcpay_checkout_unknown_product(btcpay):
    client, _ = btcpay
    resp = client.post("/api/btcpay-checkout", json={"productId": "missing"})
    assert resp.status_code == 404
    assert resp.json() == {"error": "Product not found"}


def test_btcpay_checkout_requires_price(btcpay, make_product):
    client, fake = btcpay
    product = make_product("Sticker", price=None)

    resp = client.post("/api/btcpay-checkout", json={"productId": product.id})

    assert resp.status_code == 400
    assert fake.calls == []


def test_btcpay_checkout_rejects_non_positive_price(btcpay, make_product):
    client, fake = btcpay
    product = make_product("Freebie", price="0.00")

    resp = client.post("/api/btcpay-checkout", json={"productId": product.id})

    assert resp.status_code == 400
    assert resp.json() == {"error": "Product has no valid price"}
    assert fake.calls == []


def test_btcpay_checkout_malformed_json(btcpay, db):
    client, fake = btcpay

    resp = client.post(
        "/api/btcpay-checkout", content=b"{not json", headers={"Content-Type": "application/json"}
    )

    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid JSON body"
    assert fake.calls == []
    assert db.query(BtcpayOrder).count() == 0


def test_btcpay_checkout_missing_product_id(btcpay):
    client, _ = btcpay
    resp = client.post("/api/btcpay-checkout", json={"quantity": 1})
    assert resp.status_code == 400
    assert resp.json()["error"] == "productId is required"


def test_btcpay_gateway_failure_leaves_no_order(btcpay, db, make_product):
    client, fake = btcpay
    fake.fail = True
    product = make_product("Logo Tee")

    resp = client.post("/api/btcpay-checkout", json={"productId": product.id})

    assert resp.status_code == 502
    assert resp.json() == {"error": "Failed to create payment"}
    assert db.query(BtcpayOrder).count() == 0


def test_btcpay_not_configured(client, make_product):
    product = make_product("Logo Tee")
    resp = client.post("/api/btcpay-checkout", json={"productId": product.id})
    assert resp.status_code == 503


def test_btcpay_not_configured_body_is_parsed_first(client):
    # FastAPI decodes the JSON body before resolving dependencies
    resp = client.post(
        "/api/btcpay-checkout", content=b"{not json", headers={"Content-Type": "application/json"}
    )
    assert resp.status_code == 400


def test_stripe_config(make_client):
    assert make_client().get("/api/stripe-config").status_code == 503
    resp = make_client(STRIPE_PUBLISHABLE_KEY="pk_test_123").get("/api/stripe-config")
    assert resp.json() == {"publishableKey": "pk_test_123"}


def test_stripe_checkout(client, make_product):
    product = make_product("Hoodie", stripe_checkout_url="https://buy.stripe.com/test_123")
    bare = make_product("Beanie")

    assert client.get("/api/stripe-checkout").status_code == 400
    assert client.get("/api/stripe-checkout", params={"productId": "missing"}).status_code == 404
    assert client.get("/api/stripe-checkout", params={"productId": bare.id}).status_code == 404
    resp = client.get("/api/stripe-checkout", params={"productId": product.id})
    assert resp.json() == {"checkoutUrl": "https://buy.stripe.com/test_123"}


class _Response:
    def __init__(self, status_code, payload=None, text=""):
        self.status_code = status_code
        self.ok = status_code < 400
        self._payload = payload if payload is not None else {}
        self.text = text

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


def test_btcpay_client_posts_invoice(monkeypatch):
    sent = {}

    def fake_post(self, url, json=None, timeout=None):
        sent.update(url=url, json=json, headers=dict(self.headers))
        return _Response(200, {"id": "inv_1", "checkoutLink": "https://btcpay.example.com/i/inv_1"})

    monkeypatch.setattr("requests.Session.post", fake_post)
    client = BTCPayClient("https://btcpay.example.com/", "store1", "key1")

    invoice = client.create_invoice(Decimal("59.97"), "USD", "order-1", redirect_url="https://shop/ok")

    assert invoice == Invoice(id="inv_1", checkout_link="https://btcpay.example.com/i/inv_1")
    assert sent["url"] == "https://btcpay.example.com/api/v1/stores/store1/invoices"
    assert sent["json"]["amount"] == "59.97"
    assert sent["json"]["metadata"]["orderId"] == "order-1"
    assert sent["json"]["checkout"] == {"redirectURL": "https://shop/ok"}
    assert sent["headers"]["Authorization"] == "token key1"


def test_btcpay_client_raises_on_api_error(monkeypatch):
    monkeypatch.setattr("requests.Session.post", lambda self, url, json=None, timeout=None: _Response(422, text="bad"))
    client = BTCPayClient("https://btcpay.example.com", "store1", "key1")

    with pytest.raises(BTCPayError):
        client.create_invoice(Decimal("1.00"), "USD", "order-1")


@pytest.mark.parametrize("response", [
    _Response(200, ValueError("Expecting value")),
    _Response(200, {"checkoutLink": "https://btcpay.example.com/i/x"}),
    _Response(200, ["unexpected"]),
])
def test_btcpay_client_rejects_malformed_success(monkeypatch, response):
    monkeypatch.setattr("requests.Session.post", lambda self, url, json=None, timeout=None: response)
    client = BTCPayClient("https://btcpay.example.com", "store1", "key1")

    with pytest.raises(BTCPayError):
        client.create_invoice(Decimal("1.00"), "USD", "order-1")


def test_btcpay_malformed_gateway_response_is_502(make_client, make_product, monkeypatch):
    client = make_client(BTCPAY_SERVER_URL="https://btcpay.example.com", BTCPAY_STORE_ID="store1", BTCPAY_API_KEY="key1")
    product = make_product("Logo Tee")
    monkeypatch.setattr("requests.Session.post", lambda self, url, json=None, timeout=None: _Response(200, {}))

    resp = client.post("/api/btcpay-checkout", json={"productId": product.id})

    assert resp.status_code == 502
