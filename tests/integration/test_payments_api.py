import pytest
import stripe

from backend import config
from backend.models import CartItemModel, PaymentMethod
from backend.orders import service as orders_service


@pytest.fixture()
def order_id(session_factory, seed):
    with session_factory() as db:
        return orders_service.create_order(db, "user-1", "addr-1", PaymentMethod.ONLINE_PAYMENT).id


@pytest.fixture()
def fake_intents(monkeypatch):
    calls = []

    def fake_create(**kwargs):
        calls.append(kwargs)
        return {
            "id": f"pi_test_{len(calls)}",
            "client_secret": f"pi_test_{len(calls)}_secret_x",
            "amount": kwargs["amount"],
            "currency": kwargs["currency"],
            "metadata": kwargs["metadata"],
        }

    monkeypatch.setattr(stripe.PaymentIntent, "create", fake_create)
    return calls


def test_payments_config(client):
    res = client.get("/api/v1/payments/config")
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["publishable_key"] == config.STRIPE_PUBLISHABLE_KEY
    assert data["currency"] == config.DEFAULT_CURRENCY


def test_intent_for_order_records_stripe_id(client, order_id, fake_intents, load_order):
    res = client.post("/api/v1/payments/create-payment-intent", json={"orderId": order_id})
    assert res.status_code == 201
    data = res.json()["data"]
    assert data["payment_intent_id"] == "pi_test_1"
    assert data["client_secret"] == "pi_test_1_secret_x"
    assert data["amount"] == 800.0

    sent = fake_intents[0]
    assert sent["amount"] == 80000
    assert sent["metadata"] == {"user_id": "user-1", "order_id": order_id}
    assert load_order(order_id).payment.stripe_payment_id == "pi_test_1"


def test_intent_for_order_refuses_another_currency(client, order_id, fake_intents, load_order):
    res = client.post("/api/v1/payments/create-payment-intent", json={"orderId": order_id, "currency": "usd"})
    assert res.status_code == 400
    assert res.json()["success"] is False
    assert fake_intents == []
    assert load_order(order_id).payment.stripe_payment_id is None


def test_intent_for_order_uses_the_order_currency(client, order_id, fake_intents, load_order):
    order_currency = load_order(order_id).payment.currency.lower()
    res = client.post(
        "/api/v1/payments/create-payment-intent",
        json={"orderId": order_id, "currency": order_currency.upper()},
    )
    assert res.status_code == 201
    assert res.json()["data"]["currency"] == order_currency
    assert fake_intents[0]["currency"] == order_currency


def test_intent_from_cart(client, seed, fake_intents):
    res = client.post("/api/v1/payments/create-payment-intent", json={"currency": "INR"})
    assert res.status_code == 201
    assert res.json()["data"]["currency"] == "inr"
    assert fake_intents[0]["amount"] == 80000
    assert "order_id" not in fake_intents[0]["metadata"]


def test_intent_with_empty_cart(client, seed, session_factory, fake_intents):
    with session_factory() as db:
        db.query(CartItemModel).delete()
        db.commit()
    res = client.post("/api/v1/payments/create-payment-intent", json={})
    assert res.status_code == 400
    assert fake_intents == []


def test_intent_for_someone_elses_order(client, order_id, fake_intents, as_other_customer):
    res = client.post("/api/v1/payments/create-payment-intent", json={"order_id": order_id})
    assert res.status_code == 404
    assert fake_intents == []


def test_intent_for_cancelled_order(client, order_id, session_factory, fake_intents):
    with session_factory() as db:
        orders_service.cancel_order(db, order_id, "user-1")
    res = client.post("/api/v1/payments/create-payment-intent", json={"order_id": order_id})
    assert res.status_code == 400
    assert fake_intents == []


def test_gateway_error_is_502(client, order_id, monkeypatch, load_order):
    def boom(**kwargs):
        raise stripe.APIConnectionError("network down")

    monkeypatch.setattr(stripe.PaymentIntent, "create", boom)
    res = client.post("/api/v1/payments/create-payment-intent", json={"order_id": order_id})
    assert res.status_code == 502
    assert res.json()["success"] is False
    assert load_order(order_id).payment.stripe_payment_id is None


def test_get_intent_is_owner_only(client, monkeypatch):
    def fake_retrieve(intent_id, **kwargs):
        return {"id": intent_id, "status": "succeeded", "amount": 49950, "currency": "inr", "metadata": {"user_id": "user-1"}}

    monkeypatch.setattr(stripe.PaymentIntent, "retrieve", fake_retrieve)
    res = client.get("/api/v1/payments/payment-intent/pi_1")
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["amount"] == 499.5
    assert data["status"] == "succeeded"

    monkeypatch.setattr(stripe.PaymentIntent, "retrieve", lambda intent_id, **kw: {**fake_retrieve(intent_id), "metadata": {"user_id": "user-2"}})
    assert client.get("/api/v1/payments/payment-intent/pi_1").status_code == 403


def test_get_unknown_intent(client, monkeypatch):
    def missing(intent_id, **kwargs):
        raise stripe.InvalidRequestError("No such payment_intent", "id")

    monkeypatch.setattr(stripe.PaymentIntent, "retrieve", missing)
    assert client.get("/api/v1/payments/payment-intent/pi_missing").status_code == 404


def test_checkout_session_for_order(client, order_id, monkeypatch):
    captured = {}

    def fake_session(**kwargs):
        captured.update(kwargs)
        return {"id": "cs_test_1", "url": "https://checkout.stripe.test/cs_test_1"}

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_session)
    res = client.post("/api/v1/payments/create-checkout-session", json={"orderId": order_id})
    assert res.status_code == 201
    assert res.json()["data"] == {"id": "cs_test_1", "url": "https://checkout.stripe.test/cs_test_1"}

    assert captured["mode"] == "payment"
    assert captured["success_url"].startswith(config.FRONTEND_URL)
    assert captured["cancel_url"].startswith(config.FRONTEND_URL)
    assert captured["metadata"]["order_id"] == order_id
    assert captured["metadata"]["cart_total"] == "800.00"
    amounts = sorted((li["quantity"], li["price_data"]["unit_amount"]) for li in captured["line_items"])
    assert amounts == [(2, 25000), (3, 10000)]


def test_checkout_session_from_cart(client, seed, monkeypatch):
    captured = {}

    def fake_session(**kwargs):
        captured.update(kwargs)
        return {"id": "cs_test_2", "url": "https://checkout.stripe.test/cs_test_2"}

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_session)
    res = client.post("/api/v1/payments/create-checkout-session", json={})
    assert res.status_code == 201
    assert "order_id" not in captured["metadata"]
    assert captured["metadata"]["user_id"] == "user-1"
