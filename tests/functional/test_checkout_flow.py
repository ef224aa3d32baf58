import hashlib
import hmac
import json
import time

import pytest
import stripe
from fastapi.testclient import TestClient

from backend.utils.security import require_user

VENDOR = {"id": "vendor-1", "name": "Vendeur", "email": "vendor@example.com", "roles": ["VENDOR"], "is_verified": True}
CUSTOMER = {"id": "user-1", "name": "Asha Client", "email": "asha@example.com", "roles": [], "is_verified": True}


def _signed(payload: str, secret: str = "whsec_test_secret") -> str:
    t = int(time.time())
    sig = hmac.new(secret.encode("utf-8"), f"{t}.{payload}".encode("utf-8"), hashlib.sha256).hexdigest()
    return f"t={t},v1={sig}"


@pytest.mark.functional
class TestCheckoutFlow:
    """
    Parcours d'achat complet: panier -> commande -> PaymentIntent -> webhook -> expédition -> livraison.
    """

    def test_pay_online_then_ship_and_deliver(self, app, client: TestClient, seed, stock_of, monkeypatch):
        monkeypatch.setattr(
            stripe.PaymentIntent,
            "create",
            lambda **kw: {"id": "pi_flow", "client_secret": "pi_flow_secret", "amount": kw["amount"], "currency": kw["currency"]},
        )

        # 1. Le client ajoute un article soldé
        res = client.post("/api/v1/cart/items", json={"productId": "prod-c", "quantity": 1})
        assert res.json()["data"]["summary"]["total"] == 860.0

        # 2. Création de la commande, paiement en ligne
        res = client.post("/api/v1/orders", json={"addressId": "addr-1", "paymentMethod": "CARD"})
        assert res.status_code == 201
        order = res.json()["data"]
        assert order["total"] == 860.0
        assert stock_of("prod-c") == 9
        assert client.get("/api/v1/cart").json()["data"]["items"] == []

        # 3. PaymentIntent rattaché à la commande
        res = client.post("/api/v1/payments/create-payment-intent", json={"orderId": order["id"]})
        assert res.status_code == 201
        assert res.json()["data"]["payment_intent_id"] == "pi_flow"

        # 4. Stripe notifie le succès (sans metadata: rapprochement par identifiant)
        payload = json.dumps({"id": "evt_flow", "type": "payment_intent.succeeded", "data": {"object": {"id": "pi_flow"}}})
        res = client.post("/api/v1/payments/webhook", content=payload, headers={"stripe-signature": _signed(payload)})
        assert res.status_code == 200
        assert res.json()["data"]["order_status"] == "CONFIRMED"

        # 5. Le vendeur expédie puis livre
        app.dependency_overrides[require_user] = lambda: VENDOR
        try:
            for status in ("SHIPPED", "DELIVERED"):
                res = client.patch(f"/api/v1/orders/{order['id']}/status", json={"status": status})
                assert res.status_code == 200
            summary = client.get("/api/v1/orders/summary").json()["data"]
        finally:
            app.dependency_overrides[require_user] = lambda: CUSTOMER

        assert summary["orders_by_status"]["DELIVERED"] == 1
        assert summary["revenue"] == 860.0

        # 6. Le client ne peut plus annuler une commande livrée
        res = client.get(f"/api/v1/orders/{order['id']}")
        assert res.json()["data"]["status"] == "DELIVERED"
        assert res.json()["data"]["payment"]["status"] == "CONFIRMED"
        assert client.post(f"/api/v1/orders/{order['id']}/cancel").status_code == 400

    def test_failed_payment_releases_stock(self, client: TestClient, seed, stock_of):
        order = client.post("/api/v1/orders/create", json={"addressId": "addr-1", "paymentMethod": "STRIPE"}).json()["data"]
        assert stock_of("prod-b") == 0

        payload = json.dumps({
            "id": "evt_fail",
            "type": "payment_intent.payment_failed",
            "data": {"object": {"id": "pi_declined", "metadata": {"orderId": order["id"]}}},
        })
        res = client.post("/api/v1/payments/webhook", content=payload, headers={"stripe-signature": _signed(payload)})
        assert res.json()["data"]["order_status"] == "CANCELLED"
        assert stock_of("prod-b") == 2

        # un produit libéré peut de nouveau être commandé
        res = client.post("/api/v1/cart/items", json={"productId": "prod-b", "quantity": 2})
        assert res.status_code == 200
