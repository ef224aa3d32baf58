import os

# Environnement de test, avant tout import de backend.config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS"] = "1"
os.environ.setdefault("ACCESS_TOKEN_SECRET", "test-access-secret-0123456789abcdef0123")
os.environ.setdefault("REFRESH_TOKEN_SECRET", "test-refresh-secret-0123456789abcdef012")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")
os.environ.setdefault("STRIPE_PUBLISHABLE_KEY", "pk_test_dummy")
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"

import hashlib
import hmac
import json
import time
from decimal import Decimal
from typing import Any, Dict, Generator

import pytest
from fastapi.testclient import TestClient

from backend.app import app as fastapi_app
from backend.infra.database import create_db_engine, get_db, make_session_factory
from backend.models import (
    AddressModel,
    Base,
    CartItemModel,
    OrderModel,
    ProductModel,
    UserModel,
)
from backend.utils.security import require_user

CUSTOMER: Dict[str, Any] = {
    "id": "user-1",
    "name": "Asha Client",
    "email": "asha@example.com",
    "roles": [],
    "is_verified": True,
}
OTHER_CUSTOMER: Dict[str, Any] = {
    "id": "user-2",
    "name": "Ravi Client",
    "email": "ravi@example.com",
    "roles": [],
    "is_verified": True,
}
VENDOR: Dict[str, Any] = {
    "id": "vendor-1",
    "name": "Vendeur",
    "email": "vendor@example.com",
    "roles": ["VENDOR"],
    "is_verified": True,
}

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)
        elif "tests/functional/" in nodeid:
            item.add_marker(pytest.mark.functional)

@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def engine():
    eng = create_db_engine("sqlite://")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()

@pytest.fixture()
def session_factory(engine):
    return make_session_factory(engine)

@pytest.fixture()
def seed(session_factory) -> Dict[str, Any]:
    """
    Jeu de données de référence:
    - user-1 a une adresse addr-1 et un panier: prod-a x3 (stock 5), prod-b x2 (stock 2)
    - prod-c est soldé (80 -> 60), prod-off est désactivé
    - user-2 possède addr-2
    """
    with session_factory() as db:
        for u in (CUSTOMER, OTHER_CUSTOMER, VENDOR):
            db.add(UserModel(id=u["id"], name=u["name"], email=u["email"], password_hash="!", roles=u["roles"], is_verified=True))
        db.add(AddressModel(id="addr-1", user_id="user-1", street="12 MG Road", city="Bengaluru", state="KA", postal_code="560001", country="IN", phone="+919800000001", is_default=True))
        db.add(AddressModel(id="addr-2", user_id="user-2", street="4 Park St", city="Kolkata", state="WB", postal_code="700016", country="IN", phone="+919800000002"))
        db.add_all([
            ProductModel(id="prod-a", name="Bague A", price=Decimal("100.00"), stock=5),
            ProductModel(id="prod-b", name="Collier B", price=Decimal("250.00"), stock=2),
            ProductModel(id="prod-c", name="Bracelet C", price=Decimal("80.00"), sale_price=Decimal("60.00"), stock=10),
            ProductModel(id="prod-off", name="Broche retirée", price=Decimal("30.00"), stock=3, is_active=False),
        ])
        db.add_all([
            CartItemModel(user_id="user-1", product_id="prod-a", quantity=3),
            CartItemModel(user_id="user-1", product_id="prod-b", quantity=2),
        ])
        db.commit()
    return {"user_id": "user-1", "address_id": "addr-1"}

@pytest.fixture()
def stock_of(session_factory):
    def _stock(product_id: str) -> int:
        with session_factory() as db:
            return db.get(ProductModel, product_id).stock
    return _stock

@pytest.fixture()
def load_order(session_factory):
    def _load(order_id: str) -> OrderModel:
        from backend.orders import repository
        with session_factory() as db:
            return repository.get_order(db, order_id)
    return _load

@pytest.fixture()
def cart_size(session_factory):
    def _count(user_id: str) -> int:
        with session_factory() as db:
            return db.query(CartItemModel).filter(CartItemModel.user_id == user_id).count()
    return _count

@pytest.fixture()
def client(app, session_factory) -> Generator[TestClient, None, None]:
    def _get_db():
        with session_factory() as db:
            yield db
    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.pop(get_db, None)

# Simuler un utilisateur authentifié pour les endpoints protégés
@pytest.fixture(autouse=True)
def _override_require_user(app):
    app.dependency_overrides[require_user] = lambda: CUSTOMER
    try:
        yield
    finally:
        app.dependency_overrides.pop(require_user, None)

@pytest.fixture()
def as_vendor(app):
    app.dependency_overrides[require_user] = lambda: VENDOR
    yield VENDOR
    app.dependency_overrides[require_user] = lambda: CUSTOMER

@pytest.fixture()
def as_other_customer(app):
    app.dependency_overrides[require_user] = lambda: OTHER_CUSTOMER
    yield OTHER_CUSTOMER
    app.dependency_overrides[require_user] = lambda: CUSTOMER

# Webhook Stripe signé avec le secret de test (en-tête t=...,v1=...)
@pytest.fixture()
def post_webhook(client):
    def _post(event: Dict[str, Any], secret: str = "whsec_test_secret", signature: str = None):
        payload = json.dumps(event)
        if signature is None:
            t = int(time.time())
            digest = hmac.new(secret.encode("utf-8"), f"{t}.{payload}".encode("utf-8"), hashlib.sha256).hexdigest()
            signature = f"t={t},v1={digest}"
        headers = {"Content-Type": "application/json"}
        if signature:
            headers["stripe-signature"] = signature
        return client.post("/api/v1/payments/webhook", content=payload, headers=headers)
    return _post
