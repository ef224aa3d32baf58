import pytest
from fastapi.testclient import TestClient

from backend.models import UserModel
from backend.utils.security import ACCESS_COOKIE_NAME, REFRESH_COOKIE_NAME, hash_password, require_user

# Les fixtures `app` et `client` sont fournies par `conftest.py`

PASSWORD = "ValidPassword123!"


@pytest.fixture()
def real_auth(app):
    # Parcours réel: pas d'utilisateur simulé
    app.dependency_overrides.pop(require_user, None)
    yield


@pytest.fixture()
def account(session_factory):
    with session_factory() as db:
        db.add(UserModel(id="user-9", name="Meera", email="meera@example.com", password_hash=hash_password(PASSWORD), roles=[], is_verified=True))
        db.commit()
    return {"id": "user-9", "email": "meera@example.com"}


@pytest.mark.functional
class TestAuthFlow:
    """
    Tests fonctionnels pour le parcours complet d'authentification (API JSON).
    """

    def test_full_auth_flow(self, client: TestClient, real_auth, account):
        """
        Scénario complet :
        1. Échec de connexion avec un mauvais mot de passe.
        2. Connexion réussie (email insensible à la casse).
        3. /me via le cookie d'accès.
        4. Rafraîchissement du jeton d'accès via le cookie refresh_token.
        5. Déconnexion et vérification de la suppression des cookies.
        """
        res = client.post("/api/v1/auth/login", json={"email": account["email"], "password": "wrong"})
        assert res.status_code == 401
        assert res.json()["success"] is False
        assert ACCESS_COOKIE_NAME not in client.cookies

        res = client.post("/api/v1/auth/login", json={"email": "MEERA@example.com", "password": PASSWORD})
        assert res.status_code == 200
        data = res.json()["data"]
        assert data["token_type"] == "bearer"
        assert data["user"]["id"] == account["id"]
        assert ACCESS_COOKIE_NAME in client.cookies
        assert REFRESH_COOKIE_NAME in client.cookies
        set_cookie = res.headers.get("set-cookie", "").lower()
        assert "httponly" in set_cookie and "samesite=strict" in set_cookie

        me = client.get("/api/v1/auth/me")
        assert me.status_code == 200
        assert me.json()["data"]["email"] == account["email"]

        res = client.post("/api/v1/auth/refresh")
        assert res.status_code == 200
        assert res.json()["data"]["user"]["id"] == account["id"]

        res = client.post("/api/v1/auth/logout")
        assert res.status_code == 200
        assert ACCESS_COOKIE_NAME not in client.cookies
        assert client.get("/api/v1/auth/me").status_code == 401

    def test_bearer_token_from_login(self, client: TestClient, real_auth, account, seed):
        token = client.post("/api/v1/auth/login", json={"email": account["email"], "password": PASSWORD}).json()["data"]["access_token"]
        client.cookies.clear()

        res = client.get("/api/v1/cart", headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 200
        assert res.json()["data"]["items"] == []

    def test_protected_routes_require_a_token(self, client: TestClient, real_auth):
        assert client.get("/api/v1/orders").status_code == 401
        assert client.post("/api/v1/orders/create", json={"addressId": "addr-1"}).status_code == 401
        assert client.post("/api/v1/auth/refresh").status_code == 401


@pytest.mark.functional
class TestRegistrationFlow:
    """Inscription puis connexion, adresse et commande avec le compte créé."""

    def test_register_login_and_order(self, client: TestClient, real_auth, seed):
        body = {"name": "Kavya", "email": "kavya@example.com", "password": PASSWORD}
        res = client.post("/api/v1/auth/register", json=body)
        assert res.status_code == 201
        user = res.json()["data"]["user"]
        assert user["email"] == "kavya@example.com"
        assert ACCESS_COOKIE_NAME not in client.cookies

        again = client.post("/api/v1/auth/register", json=body)
        assert again.status_code == 409
        assert again.json()["success"] is False

        res = client.post("/api/v1/auth/login", json={"email": "kavya@example.com", "password": PASSWORD})
        assert res.status_code == 200

        address = client.post(
            "/api/v1/addresses",
            json={
                "street": "3 Church St",
                "city": "Bengaluru",
                "state": "KA",
                "postal_code": "560001",
                "country": "IN",
                "phone": "+919800000003",
            },
        ).json()["data"]
        assert address["is_default"] is True

        assert client.post("/api/v1/cart/items", json={"productId": "prod-c", "quantity": 2}).status_code == 200
        order = client.post("/api/v1/orders", json={"addressId": address["id"]})
        assert order.status_code == 201
        assert order.json()["data"]["total"] == 120.0
        assert order.json()["data"]["user_id"] == user["id"]

    def test_register_validation(self, client: TestClient, real_auth):
        res = client.post("/api/v1/auth/register", json={"name": "K", "email": "kavya@example.com", "password": "short"})
        assert res.status_code == 400
        res = client.post("/api/v1/auth/register", json={"name": "K", "email": "not-an-email", "password": PASSWORD})
        assert res.status_code == 400
