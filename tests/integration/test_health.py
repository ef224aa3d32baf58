def test_health_root(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json()["data"] == {"ok": True}


def test_health_db(client):
    res = client.get("/health/db")
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["connect_ok"] is True
    assert data["dialect"] == "sqlite"


def test_health_db_unreachable(client, monkeypatch):
    monkeypatch.setattr("backend.health.service.ping", lambda db: False)
    res = client.get("/health/db")
    assert res.status_code == 503
    assert res.json()["success"] is False


def test_health_rate_limit_disabled_in_tests(client):
    data = client.get("/health/rate-limit").json()["data"]
    assert data["enabled"] is False


def test_security_headers(client):
    res = client.get("/health")
    assert res.headers["X-Frame-Options"] == "DENY"
    assert res.headers["X-Content-Type-Options"] == "nosniff"
    assert "default-src 'none'" in res.headers["Content-Security-Policy"]


def test_api_responses_are_not_cached(client, seed):
    res = client.get("/api/v1/cart")
    assert "no-store" in res.headers.get("Cache-Control", "")
