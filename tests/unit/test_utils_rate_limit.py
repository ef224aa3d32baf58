from fastapi import FastAPI, Depends, Request
from fastapi.testclient import TestClient

from backend.utils.rate_limit import optional_rate_limit, rate_limit_health_info
from backend.utils.security import ACCESS_COOKIE_NAME


def _make_app(times=2, seconds=60):
    app = FastAPI()

    @app.get("/limitedA", dependencies=[Depends(optional_rate_limit(times, seconds))])
    def limited_a():
        return {"ok": True}

    @app.get("/limitedB", dependencies=[Depends(optional_rate_limit(times, seconds))])
    def limited_b():
        return {"ok": True}

    @app.get("/rl_info")
    def rl_info(request: Request):
        return rate_limit_health_info(request)

    return app


def test_rate_limit_fallback_blocks_after_limit(monkeypatch):
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    client = TestClient(_make_app(times=2, seconds=60))

    assert client.get("/limitedA").status_code == 200
    assert client.get("/limitedA").status_code == 200
    assert client.get("/limitedA").status_code == 429


def test_rate_limit_is_per_path_and_cookie(monkeypatch):
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    client = TestClient(_make_app(times=1, seconds=60))
    client.cookies.set(ACCESS_COOKIE_NAME, "some-token")

    assert client.get("/limitedA").status_code == 200
    assert client.get("/limitedA").status_code == 429
    # autre chemin => autre clé
    assert client.get("/limitedB").status_code == 200


def test_disabled_flag_skips_limiter(monkeypatch):
    monkeypatch.delenv("LOCAL_RATE_LIMIT_FALLBACK", raising=False)
    app = _make_app(times=1, seconds=60)
    app.state.rate_limit_enabled = False
    client = TestClient(app)

    for _ in range(3):
        assert client.get("/limitedA").status_code == 200

    info = client.get("/rl_info").json()
    assert info["enabled"] is False
    assert info["ready"] is False
