from backend import __main__ as entrypoint
from backend import config


def test_run_options_follow_config(monkeypatch):
    monkeypatch.setattr(config, "HOST", "0.0.0.0")
    monkeypatch.setattr(config, "PORT", 9100)
    monkeypatch.setattr(config, "UVICORN_RELOAD", True)
    monkeypatch.setattr(config, "LOG_LEVEL", "debug")

    assert entrypoint.run_options() == {"host": "0.0.0.0", "port": 9100, "reload": True, "log_level": "debug"}


def test_main_starts_uvicorn_on_the_asgi_app(monkeypatch):
    calls = []
    monkeypatch.setattr(entrypoint.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    monkeypatch.setattr(config, "PORT", 8080)

    entrypoint.main()

    assert calls == [("backend.asgi:app", {**entrypoint.run_options(), "port": 8080})]
    assert calls[0][1]["host"] == config.HOST
