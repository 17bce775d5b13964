from __future__ import annotations

from cursorcalc.core.config import AppSettings


def clear_env(monkeypatch) -> None:
    for name in (
        "CORS_ORIGINS",
        "FRONTEND_ORIGIN",
        "HISTORY_BACKEND",
        "HISTORY_SQLITE_URL",
        "SQLITE_URL",
        "HISTORY_SELECT_MODE",
    ):
        monkeypatch.delenv(name, raising=False)


def test_resolved_cors_origins_appends_frontend_origin(monkeypatch) -> None:
    clear_env(monkeypatch)
    frontend_origin = "https://calculator.example.com"
    monkeypatch.setenv("FRONTEND_ORIGIN", frontend_origin)

    settings = AppSettings(_env_file=None)

    origins = settings.resolved_cors_origins
    assert "http://localhost:5173" in origins
    assert frontend_origin in origins


def test_resolved_cors_origins_deduplicates(monkeypatch) -> None:
    clear_env(monkeypatch)
    frontend_origin = "https://calculator.example.com"
    monkeypatch.setenv(
        "CORS_ORIGINS",
        '["http://localhost:5173", "https://calculator.example.com"]',
    )
    monkeypatch.setenv("FRONTEND_ORIGIN", f"{frontend_origin}/")

    settings = AppSettings(_env_file=None)

    origins = settings.resolved_cors_origins
    assert origins.count(frontend_origin) == 1


def test_history_defaults_to_memory(monkeypatch) -> None:
    clear_env(monkeypatch)

    settings = AppSettings(_env_file=None)

    assert settings.history_backend == "memory"
    assert settings.uses_sql_history is False
    assert settings.history_select_mode == "expression"
    assert settings.max_expression_length == 200
    assert settings.session_idle_ttl_seconds == 3600.0


def test_history_settings_from_environment(monkeypatch) -> None:
    clear_env(monkeypatch)
    monkeypatch.setenv("HISTORY_BACKEND", "sqlite")
    monkeypatch.setenv("SQLITE_URL", "sqlite:///./tmp/history.db")
    monkeypatch.setenv("HISTORY_SELECT_MODE", "result")

    settings = AppSettings(_env_file=None)

    assert settings.uses_sql_history is True
    assert settings.history_sqlite_url == "sqlite:///./tmp/history.db"
    assert settings.history_select_mode == "result"
