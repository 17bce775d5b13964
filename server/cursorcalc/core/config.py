from functools import lru_cache
from typing import List, Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    api_title: str = "Cursor Calculator API"
    api_version: str = "0.1.0"
    log_level: str = "INFO"

    enable_sse: bool = True
    event_backlog_size: int = Field(default=200, ge=1)
    max_expression_length: int = Field(default=200, ge=1)
    session_idle_ttl_seconds: float | None = Field(default=3600.0, gt=0)
    history_select_mode: Literal["expression", "result"] = "expression"

    history_backend: str = Field("memory", alias="HISTORY_BACKEND")  # memory | sqlite | postgres
    history_sqlite_url: str = Field(
        default="sqlite:///./data/sqlite/history.db",
        validation_alias=AliasChoices("HISTORY_SQLITE_URL", "SQLITE_URL"),
    )
    history_postgres_url: str | None = Field(
        default=None,
        alias="HISTORY_POSTGRES_URL",
    )

    cors_origins: List[str] = Field(
        default_factory=lambda: [
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ]
    )
    frontend_origin: str | None = Field(default=None, alias="FRONTEND_ORIGIN")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def resolved_cors_origins(self) -> List[str]:
        """
        Returns the configured CORS origins plus the optional frontend origin, deduped.
        """
        normalized: list[str] = []

        def _append(origin: str | None) -> None:
            if not origin:
                return
            cleaned = origin.rstrip("/")
            if cleaned not in normalized:
                normalized.append(cleaned)

        for origin in self.cors_origins:
            _append(origin)

        _append(self.frontend_origin)
        return normalized

    @property
    def uses_sql_history(self) -> bool:
        return (self.history_backend or "memory").strip().lower() != "memory"


@lru_cache
def get_settings() -> AppSettings:
    return AppSettings()
