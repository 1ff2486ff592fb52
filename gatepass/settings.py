from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    App settings.

    Notes:
    - Defaults are local and deterministic (SQLite file next to the repo).
    - Every field can be overridden with a ``GATEPASS_`` environment variable.
    - ``jwt_secret`` must be overridden outside development.
    """

    model_config = SettingsConfigDict(env_prefix="GATEPASS_", extra="ignore")

    db_url: str | None = None
    security_config_path: str | None = None
    log_level: str = "INFO"

    jwt_secret: str = "change-me-dev-only-secret-0123456789"
    jwt_algorithm: str = "HS256"
    token_leeway_seconds: int = 60
    token_ttl_seconds: int = 8 * 3600

    reference_prefix: str = "REQ"

    directory_base_url: str | None = None
    directory_username: str | None = None
    directory_password: str | None = None
    directory_timeout_seconds: int = 10

    def resolved_db_url(self) -> str:
        if self.db_url:
            return self.db_url

        repo_root = Path(__file__).resolve().parents[1]
        db_path = repo_root / "gatepass.db"
        return f"sqlite:///{db_path}"

    def resolved_security_config_path(self) -> Path:
        if self.security_config_path:
            return Path(self.security_config_path)

        repo_root = Path(__file__).resolve().parents[1]
        return repo_root / "config" / "security_config.yaml"


@lru_cache
def get_settings() -> Settings:
    return Settings()
