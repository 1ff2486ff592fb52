"""Configuration from environment variables. No hardcoded secrets outside development."""

from __future__ import annotations

import os
from dataclasses import dataclass


def _getenv(key: str, default: str | None = None) -> str | None:
    return os.environ.get(key, default)


def _getenv_int(key: str, default: int) -> int:
    raw = os.environ.get(key)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class IdentityConfig:
    """
    Session token and directory configuration.

    Required (for validation):
        GATEPASS_JWT_SECRET: HMAC key used to sign and verify session tokens.

    Optional:
        GATEPASS_JWT_ALGORITHM: Signing algorithm (default HS256).
        GATEPASS_TOKEN_LEEWAY_SECONDS: Tolerance for exp/nbf (default 60).
        GATEPASS_TOKEN_TTL_SECONDS: Lifetime of issued tokens (default 8 hours).

    For the employee directory lookup:
        GATEPASS_DIRECTORY_BASE_URL: ERP API base; unset disables the lookup.
        GATEPASS_DIRECTORY_USERNAME / GATEPASS_DIRECTORY_PASSWORD: sent as
        ``UserName`` / ``Password`` headers.
        GATEPASS_DIRECTORY_TIMEOUT_SECONDS: Per-call timeout (default 10).
    """

    jwt_secret: str
    jwt_algorithm: str = "HS256"
    leeway_seconds: int = 60
    token_ttl_seconds: int = 8 * 3600
    directory_base_url: str | None = None
    directory_username: str | None = None
    directory_password: str | None = None
    directory_timeout_seconds: int = 10

    @property
    def directory_enabled(self) -> bool:
        return bool(self.directory_base_url)

    @classmethod
    def from_environ(cls) -> IdentityConfig:
        secret = _strip_or_none(_getenv("GATEPASS_JWT_SECRET"))
        if not secret:
            raise _config_error("GATEPASS_JWT_SECRET must be set")
        return cls(
            jwt_secret=secret,
            jwt_algorithm=(_getenv("GATEPASS_JWT_ALGORITHM") or "HS256").strip(),
            leeway_seconds=_getenv_int("GATEPASS_TOKEN_LEEWAY_SECONDS", 60),
            token_ttl_seconds=_getenv_int("GATEPASS_TOKEN_TTL_SECONDS", 8 * 3600),
            directory_base_url=_strip_or_none(_getenv("GATEPASS_DIRECTORY_BASE_URL")),
            directory_username=_strip_or_none(_getenv("GATEPASS_DIRECTORY_USERNAME")),
            directory_password=_strip_or_none(_getenv("GATEPASS_DIRECTORY_PASSWORD")),
            directory_timeout_seconds=_getenv_int("GATEPASS_DIRECTORY_TIMEOUT_SECONDS", 10),
        )


def _strip_or_none(s: str | None) -> str | None:
    if s is None:
        return None
    t = s.strip()
    return t if t else None


def _config_error(msg: str) -> Exception:
    return ValueError(msg)
