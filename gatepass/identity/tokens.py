"""
Issue and validate session bearer tokens.

Background:
    After login the client sends ``Authorization: Bearer <token>`` on every
    call. The token is an HS256 JWT signed with our own secret. Before we
    trust anything in it we must:

    1. Verify the **signature** (proves we issued it).
    2. Check it hasn't **expired** (``exp``) and isn't used before ``nbf``.
    3. Require a non-empty ``sub`` (the actor's service number).

    The ``role`` claim is only a hint for clients. The role used for
    authorization is always the one stored on the user record.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from .config import IdentityConfig

logger = logging.getLogger(__name__)


class TokenValidationError(Exception):
    """Raised when token validation fails. Do not log the token."""

    pass


@dataclass(frozen=True)
class TokenClaims:
    service_no: str
    role: str | None
    name: str | None
    issued_at: datetime | None
    expires_at: datetime | None

    def to_dict(self) -> dict[str, object]:
        return {
            "service_no": self.service_no,
            "role": self.role,
            "name": self.name,
            "issued_at": self.issued_at.isoformat() if self.issued_at else None,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }


def _timestamp(value: Any) -> datetime | None:
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    return None


def _extract_claims(payload: dict[str, Any]) -> TokenClaims:
    service_no = payload.get("sub")
    if isinstance(service_no, (int, float)):
        service_no = str(int(service_no))
    if not isinstance(service_no, str) or not service_no.strip():
        raise TokenValidationError("Invalid token: missing subject")

    role = payload.get("role")
    name = payload.get("name")
    return TokenClaims(
        service_no=service_no.strip(),
        role=str(role) if role else None,
        name=str(name) if name else None,
        issued_at=_timestamp(payload.get("iat")),
        expires_at=_timestamp(payload.get("exp")),
    )


class SessionTokenValidator:
    def __init__(self, config: IdentityConfig | None = None) -> None:
        self._config = config or IdentityConfig.from_environ()

    def validate(self, token: str) -> TokenClaims:
        """Validate signature and lifetime, then return the claims."""
        if not token:
            raise TokenValidationError("Invalid token: empty")
        try:
            payload = jwt.decode(
                token,
                self._config.jwt_secret,
                algorithms=[self._config.jwt_algorithm],
                leeway=self._config.leeway_seconds,
                options={
                    "verify_signature": True,
                    "verify_exp": True,
                    "verify_nbf": True,
                    "require": ["exp", "sub"],
                },
            )
        except jwt.ExpiredSignatureError as e:
            logger.info("Token expired")
            raise TokenValidationError("Token expired") from e
        except jwt.InvalidTokenError as e:
            logger.info("Token invalid: %s", type(e).__name__)
            raise TokenValidationError("Invalid token") from e

        return _extract_claims(payload)


def issue_token(
    config: IdentityConfig,
    service_no: str,
    *,
    role: str | None = None,
    name: str | None = None,
    now: datetime | None = None,
) -> str:
    issued = now or datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": service_no,
        "iat": int(issued.timestamp()),
        "exp": int((issued + timedelta(seconds=config.token_ttl_seconds)).timestamp()),
    }
    if role:
        payload["role"] = role
    if name:
        payload["name"] = name
    return jwt.encode(payload, config.jwt_secret, algorithm=config.jwt_algorithm)
