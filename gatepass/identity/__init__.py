"""
Identity helpers: session bearer tokens and the employee directory lookup.

This package has no dependency on other gatepass packages (db, security,
workflow). Use SessionTokenValidator.validate() with a bearer token string to
get TokenClaims.
"""

from .config import IdentityConfig
from .directory import DirectoryClient
from .tokens import SessionTokenValidator, TokenClaims, TokenValidationError, issue_token

__all__ = [
    "DirectoryClient",
    "IdentityConfig",
    "SessionTokenValidator",
    "TokenClaims",
    "TokenValidationError",
    "issue_token",
]
