"""Closed role and action enumerations, plus legacy role-name normalization."""

from __future__ import annotations

from enum import Enum

from .errors import UnknownRole


class Role(str, Enum):
    """Application roles. Values are the exact, case-sensitive wire names."""

    SUPER_ADMIN = "SuperAdmin"
    ADMIN = "Admin"
    USER = "User"
    APPROVER = "Approver"
    SECURITY_OFFICER = "Security Officer"
    PLEADER = "Pleader"
    DISPATCHER = "Dispatcher"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


class Action(str, Enum):
    VIEW = "view"
    CREATE_REQUEST = "create-request"
    APPROVE_STAGE = "approve-stage"
    REJECT_STAGE = "reject-stage"
    DISPATCH = "dispatch"
    RECEIVE = "receive"
    MARK_RETURNED = "mark-returned"
    CANCEL = "cancel"
    ADMINISTER_REFERENCE_DATA = "administer-reference-data"
    ADMINISTER_USERS = "administer-users"


_DISPLAY_NAMES: dict[Role, str] = {
    Role.SUPER_ADMIN: "Super Administrator",
    Role.ADMIN: "Administrator",
    Role.USER: "User",
    Role.APPROVER: "Executive Officer",
    Role.SECURITY_OFFICER: "Security Officer",
    Role.PLEADER: "Patrol Leader",
    Role.DISPATCHER: "Dispatcher",
}

# Older deployments stored these names; they are accepted on input only.
LEGACY_ALIASES: dict[str, Role] = {
    "RO1": Role.SECURITY_OFFICER,
    "Verifier": Role.SECURITY_OFFICER,
    "RO2": Role.PLEADER,
}

_BY_VALUE: dict[str, Role] = {r.value: r for r in Role}


def parse_role(value: str | Role | None) -> Role | None:
    """Return the canonical Role for ``value``, or None when it is not recognized."""
    if isinstance(value, Role):
        return value
    if value is None:
        return None
    name = str(value).strip()
    return _BY_VALUE.get(name) or LEGACY_ALIASES.get(name)


def normalize_role(value: str | Role | None) -> Role:
    """Like parse_role but raises UnknownRole instead of returning None."""
    role = parse_role(value)
    if role is None:
        raise UnknownRole(value)
    return role
