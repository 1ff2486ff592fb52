"""Explicit caller identity passed into every orchestrator call."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
import re

from .roles import Role, normalize_role

_SPACES = re.compile(r"\s+")


def normalize_branch(value: str | None) -> str:
    """Branch names compare trimmed, upper-cased, with single spaces."""
    return _SPACES.sub(" ", str(value or "").strip()).upper()


@dataclass(frozen=True)
class Requester:
    """
    Who is asking. Built by the HTTP layer from the authenticated user; the
    core never reads identity from ambient state.
    """

    service_no: str
    """Employee service number; the identity used for ownership and assignee checks."""

    role: Role
    """Canonical role. Legacy names are normalized by ``of``."""

    name: str | None = None
    """Display name; for logs and UI only."""

    branches: frozenset[str] = field(default_factory=frozenset)
    """Normalized branches the officer covers; routes Verify and Dispatch work."""

    @classmethod
    def of(
        cls,
        service_no: str,
        role: Role | str,
        name: str | None = None,
        branches: Iterable[str] = (),
    ) -> Requester:
        return cls(
            service_no=str(service_no).strip(),
            role=normalize_role(role),
            name=name,
            branches=frozenset(b for b in (normalize_branch(x) for x in branches) if b),
        )

    def matches(self, service_no: str | None) -> bool:
        """Case-insensitive service number comparison."""
        if not service_no:
            return False
        return self.service_no.strip().casefold() == str(service_no).strip().casefold()

    def covers(self, location: str | None) -> bool:
        branch = normalize_branch(location)
        return bool(branch) and branch in self.branches

    def to_dict(self) -> dict[str, object]:
        return {
            "service_no": self.service_no,
            "role": self.role.value,
            "name": self.name,
            "branches": sorted(self.branches),
        }
