"""
Menu resolution: per-role navigation and in-page controls.

Menu order is presentation policy and fixed per role; callers must not
reorder entries. Every surface in a role's menu is also a surface the
authorization matrix lets that role reach (checked at import).
"""

from __future__ import annotations

from dataclasses import dataclass
import logging

from .authorization import AuthorizationMatrix, Surface
from .context import Requester
from .errors import MatrixConfigError
from .guards import (
    TransitionAction,
    can,
    check_cancel,
    check_mark_returned,
    check_owner_or_override,
    check_stage_action,
    plan_transition,
)
from .records import RequestRecord
from .roles import Action, Role, parse_role
from .status import Status, is_terminal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MenuEntry:
    title: str
    target: str

    def to_dict(self) -> dict[str, str]:
        return {"title": self.title, "target": self.target}


_TITLES: dict[Surface, str] = {
    Surface.NEW_REQUEST: "New Request",
    Surface.MY_REQUESTS: "My Requests",
    Surface.REQUEST_DETAILS: "Request Details",
    Surface.EXECUTIVE_APPROVAL: "Executive Approve",
    Surface.VERIFY: "Verify",
    Surface.DISPATCH: "Dispatch",
    Surface.RECEIVE: "Receive",
    Surface.ADMIN: "Admin",
}

_BASELINE: tuple[Surface, ...] = (Surface.NEW_REQUEST, Surface.MY_REQUESTS, Surface.RECEIVE)

_MENUS: dict[Role, tuple[Surface, ...]] = {
    Role.SUPER_ADMIN: (
        Surface.NEW_REQUEST,
        Surface.MY_REQUESTS,
        Surface.REQUEST_DETAILS,
        Surface.EXECUTIVE_APPROVAL,
        Surface.VERIFY,
        Surface.DISPATCH,
        Surface.RECEIVE,
        Surface.ADMIN,
    ),
    Role.ADMIN: (
        Surface.NEW_REQUEST,
        Surface.MY_REQUESTS,
        Surface.EXECUTIVE_APPROVAL,
        Surface.VERIFY,
        Surface.DISPATCH,
        Surface.RECEIVE,
        Surface.ADMIN,
    ),
    Role.USER: _BASELINE,
    Role.APPROVER: (Surface.NEW_REQUEST, Surface.MY_REQUESTS, Surface.EXECUTIVE_APPROVAL, Surface.RECEIVE),
    Role.SECURITY_OFFICER: (Surface.NEW_REQUEST, Surface.MY_REQUESTS, Surface.VERIFY, Surface.RECEIVE),
    Role.PLEADER: (Surface.NEW_REQUEST, Surface.MY_REQUESTS, Surface.DISPATCH, Surface.RECEIVE),
    Role.DISPATCHER: (Surface.NEW_REQUEST, Surface.MY_REQUESTS, Surface.DISPATCH, Surface.RECEIVE),
}


def _check_menus(matrix: AuthorizationMatrix) -> None:
    for role in Role:
        surfaces = _MENUS.get(role)
        if surfaces is None:
            raise MatrixConfigError(f"role {role.value!r} has no menu")
        if set(surfaces) != set(matrix.permitted_surfaces(role)) or len(set(surfaces)) != len(surfaces):
            raise MatrixConfigError(f"menu for {role.value!r} disagrees with its permitted surfaces")


_check_menus(AuthorizationMatrix())


# Receiver fields a creation form must ask for, per destination kind.
NON_SLT_RECEIVER_FIELDS = ("receiver_name", "receiver_nic", "receiver_contact", "company_name", "company_address")
SLT_RECEIVER_FIELDS = ("receiver_available", "receiver_service_no")


class MenuResolver:
    def __init__(self, matrix: AuthorizationMatrix | None = None) -> None:
        self._matrix = matrix or AuthorizationMatrix()

    def menu_for(self, role: Role | str | None) -> tuple[MenuEntry, ...]:
        """
        Ordered menu for ``role``.

        An unrecognized role gets the baseline member menu instead of an
        error; the route guard is what rejects unknown roles outright.
        """
        canonical = parse_role(role)
        if canonical is None:
            logger.warning("Unknown role %r; serving baseline menu", role)
            surfaces = _BASELINE
        else:
            surfaces = _MENUS[canonical]
        return tuple(MenuEntry(title=_TITLES[s], target=s.value) for s in surfaces)

    def receiver_fields(self, is_non_slt_place: bool) -> tuple[str, ...]:
        return NON_SLT_RECEIVER_FIELDS if is_non_slt_place else SLT_RECEIVER_FIELDS

    def controls_for(self, requester: Requester, record: RequestRecord) -> frozenset[str]:
        """
        In-page controls to show for ``record``.

        Uses the same checks the orchestrator runs, so a visible control is
        one whose action would currently be accepted (barring a concurrent
        change).
        """
        matrix = self._matrix
        controls: set[str] = set()

        if can(check_cancel, matrix, requester, record):
            controls.add("cancel")

        for action in (TransitionAction.APPROVE, TransitionAction.REJECT):
            if can(_check_transition, matrix, requester, record, action):
                controls.add(action.value)

        if record.status == Status.EXECUTIVE_PENDING and can(
            check_owner_or_override, matrix, requester, record, Action.CREATE_REQUEST
        ):
            controls.add("reassign-executive")

        if not is_terminal(record.status) and can(
            check_owner_or_override, matrix, requester, record, Action.CREATE_REQUEST
        ):
            controls.add("edit-items")

        if any(item.is_returnable for item in record.items) and can(check_mark_returned, matrix, requester, record):
            controls.add("mark-returned")

        return frozenset(controls)


def _check_transition(matrix, requester, record, action) -> None:
    plan = plan_transition(matrix, record, action)
    check_stage_action(matrix, requester, record, plan)
