"""
Static authorization matrix.

Three tables, all fixed business policy:

- ``_GRANTS``: role -> actions it may perform (exhaustive over Role).
- ``_SURFACES``: role -> navigation surfaces it may reach.
- ``_STAGE_HANDLERS``: stage -> roles that act on that stage's Pending state,
  together with the action each stage's approve/reject is filed under.

The tables are validated once at import. A role with no grants, a surface
whose backing action is not granted, or a stage handler lacking the stage's
action is a MatrixConfigError: there is no anonymous-but-authenticated role.

Nothing here is cached per caller; the orchestrator asks again inside every
locked mutation.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Mapping

from .errors import MatrixConfigError
from .roles import Action, Role, normalize_role
from .status import Stage

logger = logging.getLogger(__name__)


class Surface(str, Enum):
    """Navigation surfaces (screens) and the path each one lives at."""

    NEW_REQUEST = "/newrequest"
    MY_REQUESTS = "/myrequests"
    REQUEST_DETAILS = "/request-details"
    EXECUTIVE_APPROVAL = "/executiveApproval"
    VERIFY = "/verify"
    DISPATCH = "/dispatch"
    RECEIVE = "/receive"
    ADMIN = "/admin"


# Action that must be granted for a surface to be reachable.
SURFACE_ACTIONS: Mapping[Surface, Action] = {
    Surface.NEW_REQUEST: Action.CREATE_REQUEST,
    Surface.MY_REQUESTS: Action.VIEW,
    Surface.REQUEST_DETAILS: Action.ADMINISTER_USERS,
    Surface.EXECUTIVE_APPROVAL: Action.APPROVE_STAGE,
    Surface.VERIFY: Action.APPROVE_STAGE,
    Surface.DISPATCH: Action.DISPATCH,
    Surface.RECEIVE: Action.RECEIVE,
    Surface.ADMIN: Action.ADMINISTER_REFERENCE_DATA,
}

_REQUESTER_ACTIONS = frozenset(
    {Action.VIEW, Action.CREATE_REQUEST, Action.RECEIVE, Action.MARK_RETURNED, Action.CANCEL}
)
_BASELINE_SURFACES = frozenset({Surface.NEW_REQUEST, Surface.MY_REQUESTS, Surface.RECEIVE})

_GRANTS: dict[Role, frozenset[Action]] = {
    Role.SUPER_ADMIN: frozenset(Action),
    Role.ADMIN: frozenset(Action) - {Action.ADMINISTER_USERS},
    Role.USER: _REQUESTER_ACTIONS,
    Role.APPROVER: _REQUESTER_ACTIONS | {Action.APPROVE_STAGE, Action.REJECT_STAGE},
    Role.SECURITY_OFFICER: _REQUESTER_ACTIONS | {Action.APPROVE_STAGE, Action.REJECT_STAGE},
    Role.PLEADER: _REQUESTER_ACTIONS | {Action.DISPATCH},
    Role.DISPATCHER: _REQUESTER_ACTIONS | {Action.DISPATCH},
}

_SURFACES: dict[Role, frozenset[Surface]] = {
    Role.SUPER_ADMIN: frozenset(Surface),
    Role.ADMIN: frozenset(Surface) - {Surface.REQUEST_DETAILS},
    Role.USER: _BASELINE_SURFACES,
    Role.APPROVER: _BASELINE_SURFACES | {Surface.EXECUTIVE_APPROVAL},
    Role.SECURITY_OFFICER: _BASELINE_SURFACES | {Surface.VERIFY},
    Role.PLEADER: _BASELINE_SURFACES | {Surface.DISPATCH},
    Role.DISPATCHER: _BASELINE_SURFACES | {Surface.DISPATCH},
}


@dataclass(frozen=True)
class StagePolicy:
    """Who acts on a stage and which actions approve/reject it."""

    stage: Stage
    approve_action: Action
    reject_action: Action
    handlers: frozenset[Role]
    surface: Surface


_ADMINS = frozenset({Role.SUPER_ADMIN, Role.ADMIN})

_STAGE_POLICIES: dict[Stage, StagePolicy] = {
    Stage.EXECUTIVE: StagePolicy(
        stage=Stage.EXECUTIVE,
        approve_action=Action.APPROVE_STAGE,
        reject_action=Action.REJECT_STAGE,
        handlers=_ADMINS | {Role.APPROVER},
        surface=Surface.EXECUTIVE_APPROVAL,
    ),
    Stage.VERIFY: StagePolicy(
        stage=Stage.VERIFY,
        approve_action=Action.APPROVE_STAGE,
        reject_action=Action.REJECT_STAGE,
        handlers=_ADMINS | {Role.SECURITY_OFFICER},
        surface=Surface.VERIFY,
    ),
    Stage.DISPATCH: StagePolicy(
        stage=Stage.DISPATCH,
        approve_action=Action.DISPATCH,
        reject_action=Action.DISPATCH,
        handlers=_ADMINS | {Role.PLEADER, Role.DISPATCHER},
        surface=Surface.DISPATCH,
    ),
    Stage.RECEIVE: StagePolicy(
        stage=Stage.RECEIVE,
        approve_action=Action.RECEIVE,
        reject_action=Action.RECEIVE,
        # Every role may receive; guards narrow it to parties of the request.
        handlers=frozenset(Role),
        surface=Surface.RECEIVE,
    ),
}

# Roles that may cancel, reassign or edit requests they did not create.
OVERRIDE_ROLES: frozenset[Role] = _ADMINS


def _validate_tables() -> None:
    for role in Role:
        grants = _GRANTS.get(role)
        if not grants:
            raise MatrixConfigError(f"role {role.value!r} has no granted actions")
        surfaces = _SURFACES.get(role)
        if not surfaces:
            raise MatrixConfigError(f"role {role.value!r} has no navigation surfaces")
        for surface in surfaces:
            if SURFACE_ACTIONS[surface] not in grants:
                raise MatrixConfigError(
                    f"role {role.value!r} reaches {surface.value} without {SURFACE_ACTIONS[surface].value!r}"
                )

    for stage in Stage:
        policy = _STAGE_POLICIES.get(stage)
        if policy is None:
            raise MatrixConfigError(f"stage {stage.name} has no policy")
        for role in policy.handlers:
            missing = {policy.approve_action, policy.reject_action} - _GRANTS[role]
            if missing:
                raise MatrixConfigError(
                    f"role {role.value!r} handles {stage.name} but lacks {sorted(a.value for a in missing)}"
                )


_validate_tables()


class AuthorizationMatrix:
    """
    Read-only view over the static tables.

    Accepts canonical roles or legacy names; an unrecognized name raises
    UnknownRole rather than silently denying.
    """

    def permitted_actions(self, role: Role | str) -> frozenset[Action]:
        return _GRANTS[normalize_role(role)]

    def is_permitted(self, role: Role | str, action: Action) -> bool:
        canonical = normalize_role(role)
        allowed = action in _GRANTS[canonical]
        logger.debug("matrix: role=%s action=%s allowed=%s", canonical.value, action.value, allowed)
        return allowed

    def permitted_surfaces(self, role: Role | str) -> frozenset[Surface]:
        return _SURFACES[normalize_role(role)]

    def can_reach(self, role: Role | str, surface: Surface) -> bool:
        return surface in _SURFACES[normalize_role(role)]

    def stage_policy(self, stage: Stage) -> StagePolicy:
        return _STAGE_POLICIES[stage]

    def handles_stage(self, role: Role | str, stage: Stage) -> bool:
        return normalize_role(role) in _STAGE_POLICIES[stage].handlers

    def may_override_ownership(self, role: Role | str) -> bool:
        return normalize_role(role) in OVERRIDE_ROLES
