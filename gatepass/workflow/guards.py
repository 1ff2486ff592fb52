"""
Pure decision functions shared by the orchestrator and the menu resolver.

Each ``check_*`` raises the appropriate WorkflowError or returns normally.
They never touch storage; callers hold the per-request lock and pass the
freshly loaded record, so a decision is always made against the state that
is about to be written.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .authorization import AuthorizationMatrix
from .context import Requester
from .errors import Forbidden, InvalidState, InvalidTransition, WorkflowError
from .records import RequestRecord
from .roles import Action
from .status import (
    RETURN_WINDOW,
    Category,
    Stage,
    Status,
    approved_status,
    describe,
    next_stage,
    pending_status,
    rejected_status,
)


class TransitionAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    CANCEL = "cancel"


@dataclass(frozen=True)
class TransitionPlan:
    """
    The edges one call will apply, in order.

    An approval at Executive, Verify or Dispatch carries two edges
    (Pending -> Approved -> next Pending) that are written together.
    """

    stage: Stage
    action: Action
    edges: tuple[tuple[int, int], ...]

    @property
    def final_status(self) -> int:
        return self.edges[-1][1]

    @property
    def is_rejection(self) -> bool:
        return self.final_status == rejected_status(self.stage)


def plan_transition(
    matrix: AuthorizationMatrix,
    record: RequestRecord,
    action: TransitionAction,
    stage: Stage | None = None,
) -> TransitionPlan:
    """
    Resolve ``action`` against the current status only.

    ``stage`` is the stage the caller means to act on; when given, the
    request must be Pending at exactly that stage.
    """
    label = describe(record.status)
    if stage is not None and (label.category is not Category.PENDING or label.stage is not stage):
        raise InvalidTransition(
            record.reference_number, action.value, record.status, f"request is not pending at the {stage.title} stage"
        )

    if action is TransitionAction.CANCEL:
        if record.status != Status.EXECUTIVE_PENDING:
            raise InvalidTransition(
                record.reference_number, action.value, record.status, "only Executive Pending requests can be canceled"
            )
        return TransitionPlan(
            stage=Stage.EXECUTIVE,
            action=Action.CANCEL,
            edges=((record.status, int(Status.CANCELED)),),
        )

    if label.category is not Category.PENDING:
        raise InvalidTransition(record.reference_number, action.value, record.status, f"{label.text} is not actionable")

    stage = label.stage
    policy = matrix.stage_policy(stage)
    if action is TransitionAction.REJECT:
        return TransitionPlan(
            stage=stage,
            action=policy.reject_action,
            edges=((record.status, int(rejected_status(stage))),),
        )

    approved = int(approved_status(stage))
    edges: list[tuple[int, int]] = [(record.status, approved)]
    following = next_stage(stage)
    if following is not None:
        edges.append((approved, int(pending_status(following))))
    return TransitionPlan(stage=stage, action=policy.approve_action, edges=tuple(edges))


def check_stage_action(
    matrix: AuthorizationMatrix,
    requester: Requester,
    record: RequestRecord,
    plan: TransitionPlan,
) -> None:
    role = requester.role
    if not matrix.is_permitted(role, plan.action):
        raise Forbidden(
            f"Role {role.value!r} may not {plan.action.value}",
            role=role.value,
            action=plan.action.value,
        )
    check_stage_actor(matrix, requester, record, plan.stage, plan.action)


def check_stage_actor(
    matrix: AuthorizationMatrix,
    requester: Requester,
    record: RequestRecord,
    stage: Stage,
    action: Action,
) -> None:
    """
    May ``requester`` work ``stage`` of this particular request?

    In order: the role must handle the stage; a stage assignee, when set, is
    the only one who may act (administrators included); otherwise
    administrators may act, the Receive stage is limited to parties of the
    request, and Verify/Dispatch go to officers covering the routing branch
    (out_location for Verify, in_location for Dispatch).
    """
    role = requester.role
    if not matrix.handles_stage(role, stage):
        raise Forbidden(
            f"Role {role.value!r} does not act on the {stage.title} stage",
            role=role.value,
            action=action.value,
        )

    assignee = record.assignee_for(stage)
    if assignee:
        if not requester.matches(assignee):
            raise Forbidden(
                f"Request {record.reference_number} is assigned to another {stage.title} officer",
                role=role.value,
                action=action.value,
            )
        return

    if matrix.may_override_ownership(role):
        return

    if stage is Stage.RECEIVE:
        if not is_party(requester, record):
            raise Forbidden(
                f"Only a party to {record.reference_number} may act on its Receive stage",
                role=role.value,
                action=action.value,
            )
        return

    location = record.routing_location(stage)
    if location is not None and not requester.covers(location):
        raise Forbidden(
            f"{stage.title} work for {location!r} is routed to officers of that branch",
            role=role.value,
            action=action.value,
        )


def check_owner_or_override(
    matrix: AuthorizationMatrix,
    requester: Requester,
    record: RequestRecord,
    action: Action,
) -> None:
    """Creator of the request, or an Admin/SuperAdmin, holding ``action``."""
    role = requester.role
    if not matrix.is_permitted(role, action):
        raise Forbidden(f"Role {role.value!r} may not {action.value}", role=role.value, action=action.value)
    if requester.matches(record.employee_service_no) or matrix.may_override_ownership(role):
        return
    raise Forbidden(
        f"Only the requester or an administrator may {action.value} {record.reference_number}",
        role=role.value,
        action=action.value,
    )


def check_cancel(
    matrix: AuthorizationMatrix,
    requester: Requester,
    record: RequestRecord,
    stage: Stage | None = None,
) -> TransitionPlan:
    plan = plan_transition(matrix, record, TransitionAction.CANCEL, stage)
    check_owner_or_override(matrix, requester, record, Action.CANCEL)
    return plan


def is_party(requester: Requester, record: RequestRecord) -> bool:
    """Creator or any officer of record on the request."""
    return any(
        requester.matches(service_no)
        for service_no in (
            record.employee_service_no,
            record.executive_officer_service_no,
            record.verify_officer_service_no,
            record.receiver.receiver_service_no,
        )
    )


def check_view(matrix: AuthorizationMatrix, requester: Requester, record: RequestRecord) -> None:
    """Administrators, parties, and whoever may currently work the request."""
    role = requester.role
    if not matrix.is_permitted(role, Action.VIEW):
        raise Forbidden(f"Role {role.value!r} may not view requests", role=role.value, action=Action.VIEW.value)
    if matrix.may_override_ownership(role) or is_party(requester, record):
        return
    label = describe(record.status)
    if label.category is Category.PENDING and can(check_stage_actor, matrix, requester, record, label.stage, Action.VIEW):
        return
    raise Forbidden(
        f"Requester may not view {record.reference_number}",
        role=role.value,
        action=Action.VIEW.value,
    )


def check_mark_returned(matrix: AuthorizationMatrix, requester: Requester, record: RequestRecord) -> None:
    role = requester.role
    if not matrix.is_permitted(role, Action.MARK_RETURNED):
        raise Forbidden(f"Role {role.value!r} may not mark items returned", role=role.value, action=Action.MARK_RETURNED.value)

    if record.status not in RETURN_WINDOW:
        raise InvalidState(record.reference_number, record.status, "items can only be returned from the Receive stage on")

    if matrix.may_override_ownership(role) or is_party(requester, record):
        return
    raise Forbidden(
        f"Requester is not a party to {record.reference_number}",
        role=role.value,
        action=Action.MARK_RETURNED.value,
    )


def can(check, *args) -> bool:
    """Run a ``check_*`` function and turn its verdict into a bool."""
    try:
        check(*args)
    except WorkflowError:
        return False
    return True
