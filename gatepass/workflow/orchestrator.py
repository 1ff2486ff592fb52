"""
Lifecycle orchestrator: the single authoritative state machine for gate pass
requests.

Every mutating call follows the same shape:

    with per-request lock, store transaction:
        load the current record (NotFound)
        resolve the action against the current status (InvalidTransition)
        authorize the requester against that status (Forbidden)
        compare-and-set the new status with actor + timestamp

The lock serializes callers in this process; the compare-and-set guards the
write against other processes sharing the store. Authorization is evaluated
inside the same locked operation as the write and is never cached.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime, timezone
import logging
import secrets
from typing import Protocol

from .authorization import AuthorizationMatrix
from .context import Requester
from .errors import Forbidden, InvalidRequest, InvalidState, InvalidTransition, NotFound
from .guards import (
    TransitionAction,
    TransitionPlan,
    can,
    check_cancel,
    check_owner_or_override,
    check_stage_action,
    check_stage_actor,
    check_view,
    plan_transition,
)
from .locks import KeyedLocks
from .records import RequestDraft, RequestRecord, Rejection, StatusChange
from .roles import Action
from .status import Stage, Status, is_terminal, parse_stage, pending_status
from .store import DuplicateReference, RequestTransaction, WorkflowStore

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

EDITABLE_ITEM_FIELDS = frozenset({"item_model", "item_category", "item_quantity", "description"})

_MAX_REFERENCE_ATTEMPTS = 5


class Directory(Protocol):
    def employee_exists(self, service_no: str) -> bool | None:
        """True/False when the directory answered, None when it could not be reached."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def make_reference_factory(prefix: str = "REQ", clock: Clock = _utcnow) -> Callable[[], str]:
    """``REQ-<epoch millis>-<0..999>``, the format existing clients already parse."""

    def factory() -> str:
        millis = int(clock().timestamp() * 1000)
        return f"{prefix}-{millis}-{secrets.randbelow(1000)}"

    return factory


class LifecycleOrchestrator:
    def __init__(
        self,
        store: WorkflowStore,
        matrix: AuthorizationMatrix | None = None,
        *,
        clock: Clock | None = None,
        reference_factory: Callable[[], str] | None = None,
        directory: Directory | None = None,
        locks: KeyedLocks | None = None,
    ) -> None:
        self._store = store
        self._matrix = matrix or AuthorizationMatrix()
        self._clock = clock or _utcnow
        self._reference_factory = reference_factory or make_reference_factory(clock=self._clock)
        self._directory = directory
        self._locks = locks or KeyedLocks()

    @property
    def matrix(self) -> AuthorizationMatrix:
        return self._matrix

    def now(self) -> datetime:
        return self._clock()

    # ---- Reads -------------------------------------------------------------------

    def get_request(self, reference_number: str, requester: Requester | None = None) -> RequestRecord:
        """
        Load a request; ``NotFound`` if absent.

        With ``requester``, the caller must also be allowed to view it:
        administrators, parties, whoever may currently work it, and anyone
        who already acted on it.
        """
        record = self._store.get_request(reference_number)
        if record is None:
            raise NotFound(reference_number)
        if requester is not None:
            self._check_view(requester, record)
        return record

    def _check_view(self, requester: Requester, record: RequestRecord) -> None:
        try:
            check_view(self._matrix, requester, record)
        except Forbidden:
            history = self._store.history(record.reference_number)
            if not any(requester.matches(change.actor_service_no) for change in history):
                raise

    def current_status(self, reference_number: str) -> int:
        return self.get_request(reference_number).status

    def list_requests_for_actor(self, service_no: str, *, include_hidden: bool = False) -> list[RequestRecord]:
        return self._store.list_requests_for_actor(service_no, include_hidden=include_hidden)

    def history(self, reference_number: str, requester: Requester | None = None) -> list[StatusChange]:
        self.get_request(reference_number, requester)
        return self._store.history(reference_number)

    def pending_queue(self, requester: Requester, stage: Stage | str) -> list[RequestRecord]:
        """Requests waiting at ``stage`` that this requester may act on."""
        stage = parse_stage(stage)
        policy = self._matrix.stage_policy(stage)
        if not (
            self._matrix.handles_stage(requester.role, stage)
            and self._matrix.is_permitted(requester.role, policy.approve_action)
        ):
            raise Forbidden(
                f"Role {requester.role.value!r} does not act on the {stage.title} stage",
                role=requester.role.value,
                action=policy.approve_action.value,
            )
        return [
            record
            for record in self._store.list_by_status(int(pending_status(stage)))
            if can(check_stage_actor, self._matrix, requester, record, stage, policy.approve_action)
        ]

    # ---- Creation ----------------------------------------------------------------

    def create_request(self, requester: Requester, draft: RequestDraft) -> RequestRecord:
        if not self._matrix.is_permitted(requester.role, Action.CREATE_REQUEST):
            raise Forbidden(
                f"Role {requester.role.value!r} may not create requests",
                role=requester.role.value,
                action=Action.CREATE_REQUEST.value,
            )
        _validate_draft(draft)
        self._check_directory(draft)

        for attempt in range(1, _MAX_REFERENCE_ATTEMPTS + 1):
            reference_number = self._reference_factory()
            try:
                record = self._store.add_request(
                    draft,
                    reference_number=reference_number,
                    creator=requester,
                    created_at=self.now(),
                )
            except DuplicateReference:
                logger.warning("Reference number collision ref=%s attempt=%d", reference_number, attempt)
                continue
            logger.info(
                "Request created ref=%s by=%s items=%d",
                record.reference_number,
                requester.service_no,
                len(record.items),
            )
            return record

        raise InvalidRequest("could not allocate a unique reference number")

    def _check_directory(self, draft: RequestDraft) -> None:
        if self._directory is None:
            return
        to_check = [("executive officer", draft.executive_officer_service_no)]
        if not draft.is_non_slt_place:
            to_check.append(("receiver", draft.receiver.receiver_service_no))
        for label, service_no in to_check:
            if not service_no:
                continue
            found = self._directory.employee_exists(service_no)
            if found is False:
                raise InvalidRequest(f"Unknown {label} service number: {service_no}")
            if found is None:
                logger.warning("Directory unavailable; skipped %s check for %s", label, service_no)

    # ---- Locked mutations --------------------------------------------------------

    @contextmanager
    def locked(self, reference_number: str) -> Iterator[tuple[RequestTransaction, RequestRecord]]:
        """
        Hold the request's lock and an open store transaction.

        Yields the transaction and the record as loaded inside it. The
        transaction commits when the block exits normally and rolls back if
        it raises.
        """
        with self._locks.hold(reference_number):
            with self._store.unit_of_work(reference_number) as uow:
                record = uow.load()
                if record is None:
                    raise NotFound(reference_number)
                yield uow, record

    def transition(
        self,
        requester: Requester,
        reference_number: str,
        action: TransitionAction | str,
        *,
        stage: Stage | str,
        comment: str | None = None,
        expected_status: int | None = None,
    ) -> int:
        """
        Apply ``action`` to ``stage`` of the request and return the new status.

        The request must be Pending at ``stage``, otherwise the call is an
        InvalidTransition. Approvals auto-advance into the next stage's
        Pending code, so a replayed or duplicate "approve" for a stage that
        has already moved on is rejected instead of approving the next one.
        ``expected_status`` optionally pins the exact status the caller saw.
        """
        action = _parse_action(action)
        stage = parse_stage(stage)
        if action is TransitionAction.CANCEL:
            return self.cancel(
                requester,
                reference_number,
                stage=stage,
                comment=comment,
                expected_status=expected_status,
            )

        with self.locked(reference_number) as (uow, record):
            _check_expected(record, action, expected_status)
            plan = plan_transition(self._matrix, record, action, stage)
            check_stage_action(self._matrix, requester, record, plan)
            self._apply(uow, requester, record, plan, comment=comment)

        logger.info(
            "Transition applied ref=%s action=%s stage=%s %d->%d by=%s role=%s",
            reference_number,
            action.value,
            stage.title,
            record.status,
            plan.final_status,
            requester.service_no,
            requester.role.value,
        )
        return plan.final_status

    def cancel(
        self,
        requester: Requester,
        reference_number: str,
        *,
        stage: Stage | str | None = None,
        comment: str | None = None,
        expected_status: int | None = None,
    ) -> int:
        """Cancel an Executive Pending request; it also leaves the creator's default listing."""
        if stage is not None:
            stage = parse_stage(stage)
        with self.locked(reference_number) as (uow, record):
            _check_expected(record, TransitionAction.CANCEL, expected_status)
            plan = check_cancel(self._matrix, requester, record, stage)
            self._apply(uow, requester, record, plan, comment=comment, hide=True)

        logger.info("Request canceled ref=%s by=%s", reference_number, requester.service_no)
        return plan.final_status

    def _apply(
        self,
        uow: RequestTransaction,
        requester: Requester,
        record: RequestRecord,
        plan: TransitionPlan,
        *,
        comment: str | None = None,
        hide: bool = False,
    ) -> None:
        at = self.now()
        history = [
            StatusChange(
                before=before,
                after=after,
                actor_service_no=requester.service_no,
                actor_role=requester.role.value,
                at=at,
                comment=comment if index == 0 else None,
            )
            for index, (before, after) in enumerate(plan.edges)
        ]
        rejection = None
        if plan.is_rejection:
            rejection = Rejection(
                role=requester.role.value,
                service_no=requester.service_no,
                at=at,
                level=plan.stage.value,
            )

        if not uow.compare_and_set_status(
            record.status,
            plan.final_status,
            history=history,
            rejection=rejection,
            hide=hide,
        ):
            # Another process advanced the request between our read and write.
            raise InvalidTransition(record.reference_number, plan.action.value, record.status, "status changed concurrently")

    # ---- Owner edits -------------------------------------------------------------

    def reassign_executive_officer(self, requester: Requester, reference_number: str, service_no: str) -> RequestRecord:
        service_no = (service_no or "").strip()
        if not service_no:
            raise InvalidRequest("executive officer service number is required")

        with self.locked(reference_number) as (uow, record):
            check_owner_or_override(self._matrix, requester, record, Action.CREATE_REQUEST)
            if record.status != Status.EXECUTIVE_PENDING:
                raise InvalidState(reference_number, record.status, "executive officer can only change while Executive Pending")
            if not uow.set_executive_officer(service_no, expected_status=record.status, updated_at=self.now()):
                raise InvalidState(reference_number, record.status, "status changed concurrently")

        logger.info("Executive officer reassigned ref=%s to=%s by=%s", reference_number, service_no, requester.service_no)
        return self.get_request(reference_number)

    def update_item(
        self,
        requester: Requester,
        reference_number: str,
        serial_no: str,
        changes: Mapping[str, object],
    ) -> RequestRecord:
        unknown = set(changes) - EDITABLE_ITEM_FIELDS
        if unknown:
            raise InvalidRequest(f"fields not editable: {sorted(unknown)}")
        quantity = changes.get("item_quantity")
        if quantity is not None and (not isinstance(quantity, int) or quantity < 1):
            raise InvalidRequest("item_quantity must be a positive integer")

        with self.locked(reference_number) as (uow, record):
            check_owner_or_override(self._matrix, requester, record, Action.CREATE_REQUEST)
            if is_terminal(record.status):
                raise InvalidState(reference_number, record.status, "items of a resolved request are read-only")
            if record.item(serial_no) is None or not uow.update_item(serial_no, changes):
                raise NotFound(f"{reference_number}/{serial_no}", what="item")

        return self.get_request(reference_number)


def _check_expected(record: RequestRecord, action: TransitionAction, expected_status: int | None) -> None:
    if expected_status is not None and record.status != expected_status:
        raise InvalidTransition(
            record.reference_number,
            action.value,
            record.status,
            f"expected status {expected_status}, request has moved on",
        )


def _parse_action(action: TransitionAction | str) -> TransitionAction:
    if isinstance(action, TransitionAction):
        return action
    try:
        return TransitionAction(str(action).strip().lower())
    except ValueError:
        raise InvalidRequest(f"Unknown transition action: {action!r}") from None


def _validate_draft(draft: RequestDraft) -> None:
    if not draft.items:
        raise InvalidRequest("a request needs at least one item")

    seen: set[str] = set()
    for item in draft.items:
        serial = (item.serial_no or "").strip()
        if not serial:
            raise InvalidRequest("every item needs a serial number")
        if serial in seen:
            raise InvalidRequest(f"duplicate serial number: {serial}")
        seen.add(serial)
        if item.item_quantity < 1:
            raise InvalidRequest(f"item {serial}: quantity must be at least 1")

    if not (draft.out_location or "").strip() or not (draft.in_location or "").strip():
        raise InvalidRequest("out_location and in_location are required")

    receiver = draft.receiver
    if draft.is_non_slt_place:
        if not receiver.receiver_name or not receiver.receiver_contact:
            raise InvalidRequest("non-SLT destinations need receiver_name and receiver_contact")
    elif receiver.receiver_available and not receiver.receiver_service_no:
        raise InvalidRequest("receiver_service_no is required when a receiver is available")
