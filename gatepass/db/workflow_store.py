"""
SQLAlchemy implementation of the workflow store.

Each mutation runs in its own transaction opened by ``unit_of_work``. The
request row is read with ``SELECT ... FOR UPDATE`` (a no-op on SQLite) and
every write is a guarded ``UPDATE ... WHERE`` whose rowcount tells the caller
whether the state it decided on was still current.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from datetime import datetime, timezone
import logging

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload, sessionmaker

from gatepass.models.gatepass import GatePassItem, GatePassRequest, StatusHistory
from gatepass.workflow.context import Requester
from gatepass.workflow.records import (
    ItemRecord,
    ReceiverDetails,
    Rejection,
    RequestDraft,
    RequestRecord,
    ReturnStatus,
    StatusChange,
)
from gatepass.workflow.status import Status
from gatepass.workflow.store import DuplicateReference

logger = logging.getLogger(__name__)


def _aware(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes even for timezone=True columns.
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _to_item(row: GatePassItem) -> ItemRecord:
    return ItemRecord(
        serial_no=row.serial_no,
        item_model=row.item_model,
        item_category=row.item_category,
        item_quantity=row.item_quantity,
        is_returnable=row.is_returnable,
        return_status=ReturnStatus(row.return_status),
        return_date=_aware(row.return_date),
        return_remarks=row.return_remarks,
        description=row.description,
        position=row.position,
    )


def _to_record(row: GatePassRequest) -> RequestRecord:
    return RequestRecord(
        reference_number=row.reference_number,
        status=row.status,
        employee_service_no=row.employee_service_no,
        out_location=row.out_location,
        in_location=row.in_location,
        items=tuple(_to_item(item) for item in sorted(row.items, key=lambda i: i.position)),
        executive_officer_service_no=row.executive_officer_service_no,
        verify_officer_service_no=row.verify_officer_service_no,
        is_non_slt_place=row.is_non_slt_place,
        receiver=ReceiverDetails(
            receiver_available=row.receiver_available,
            receiver_service_no=row.receiver_service_no,
            receiver_name=row.receiver_name,
            receiver_nic=row.receiver_nic,
            receiver_contact=row.receiver_contact,
            company_name=row.company_name,
            company_address=row.company_address,
        ),
        show=row.show,
        rejected_by_role=row.rejected_by_role,
        rejected_by_service_no=row.rejected_by_service_no,
        rejected_at=_aware(row.rejected_at),
        rejection_level=row.rejection_level,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def _to_change(row: StatusHistory) -> StatusChange:
    return StatusChange(
        before=row.before_status,
        after=row.after_status,
        actor_service_no=row.actor_service_no,
        actor_role=row.actor_role,
        at=_aware(row.created_at),
        comment=row.comment,
    )


def _request_query():
    return select(GatePassRequest).options(selectinload(GatePassRequest.items))


class SqlRequestTransaction:
    """Mutations on one request inside one open transaction."""

    def __init__(self, db: Session, reference_number: str) -> None:
        self._db = db
        self._reference_number = reference_number
        self._request_id: int | None = None

    def load(self) -> RequestRecord | None:
        row = self._db.execute(
            _request_query()
            .where(GatePassRequest.reference_number == self._reference_number)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if row is None:
            return None
        self._request_id = row.id
        return _to_record(row)

    def _id(self) -> int:
        if self._request_id is None:
            raise RuntimeError("load() must be called before writing")
        return self._request_id

    def compare_and_set_status(
        self,
        expected: int,
        new: int,
        *,
        history: Sequence[StatusChange],
        rejection: Rejection | None = None,
        hide: bool = False,
    ) -> bool:
        request_id = self._id()
        at = history[-1].at if history else datetime.now(timezone.utc)
        values: dict[str, object] = {"status": new, "updated_at": at}
        if rejection is not None:
            values.update(
                rejected_by_role=rejection.role,
                rejected_by_service_no=rejection.service_no,
                rejected_at=rejection.at,
                rejection_level=rejection.level,
            )
        if hide:
            values["show"] = False

        result = self._db.execute(
            update(GatePassRequest)
            .where(GatePassRequest.id == request_id, GatePassRequest.status == expected)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.info(
                "Status compare-and-set lost ref=%s expected=%s new=%s",
                self._reference_number,
                expected,
                new,
            )
            return False

        self._db.add_all(
            StatusHistory(
                request_id=request_id,
                before_status=change.before,
                after_status=change.after,
                actor_service_no=change.actor_service_no,
                actor_role=change.actor_role,
                comment=change.comment,
                created_at=change.at,
            )
            for change in history
        )
        self._db.flush()
        return True

    def mark_items_returned(
        self,
        serial_numbers: Iterable[str],
        *,
        returned_at: datetime,
        remarks: str | None = None,
    ) -> int:
        serials = list(serial_numbers)
        if not serials:
            return 0
        result = self._db.execute(
            update(GatePassItem)
            .where(
                GatePassItem.request_id == self._id(),
                GatePassItem.serial_no.in_(serials),
                GatePassItem.is_returnable.is_(True),
                GatePassItem.return_status == ReturnStatus.PENDING_RETURN.value,
            )
            .values(
                return_status=ReturnStatus.RETURNED.value,
                return_date=returned_at,
                return_remarks=remarks,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def set_executive_officer(self, service_no: str, *, expected_status: int, updated_at: datetime) -> bool:
        result = self._db.execute(
            update(GatePassRequest)
            .where(GatePassRequest.id == self._id(), GatePassRequest.status == expected_status)
            .values(executive_officer_service_no=service_no, updated_at=updated_at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def update_item(self, serial_no: str, changes: Mapping[str, object]) -> bool:
        if not changes:
            return True
        result = self._db.execute(
            update(GatePassItem)
            .where(GatePassItem.request_id == self._id(), GatePassItem.serial_no == serial_no)
            .values(**dict(changes))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


class SqlWorkflowStore:
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def add_request(
        self,
        draft: RequestDraft,
        *,
        reference_number: str,
        creator: Requester,
        created_at: datetime,
    ) -> RequestRecord:
        receiver = draft.receiver
        row = GatePassRequest(
            reference_number=reference_number,
            status=int(Status.EXECUTIVE_PENDING),
            employee_service_no=creator.service_no,
            out_location=draft.out_location.strip(),
            in_location=draft.in_location.strip(),
            executive_officer_service_no=draft.executive_officer_service_no or None,
            verify_officer_service_no=draft.verify_officer_service_no or None,
            is_non_slt_place=draft.is_non_slt_place,
            receiver_available=receiver.receiver_available,
            receiver_service_no=None if draft.is_non_slt_place else (receiver.receiver_service_no or None),
            receiver_name=receiver.receiver_name,
            receiver_nic=receiver.receiver_nic,
            receiver_contact=receiver.receiver_contact,
            company_name=receiver.company_name,
            company_address=receiver.company_address,
            show=True,
            created_at=created_at,
            updated_at=created_at,
        )
        for position, item in enumerate(draft.items):
            row.items.append(
                GatePassItem(
                    position=position,
                    serial_no=item.serial_no.strip(),
                    item_model=item.item_model,
                    item_category=item.item_category,
                    item_quantity=item.item_quantity,
                    description=item.description,
                    is_returnable=item.is_returnable,
                    return_status=(
                        ReturnStatus.PENDING_RETURN.value if item.is_returnable else ReturnStatus.NOT_APPLICABLE.value
                    ),
                )
            )

        try:
            with self._session_factory.begin() as db:
                db.add(row)
                db.flush()
                record = _to_record(row)
        except IntegrityError as exc:
            raise DuplicateReference(reference_number) from exc
        return record

    def get_request(self, reference_number: str) -> RequestRecord | None:
        with self._session_factory() as db:
            row = db.execute(
                _request_query().where(GatePassRequest.reference_number == reference_number)
            ).scalar_one_or_none()
            return _to_record(row) if row is not None else None

    def list_requests_for_actor(self, service_no: str, *, include_hidden: bool = False) -> list[RequestRecord]:
        """Requests the actor created or is an officer of record on, newest first."""
        stmt = _request_query().where(
            or_(
                GatePassRequest.employee_service_no == service_no,
                GatePassRequest.executive_officer_service_no == service_no,
                GatePassRequest.verify_officer_service_no == service_no,
                GatePassRequest.receiver_service_no == service_no,
            )
        )
        if not include_hidden:
            stmt = stmt.where(GatePassRequest.show.is_(True))
        stmt = stmt.order_by(GatePassRequest.created_at.desc(), GatePassRequest.id.desc())
        with self._session_factory() as db:
            return [_to_record(row) for row in db.scalars(stmt).all()]

    def list_by_status(self, status: int) -> list[RequestRecord]:
        """Requests at ``status``, oldest first (queue order)."""
        stmt = (
            _request_query()
            .where(GatePassRequest.status == status)
            .order_by(GatePassRequest.created_at, GatePassRequest.id)
        )
        with self._session_factory() as db:
            return [_to_record(row) for row in db.scalars(stmt).all()]

    def history(self, reference_number: str) -> list[StatusChange]:
        stmt = (
            select(StatusHistory)
            .join(GatePassRequest, StatusHistory.request_id == GatePassRequest.id)
            .where(GatePassRequest.reference_number == reference_number)
            .order_by(StatusHistory.id)
        )
        with self._session_factory() as db:
            return [_to_change(row) for row in db.scalars(stmt).all()]

    @contextmanager
    def unit_of_work(self, reference_number: str) -> Iterator[SqlRequestTransaction]:
        with self._session_factory() as db:
            with db.begin():
                yield SqlRequestTransaction(db, reference_number)
