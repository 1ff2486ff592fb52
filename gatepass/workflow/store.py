"""
Boundary between the workflow core and durable storage.

The orchestrator treats the store as a transactional resource: every
mutation happens inside ``unit_of_work(reference_number)``, which commits on
normal exit and rolls back on any exception, so a failed call leaves no
partial change behind. ``gatepass.db.workflow_store.SqlWorkflowStore`` is the
SQLAlchemy implementation.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Protocol

from .context import Requester
from .records import RequestDraft, RequestRecord, Rejection, StatusChange


class DuplicateReference(Exception):
    """Raised by ``add_request`` when the reference number is already taken."""


class RequestTransaction(Protocol):
    def load(self) -> RequestRecord | None:
        """Read the request, locking its row where the backend supports it."""

    def compare_and_set_status(
        self,
        expected: int,
        new: int,
        *,
        history: Sequence[StatusChange],
        rejection: Rejection | None = None,
        hide: bool = False,
    ) -> bool:
        """Write ``new`` only if the stored status is still ``expected``."""

    def mark_items_returned(
        self,
        serial_numbers: Iterable[str],
        *,
        returned_at: datetime,
        remarks: str | None = None,
    ) -> int:
        """Flip returnable, pending-return items to returned; return how many changed."""

    def set_executive_officer(self, service_no: str, *, expected_status: int, updated_at: datetime) -> bool:
        ...

    def update_item(self, serial_no: str, changes: Mapping[str, object]) -> bool:
        ...


class WorkflowStore(Protocol):
    def add_request(
        self,
        draft: RequestDraft,
        *,
        reference_number: str,
        creator: Requester,
        created_at: datetime,
    ) -> RequestRecord:
        ...

    def get_request(self, reference_number: str) -> RequestRecord | None:
        ...

    def list_requests_for_actor(self, service_no: str, *, include_hidden: bool = False) -> list[RequestRecord]:
        ...

    def list_by_status(self, status: int) -> list[RequestRecord]:
        ...

    def history(self, reference_number: str) -> list[StatusChange]:
        ...

    def unit_of_work(self, reference_number: str) -> AbstractContextManager[RequestTransaction]:
        ...
