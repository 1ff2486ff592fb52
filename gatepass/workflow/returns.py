"""
Returnable-item sub-workflow.

Items flagged returnable at creation start as ``pending-return``. Once the
parent request reaches the Receive stage, a party to the request can mark
them ``returned``. The flip is one-way and happens at most once per item:
serials that are unknown, not returnable or already returned are skipped
and simply not counted.
"""

from __future__ import annotations

from collections.abc import Iterable
import logging

from .context import Requester
from .errors import InvalidRequest
from .guards import check_mark_returned
from .orchestrator import LifecycleOrchestrator
from .records import ItemRecord, ReturnStatus

logger = logging.getLogger(__name__)


class ItemReturnSubworkflow:
    def __init__(self, orchestrator: LifecycleOrchestrator) -> None:
        self._orchestrator = orchestrator

    def mark_returned(
        self,
        requester: Requester,
        reference_number: str,
        serial_numbers: Iterable[str],
        *,
        remarks: str | None = None,
    ) -> int:
        """
        Mark the given serials returned; return how many items actually changed.

        A count lower than ``len(serial_numbers)`` is the normal way partial
        matches are reported. Raises InvalidState before the Receive stage.
        """
        if isinstance(serial_numbers, str):
            raise InvalidRequest("serial_numbers must be a collection of strings")
        wanted = {str(s).strip() for s in serial_numbers if str(s).strip()}
        if not wanted:
            raise InvalidRequest("serial_numbers must not be empty")

        with self._orchestrator.locked(reference_number) as (uow, record):
            check_mark_returned(self._orchestrator.matrix, requester, record)

            eligible = {
                item.serial_no
                for item in record.items
                if item.serial_no in wanted
                and item.is_returnable
                and item.return_status is ReturnStatus.PENDING_RETURN
            }
            updated = 0
            if eligible:
                updated = uow.mark_items_returned(
                    sorted(eligible),
                    returned_at=self._orchestrator.now(),
                    remarks=remarks,
                )

        skipped = len(wanted) - updated
        logger.info(
            "Items returned ref=%s requested=%d updated=%d skipped=%d by=%s",
            reference_number,
            len(wanted),
            updated,
            skipped,
            requester.service_no,
        )
        return updated

    def returnable_items(self, reference_number: str, requester: Requester | None = None) -> list[ItemRecord]:
        record = self._orchestrator.get_request(reference_number, requester)
        return [item for item in record.items if item.is_returnable]

    def outstanding(self, reference_number: str, requester: Requester | None = None) -> list[ItemRecord]:
        """Returnable items not handed back yet."""
        return [
            item
            for item in self.returnable_items(reference_number, requester)
            if item.return_status is ReturnStatus.PENDING_RETURN
        ]
