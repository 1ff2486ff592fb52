"""Immutable value objects exchanged between the workflow core and its store."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .status import Stage, describe


class ReturnStatus(str, Enum):
    NOT_APPLICABLE = "not-applicable"
    PENDING_RETURN = "pending-return"
    RETURNED = "returned"


@dataclass(frozen=True)
class ItemDraft:
    serial_no: str
    item_model: str | None = None
    item_category: str | None = None
    item_quantity: int = 1
    is_returnable: bool = False
    description: str | None = None


@dataclass(frozen=True)
class ReceiverDetails:
    """Receiver data. Which fields apply depends on ``RequestDraft.is_non_slt_place``."""

    receiver_available: bool = False
    receiver_service_no: str | None = None
    receiver_name: str | None = None
    receiver_nic: str | None = None
    receiver_contact: str | None = None
    company_name: str | None = None
    company_address: str | None = None


@dataclass(frozen=True)
class RequestDraft:
    items: tuple[ItemDraft, ...]
    out_location: str
    in_location: str
    executive_officer_service_no: str | None = None
    verify_officer_service_no: str | None = None
    is_non_slt_place: bool = False
    receiver: ReceiverDetails = field(default_factory=ReceiverDetails)


@dataclass(frozen=True)
class ItemRecord:
    serial_no: str
    item_model: str | None
    item_category: str | None
    item_quantity: int
    is_returnable: bool
    return_status: ReturnStatus
    return_date: datetime | None = None
    return_remarks: str | None = None
    description: str | None = None
    position: int = 0


@dataclass(frozen=True)
class RequestRecord:
    reference_number: str
    status: int
    employee_service_no: str
    out_location: str
    in_location: str
    items: tuple[ItemRecord, ...]
    executive_officer_service_no: str | None = None
    verify_officer_service_no: str | None = None
    is_non_slt_place: bool = False
    receiver: ReceiverDetails = field(default_factory=ReceiverDetails)
    show: bool = True
    rejected_by_role: str | None = None
    rejected_by_service_no: str | None = None
    rejected_at: datetime | None = None
    rejection_level: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def stage(self) -> Stage:
        return describe(self.status).stage

    def assignee_for(self, stage: Stage) -> str | None:
        """Officer of record for ``stage``; None means any handler of the stage may act."""
        if stage is Stage.EXECUTIVE:
            return self.executive_officer_service_no
        if stage is Stage.VERIFY:
            return self.verify_officer_service_no
        if stage is Stage.RECEIVE:
            return self.receiver.receiver_service_no
        return None

    def routing_location(self, stage: Stage) -> str | None:
        """Branch whose officers handle ``stage`` when no assignee is set."""
        if stage is Stage.VERIFY:
            return self.out_location
        if stage is Stage.DISPATCH:
            return self.in_location
        return None

    def item(self, serial_no: str) -> ItemRecord | None:
        for item in self.items:
            if item.serial_no == serial_no:
                return item
        return None


@dataclass(frozen=True)
class StatusChange:
    """One applied status edge, written to the history log."""

    before: int
    after: int
    actor_service_no: str
    actor_role: str
    at: datetime
    comment: str | None = None


@dataclass(frozen=True)
class Rejection:
    role: str
    service_no: str
    at: datetime
    level: int
