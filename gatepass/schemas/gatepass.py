from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from gatepass.workflow.records import ItemDraft, ReceiverDetails, RequestDraft, RequestRecord, ReturnStatus
from gatepass.workflow.status import describe


class ItemIn(BaseModel):
    serial_no: str
    item_model: str | None = None
    item_category: str | None = None
    item_quantity: int = 1
    is_returnable: bool = False
    description: str | None = None

    def to_draft(self) -> ItemDraft:
        return ItemDraft(**self.model_dump())


class ReceiverIn(BaseModel):
    receiver_available: bool = False
    receiver_service_no: str | None = None
    receiver_name: str | None = None
    receiver_nic: str | None = None
    receiver_contact: str | None = None
    company_name: str | None = None
    company_address: str | None = None


class RequestCreate(BaseModel):
    items: list[ItemIn] = Field(default_factory=list)
    out_location: str
    in_location: str
    executive_officer_service_no: str | None = None
    verify_officer_service_no: str | None = None
    is_non_slt_place: bool = False
    receiver: ReceiverIn = Field(default_factory=ReceiverIn)

    def to_draft(self) -> RequestDraft:
        return RequestDraft(
            items=tuple(item.to_draft() for item in self.items),
            out_location=self.out_location,
            in_location=self.in_location,
            executive_officer_service_no=self.executive_officer_service_no,
            verify_officer_service_no=self.verify_officer_service_no,
            is_non_slt_place=self.is_non_slt_place,
            receiver=ReceiverDetails(**self.receiver.model_dump()),
        )


class ItemUpdate(BaseModel):
    item_model: str | None = None
    item_category: str | None = None
    item_quantity: int | None = None
    description: str | None = None


class ExecutiveOfficerUpdate(BaseModel):
    service_no: str


class TransitionIn(BaseModel):
    action: str
    # Stage the action is meant for; a request that has moved on rejects it.
    stage: str
    comment: str | None = None
    # Status the client last saw; a mismatch is rejected as a stale action.
    expected_status: int | None = None


class CancelIn(BaseModel):
    comment: str | None = None
    expected_status: int | None = None


class ReturnIn(BaseModel):
    serial_numbers: list[str]
    remarks: str | None = None


class StatusOut(BaseModel):
    code: int
    stage: str
    outcome: str
    category: str
    text: str

    @classmethod
    def of(cls, code: int) -> StatusOut:
        label = describe(code)
        return cls(
            code=label.code,
            stage=label.stage_name,
            outcome=label.outcome.value,
            category=label.category.value,
            text=label.text,
        )


class ItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    serial_no: str
    item_model: str | None = None
    item_category: str | None = None
    item_quantity: int
    description: str | None = None
    is_returnable: bool
    return_status: ReturnStatus
    return_date: datetime | None = None
    return_remarks: str | None = None


class ReceiverOut(ReceiverIn):
    model_config = ConfigDict(from_attributes=True)


class RequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    reference_number: str
    status: StatusOut
    employee_service_no: str
    out_location: str
    in_location: str
    items: list[ItemOut]
    executive_officer_service_no: str | None = None
    verify_officer_service_no: str | None = None
    is_non_slt_place: bool
    receiver: ReceiverOut
    show: bool
    rejected_by_role: str | None = None
    rejected_by_service_no: str | None = None
    rejected_at: datetime | None = None
    rejection_level: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    # Controls the caller may use on this request right now.
    controls: list[str] = Field(default_factory=list)

    @classmethod
    def from_record(cls, record: RequestRecord, controls: frozenset[str] | None = None) -> RequestOut:
        return cls(
            reference_number=record.reference_number,
            status=StatusOut.of(record.status),
            employee_service_no=record.employee_service_no,
            out_location=record.out_location,
            in_location=record.in_location,
            items=[ItemOut.model_validate(item) for item in record.items],
            executive_officer_service_no=record.executive_officer_service_no,
            verify_officer_service_no=record.verify_officer_service_no,
            is_non_slt_place=record.is_non_slt_place,
            receiver=ReceiverOut.model_validate(record.receiver),
            show=record.show,
            rejected_by_role=record.rejected_by_role,
            rejected_by_service_no=record.rejected_by_service_no,
            rejected_at=record.rejected_at,
            rejection_level=record.rejection_level,
            created_at=record.created_at,
            updated_at=record.updated_at,
            controls=sorted(controls or ()),
        )


class TransitionOut(BaseModel):
    reference_number: str
    status: StatusOut


class HistoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    before: int
    after: int
    actor_service_no: str
    actor_role: str
    at: datetime
    comment: str | None = None


class ReturnOut(BaseModel):
    reference_number: str
    marked: int
    items: list[ItemOut]
