from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gatepass.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GatePassRequest(Base):
    __tablename__ = "gatepass_requests"
    __table_args__ = (CheckConstraint("status BETWEEN 1 AND 13", name="ck_gatepass_requests_status"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    reference_number: Mapped[str] = mapped_column(String(40), unique=True, nullable=False)
    status: Mapped[int] = mapped_column(Integer, default=1, nullable=False, index=True)

    employee_service_no: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    out_location: Mapped[str] = mapped_column(String(100), nullable=False)
    in_location: Mapped[str] = mapped_column(String(100), nullable=False)

    # Officers of record; None means any handler of that stage may act.
    executive_officer_service_no: Mapped[str | None] = mapped_column(String(20), nullable=True, index=True)
    verify_officer_service_no: Mapped[str | None] = mapped_column(String(20), nullable=True, index=True)

    # Destination classification picks which receiver columns are populated.
    is_non_slt_place: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    receiver_available: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    receiver_service_no: Mapped[str | None] = mapped_column(String(20), nullable=True, index=True)
    receiver_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    receiver_nic: Mapped[str | None] = mapped_column(String(20), nullable=True)
    receiver_contact: Mapped[str | None] = mapped_column(String(40), nullable=True)
    company_name: Mapped[str | None] = mapped_column(String(150), nullable=True)
    company_address: Mapped[str | None] = mapped_column(Text, nullable=True)

    show: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    rejected_by_role: Mapped[str | None] = mapped_column(String(30), nullable=True)
    rejected_by_service_no: Mapped[str | None] = mapped_column(String(20), nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_level: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    items: Mapped[list["GatePassItem"]] = relationship(
        back_populates="request",
        order_by="GatePassItem.position",
        cascade="all, delete-orphan",
    )
    history: Mapped[list["StatusHistory"]] = relationship(
        back_populates="request",
        order_by="StatusHistory.id",
        cascade="all, delete-orphan",
    )


class GatePassItem(Base):
    __tablename__ = "gatepass_items"
    __table_args__ = (UniqueConstraint("request_id", "serial_no"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    request_id: Mapped[int] = mapped_column(ForeignKey("gatepass_requests.id"), nullable=False, index=True)
    # Declaration order on the request.
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    serial_no: Mapped[str] = mapped_column(String(100), nullable=False)
    item_model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    item_category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    item_quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_returnable: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    return_status: Mapped[str] = mapped_column(String(20), default="not-applicable", nullable=False)
    return_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    return_remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    request: Mapped[GatePassRequest] = relationship(back_populates="items")


class StatusHistory(Base):
    __tablename__ = "status_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    request_id: Mapped[int] = mapped_column(ForeignKey("gatepass_requests.id"), nullable=False, index=True)

    before_status: Mapped[int] = mapped_column(Integer, nullable=False)
    after_status: Mapped[int] = mapped_column(Integer, nullable=False)
    actor_service_no: Mapped[str] = mapped_column(String(20), nullable=False)
    actor_role: Mapped[str] = mapped_column(String(30), nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    request: Mapped[GatePassRequest] = relationship(back_populates="history")
