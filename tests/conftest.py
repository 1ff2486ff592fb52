"""
Pytest fixtures for the test suite.

Data-layer tests use an in-memory SQLite engine and a session that rolls back
after each test, so tests do not affect each other. Workflow tests drive the
real SqlWorkflowStore; threaded tests use a file-backed database so every
thread gets its own connection.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from itertools import count

import pytest
from sqlalchemy.orm import Session, sessionmaker

from gatepass.db.session import create_db_engine, create_session_factory
from gatepass.db.workflow_store import SqlWorkflowStore
from gatepass.workflow import (
    ItemDraft,
    ItemReturnSubworkflow,
    LifecycleOrchestrator,
    MenuResolver,
    ReceiverDetails,
    RequestDraft,
    Requester,
    Role,
)


TEST_DB_URL = "sqlite:///:memory:"

HEAD_OFFICE = "Head Office"
KANDY = "Regional Office Kandy"


class FrozenClock:
    """Deterministic clock; ``advance`` moves it forward."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def sequential_references(prefix: str = "REQ-TEST"):
    counter = count(1)
    return lambda: f"{prefix}-{next(counter):04d}"


def make_draft(
    *serials: str,
    returnable: tuple[str, ...] = (),
    executive: str | None = None,
    verifier: str | None = None,
    receiver_service_no: str | None = None,
    non_slt: bool = False,
) -> RequestDraft:
    serials = serials or ("SN-1",)
    if non_slt:
        receiver = ReceiverDetails(
            receiver_name="Kamal Perera",
            receiver_nic="901234567V",
            receiver_contact="0771234567",
            company_name="Acme Logistics",
            company_address="12 Main Street, Colombo",
        )
    else:
        receiver = ReceiverDetails(
            receiver_available=receiver_service_no is not None,
            receiver_service_no=receiver_service_no,
        )
    return RequestDraft(
        items=tuple(
            ItemDraft(
                serial_no=serial,
                item_model=f"Model {serial}",
                item_category="Laptop",
                is_returnable=serial in returnable,
            )
            for serial in serials
        ),
        out_location=HEAD_OFFICE,
        in_location=KANDY,
        executive_officer_service_no=executive,
        verify_officer_service_no=verifier,
        is_non_slt_place=non_slt,
        receiver=receiver,
    )


@pytest.fixture
def engine():
    """Create a fresh in-memory SQLite engine for each test."""
    return create_db_engine(TEST_DB_URL)


@pytest.fixture
def tables(engine):
    """Create all ORM tables on the test engine."""
    from gatepass.db.base import Base
    from gatepass.models import gatepass as _gatepass  # noqa: F401
    from gatepass.models import security as _security  # noqa: F401

    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def db_session(tables):
    """
    Provide a Session bound to the test DB; roll back after each test.

    The transaction is rolled back so the next test gets a clean state.
    """
    connection = tables.connect()
    transaction = connection.begin()
    TestSession = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        class_=Session,
    )
    session = TestSession()
    yield session
    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def session_factory(tables):
    return create_session_factory(tables)


@pytest.fixture
def file_session_factory(tmp_path):
    """Session factory over a file-backed SQLite database (one connection per thread)."""
    from gatepass.db.base import Base
    from gatepass.models import gatepass as _gatepass  # noqa: F401

    file_engine = create_db_engine(f"sqlite:///{tmp_path / 'gatepass-test.db'}")
    Base.metadata.create_all(bind=file_engine)
    yield create_session_factory(file_engine)
    file_engine.dispose()


@pytest.fixture
def store(session_factory):
    return SqlWorkflowStore(session_factory)


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def orchestrator(store, clock):
    return LifecycleOrchestrator(store, clock=clock, reference_factory=sequential_references())


@pytest.fixture
def returns(orchestrator):
    return ItemReturnSubworkflow(orchestrator)


@pytest.fixture
def menus():
    return MenuResolver()


@pytest.fixture
def people():
    """One requester per role, plus a second plain user. Officers cover the default draft branches."""
    return {
        "super": Requester.of("SA001", Role.SUPER_ADMIN, "Sunil Admin"),
        "admin": Requester.of("AD001", Role.ADMIN, "Amali Admin"),
        "user": Requester.of("US001", Role.USER, "Udara User"),
        "other": Requester.of("US002", Role.USER, "Uditha User"),
        "approver": Requester.of("EX001", Role.APPROVER, "Eranga Executive"),
        "security": Requester.of("SO001", Role.SECURITY_OFFICER, "Sanath Security", [HEAD_OFFICE]),
        "pleader": Requester.of("PL001", Role.PLEADER, "Pradeep Pleader", [KANDY]),
        "dispatcher": Requester.of("DP001", Role.DISPATCHER, "Dilan Dispatcher", [KANDY]),
    }


@pytest.fixture
def submitted(orchestrator, people):
    """A request created by the plain user, waiting for Executive approval."""
    return orchestrator.create_request(
        people["user"],
        make_draft("SN-1", "SN-2", "SN-3", returnable=("SN-1", "SN-2"), executive="EX001"),
    )


@pytest.fixture
def draft():
    """Factory fixture: ``draft("SN-1", "SN-2", returnable=("SN-1",), executive="EX001")``."""
    return make_draft
