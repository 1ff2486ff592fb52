from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from gatepass.db.base import Base
from gatepass.models import gatepass as _gatepass_models  # noqa: F401  (register tables)
from gatepass.models.security import User
from gatepass.workflow.roles import Role


def init_db(engine: Engine, session_factory: sessionmaker[Session]) -> None:
    """
    Create tables + seed one user per role.

    The seed is small and deterministic so a fresh database can be driven
    end to end (issue a token for any of these service numbers).
    """

    Base.metadata.create_all(bind=engine)

    with session_factory() as db:
        if _has_seed_data(db):
            return
        _seed(db)


def _has_seed_data(db: Session) -> bool:
    return db.execute(select(User.id).limit(1)).first() is not None


HEAD_OFFICE = "Head Office"
KANDY = "Regional Office Kandy"

# (service_no, name, role, branches covered)
SEED_USERS: tuple[tuple[str, str, Role, tuple[str, ...]], ...] = (
    ("SA001", "Sunil Admin", Role.SUPER_ADMIN, ()),
    ("AD001", "Amali Admin", Role.ADMIN, ()),
    ("US001", "Udara User", Role.USER, ()),
    ("US002", "Uditha User", Role.USER, ()),
    ("EX001", "Eranga Executive", Role.APPROVER, ()),
    ("SO001", "Sanath Security", Role.SECURITY_OFFICER, (HEAD_OFFICE,)),
    ("PL001", "Pradeep Pleader", Role.PLEADER, (KANDY,)),
    ("DP001", "Dilan Dispatcher", Role.DISPATCHER, (KANDY,)),
)


def _seed(db: Session) -> None:
    for service_no, name, role, branches in SEED_USERS:
        db.add(
            User(
                service_no=service_no,
                name=name,
                email=f"{service_no.lower()}@gatepass.example.com",
                role=role.value,
                branches=list(branches),
                is_active=True,
            )
        )
    db.commit()
