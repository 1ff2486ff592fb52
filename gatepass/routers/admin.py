from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from gatepass.db.session import get_db
from gatepass.models.security import User
from gatepass.schemas.security import UserOut
from gatepass.security.decorators import require_action
from gatepass.workflow.roles import Action

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users", response_model=list[UserOut])
@require_action(Action.ADMINISTER_USERS)
def list_users(db: Session = Depends(get_db)) -> list[User]:
    # No config entry needed: the decorator names the action, enforced globally.
    return list(db.scalars(select(User).order_by(User.id)).all())
