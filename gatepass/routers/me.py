from __future__ import annotations

from fastapi import APIRouter, Depends

from gatepass.models.security import User
from gatepass.schemas.security import MeOut, MenuOut, UserOut
from gatepass.security.context import AuthzContext
from gatepass.security.dependencies import get_authz, get_current_user, get_menu_resolver
from gatepass.workflow import MenuResolver

router = APIRouter(prefix="/me", tags=["me"])


@router.get("", response_model=MeOut)
def me(user: User = Depends(get_current_user), authz: AuthzContext = Depends(get_authz)) -> MeOut:
    return MeOut(
        user=UserOut.model_validate(user),
        role=authz.role.value,
        role_display_name=authz.role.display_name,
        permitted_actions=sorted(a.value for a in authz.permitted_actions),
    )


@router.get("/menu", response_model=MenuOut)
def my_menu(
    authz: AuthzContext = Depends(get_authz),
    menus: MenuResolver = Depends(get_menu_resolver),
) -> MenuOut:
    return MenuOut(
        role=authz.role.value,
        entries=[entry.to_dict() for entry in menus.menu_for(authz.role)],
        receiver_fields={
            "slt": list(menus.receiver_fields(False)),
            "non_slt": list(menus.receiver_fields(True)),
        },
    )
