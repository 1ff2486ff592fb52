from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    service_no: str
    name: str
    email: str
    role: str
    branches: list[str] = []
    is_active: bool


class MeOut(BaseModel):
    user: UserOut
    role: str
    role_display_name: str
    permitted_actions: list[str]


class MenuEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    title: str
    target: str


class MenuOut(BaseModel):
    role: str
    entries: list[MenuEntryOut]
    receiver_fields: dict[str, list[str]]
