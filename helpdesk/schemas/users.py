# helpdesk/schemas/users.py
from __future__ import annotations

from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from helpdesk.db.models import RoleEnum


class UserBrief(BaseModel):
    """Коротка картка користувача всередині заявки/коментаря."""
    model_config = ConfigDict(from_attributes=True)
    id: int
    name: str | None = None
    email: str
    role: RoleEnum


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    email: str
    role: RoleEnum
    name: str | None = None
    is_active: bool
    created_at: datetime | None = None


class UserUpdateSelf(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    password: str | None = Field(default=None, min_length=6, max_length=128)


class UserAdminUpdate(BaseModel):
    # роль змінює тільки адмін
    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: EmailStr | None = None
    role: RoleEnum | None = None
    is_active: bool | None = None


class UsersPage(BaseModel):
    success: bool = True
    count: int
    total: int
    page: int
    limit: int
    data: list[UserOut]
