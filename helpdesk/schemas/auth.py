# helpdesk/schemas/auth.py
from __future__ import annotations
from pydantic import BaseModel, EmailStr, Field

from helpdesk.schemas.users import UserOut


class LoginIn(BaseModel):
    email: EmailStr
    password: str
    # чи хоче користувач подовжену сесію
    remember_me: bool | None = None


class RegisterIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)


class TokenOut(BaseModel):
    success: bool = True
    access_token: str
    token_type: str = "bearer"
    user: UserOut
