# helpdesk/api/routes/auth.py
from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordRequestForm

from helpdesk.api.deps import CurrentUser, DBDep
from helpdesk.core.config import settings
from helpdesk.core.logging import log_extra
from helpdesk.db.models import User
from helpdesk.schemas.auth import LoginIn, RegisterIn, TokenOut
from helpdesk.schemas.common import Envelope
from helpdesk.schemas.users import UserOut
from helpdesk.services import auth as auth_service

router = APIRouter()
log = logging.getLogger(__name__)


def _token_response(user: User, *, remember_me: bool = False) -> TokenOut:
    return TokenOut(
        access_token=auth_service.make_token_for_user(user, remember_me=remember_me),
        user=UserOut.model_validate(user),
    )


async def _login(db, email: str, password: str) -> User:
    user = await auth_service.authenticate(db, email=email, password=password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is not active")
    return user


@router.post("/register", response_model=TokenOut, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterIn, db: DBDep, request: Request):
    if not settings.allow_self_signup:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Self signup is disabled")
    user = await auth_service.register_user(
        db, email=payload.email, password=payload.password, name=payload.name
    )
    log.info("user_registered", extra=log_extra(request, user_id=user.id))
    return _token_response(user)


@router.post("/login", response_model=TokenOut)
async def login(payload: LoginIn, db: DBDep):
    user = await _login(db, payload.email, payload.password)
    return _token_response(user, remember_me=bool(payload.remember_me))


@router.post("/token", include_in_schema=False)
async def token(form: Annotated[OAuth2PasswordRequestForm, Depends()], db: DBDep):
    # form-логін для кнопки Authorize у /api/docs
    user = await _login(db, form.username, form.password)
    return {"access_token": auth_service.make_token_for_user(user), "token_type": "bearer"}


@router.get("/me", response_model=Envelope[UserOut])
async def me(current: CurrentUser):
    return Envelope(data=UserOut.model_validate(current))
