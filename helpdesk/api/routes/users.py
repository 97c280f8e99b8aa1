# helpdesk/api/routes/users.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Query, Request

from helpdesk.api.deps import AdminUser, CurrentUser, DBDep
from helpdesk.core.logging import log_extra
from helpdesk.db.models import RoleEnum as Role
from helpdesk.schemas.common import Envelope
from helpdesk.schemas.users import UserAdminUpdate, UserOut, UsersPage, UserUpdateSelf
from helpdesk.services import auth as auth_service

router = APIRouter()
log = logging.getLogger(__name__)


# ---------- SELF ----------
@router.get("/me", response_model=Envelope[UserOut])
async def get_me(current: CurrentUser):
    return Envelope(data=UserOut.model_validate(current))


@router.patch("/me", response_model=Envelope[UserOut])
async def update_me(payload: UserUpdateSelf, db: DBDep, current: CurrentUser):
    u = await auth_service.update_self(db, current, payload)
    return Envelope(data=UserOut.model_validate(u))


# ---------- ADMIN ----------
@router.get("", response_model=UsersPage)
async def list_users(
    db: DBDep,
    _admin: AdminUser,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    q: Optional[str] = Query(None, description="search by email/name"),
    role: Optional[Role] = Query(None),
    is_active: Optional[bool] = Query(None),
):
    rows, total = await auth_service.list_users(
        db, page=page, limit=limit, q=q, role=role, is_active=is_active
    )
    return UsersPage(
        count=len(rows),
        total=total,
        page=page,
        limit=limit,
        data=[UserOut.model_validate(u) for u in rows],
    )


@router.get("/{user_id}", response_model=Envelope[UserOut])
async def get_user(user_id: int, db: DBDep, _admin: AdminUser):
    u = await auth_service.get_user(db, user_id)
    return Envelope(data=UserOut.model_validate(u))


@router.patch("/{user_id}", response_model=Envelope[UserOut])
async def admin_update_user(user_id: int, payload: UserAdminUpdate, db: DBDep, admin: AdminUser, request: Request):
    u = await auth_service.admin_update_user(db, user_id, payload, actor=admin)
    log.info("user_updated", extra=log_extra(request, user_id=u.id, actor_id=admin.id))
    return Envelope(data=UserOut.model_validate(u))


@router.delete("/{user_id}", response_model=Envelope[UserOut])
async def delete_user(user_id: int, db: DBDep, admin: AdminUser, request: Request):
    """М'яке видалення користувача (is_active = False)."""
    u = await auth_service.deactivate_user(db, user_id, current=admin)
    log.info("user_deactivated", extra=log_extra(request, user_id=u.id, actor_id=admin.id))
    return Envelope(data=UserOut.model_validate(u))
