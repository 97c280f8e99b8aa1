# helpdesk/services/auth.py
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.config import settings
from helpdesk.core.errors import ConflictOfState, NotFound, ValidationFailed
from helpdesk.core.security import verify_password, hash_password, create_access_token
from helpdesk.db.models import RoleEnum, Ticket, TicketHistory, User, utcnow
from helpdesk.schemas.users import UserAdminUpdate, UserUpdateSelf
from helpdesk.services import lifecycle

log = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    res = await db.execute(select(User).where(User.email == normalize_email(email)))
    return res.scalar_one_or_none()


async def get_user(db: AsyncSession, user_id: int, *, detail: str = "User not found") -> User:
    u = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
    if not u:
        raise NotFound(detail)
    return u


async def authenticate(db: AsyncSession, *, email: str, password: str) -> Optional[User]:
    user = await get_user_by_email(db, email)
    if not user:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


async def register_user(
    db: AsyncSession, *, email: str, password: str, name: str | None = None
) -> User:
    """Реєстрація завжди з role=user; роль змінює тільки адмін."""
    email = normalize_email(email)
    if await get_user_by_email(db, email):
        raise ConflictOfState("User already exists")
    user = User(
        email=email,
        password_hash=hash_password(password),
        role=RoleEnum.user,
        is_active=True,
        name=name,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # паралельна реєстрація з тим самим email
        await db.rollback()
        raise ConflictOfState("User already exists")
    await db.refresh(user)
    return user


def make_token_for_user(user: User, *, remember_me: bool = False) -> str:
    """
    Access-токен. remember_me=True → збільшений TTL (jwt_remember_expires_min).
    """
    minutes = (
        settings.jwt_remember_expires_min
        if remember_me
        else settings.jwt_expires_min
    )
    return create_access_token(
        subject=user.email,
        role=user.role.value,
        secret=settings.jwt_secret,
        expires_minutes=minutes,
        algorithm=settings.jwt_alg,
    )


async def list_users(
    db: AsyncSession,
    *,
    page: int = 1,
    limit: int = 50,
    q: str | None = None,
    role: RoleEnum | None = None,
    is_active: bool | None = None,
) -> tuple[list[User], int]:
    stmt = select(User)
    if q:
        like = f"%{q.lower()}%"
        stmt = stmt.where(func.lower(User.email).like(like) | func.lower(User.name).like(like))
    if role is not None:
        stmt = stmt.where(User.role == role)
    if is_active is not None:
        stmt = stmt.where(User.is_active == is_active)

    total = (await db.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()
    rows = (
        await db.execute(stmt.order_by(User.id.asc()).limit(limit).offset((page - 1) * limit))
    ).scalars().all()
    return list(rows), int(total or 0)


async def update_self(db: AsyncSession, current: User, payload: UserUpdateSelf) -> User:
    changed = False
    if payload.name is not None:
        current.name = payload.name
        changed = True
    if payload.password:
        current.password_hash = hash_password(payload.password)
        changed = True

    if changed:
        await db.commit()
        await db.refresh(current)
    return current


async def _realign_assignments(db: AsyncSession, u: User, *, actor: User) -> int:
    """Відкриті заявки виконавця підлаштовуються під його нову роль (з журналом)."""
    q = select(Ticket).where(
        Ticket.assignee_id == u.id,
        Ticket.status.in_(lifecycle.ASSIGNABLE_STATUSES),
    )
    touched = 0
    for t in (await db.execute(q)).scalars().all():
        changes = lifecycle.follow_assignee_role(t, u.role)
        if not changes:
            continue
        db.add_all(
            TicketHistory(
                ticket_id=t.id,
                changed_by_id=actor.id,
                field=c.field,
                old_value=c.old,
                new_value=c.new,
            )
            for c in changes
        )
        t.updated_at = utcnow()
        touched += 1
    return touched


async def admin_update_user(db: AsyncSession, user_id: int, payload: UserAdminUpdate, *, actor: User) -> User:
    u = await get_user(db, user_id)
    data = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not data:
        return u

    if "email" in data:
        email = normalize_email(data["email"])
        other = await get_user_by_email(db, email)
        if other is not None and other.id != u.id:
            raise ConflictOfState("Email is already in use")
        u.email = email
    if "name" in data:
        u.name = data["name"]
    realigned = 0
    if "role" in data and data["role"] != u.role:
        u.role = data["role"]
        realigned = await _realign_assignments(db, u, actor=actor)
    if "is_active" in data:
        u.is_active = data["is_active"]

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictOfState("Email is already in use")
    await db.refresh(u)
    if realigned:
        log.info("assignments_realigned", extra={"user_id": u.id, "role": u.role.value, "tickets": realigned})
    return u


async def deactivate_user(db: AsyncSession, user_id: int, *, current: User) -> User:
    """М'яке видалення: is_active=False. Себе видалити не можна."""
    u = await get_user(db, user_id)
    if u.id == current.id:
        raise ConflictOfState("You cannot delete your own account")
    u.is_active = False
    await db.commit()
    await db.refresh(u)
    return u


async def get_active_support_user(db: AsyncSession, user_id: int) -> User:
    u = await get_user(db, user_id, detail="Assigned user not found")
    if not u.is_active:
        raise ValidationFailed("Assigned user is not active", field="assigned_to")
    return u
