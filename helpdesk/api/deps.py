from __future__ import annotations

from typing import Annotated
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.db.session import get_session
from helpdesk.core.config import settings
from helpdesk.core.security import decode_token
from helpdesk.db.models import RoleEnum as Role, User

# OAuth2 bearer (для інтеграції з /api/docs)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token")

# Тип для DI сесії БД
DBDep = Annotated[AsyncSession, Depends(get_session)]


async def get_current_user(
    db: DBDep,
    token: Annotated[str, Depends(oauth2_scheme)]
) -> User:
    """
    Декодує Bearer JWT, дістає користувача з БД і перевіряє активність.
    Токен передається явно з кожним запитом; спільного стану сесії немає.
    """
    try:
        payload = decode_token(token, settings.jwt_secret, settings.jwt_alg)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")

    email = payload.get("sub")
    res = await db.execute(select(User).where(User.email == email))
    user = res.scalar_one_or_none()
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User inactive or not found")
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


def require_role(*allowed: Role):
    """
    Пускає лише користувачів, чия роль входить у перелік allowed.
    Приклад: @router.get(..., dependencies=[Depends(require_role(Role.admin))])
    """
    allowed_set = set(allowed)

    async def _guard(current: CurrentUser) -> User:
        if current.role not in allowed_set:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return current

    return _guard


def require_admin():
    return require_role(Role.admin)


AdminUser = Annotated[User, Depends(require_admin())]
