# tests/conftest.py
import asyncio
import os

# до імпорту helpdesk: settings читаються один раз при імпорті
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ["NOTIFICATIONS_ENABLED"] = "false"
os.environ.setdefault("JWT_SECRET", "test-secret")

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from helpdesk.core.security import hash_password
from helpdesk.db.models import Base, RoleEnum, User
from helpdesk.db.session import get_session
from helpdesk.main import app
from helpdesk.services.auth import make_token_for_user

PASSWORD = "Passw0rd!"
_password_hash: str | None = None


def _hashed() -> str:
    global _password_hash
    if _password_hash is None:
        _password_hash = hash_password(PASSWORD)
    return _password_hash


@pytest.fixture
def session_maker(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)

    async def _create():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(_create())
    yield async_sessionmaker(engine, expire_on_commit=False)
    asyncio.run(engine.dispose())


@pytest.fixture
def client(session_maker):
    async def _override():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_session] = _override
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session_maker):
    counter = {"n": 0}

    def _make(role: RoleEnum = RoleEnum.user, *, name: str | None = None, email: str | None = None):
        counter["n"] += 1
        email = email or f"{role.value}{counter['n']}@example.com"

        async def _insert() -> User:
            async with session_maker() as db:
                u = User(
                    email=email,
                    password_hash=_hashed(),
                    name=name or f"{role.value.title()} {counter['n']}",
                    role=role,
                    is_active=True,
                )
                db.add(u)
                await db.commit()
                await db.refresh(u)
                return u

        u = asyncio.run(_insert())
        token = make_token_for_user(u)
        return SimpleNamespace(
            id=u.id,
            email=u.email,
            name=u.name,
            role=u.role,
            token=token,
            headers={"Authorization": f"Bearer {token}"},
        )

    return _make


@pytest.fixture
def user(make_user):
    return make_user(RoleEnum.user, name="Ulla User")


@pytest.fixture
def other_user(make_user):
    return make_user(RoleEnum.user, name="Oscar Other")


@pytest.fixture
def firstline(make_user):
    return make_user(RoleEnum.firstline, name="Frida First")


@pytest.fixture
def firstline2(make_user):
    return make_user(RoleEnum.firstline, name="Finn First")


@pytest.fixture
def secondline(make_user):
    return make_user(RoleEnum.secondline, name="Sven Second")


@pytest.fixture
def admin(make_user):
    return make_user(RoleEnum.admin, name="Ada Admin")


def create_ticket(client, who, **overrides):
    body = {
        "title": "Cannot access email",
        "description": "I am unable to access my work email since this morning.",
        "category": "Account",
        "priority": "high",
    }
    body.update(overrides)
    r = client.post("/api/tickets", json=body, headers=who.headers)
    assert r.status_code == 201, r.text
    return r.json()["data"]


@pytest.fixture
def ticket(client, user):
    return create_ticket(client, user)
