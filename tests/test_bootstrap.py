import asyncio

from sqlalchemy import func, select

from helpdesk.db.models import RoleEnum as Role, Ticket, TicketStatusEnum as Status, User
from helpdesk.scripts import bootstrap


def _seed(session_maker, **overrides):
    kwargs = dict(
        admin_email="Boss@Example.com",
        admin_password="ChangeMe123!",
        admin_name="Boss",
        make_demo_support=True,
        make_demo_user=True,
        make_demo_tickets=True,
    )
    kwargs.update(overrides)

    async def _run():
        async with session_maker() as db:
            await bootstrap.seed(db, **kwargs)

    asyncio.run(_run())


def _snapshot(session_maker):
    async def _run():
        async with session_maker() as db:
            users = {u.email: u.role for u in (await db.execute(select(User))).scalars()}
            tickets = (await db.execute(select(Ticket))).scalars().all()
            return users, [(t.title, t.status) for t in tickets]

    return asyncio.run(_run())


def test_seed_creates_roles_and_sample_tickets(session_maker):
    _seed(session_maker)
    users, tickets = _snapshot(session_maker)
    assert users == {
        "boss@example.com": Role.admin,
        "firstline@example.com": Role.firstline,
        "secondline@example.com": Role.secondline,
        "user@example.com": Role.user,
    }
    assert sorted(title for title, _ in tickets) == [
        "Cannot access email",
        "Need software installation",
        "Printer not working",
    ]
    assert all(status == Status.new for _, status in tickets)


def test_seed_is_idempotent(session_maker):
    _seed(session_maker)
    _seed(session_maker)

    async def _counts():
        async with session_maker() as db:
            u = (await db.execute(select(func.count()).select_from(User))).scalar_one()
            t = (await db.execute(select(func.count()).select_from(Ticket))).scalar_one()
            return u, t

    assert asyncio.run(_counts()) == (4, 3)


def test_seed_admin_only(session_maker):
    _seed(session_maker, make_demo_support=False, make_demo_user=False)
    users, tickets = _snapshot(session_maker)
    assert users == {"boss@example.com": Role.admin}
    assert tickets == []


def test_parse_args_flags():
    args = bootstrap._parse_args(["root@example.com", "pw", "--no-demo-support", "--demo-tickets"])
    assert args.email == "root@example.com"
    assert args.password == "pw"
    assert args.demo_support is False
    assert args.demo_tickets is True
    assert args.create_tables is False
