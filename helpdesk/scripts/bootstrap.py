from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.config import settings
from helpdesk.core.logging import setup_logging
from helpdesk.core.security import hash_password
from helpdesk.db.models import (
    CategoryEnum as Category,
    PriorityEnum as Priority,
    RoleEnum as Role,
    Ticket,
    TicketStatusEnum as Status,
    User,
)
from helpdesk.db.session import AsyncSessionLocal, create_all

log = logging.getLogger("helpdesk.bootstrap")

DEMO_SUPPORT = (
    ("firstline@example.com", "Firstline123!", "First Line", Role.firstline),
    ("secondline@example.com", "Secondline123!", "Second Line", Role.secondline),
)
DEMO_USER = ("user@example.com", "User123!", "Regular User")

SAMPLE_TICKETS = (
    (
        "Cannot access email",
        "I am unable to access my work email since this morning. "
        "I have tried restarting my computer but it did not help.",
        Category.account,
        Priority.high,
    ),
    (
        "Need software installation",
        "I need Adobe Photoshop installed on my workstation for a new project.",
        Category.software,
        Priority.medium,
    ),
    (
        "Printer not working",
        "The office printer on the 2nd floor is showing an error message and will not print documents.",
        Category.hardware,
        Priority.medium,
    ),
)


# ---------- helpers ----------
async def _get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    res = await db.execute(select(User).where(User.email == email))
    return res.scalar_one_or_none()


async def ensure_user(
    db: AsyncSession,
    *,
    email: str,
    role: Role,
    password_plain: Optional[str],
    name: Optional[str],
) -> User:
    """
    Якщо користувача немає — створює його (потрібен password_plain).
    Якщо є — оновлює роль/ім'я/активність (пароль не чіпає).
    """
    email = email.strip().lower()
    user = await _get_user_by_email(db, email)

    if user is None:
        if not password_plain:
            raise ValueError(f"Password is required for new user {email}")
        user = User(
            email=email,
            password_hash=hash_password(password_plain),
            role=role,
            is_active=True,
            name=name,
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        log.info("bootstrap: created %s (%s)", email, role.value)
        return user

    updated = False
    if user.role != role:
        user.role = role
        updated = True
    if name and name != user.name:
        user.name = name
        updated = True
    if not user.is_active:
        user.is_active = True
        updated = True

    if updated:
        await db.commit()
        await db.refresh(user)
        log.info("bootstrap: updated %s", email)
    else:
        log.info("bootstrap: unchanged %s (%s)", email, user.role.value)
    return user


async def seed_sample_tickets(db: AsyncSession, submitter: User) -> int:
    """Демо-заявки створюються лише один раз (якщо в автора ще немає заявок)."""
    existing = (
        await db.execute(select(func.count()).select_from(Ticket).where(Ticket.submitter_id == submitter.id))
    ).scalar_one()
    if existing:
        return 0
    for title, description, category, priority in SAMPLE_TICKETS:
        db.add(
            Ticket(
                title=title,
                description=description,
                category=category,
                priority=priority,
                status=Status.new,
                submitter_id=submitter.id,
            )
        )
    await db.commit()
    return len(SAMPLE_TICKETS)


async def seed(
    db: AsyncSession,
    *,
    admin_email: str,
    admin_password: str,
    admin_name: Optional[str],
    make_demo_support: bool,
    make_demo_user: bool,
    make_demo_tickets: bool,
) -> None:
    # 1) admin
    await ensure_user(db, email=admin_email, role=Role.admin, password_plain=admin_password, name=admin_name)

    # 2) demo перша/друга лінія
    if make_demo_support:
        for email, password, name, role in DEMO_SUPPORT:
            await ensure_user(db, email=email, role=role, password_plain=password, name=name)

    # 3) demo user (+ заявки)
    if make_demo_user:
        email, password, name = DEMO_USER
        user = await ensure_user(db, email=email, role=Role.user, password_plain=password, name=name)
        if make_demo_tickets:
            created = await seed_sample_tickets(db, user)
            log.info("bootstrap: %d sample tickets", created)

    log.info("bootstrap: done")


async def _run(args: argparse.Namespace) -> None:
    if args.create_tables:
        await create_all()
    async with AsyncSessionLocal() as db:
        await seed(
            db,
            admin_email=args.email,
            admin_password=args.password,
            admin_name=args.name,
            make_demo_support=args.demo_support,
            make_demo_user=args.demo_user,
            make_demo_tickets=args.demo_tickets,
        )


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Seed admin and demo users")
    p.add_argument("email", nargs="?", default=settings.admin_email, help="Admin email")
    p.add_argument("password", nargs="?", default=settings.admin_password, help="Admin password")
    p.add_argument("-n", "--name", default=settings.admin_name, help="Admin name")

    p.add_argument("--demo-support", dest="demo_support", action="store_true", help="Create demo firstline/secondline staff")
    p.add_argument("--no-demo-support", dest="demo_support", action="store_false")
    p.set_defaults(demo_support=settings.create_demo_support)

    p.add_argument("--demo-user", dest="demo_user", action="store_true", help="Create demo user")
    p.add_argument("--no-demo-user", dest="demo_user", action="store_false")
    p.set_defaults(demo_user=settings.create_demo_user)

    p.add_argument("--demo-tickets", dest="demo_tickets", action="store_true", help="Create sample tickets for demo user")
    p.add_argument("--no-demo-tickets", dest="demo_tickets", action="store_false")
    p.set_defaults(demo_tickets=settings.create_demo_tickets)

    p.add_argument("--create-tables", action="store_true", help="Create tables without alembic (dev only)")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    setup_logging(settings.log_level)
    args = _parse_args(argv)

    if not args.email:
        raise SystemExit("Error: admin email is not set (argument or ADMIN_EMAIL in .env)")
    if not args.password:
        raise SystemExit("Error: admin password is not set (argument or ADMIN_PASSWORD in .env)")

    asyncio.run(_run(args))


if __name__ == "__main__":
    main()
