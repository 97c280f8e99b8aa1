"""
Stats service

Агреговані зрізи по заявках для адмін-кабінету. Рахуємо на льоту
по всій колекції, без кешу і без часових вікон.
"""

from typing import Any, Dict

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.db.models import (
    HistoryFieldEnum,
    RoleEnum as Role,
    SupportLevelEnum as SupportLevel,
    Ticket,
    TicketHistory,
    TicketStatusEnum as Status,
    User,
)


def _enum_key(v):
    # string-значення навіть якщо SQLAlchemy віддасть Enum-об'єкт
    return v.value if hasattr(v, "value") else v


def _sorted_counts(rows) -> list[dict[str, Any]]:
    items = [{"name": _enum_key(k), "count": int(c)} for k, c in rows if k is not None]
    items.sort(key=lambda i: (-i["count"], i["name"]))
    return items


async def _grouped(db: AsyncSession, column, *where) -> dict[Any, int]:
    q = select(column, func.count()).group_by(column)
    for cond in where:
        q = q.where(cond)
    return {k: int(c) for k, c in (await db.execute(q)).all()}


async def ticket_stats(db: AsyncSession) -> Dict[str, Any]:
    """
    Формуємо звіт:
      - total і розподіл за статусом (open = new)
      - підтримка: штат по лініях, в роботі/вирішено по лініях, ескалації
      - розподіл за категорією та пріоритетом
    """
    total = int((await db.execute(select(func.count()).select_from(Ticket))).scalar_one())

    by_status_raw = await _grouped(db, Ticket.status)
    by_status = {s.value: by_status_raw.get(s, 0) for s in Status}

    staff = await _grouped(
        db,
        User.role,
        User.role.in_([Role.firstline, Role.secondline]),
        User.is_active.is_(True),
    )
    in_progress_by_tier = await _grouped(db, Ticket.support_level, Ticket.status == Status.in_progress)
    resolved_by_tier = await _grouped(db, Ticket.support_level, Ticket.status == Status.resolved)

    # ескалація = запис у журналі status -> escalated; лінія = роль того, хто ескалював
    escalations_q = (
        select(User.role, func.count(TicketHistory.id))
        .join(User, User.id == TicketHistory.changed_by_id)
        .where(TicketHistory.field == HistoryFieldEnum.status)
        .where(TicketHistory.new_value == Status.escalated.value)
        .group_by(User.role)
    )
    escalations = {r: int(c) for r, c in (await db.execute(escalations_q)).all()}

    tiers: dict[str, dict[str, int]] = {}
    for level in SupportLevel:
        role = Role(level.value)
        tiers[level.value] = {
            "staff": staff.get(role, 0),
            "in_progress": in_progress_by_tier.get(level, 0),
            "resolved": resolved_by_tier.get(level, 0),
            "escalations": escalations.get(role, 0),
        }

    categories = await _grouped(db, Ticket.category)
    priorities = await _grouped(db, Ticket.priority)

    return {
        "total": total,
        "open": by_status[Status.new.value],
        "in_progress": by_status[Status.in_progress.value],
        "escalated": by_status[Status.escalated.value],
        "resolved": by_status[Status.resolved.value],
        "by_status": by_status,
        "support": {
            "total_staff": sum(staff.values()),
            "firstline": staff.get(Role.firstline, 0),
            "secondline": staff.get(Role.secondline, 0),
            "resolved": by_status[Status.resolved.value],
            "escalated": by_status[Status.escalated.value],
            "tiers": tiers,
        },
        "categories": _sorted_counts(categories.items()),
        "priorities": _sorted_counts(priorities.items()),
    }
