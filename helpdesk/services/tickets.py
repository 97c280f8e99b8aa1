"""
Tickets service (операції над заявками)

Кожна операція: знайти заявку -> перевірити view -> перевірити дію (access)
-> застосувати зміну (lifecycle) -> журнал + commit -> перечитати.
Заявка, яку актор не бачить, не повертається і не розкривається в помилці.
"""
from __future__ import annotations

import logging
from typing import Any, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from helpdesk.core.errors import ConflictOfState, NotFound, ValidationFailed
from helpdesk.db.models import (
    CategoryEnum as Category,
    Comment,
    PriorityEnum as Priority,
    Ticket,
    TicketHistory,
    TicketStatusEnum as Status,
    User,
    utcnow,
)
from helpdesk.schemas.tickets import TicketAssign, TicketCreate, TicketUpdate
from helpdesk.services import access, lifecycle, notifications
from helpdesk.services.auth import get_active_support_user
from helpdesk.services.lifecycle import Change

log = logging.getLogger(__name__)

CONTENT_FIELDS = ("title", "description", "category")


def _ticket_query():
    return select(Ticket).options(
        selectinload(Ticket.submitter),
        selectinload(Ticket.assignee),
        selectinload(Ticket.comments).selectinload(Comment.author),
    )


async def load_ticket(db: AsyncSession, ticket_id: int) -> Ticket:
    q = _ticket_query().where(Ticket.id == ticket_id).execution_options(populate_existing=True)
    t = (await db.execute(q)).scalar_one_or_none()
    if not t:
        raise NotFound("Ticket not found")
    return t


async def get_visible_ticket(db: AsyncSession, actor: User, ticket_id: int) -> Ticket:
    t = await load_ticket(db, ticket_id)
    access.ensure(access.can_view(actor, t), "Not authorized to view this ticket")
    return t


async def _save(db: AsyncSession, ticket: Ticket, actor: User, changes: Sequence[Change]) -> Ticket:
    db.add_all(
        TicketHistory(
            ticket_id=ticket.id,
            changed_by_id=actor.id,
            field=c.field,
            old_value=c.old,
            new_value=c.new,
        )
        for c in changes
    )
    ticket.updated_at = utcnow()
    await db.commit()
    return await load_ticket(db, ticket.id)


async def list_tickets(
    db: AsyncSession,
    actor: User,
    *,
    status: Status | None = None,
    priority: Priority | None = None,
    category: Category | None = None,
    mine: bool = False,
    limit: int = 50,
    offset: int = 0,
) -> list[Ticket]:
    q = select(Ticket).options(selectinload(Ticket.submitter), selectinload(Ticket.assignee))
    clause = access.visible_tickets_clause(actor)
    if clause is not None:
        q = q.where(clause)
    if status is not None:
        q = q.where(Ticket.status == status)
    if priority is not None:
        q = q.where(Ticket.priority == priority)
    if category is not None:
        q = q.where(Ticket.category == category)
    if mine:
        q = q.where(Ticket.assignee_id == actor.id)

    q = q.order_by(Ticket.updated_at.desc(), Ticket.id.desc()).limit(limit).offset(offset)
    return list((await db.execute(q)).scalars().all())


async def create_ticket(db: AsyncSession, actor: User, payload: TicketCreate) -> Ticket:
    access.ensure(access.can_create(actor), "Only users can create tickets")
    t = Ticket(
        title=payload.title,
        description=payload.description,
        category=payload.category,
        priority=payload.priority,
        status=Status.new,
        submitter_id=actor.id,
        assignee_id=None,
    )
    db.add(t)
    await db.commit()
    t = await load_ticket(db, t.id)
    log.info("ticket_created", extra={"ticket_id": t.id, "submitter_id": actor.id})
    notifications.notify("ticket_created", t, actor)
    return t


async def update_ticket(db: AsyncSession, actor: User, ticket_id: int, payload: TicketUpdate) -> Ticket:
    """
    Комбіноване оновлення. Поля, які актор не може чіпати, мовчки
    відкидаються для автора (title/description/category лише автор;
    priority/status лише підтримка/адмін). Спроба співробітника чи
    адміна змінити те, на що немає прав, дає Forbidden.
    """
    t = await get_visible_ticket(db, actor, ticket_id)
    data: dict[str, Any] = payload.model_dump(exclude_unset=True, exclude_none=True)
    changes: list[Change] = []

    content = {k: data[k] for k in CONTENT_FIELDS if k in data}
    if content and access.is_submitter(actor, t):
        if not access.can_update_content(actor, t):
            raise ConflictOfState("Resolved tickets can no longer be edited")
        changes += lifecycle.update_content(t, content)

    privileged = access.is_staff(actor)
    if "priority" in data and privileged:
        access.ensure(access.can_update_priority(actor, t), "Only the assigned support staff can change priority")
        changes += lifecycle.update_content(t, {"priority": data["priority"]})

    old_status = t.status
    if "status" in data and privileged:
        target = data["status"]
        access.ensure(
            access.can_update_status(actor, t, target),
            "Only the assigned support staff can update ticket status",
        )
        changes += lifecycle.change_status(t, actor, target)

    if not changes:
        return t

    t = await _save(db, t, actor, changes)
    if t.status != old_status:
        log.info(
            "status_changed",
            extra={"ticket_id": t.id, "from": old_status.value, "to": t.status.value, "actor_id": actor.id},
        )
        event = "ticket_resolved" if t.status == Status.resolved else "status_changed"
        notifications.notify(event, t, actor, **{"from": old_status.value, "to": t.status.value})
    return t


async def assign_ticket(db: AsyncSession, actor: User, ticket_id: int, payload: TicketAssign) -> Ticket:
    t = await get_visible_ticket(db, actor, ticket_id)
    access.ensure(
        access.can_assign(actor, t, payload.assigned_to),
        "Support staff can only self-assign tickets of their own support level",
    )

    if payload.assigned_to == actor.id:
        assignee = actor
    else:
        assignee = await get_active_support_user(db, payload.assigned_to)

    tier = access.support_tier(assignee.role)
    if payload.support_level is not None and tier is not None and payload.support_level != tier:
        raise ValidationFailed("Support level must match the assignee role", field="support_level")

    changes = lifecycle.assign(t, actor, assignee)
    if not changes:
        return t
    t = await _save(db, t, actor, changes)
    log.info("ticket_assigned", extra={"ticket_id": t.id, "assignee_id": assignee.id, "actor_id": actor.id})
    notifications.notify("ticket_assigned", t, actor)
    return t


async def escalate_ticket(db: AsyncSession, actor: User, ticket_id: int) -> Ticket:
    t = await get_visible_ticket(db, actor, ticket_id)
    access.ensure(access.can_escalate(actor, t), "Only the handling first-line staff can escalate")
    changes = lifecycle.escalate(t, actor)
    t = await _save(db, t, actor, changes)
    log.info("ticket_escalated", extra={"ticket_id": t.id, "actor_id": actor.id})
    notifications.notify("ticket_escalated", t, actor)
    return t


async def delete_ticket(db: AsyncSession, actor: User, ticket_id: int) -> None:
    t = await get_visible_ticket(db, actor, ticket_id)
    access.ensure(access.can_delete(actor, t), "Not authorized to delete this ticket")
    notifications.notify("ticket_deleted", t, actor)
    await db.delete(t)
    await db.commit()
    log.info("ticket_deleted", extra={"ticket_id": ticket_id, "actor_id": actor.id})


# ==== Коментарі ====


async def add_comment(db: AsyncSession, actor: User, ticket_id: int, text: str) -> Comment:
    """Коментарі лише додаються, порядок за власним created_at."""
    t = await get_visible_ticket(db, actor, ticket_id)
    access.ensure(access.can_comment(actor, t), "Not authorized to comment on this ticket")

    c = Comment(ticket_id=t.id, author_id=actor.id, text=text)
    db.add(c)
    t.updated_at = utcnow()
    await db.commit()

    c = (
        await db.execute(
            select(Comment)
            .options(selectinload(Comment.author))
            .where(Comment.id == c.id)
            .execution_options(populate_existing=True)
        )
    ).scalar_one()
    log.info("comment_added", extra={"ticket_id": t.id, "comment_id": c.id, "actor_id": actor.id})
    notifications.notify("comment_added", t, actor, comment_id=c.id)
    return c


async def list_comments(db: AsyncSession, actor: User, ticket_id: int) -> list[Comment]:
    t = await get_visible_ticket(db, actor, ticket_id)
    return list(t.comments)


async def ticket_history(db: AsyncSession, actor: User, ticket_id: int) -> list[TicketHistory]:
    t = await get_visible_ticket(db, actor, ticket_id)
    q = (
        select(TicketHistory)
        .where(TicketHistory.ticket_id == t.id)
        .order_by(TicketHistory.created_at.asc(), TicketHistory.id.asc())
    )
    return list((await db.execute(q)).scalars().all())
