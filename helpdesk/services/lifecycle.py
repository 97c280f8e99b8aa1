"""
Ticket lifecycle (state machine)

    new -> in_progress -> {resolved, escalated}
    escalated -> in_progress -> resolved   (друга лінія)

resolved: термінальний стан; повернути заявку може лише адмін (override).
Функції тут змінюють Ticket на місці і повертають список змін для журналу.
Права актора перевіряє access, тут лише допустимість за станом.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from helpdesk.core.errors import ConflictOfState, ValidationFailed
from helpdesk.db.models import (
    Comment,
    HistoryFieldEnum as Field,
    RoleEnum,
    SupportLevelEnum,
    Ticket,
    TicketStatusEnum as Status,
    User,
    utcnow,
)
from helpdesk.services.access import effective_tier, support_tier

# Допустимі переходи (без адмінського override)
ALLOWED_TRANSITIONS: dict[Status, frozenset[Status]] = {
    Status.new: frozenset({Status.in_progress}),
    Status.in_progress: frozenset({Status.escalated, Status.resolved}),
    Status.escalated: frozenset({Status.in_progress, Status.resolved}),
    Status.resolved: frozenset(),
}

# з яких станів заявку можна (пере)призначити
ASSIGNABLE_STATUSES = frozenset({Status.new, Status.in_progress, Status.escalated})


@dataclass(frozen=True)
class Change:
    field: Field
    old: str | None
    new: str | None


def can_transition(src: Status, dst: Status) -> bool:
    return dst in ALLOWED_TRANSITIONS.get(src, frozenset())


def _str(value: Any) -> str | None:
    if value is None:
        return None
    return str(getattr(value, "value", value))


def _set(ticket: Ticket, attr: str, field: Field, value: Any, changes: list[Change]) -> None:
    old = getattr(ticket, attr)
    if old == value:
        return
    setattr(ticket, attr, value)
    changes.append(Change(field=field, old=_str(old), new=_str(value)))


def _is_admin(actor: User) -> bool:
    return actor.role == RoleEnum.admin


def update_content(ticket: Ticket, fields: dict[str, Any]) -> list[Change]:
    """title/description/category/priority: прості поля без побічних ефектів."""
    changes: list[Change] = []
    for name, value in fields.items():
        _set(ticket, name, Field(name), value, changes)
    return changes


def assign(ticket: Ticket, actor: User, assignee: User) -> list[Change]:
    """
    Призначення: виставляє assignee, узгоджує support_level з роллю
    виконавця і переводить new/escalated у in_progress.
    Повторний self-assign тим самим виконавцем нічого не змінює.
    """
    if ticket.status not in ASSIGNABLE_STATUSES:
        raise ConflictOfState("Resolved tickets cannot be assigned")
    if ticket.assignee_id not in (None, assignee.id) and not _is_admin(actor):
        raise ConflictOfState("Ticket is already assigned. Only admin can reassign tickets.")

    tier = support_tier(assignee.role)
    if tier is None:
        raise ValidationFailed("Assignee must be firstline or secondline support staff", field="assigned_to")

    changes: list[Change] = []
    _set(ticket, "assignee_id", Field.assignee, assignee.id, changes)
    _set(ticket, "support_level", Field.support_level, tier, changes)
    if ticket.status in {Status.new, Status.escalated}:
        _set(ticket, "status", Field.status, Status.in_progress, changes)
    return changes


def follow_assignee_role(ticket: Ticket, role: RoleEnum) -> list[Change]:
    """
    Виконавцю змінили роль. Лінія заявки йде за новою роллю; якщо він
    більше не підтримка, заявку знімаємо з нього і повертаємо в чергу
    її лінії (new для першої, escalated для другої).
    """
    changes: list[Change] = []
    tier = support_tier(role)
    if tier is not None:
        _set(ticket, "support_level", Field.support_level, tier, changes)
        return changes

    _set(ticket, "assignee_id", Field.assignee, None, changes)
    if ticket.status == Status.in_progress:
        queue = Status.escalated if effective_tier(ticket) == SupportLevelEnum.secondline else Status.new
        _set(ticket, "status", Field.status, queue, changes)
    return changes


def escalate(ticket: Ticket, actor: User, *, force: bool = False) -> list[Change]:
    """
    Ескалація на другу лінію: status=escalated, support_level=secondline,
    виконавця знімаємо, заявку забирає хтось із другої лінії.
    force=True: адмінський override без перевірки поточного стану.
    """
    if not force:
        if ticket.status != Status.in_progress:
            raise ConflictOfState("Only tickets in progress can be escalated")
        if effective_tier(ticket) != SupportLevelEnum.firstline:
            raise ConflictOfState("Ticket is already handled by second line")

    changes: list[Change] = []
    _set(ticket, "status", Field.status, Status.escalated, changes)
    _set(ticket, "support_level", Field.support_level, SupportLevelEnum.secondline, changes)
    _set(ticket, "assignee_id", Field.assignee, None, changes)
    return changes


def resolution_note(actor: User) -> str:
    who = actor.name or actor.email
    tier = support_tier(actor.role)
    if tier is not None:
        return f"Ticket marked as resolved by {who} ({tier.value} support)"
    return f"Ticket marked as resolved by {who} ({_str(actor.role)})"


def resolve(ticket: Ticket, actor: User) -> list[Change]:
    """
    Вирішення + службовий коментар, хто і на якій лінії вирішив.
    Коментар отримує поточний час, тож стає найсвіжішим у треді.
    """
    changes: list[Change] = []
    _set(ticket, "status", Field.status, Status.resolved, changes)
    now = utcnow()
    ticket.resolved_at = now
    ticket.comments.append(
        Comment(
            author_id=actor.id,
            text=resolution_note(actor),
            is_system=True,
            created_at=now,
        )
    )
    return changes


def change_status(ticket: Ticket, actor: User, target: Status) -> list[Change]:
    """
    Зміна статусу з побічними ефектами для escalated/resolved.
    Адмін обходить таблицю переходів, решта лише ALLOWED_TRANSITIONS.
    """
    src = ticket.status
    if target == src:
        return []

    admin = _is_admin(actor)
    if not admin and not can_transition(src, target):
        raise ConflictOfState(f"Illegal status transition: {_str(src)} -> {_str(target)}")
    if not admin and target == Status.in_progress and ticket.assignee_id is None:
        raise ConflictOfState("Ticket must be assigned before it is in progress")

    if target == Status.resolved:
        return resolve(ticket, actor)

    if src == Status.resolved:
        # адмін повернув заявку, скидаємо час вирішення
        ticket.resolved_at = None
    if target == Status.escalated:
        return escalate(ticket, actor, force=admin)

    changes: list[Change] = []
    _set(ticket, "status", Field.status, target, changes)
    return changes
