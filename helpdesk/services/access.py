"""
Access control для заявок.

Один модуль вирішує, хто що може робити з конкретною заявкою:
view / create / update_content / update_status / assign / comment / delete.
Роутери та сервіси не перевіряють ролі інлайн, а завжди питають тут.

Ролі перебираються вичерпно (match по RoleEnum), тому нова роль
одразу впаде на ``_unknown_role`` і змусить переглянути кожне правило.
"""
from __future__ import annotations

import enum
from typing import NoReturn

from sqlalchemy import or_
from sqlalchemy.sql.elements import ColumnElement

from helpdesk.core.errors import Forbidden
from helpdesk.db.models import (
    RoleEnum,
    SupportLevelEnum,
    Ticket,
    TicketStatusEnum as Status,
    User,
)


class Action(str, enum.Enum):
    view = "view"
    create = "create"
    update_content = "update_content"
    update_status = "update_status"
    assign = "assign"
    comment = "comment"
    delete = "delete"


# статуси, у яких автор ще може правити title/description/category
EDITABLE_STATUSES = frozenset({Status.new, Status.in_progress, Status.escalated})

# куди може перевести заявку призначений співробітник підтримки
SUPPORT_STATUS_TARGETS = frozenset({Status.in_progress, Status.resolved})


def _unknown_role(role: object) -> NoReturn:
    raise ValueError(f"Unknown role: {role!r}")


def support_tier(role: RoleEnum) -> SupportLevelEnum | None:
    """Лінія підтримки для ролі (None, якщо не співробітник підтримки)."""
    match role:
        case RoleEnum.firstline:
            return SupportLevelEnum.firstline
        case RoleEnum.secondline:
            return SupportLevelEnum.secondline
        case RoleEnum.user | RoleEnum.admin:
            return None
    _unknown_role(role)


def is_support(actor: User) -> bool:
    return support_tier(actor.role) is not None


def is_staff(actor: User) -> bool:
    """Підтримка або адмін (ті, хто працює із заявками, а не подає їх)."""
    match actor.role:
        case RoleEnum.firstline | RoleEnum.secondline | RoleEnum.admin:
            return True
        case RoleEnum.user:
            return False
    _unknown_role(actor.role)


def effective_tier(ticket: Ticket) -> SupportLevelEnum:
    # не маршрутизована заявка стоїть у черзі першої лінії
    return ticket.support_level or SupportLevelEnum.firstline


def is_submitter(actor: User, ticket: Ticket) -> bool:
    return ticket.submitter_id is not None and ticket.submitter_id == actor.id


def is_assignee(actor: User, ticket: Ticket) -> bool:
    return ticket.assignee_id is not None and ticket.assignee_id == actor.id


# ==== Предикати ====


def can_view(actor: User, ticket: Ticket) -> bool:
    match actor.role:
        case RoleEnum.admin:
            return True
        case RoleEnum.user:
            return is_submitter(actor, ticket)
        case RoleEnum.firstline | RoleEnum.secondline:
            return (
                is_submitter(actor, ticket)
                or is_assignee(actor, ticket)
                or support_tier(actor.role) == effective_tier(ticket)
            )
    _unknown_role(actor.role)


def can_create(actor: User) -> bool:
    match actor.role:
        case RoleEnum.user:
            return True
        case RoleEnum.firstline | RoleEnum.secondline | RoleEnum.admin:
            return False
    _unknown_role(actor.role)


def can_update_content(actor: User, ticket: Ticket) -> bool:
    """Лише автор і лише поки заявку не вирішено."""
    return is_submitter(actor, ticket) and ticket.status in EDITABLE_STATUSES


def can_update_priority(actor: User, ticket: Ticket) -> bool:
    match actor.role:
        case RoleEnum.admin:
            return True
        case RoleEnum.firstline | RoleEnum.secondline:
            return is_assignee(actor, ticket)
        case RoleEnum.user:
            return False
    _unknown_role(actor.role)


def can_update_status(actor: User, ticket: Ticket, target: Status) -> bool:
    """
    Адмін: без обмежень (у т.ч. повернення з resolved).
    Призначений співробітник: лише в in_progress/resolved.
    Допустимість самого переходу перевіряє lifecycle.
    """
    match actor.role:
        case RoleEnum.admin:
            return True
        case RoleEnum.firstline | RoleEnum.secondline:
            return is_assignee(actor, ticket) and target in SUPPORT_STATUS_TARGETS
        case RoleEnum.user:
            return False
    _unknown_role(actor.role)


def can_assign(actor: User, ticket: Ticket, assignee_id: int) -> bool:
    """
    Адмін призначає будь-кого (перепризначення теж).
    Підтримка: тільки self-assign у своїй лінії. Якщо заявка вже
    зайнята, це конфлікт стану, його перевіряє lifecycle.
    """
    match actor.role:
        case RoleEnum.admin:
            return True
        case RoleEnum.firstline | RoleEnum.secondline:
            return assignee_id == actor.id and support_tier(actor.role) == effective_tier(ticket)
        case RoleEnum.user:
            return False
    _unknown_role(actor.role)


def can_escalate(actor: User, ticket: Ticket) -> bool:
    match actor.role:
        case RoleEnum.admin:
            return True
        case RoleEnum.firstline:
            return is_assignee(actor, ticket)
        case RoleEnum.secondline | RoleEnum.user:
            return False
    _unknown_role(actor.role)


def can_comment(actor: User, ticket: Ticket) -> bool:
    match actor.role:
        case RoleEnum.admin:
            return True
        case RoleEnum.user | RoleEnum.firstline | RoleEnum.secondline:
            return is_submitter(actor, ticket) or is_assignee(actor, ticket)
    _unknown_role(actor.role)


def can_delete(actor: User, ticket: Ticket) -> bool:
    match actor.role:
        case RoleEnum.admin:
            return True
        case RoleEnum.user | RoleEnum.firstline | RoleEnum.secondline:
            return is_submitter(actor, ticket)
    _unknown_role(actor.role)


def is_allowed(
    actor: User,
    ticket: Ticket | None,
    action: Action,
    *,
    target_status: Status | None = None,
    assignee_id: int | None = None,
) -> bool:
    """Єдина точка входу: (actor, ticket, action) -> allow/deny."""
    if action is Action.create:
        return can_create(actor)
    if ticket is None:
        return False
    match action:
        case Action.view:
            return can_view(actor, ticket)
        case Action.update_content:
            return can_update_content(actor, ticket)
        case Action.update_status:
            return target_status is not None and can_update_status(actor, ticket, target_status)
        case Action.assign:
            return assignee_id is not None and can_assign(actor, ticket, assignee_id)
        case Action.comment:
            return can_comment(actor, ticket)
        case Action.delete:
            return can_delete(actor, ticket)
    raise ValueError(f"Unknown action: {action!r}")


def ensure(allowed: bool, detail: str = "Not authorized") -> None:
    if not allowed:
        raise Forbidden(detail)


# ==== Фільтр для списків (той самий rule, що й can_view) ====


def visible_tickets_clause(actor: User) -> ColumnElement[bool] | None:
    """
    SQL-умова для видимих актору заявок. None означає без обмежень (адмін).
    """
    match actor.role:
        case RoleEnum.admin:
            return None
        case RoleEnum.user:
            return Ticket.submitter_id == actor.id
        case RoleEnum.firstline:
            return or_(
                Ticket.support_level == SupportLevelEnum.firstline,
                Ticket.support_level.is_(None),
                Ticket.assignee_id == actor.id,
                Ticket.submitter_id == actor.id,
            )
        case RoleEnum.secondline:
            return or_(
                Ticket.support_level == SupportLevelEnum.secondline,
                Ticket.assignee_id == actor.id,
                Ticket.submitter_id == actor.id,
            )
    _unknown_role(actor.role)
