# helpdesk/api/routes/tickets.py
from __future__ import annotations

from fastapi import APIRouter, Query, status

from helpdesk.api.deps import AdminUser, CurrentUser, DBDep
from helpdesk.db.models import (
    CategoryEnum as Category,
    PriorityEnum as Priority,
    TicketStatusEnum as Status,
)
from helpdesk.schemas.common import Envelope, ListEnvelope
from helpdesk.schemas.stats import TicketStatsOut
from helpdesk.schemas.tickets import (
    HistoryOut,
    TicketAssign,
    TicketCreate,
    TicketListItem,
    TicketOut,
    TicketUpdate,
)
from helpdesk.services import stats as stats_service
from helpdesk.services import tickets as ticket_service

router = APIRouter()


@router.get("/stats", response_model=Envelope[TicketStatsOut])
async def ticket_stats(db: DBDep, _admin: AdminUser):
    return Envelope(data=TicketStatsOut(**await stats_service.ticket_stats(db)))


@router.get("", response_model=ListEnvelope[TicketListItem])
async def list_tickets(
    db: DBDep,
    current: CurrentUser,
    status_: Status | None = Query(default=None, alias="status"),
    priority: Priority | None = None,
    category: Category | None = None,
    mine: bool = Query(default=False, description="only tickets assigned to me"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
):
    rows = await ticket_service.list_tickets(
        db,
        current,
        status=status_,
        priority=priority,
        category=category,
        mine=mine,
        limit=limit,
        offset=offset,
    )
    return ListEnvelope(count=len(rows), data=[TicketListItem.model_validate(t) for t in rows])


@router.post("", response_model=Envelope[TicketOut], status_code=status.HTTP_201_CREATED)
async def create_ticket(payload: TicketCreate, db: DBDep, current: CurrentUser):
    t = await ticket_service.create_ticket(db, current, payload)
    return Envelope(data=TicketOut.model_validate(t))


@router.get("/{ticket_id}", response_model=Envelope[TicketOut])
async def get_ticket(ticket_id: int, db: DBDep, current: CurrentUser):
    t = await ticket_service.get_visible_ticket(db, current, ticket_id)
    return Envelope(data=TicketOut.model_validate(t))


@router.patch("/{ticket_id}", response_model=Envelope[TicketOut])
async def patch_ticket(ticket_id: int, payload: TicketUpdate, db: DBDep, current: CurrentUser):
    t = await ticket_service.update_ticket(db, current, ticket_id, payload)
    return Envelope(data=TicketOut.model_validate(t))


@router.delete("/{ticket_id}", response_model=Envelope[dict])
async def delete_ticket(ticket_id: int, db: DBDep, current: CurrentUser):
    await ticket_service.delete_ticket(db, current, ticket_id)
    return Envelope(data={})


@router.post("/{ticket_id}/assign", response_model=Envelope[TicketOut])
async def assign_ticket(ticket_id: int, payload: TicketAssign, db: DBDep, current: CurrentUser):
    """Адмін призначає будь-кого; підтримка лише self-assign у своїй лінії."""
    t = await ticket_service.assign_ticket(db, current, ticket_id, payload)
    return Envelope(data=TicketOut.model_validate(t))


@router.post("/{ticket_id}/escalate", response_model=Envelope[TicketOut])
async def escalate_ticket(ticket_id: int, db: DBDep, current: CurrentUser):
    """Перша лінія передає заявку другій (status=escalated, support_level=secondline)."""
    t = await ticket_service.escalate_ticket(db, current, ticket_id)
    return Envelope(data=TicketOut.model_validate(t))


@router.get("/{ticket_id}/history", response_model=ListEnvelope[HistoryOut])
async def ticket_history(ticket_id: int, db: DBDep, current: CurrentUser):
    rows = await ticket_service.ticket_history(db, current, ticket_id)
    return ListEnvelope(count=len(rows), data=[HistoryOut.model_validate(h) for h in rows])
