# helpdesk/schemas/stats.py
from __future__ import annotations

from pydantic import BaseModel


class CountItem(BaseModel):
    name: str
    count: int


class TierStats(BaseModel):
    staff: int
    in_progress: int
    resolved: int
    escalations: int  # скільки разів ця лінія ескалювала заявки


class SupportStats(BaseModel):
    total_staff: int
    firstline: int
    secondline: int
    resolved: int
    escalated: int
    tiers: dict[str, TierStats]


class TicketStatsOut(BaseModel):
    total: int
    open: int          # status=new
    in_progress: int
    escalated: int
    resolved: int
    by_status: dict[str, int]
    support: SupportStats
    categories: list[CountItem]
    priorities: list[CountItem]
