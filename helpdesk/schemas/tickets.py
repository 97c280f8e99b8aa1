# helpdesk/schemas/tickets.py
from __future__ import annotations

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from helpdesk.db.models import (
    CategoryEnum as Category,
    HistoryFieldEnum,
    PriorityEnum as Priority,
    SupportLevelEnum as SupportLevel,
    TicketStatusEnum as Status,
)
from helpdesk.schemas.comments import CommentOut
from helpdesk.schemas.users import UserBrief


class TicketCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=500)
    category: Category
    priority: Priority = Field(default=Priority.medium)


class TicketUpdate(BaseModel):
    # усі поля опційні; що саме застосується, вирішує access
    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, min_length=1, max_length=500)
    category: Optional[Category] = None
    priority: Optional[Priority] = None
    status: Optional[Status] = None


class TicketAssign(BaseModel):
    assigned_to: int
    support_level: Optional[SupportLevel] = None


class TicketListItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    category: Category
    status: Status
    priority: Priority
    support_level: Optional[SupportLevel] = None
    submitter_id: int
    assignee_id: Optional[int] = None
    submitter: Optional[UserBrief] = None
    assignee: Optional[UserBrief] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class TicketOut(TicketListItem):
    # коментарі від найсвіжішого до найстарішого
    comments: list[CommentOut] = []


class HistoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    ticket_id: int
    field: HistoryFieldEnum
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    changed_by_id: Optional[int] = None
    created_at: datetime
