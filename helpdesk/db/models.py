# helpdesk/db/models.py
from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    String,
    Text,
    Integer,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    func,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from helpdesk.db.base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ==== Енуми (python + sqlalchemy) ====


class RoleEnum(str, enum.Enum):
    user = "user"
    firstline = "firstline"
    secondline = "secondline"
    admin = "admin"


class SupportLevelEnum(str, enum.Enum):
    firstline = "firstline"
    secondline = "secondline"


class TicketStatusEnum(str, enum.Enum):
    new = "new"
    in_progress = "in_progress"  # підтримка взяла у роботу
    escalated = "escalated"      # чекає на другу лінію
    resolved = "resolved"


class PriorityEnum(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"


class CategoryEnum(str, enum.Enum):
    hardware = "Hardware"
    software = "Software"
    network = "Network"
    account = "Account"
    other = "Other"


class HistoryFieldEnum(str, enum.Enum):
    title = "title"
    description = "description"
    category = "category"
    priority = "priority"
    status = "status"
    support_level = "support_level"
    assignee = "assignee"


# ==== Міксини ====


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )


# ==== Моделі ====


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255))
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    role: Mapped[RoleEnum] = mapped_column(
        Enum(RoleEnum, name="role_enum"),
        default=RoleEnum.user,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # relationships
    tickets_submitted: Mapped[List["Ticket"]] = relationship(
        back_populates="submitter",
        foreign_keys="Ticket.submitter_id",
    )
    tickets_assigned: Mapped[List["Ticket"]] = relationship(
        back_populates="assignee",
        foreign_keys="Ticket.assignee_id",
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} role={self.role}>"


class Ticket(TimestampMixin, Base):
    __tablename__ = "tickets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    submitter_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    assignee_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(100))
    description: Mapped[str] = mapped_column(String(500))
    category: Mapped[CategoryEnum] = mapped_column(
        Enum(CategoryEnum, name="category_enum", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    priority: Mapped[PriorityEnum] = mapped_column(
        Enum(PriorityEnum, name="priority_enum"),
        default=PriorityEnum.medium,
        nullable=False,
    )
    status: Mapped[TicketStatusEnum] = mapped_column(
        Enum(TicketStatusEnum, name="ticket_status_enum"),
        default=TicketStatusEnum.new,
        nullable=False,
    )
    # None = ще не маршрутизовано (перша лінія)
    support_level: Mapped[Optional[SupportLevelEnum]] = mapped_column(
        Enum(SupportLevelEnum, name="support_level_enum"),
        nullable=True,
    )
    resolved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # relationships
    submitter: Mapped["User"] = relationship(
        back_populates="tickets_submitted",
        foreign_keys=[submitter_id],
    )
    assignee: Mapped[Optional["User"]] = relationship(
        back_populates="tickets_assigned",
        foreign_keys=[assignee_id],
    )
    comments: Mapped[List["Comment"]] = relationship(
        back_populates="ticket",
        cascade="all, delete-orphan",
        order_by="[Comment.created_at.desc(), Comment.id.desc()]",
    )
    history: Mapped[List["TicketHistory"]] = relationship(
        back_populates="ticket",
        cascade="all, delete-orphan",
        order_by="[TicketHistory.created_at.asc(), TicketHistory.id.asc()]",
    )

    __table_args__ = (
        Index("ix_tickets_status_priority", "status", "priority"),
        Index("ix_tickets_support_level", "support_level"),
        Index("ix_tickets_updated_at", "updated_at"),
    )

    def __repr__(self) -> str:
        return f"<Ticket id={self.id} status={self.status} priority={self.priority}>"


class Comment(Base):
    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_id: Mapped[int] = mapped_column(
        ForeignKey("tickets.id", ondelete="CASCADE"),
        index=True,
    )
    author_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    text: Mapped[str] = mapped_column(Text)
    # службовий коментар (напр. фіксація вирішення)
    is_system: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    # relationships
    ticket: Mapped["Ticket"] = relationship(back_populates="comments")
    author: Mapped["User"] = relationship()


class TicketHistory(Base):
    """Журнал змін полів заявки: один рядок на одне змінене поле."""

    __tablename__ = "ticket_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_id: Mapped[int] = mapped_column(
        ForeignKey("tickets.id", ondelete="CASCADE"),
        index=True,
    )
    changed_by_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    field: Mapped[HistoryFieldEnum] = mapped_column(
        Enum(HistoryFieldEnum, name="history_field_enum"),
        nullable=False,
    )
    old_value: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    new_value: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    ticket: Mapped["Ticket"] = relationship(back_populates="history")
    changed_by: Mapped[Optional["User"]] = relationship()
