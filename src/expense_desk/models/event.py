"""Event models: organization- or user-created trips and gatherings."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Column, ForeignKey, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from expense_desk.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from expense_desk.models.users import User


class EventType(str, Enum):
    """Who created the event. Admin events bypass policy limits."""

    ADMIN = "Admin"
    USER = "User"


class EventStatus(str, Enum):
    """Event lifecycle status."""

    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


event_staff = Table(
    "event_staff",
    Base.metadata,
    Column("event_id", ForeignKey("event.event_id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", ForeignKey("app_user.user_id", ondelete="CASCADE"), primary_key=True),
)


class Event(Base, TimestampMixin):
    """An event that staff can attach expense reports to."""

    __tablename__ = "event"

    event_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str | None] = mapped_column(String, nullable=True)
    type: Mapped[str] = mapped_column(String, nullable=False, default=EventType.USER.value)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=EventStatus.UPCOMING.value
    )
    creator_kind: Mapped[str] = mapped_column(String, nullable=False)
    creator_id: Mapped[UUID] = mapped_column(nullable=False)
    start_at: Mapped[datetime | None] = mapped_column(nullable=True)
    end_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __table_args__ = (
        CheckConstraint("type IN ('Admin', 'User')", name="event_type_check"),
        CheckConstraint(
            "status IN ('upcoming', 'ongoing', 'completed', 'cancelled')",
            name="event_status_check",
        ),
        CheckConstraint(
            "end_at IS NULL OR start_at IS NULL OR end_at >= start_at",
            name="event_schedule_check",
        ),
    )

    # Relationships
    staff: Mapped[list[User]] = relationship(secondary=event_staff, lazy="selectin")

    @property
    def is_admin_event(self) -> bool:
        return self.type == EventType.ADMIN.value
