"""Domain event types for report lifecycle changes.

All events are immutable frozen dataclasses with explicit payloads and
shared metadata, so handlers (notification transport, audit sinks) can
route on ``event_type`` without inspecting the payload.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from expense_desk.models.base import utcnow


@dataclass(frozen=True)
class EventMetadata:
    """Metadata attached to every domain event."""

    event_id: UUID
    timestamp: datetime
    actor_id: UUID | None
    actor_kind: str | None
    source_service: str

    @classmethod
    def create(
        cls,
        actor_id: UUID | None = None,
        actor_kind: str | None = None,
        source_service: str = "expense_desk",
    ) -> EventMetadata:
        """Create metadata with auto-generated fields."""
        return cls(
            event_id=uuid4(),
            timestamp=utcnow(),
            actor_id=actor_id,
            actor_kind=actor_kind,
            source_service=source_service,
        )


@dataclass(frozen=True)
class DomainEvent:
    """Base class for all domain events."""

    metadata: EventMetadata

    @property
    def event_type(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["event_type"] = self.event_type
        return data


@dataclass(frozen=True)
class ReportSubmitted(DomainEvent):
    report_id: UUID
    user_id: UUID
    label: str | None
    admin_event: bool


@dataclass(frozen=True)
class ReportApproved(DomainEvent):
    report_id: UUID
    user_id: UUID
    expense_ids: tuple[UUID, ...]


@dataclass(frozen=True)
class ReportRejected(DomainEvent):
    report_id: UUID
    user_id: UUID
    rejected_expense_ids: tuple[UUID, ...]
    approved_expense_ids: tuple[UUID, ...]


@dataclass(frozen=True)
class ReportReimbursed(DomainEvent):
    report_id: UUID
    user_id: UUID
    deduction_id: UUID | None


@dataclass(frozen=True)
class NotificationRequested(DomainEvent):
    """A user should be told that a report changed status."""

    notification_id: UUID
    report_id: UUID
    user_id: UUID
    status: str
