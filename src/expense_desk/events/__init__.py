"""Domain events and the emitter that fans them out."""

from expense_desk.events.emitter import AsyncEventBatch, AsyncEventEmitter
from expense_desk.events.types import (
    DomainEvent,
    EventMetadata,
    NotificationRequested,
    ReportApproved,
    ReportReimbursed,
    ReportRejected,
    ReportSubmitted,
)

__all__ = [
    "AsyncEventBatch",
    "AsyncEventEmitter",
    "DomainEvent",
    "EventMetadata",
    "NotificationRequested",
    "ReportApproved",
    "ReportReimbursed",
    "ReportRejected",
    "ReportSubmitted",
]
