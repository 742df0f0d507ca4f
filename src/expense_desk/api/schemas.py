"""Pydantic schemas for API request/response models."""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """Error body returned for every domain error."""

    detail: str
    code: str


# ============================================================================
# Expense schemas
# ============================================================================


class ExpenseCreate(BaseModel):
    title: str = Field(min_length=1)
    category: str = Field(min_length=1)
    amount: Decimal = Field(ge=0)
    description: str | None = None
    image: str | None = None
    location: str | None = None


class ExpenseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    expense_id: UUID
    title: str
    status: str
    amount: Decimal
    category: str
    description: str | None = None
    image: str | None = None
    location: str | None = None
    date: str | None = None
    ai_scores: dict[str, Any] | None = None


class CategoriesResponse(BaseModel):
    categories: list[str]


# ============================================================================
# Report schemas
# ============================================================================


class ReportCreate(BaseModel):
    """Schema for bundling expenses into a new pending report."""

    expenses: list[UUID] = Field(default_factory=list)
    event_id: UUID | None = None
    title: str | None = None
    description: str | None = None
    location: str | None = None
    report_date: datetime | None = None


class ReportUpdate(BaseModel):
    """Partial report update; ``submit`` sends a drafted report for approval."""

    expenses: list[UUID] | None = None
    title: str | None = None
    description: str | None = None
    location: str | None = None
    report_date: datetime | None = None
    submit: bool = False


class ReportSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    report_id: UUID
    label: str | None = None
    title: str | None = None
    status: str
    is_event: bool
    event_type: str | None = None
    total_amount: Decimal
    expense_count: int
    date: str | None = None


class ReportDetailResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    report_id: UUID
    label: str | None = None
    title: str | None = None
    status: str
    total_amount: Decimal
    expense_count: int
    event_id: UUID | None = None
    event_status: str | None = None
    expenses: list[ExpenseResponse]
    date: str | None = None
    reasons: list[str] = Field(default_factory=list)


# ============================================================================
# Review schemas
# ============================================================================


class ApprovalDecision(BaseModel):
    expenses: list[UUID] = Field(default_factory=list)
    reason: str | None = None


class ReimburseRequest(BaseModel):
    finance_description: str | None = None
    deduction_amount: Decimal | None = Field(default=None, ge=0)


class ReviewDetailResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    report_id: UUID
    label: str | None = None
    user: str
    employee_id: str | None = None
    tier: str | None = None
    title: str | None = None
    description: str | None = None
    location: str | None = None
    status: str
    approver: str | None = None
    expenses: list[ExpenseResponse]
    total_amount: Decimal
    report_date: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    reasons: list[str] = Field(default_factory=list)
    reimburser: str | None = None
    finance_description: str | None = None


# ============================================================================
# Event schemas
# ============================================================================


class EventCreate(BaseModel):
    """Create an event. ``staff`` is only read for admin callers."""

    name: str = Field(min_length=1)
    description: str | None = None
    location: str | None = None
    start_at: datetime | None = None
    end_at: datetime | None = None
    staff: list[UUID] = Field(default_factory=list)


class EventUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    location: str | None = None
    status: str | None = None
    start_at: datetime | None = None
    end_at: datetime | None = None
    staff: list[UUID] | None = None


class EventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    event_id: UUID
    name: str
    description: str | None = None
    location: str | None = None
    status: str
    type: str
    start_at: datetime | None = None
    end_at: datetime | None = None


# ============================================================================
# Listing schemas
# ============================================================================


class ListResponse(BaseModel):
    """One page of any listing."""

    items: list[Any]
    total: int
    page: int
    page_size: int


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    notification_id: UUID
    report_id: UUID
    report_label: str | None = None
    report_title: str | None = None
    status: str
    total_amount: Decimal
    expense_count: int
    date: str | None = None


# ============================================================================
# Wallet and advance payment schemas
# ============================================================================


class TransactionCreate(BaseModel):
    receiver_id: UUID
    amount: Decimal = Field(gt=0)
    payment_method: str | None = None
    description: str | None = None


class TransactionComplete(BaseModel):
    payment_method: str | None = None


class TransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    transaction_id: UUID
    sender_id: UUID
    receiver_id: UUID
    amount: Decimal
    status: str
    requested_on: datetime
    paid_by_id: UUID | None = None
    paid_on: datetime | None = None
    payment_method: str | None = None
    description: str | None = None


class TransactionDetailResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    transaction_id: UUID
    display_id: str
    amount: Decimal
    status: str
    sender: str | None = None
    receiver: str | None = None
    paid_by: str | None = None
    requested_on: datetime
    paid_on: datetime | None = None
    payment_method: str | None = None
    description: str | None = None


class WalletEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    display_id: str
    amount: Decimal
    date: datetime
    mode: str
    counterparty: str | None = None


class WalletResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_amount: Decimal
    total_expenses: Decimal
    balance_amount: Decimal
    entries: list[WalletEntryResponse]
    categories: list[str]


class WalletUsedResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_amount: Decimal
    total_expenses: Decimal
    expenses: list[ExpenseResponse]
    categories: list[str]
