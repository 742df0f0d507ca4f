"""Tier policy evaluation: category allow-list, category caps, monthly cap."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from expense_desk.config import Settings, get_settings
from expense_desk.formatting import month_bounds
from expense_desk.models import Expense, Report, ReportExpense, Tier, User, utcnow
from expense_desk.services.errors import (
    CategoryDisabledError,
    CategoryLimitExceededError,
    CategoryNotAllowedError,
    NotFoundError,
    TierLimitExceededError,
)
from expense_desk.services.state_machine import ReportStateMachine

logger = logging.getLogger(__name__)


def normalize_category(title: str) -> str:
    """Canonical lookup key for a category title."""
    return title.strip().lower()


@dataclass(frozen=True)
class CategoryRule:
    title: str
    max_amount: Decimal
    enabled: bool


@dataclass(frozen=True)
class TierPolicy:
    """Immutable snapshot of a tier, with categories keyed case-insensitively.

    Built once per tier read so each check is a dictionary lookup.
    """

    tier_id: UUID
    title: str
    total_amount: Decimal
    categories: Mapping[str, CategoryRule]

    @classmethod
    def from_tier(cls, tier: Tier) -> TierPolicy:
        return cls(
            tier_id=tier.tier_id,
            title=tier.title,
            total_amount=Decimal(tier.total_amount),
            categories={
                normalize_category(c.title): CategoryRule(
                    title=c.title,
                    max_amount=Decimal(c.max_amount),
                    enabled=c.enabled,
                )
                for c in tier.categories
            },
        )

    def rule_for(self, category: str) -> CategoryRule | None:
        return self.categories.get(normalize_category(category))

    def check_category_totals(self, totals: Mapping[str, Decimal]) -> None:
        """Raise the first PolicyViolation found among per-category totals."""
        for category, total in totals.items():
            rule = self.rule_for(category)
            if rule is None:
                raise CategoryNotAllowedError(category)
            if not rule.enabled:
                raise CategoryDisabledError(category)
            if total > rule.max_amount:
                raise CategoryLimitExceededError(category, total, rule.max_amount)

    def check_monthly_total(self, existing_total: Decimal, report_total: Decimal) -> None:
        if existing_total + report_total > self.total_amount:
            raise TierLimitExceededError(existing_total, report_total, self.total_amount)

    def enabled_category_titles(self) -> list[str]:
        """Enabled categories, title-cased for display."""
        return [
            rule.title[:1].upper() + rule.title[1:]
            for rule in self.categories.values()
            if rule.enabled
        ]


def aggregate_by_category(expenses: Iterable[Expense]) -> dict[str, Decimal]:
    """Sum expense amounts per category.

    Categories that differ only in case are summed together under the
    first spelling seen, matching how the tier lookup treats them.
    """
    totals: dict[str, Decimal] = {}
    spelling: dict[str, str] = {}
    for expense in expenses:
        key = normalize_category(expense.category)
        title = spelling.setdefault(key, expense.category)
        totals[title] = totals.get(title, Decimal("0")) + Decimal(expense.amount)
    return totals


class PolicyService:
    """Read path for tier policy and the monthly committed total."""

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()

    async def get_tier_for_user(self, user: User) -> TierPolicy:
        if user.tier_id is None:
            raise NotFoundError("Tier for user", user.user_id)
        tier = await self.session.get(Tier, user.tier_id)
        if tier is None:
            raise NotFoundError("Tier", user.tier_id)
        return TierPolicy.from_tier(tier)

    async def monthly_committed_total(
        self,
        user: User,
        now: datetime | None = None,
    ) -> Decimal:
        """Sum of expense amounts on approved/reimbursed reports this month.

        Reports are selected by ``report_date`` within the UTC calendar
        month. Scope follows ``settings.monthly_cap_scope``: ``organization``
        counts every report, ``tier`` only reports of users sharing this
        user's tier, ``user`` only this user's reports.
        """
        start, end = month_bounds(now or utcnow())
        query = (
            select(Expense.amount)
            .join(ReportExpense, ReportExpense.expense_id == Expense.expense_id)
            .join(Report, Report.report_id == ReportExpense.report_id)
            .where(
                Report.report_date >= start,
                Report.report_date < end,
                Report.status.in_([s.value for s in ReportStateMachine.LOCKS_EXPENSES]),
            )
        )

        scope = self.settings.monthly_cap_scope
        if scope == "user":
            query = query.where(Report.user_id == user.user_id)
        elif scope == "tier":
            query = query.join(User, User.user_id == Report.user_id).where(
                User.tier_id == user.tier_id
            )

        amounts = (await self.session.execute(query)).scalars().all()
        return sum((Decimal(a) for a in amounts), Decimal("0"))

    async def list_categories(self, user_id: UUID) -> list[str]:
        user = await self.session.get(User, user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        policy = await self.get_tier_for_user(user)
        return policy.enabled_category_titles()
