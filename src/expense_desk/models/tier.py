"""Tier policy models: category allow-list and monthly caps."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from expense_desk.models.base import Base, TimestampMixin


class Tier(Base, TimestampMixin):
    """Spending tier assigned to users."""

    __tablename__ = "tier"

    tier_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    title: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="tier_total_amount_check"),
    )

    # Relationships
    categories: Mapped[list[TierCategory]] = relationship(
        back_populates="tier",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="TierCategory.title",
    )


class TierCategory(Base):
    """Per-category monthly cap within a tier."""

    __tablename__ = "tier_category"

    tier_category_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tier_id: Mapped[UUID] = mapped_column(
        ForeignKey("tier.tier_id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String, nullable=False)
    max_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("tier_id", "title", name="tier_category_title_unique"),
        CheckConstraint("max_amount >= 0", name="tier_category_max_amount_check"),
    )

    # Relationships
    tier: Mapped[Tier] = relationship(back_populates="categories")
