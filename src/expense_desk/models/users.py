"""Principals: staff users and back-office admins."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from expense_desk.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from expense_desk.models.tier import Tier


class UserRole(str, Enum):
    """Roles carried by the authenticated caller."""

    STAFF = "staff"
    APPROVER = "approver"
    ADMIN = "admin"
    FINANCE = "finance"


class PrincipalKind(str, Enum):
    """Discriminant for references that may point at a user or an admin."""

    USER = "user"
    ADMIN = "admin"


class User(Base, TimestampMixin):
    """A member of staff who submits expenses, or an approver."""

    __tablename__ = "app_user"

    user_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    employee_id: Mapped[str | None] = mapped_column(String, nullable=True)
    mobile: Mapped[str | None] = mapped_column(String, nullable=True, unique=True)
    role: Mapped[str] = mapped_column(String, nullable=False, default=UserRole.STAFF.value)
    tier_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("tier.tier_id"),
        nullable=True,
    )
    approver_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("app_user.user_id"),
        nullable=True,
    )

    __table_args__ = (
        CheckConstraint("role IN ('staff', 'approver')", name="app_user_role_check"),
    )

    # Relationships
    tier: Mapped[Tier | None] = relationship(lazy="selectin")


class Admin(Base, TimestampMixin):
    """A back-office principal: organization admin or finance reviewer."""

    __tablename__ = "admin"

    admin_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    role: Mapped[str] = mapped_column(String, nullable=False, default=UserRole.ADMIN.value)

    __table_args__ = (
        CheckConstraint("role IN ('admin', 'finance')", name="admin_role_check"),
    )
