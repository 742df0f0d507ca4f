"""Caller identity and user/admin principal references."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from expense_desk.models import Admin, PrincipalKind, User, UserRole
from expense_desk.services.errors import NotFoundError, PermissionDeniedError

# Roles held by back-office admins; everyone else is a user principal
ADMIN_ROLES = frozenset({UserRole.ADMIN.value, UserRole.FINANCE.value})


@dataclass(frozen=True)
class Actor:
    """The already-authenticated caller of a core operation."""

    principal_id: UUID
    role: str

    @property
    def kind(self) -> PrincipalKind:
        return PrincipalKind.ADMIN if self.role in ADMIN_ROLES else PrincipalKind.USER

    def require_role(self, *roles: str) -> None:
        """Raise PermissionDeniedError unless the actor holds one of ``roles``."""
        allowed = {r.value if isinstance(r, UserRole) else r for r in roles}
        if self.role not in allowed:
            raise PermissionDeniedError(
                "You don't have permission to perform this action",
                role=self.role,
                allowed=sorted(allowed),
            )


@dataclass(frozen=True)
class PrincipalRef:
    """Tagged reference to a user or an admin."""

    kind: PrincipalKind
    principal_id: UUID

    @classmethod
    def of(cls, kind: str | None, principal_id: UUID | None) -> PrincipalRef | None:
        if kind is None or principal_id is None:
            return None
        return cls(PrincipalKind(kind), principal_id)


class PrincipalDirectory:
    """Resolves principal references to the stored user or admin."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_user(self, user_id: UUID) -> User:
        user = await self.session.get(User, user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    async def resolve(self, ref: PrincipalRef) -> User | Admin | None:
        model = Admin if ref.kind == PrincipalKind.ADMIN else User
        return await self.session.get(model, ref.principal_id)

    async def display_name(self, ref: PrincipalRef | None) -> str | None:
        if ref is None:
            return None
        principal = await self.resolve(ref)
        return principal.name if principal is not None else None
