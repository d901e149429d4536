from dataclasses import dataclass
from uuid import UUID

import structlog
from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import TTLCache
from app.core.config import get_settings
from app.core.constants import Role
from app.core.security import IdentityClaims
from app.models.domain import User
from app.repositories.user_repository import UserRepository

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class UserProfile:
    id: UUID
    external_id: str
    email: str
    full_name: str
    role: Role
    is_active: bool

    @classmethod
    def from_row(cls, row: User) -> "UserProfile":
        return cls(
            id=row.id,
            external_id=row.external_id,
            email=row.email,
            full_name=row.full_name,
            role=Role(row.role),
            is_active=row.is_active,
        )


_settings = get_settings()
profile_cache: TTLCache[UserProfile] = TTLCache(
    max_size=_settings.profile_cache_max_size,
    ttl_seconds=_settings.profile_cache_ttl_seconds,
)


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = UserRepository(db)

    async def resolve(self, claims: IdentityClaims) -> UserProfile:
        """Profile for a verified token, creating the local row on first sight.

        The role claim only seeds a new profile; afterwards the stored role wins
        so that role changes made here take effect.
        """
        cached = profile_cache.get(claims.subject)
        if cached is not None:
            return cached

        row = await self.repo.get_by_external_id(claims.subject)
        if row is None:
            row = User(
                external_id=claims.subject,
                email=claims.email.strip().lower(),
                full_name=claims.name.strip(),
                role=claims.role or Role.PARTICIPANT,
            )
            await self.repo.create(row)
            await self.db.commit()
            logger.info("user_provisioned", user_id=str(row.id), role=row.role.value)
        elif claims.email and row.email != claims.email.strip().lower():
            row.email = claims.email.strip().lower()
            await self.db.commit()

        profile = UserProfile.from_row(row)
        profile_cache.set(claims.subject, profile)
        return profile

    async def list_users(self, role: Role | None = None) -> list[dict]:
        rows = await self.repo.list_by_role(role)
        return [self.serialize_user(UserProfile.from_row(r)) for r in rows]

    async def set_role(self, user_id: UUID, role: Role) -> dict:
        row = await self.repo.get_by_id(user_id)
        if not row:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        row.role = role
        await self.db.commit()
        profile_cache.invalidate(row.external_id)
        logger.info("user_role_changed", user_id=str(user_id), role=role.value)
        return self.serialize_user(UserProfile.from_row(row))

    def serialize_user(self, profile: UserProfile) -> dict:
        return {
            "id": profile.id,
            "externalId": profile.external_id,
            "email": profile.email,
            "fullName": profile.full_name,
            "role": profile.role.value,
            "isActive": profile.is_active,
        }
