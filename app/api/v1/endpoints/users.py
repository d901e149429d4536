from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import db_session, get_current_user, require_admin, require_superadmin
from app.core.constants import Role
from app.schemas.common import CurrentUser
from app.schemas.users import RoleUpdateRequest
from app.services.user_service import UserService

router = APIRouter(tags=["users"])


@router.get("/me", response_model=CurrentUser)
async def get_me(user=Depends(get_current_user), db: AsyncSession = Depends(db_session)):
    return UserService(db).serialize_user(user)


@router.get("/admin/users", response_model=list[CurrentUser])
async def list_users(
    role: Role | None = None,
    _=Depends(require_admin),
    db: AsyncSession = Depends(db_session),
):
    service = UserService(db)
    return await service.list_users(role)


@router.patch("/admin/users/{user_id}/role", response_model=CurrentUser)
async def update_role(
    user_id: UUID,
    payload: RoleUpdateRequest,
    _=Depends(require_superadmin),
    db: AsyncSession = Depends(db_session),
):
    service = UserService(db)
    return await service.set_role(user_id, payload.role)
