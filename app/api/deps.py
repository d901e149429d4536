from collections.abc import Callable

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import Role
from app.core.security import authorize, decode_identity_token, parse_claims
from app.db.session import get_db
from app.services.user_service import UserProfile, UserService

bearer = HTTPBearer(auto_error=False)


async def db_session() -> AsyncSession:
    async for s in get_db():
        yield s


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: AsyncSession = Depends(db_session),
) -> UserProfile:
    if not credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing auth token")
    try:
        claims = parse_claims(decode_identity_token(credentials.credentials))
    except (jwt.PyJWTError, KeyError) as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid auth token") from exc
    user = await UserService(db).resolve(claims)
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User is inactive")
    return user


def require_roles(*roles: Role) -> Callable:
    async def dependency(user: UserProfile = Depends(get_current_user)) -> UserProfile:
        if not authorize(user, roles):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return user

    return dependency


require_admin = require_roles(Role.ADMIN)
require_judge = require_roles(Role.JUDGE, Role.ADMIN)
require_participant = require_roles(Role.PARTICIPANT)
require_superadmin = require_roles(Role.SUPERADMIN)
