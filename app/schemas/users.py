from pydantic import BaseModel

from app.core.constants import Role


class RoleUpdateRequest(BaseModel):
    role: Role
