from uuid import UUID

from pydantic import BaseModel


class APIMessage(BaseModel):
    message: str


class CurrentUser(BaseModel):
    id: UUID
    externalId: str
    email: str
    fullName: str
    role: str
    isActive: bool
