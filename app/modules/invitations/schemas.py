import uuid
from datetime import datetime
from typing import Literal
from pydantic import BaseModel, EmailStr, Field

class InvitationCreate(BaseModel):
    email: EmailStr | None = None
    role: Literal["admin", "agent", "requester"] = "agent"
    expires_in_days: int | None = Field(default=None, ge=1, le=90)

class InvitationOut(BaseModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    email: str | None
    role: str
    token: str
    status: str
    invited_by: uuid.UUID | None
    expires_at: datetime
    created_at: datetime

    class Config:
        from_attributes = True

class InvitationValidation(BaseModel):
    organization_id: uuid.UUID
    organization_name: str
    role: str
    email: str | None
    expires_at: datetime
