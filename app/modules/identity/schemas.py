import uuid
from datetime import datetime
from typing import Literal
from pydantic import BaseModel, Field
from app.modules.organizations.schemas import OrganizationOut

class ProfileOut(BaseModel):
    id: uuid.UUID
    organization_id: uuid.UUID | None
    full_name: str
    email: str | None
    role: str | None
    is_active: bool
    ticket_code: str | None
    created_at: datetime

    class Config:
        from_attributes = True

class ProfileUpdate(BaseModel):
    full_name: str = Field(..., max_length=160)

class EnsureProfile(BaseModel):
    full_name: str = Field(default="", max_length=160)

class OwnerSignup(BaseModel):
    organization_name: str = Field(..., max_length=160)
    full_name: str = Field(..., max_length=160)

class InvitationSignup(BaseModel):
    token: str = Field(..., max_length=64)
    full_name: str = Field(..., max_length=160)

class TicketCodeSignup(BaseModel):
    ticket_code: str = Field(..., max_length=32)
    full_name: str = Field(..., max_length=160)

class OnboardingOut(BaseModel):
    profile: ProfileOut
    organization: OrganizationOut

class CustomerSessionOut(BaseModel):
    profile: ProfileOut
    organization: OrganizationOut
    access_token: str
    token_type: str = "bearer"

class OnboardingStatusOut(BaseModel):
    state: Literal["pending", "bound"]
    organization_id: uuid.UUID | None = None
    role: str | None = None

class TicketCodeInfo(BaseModel):
    ticket_id: uuid.UUID
    ticket_title: str
    organization_id: uuid.UUID
    organization_name: str

class CustomerOut(ProfileOut):
    ticket_count: int = 0
    open_tickets: int = 0
