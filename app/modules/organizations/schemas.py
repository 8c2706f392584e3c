import uuid
from datetime import datetime
from pydantic import BaseModel, Field

class OrganizationOut(BaseModel):
    id: uuid.UUID
    name: str
    slug: str
    created_at: datetime

    class Config:
        from_attributes = True

class OrganizationUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=160)
    slug: str | None = Field(default=None, max_length=80, pattern="^[a-z0-9]+(-[a-z0-9]+)*$")
