import uuid
from datetime import datetime
from typing import Literal
from pydantic import BaseModel, Field

Status = Literal["open", "in_progress", "resolved", "closed"]
Priority = Literal["low", "medium", "high", "critical"]

class TicketCreate(BaseModel):
    title: str = Field(..., max_length=200)
    description: str = Field(..., max_length=20000)
    category: str = Field(default="general", max_length=64)
    tags: list[str] = Field(default_factory=list)
    priority: Priority = "medium"
    ticket_code: str | None = Field(default=None, max_length=32)

class TicketOut(BaseModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    title: str
    description: str
    category: str
    tags: list[str]
    priority: str
    status: str
    created_by: uuid.UUID | None
    assigned_to: uuid.UUID | None
    ticket_code: str | None
    resolved_at: datetime | None
    closed_at: datetime | None
    created_at: datetime
    updated_at: datetime | None

    class Config:
        from_attributes = True

class StatusChange(BaseModel):
    status: Status

class PriorityChange(BaseModel):
    priority: Priority

class AssignmentChange(BaseModel):
    assignee_id: uuid.UUID

class TicketStats(BaseModel):
    open: int
    in_progress: int
    resolved: int
    critical: int
    total: int
