import uuid
from datetime import datetime
from pydantic import BaseModel, Field

class CommentCreate(BaseModel):
    message: str = Field(..., max_length=10000)
    is_internal: bool = False

class CommentOut(BaseModel):
    id: uuid.UUID
    ticket_id: uuid.UUID
    user_id: uuid.UUID | None
    message: str
    is_internal: bool
    created_at: datetime

    class Config:
        from_attributes = True
