import uuid
from datetime import datetime
from pydantic import BaseModel

class ActivityOut(BaseModel):
    id: uuid.UUID
    ticket_id: uuid.UUID
    user_id: uuid.UUID | None
    action: str
    old_value: str | None
    new_value: str | None
    is_internal: bool = False
    created_at: datetime

    class Config:
        from_attributes = True
