import uuid
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.permissions import is_staff
from app.modules.activity.models import TicketActivityLog
from app.modules.activity.repository import ActivityRepository
from app.modules.identity.models import Profile

MAX_VALUE_LENGTH = 100

def _text(value) -> str | None:
    if value is None:
        return None
    return str(value)

class ActivityRecorder:
    """Writes activity rows inside the caller's transaction; the caller commits."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.repo = ActivityRepository(session)

    async def record(self,
                     ticket_id: uuid.UUID,
                     user_id: uuid.UUID | None,
                     action: str,
                     old_value=None,
                     new_value=None,
                     is_internal: bool = False) -> TicketActivityLog:
        return await self.repo.append(
            ticket_id=ticket_id,
            user_id=user_id,
            action=action,
            old_value=_text(old_value),
            new_value=_text(new_value),
            is_internal=is_internal,
        )

    async def list_for(self, viewer: Profile, ticket_id: uuid.UUID):
        # callers check ticket visibility first
        return await self.repo.list_for_ticket(ticket_id, include_internal=is_staff(viewer.role))
