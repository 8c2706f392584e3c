import uuid
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_session
from app.modules.activity.schemas import ActivityOut
from app.modules.activity.service import ActivityRecorder
from app.modules.identity.dependencies import get_actor
from app.modules.identity.models import Profile
from app.modules.tickets.service import TicketService

router = APIRouter()

@router.get("/tickets/{ticket_id}/activity", response_model=list[ActivityOut])
async def list_activity(
    ticket_id: uuid.UUID,
    actor: Profile = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
):
    ticket = await TicketService(session).get_visible(actor, ticket_id)
    return await ActivityRecorder(session).list_for(actor, ticket.id)
