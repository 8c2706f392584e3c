import uuid
from typing import Sequence
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from app.modules.activity.models import TicketActivityLog

class ActivityRepository:
    """Insert and read only; activity rows are never updated or deleted."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def append(self, **data) -> TicketActivityLog:
        obj = TicketActivityLog(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def list_for_ticket(self, ticket_id: uuid.UUID, include_internal: bool = True) -> Sequence[TicketActivityLog]:
        q = select(TicketActivityLog).where(TicketActivityLog.ticket_id == ticket_id)
        if not include_internal:
            q = q.where(TicketActivityLog.is_internal.is_(False))
        q = q.order_by(TicketActivityLog.created_at.desc())
        res = await self.session.execute(q)
        return res.scalars().all()
