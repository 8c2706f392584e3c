import uuid
from typing import Sequence
from sqlalchemy import select, and_, or_, func, case
from sqlalchemy.ext.asyncio import AsyncSession
from app.modules.tickets.models import Ticket
from app.modules.tickets.policy import visibility_clause

class TicketRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, organization_id: uuid.UUID, **data) -> Ticket:
        obj = Ticket(organization_id=organization_id, **data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get_visible(self, profile, ticket_id: uuid.UUID) -> Ticket | None:
        q = select(Ticket).where(Ticket.id == ticket_id, visibility_clause(profile))
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def list_visible(self, profile, *, status: str | None = None, priority: str | None = None, search: str | None = None, limit: int = 50, offset: int = 0) -> Sequence[Ticket]:
        conditions = [visibility_clause(profile)]
        if status:   conditions.append(Ticket.status == status)
        if priority: conditions.append(Ticket.priority == priority)
        if search:
            term = search.strip().lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            pattern = f"%{term}%"
            conditions.append(or_(
                func.lower(Ticket.title).like(pattern, escape="\\"),
                func.lower(Ticket.description).like(pattern, escape="\\"),
            ))
        q = select(Ticket).where(and_(*conditions)).order_by(Ticket.created_at.desc()).limit(limit).offset(offset)
        res = await self.session.execute(q)
        return res.scalars().all()

    async def stats(self, profile) -> dict:
        def _count(cond):
            return func.coalesce(func.sum(case((cond, 1), else_=0)), 0)
        q = select(
            _count(Ticket.status == "open").label("open"),
            _count(Ticket.status == "in_progress").label("in_progress"),
            _count(Ticket.status == "resolved").label("resolved"),
            _count(Ticket.priority == "critical").label("critical"),
            func.count(Ticket.id).label("total"),
        ).where(visibility_clause(profile))
        row = (await self.session.execute(q)).one()
        return {k: int(v or 0) for k, v in row._mapping.items()}

    async def first_by_code(self, ticket_code: str) -> Ticket | None:
        q = select(Ticket).where(Ticket.ticket_code == ticket_code).order_by(Ticket.created_at.asc()).limit(1)
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def code_in_use(self, ticket_code: str, organization_id: uuid.UUID | None = None) -> bool:
        q = select(Ticket.id).where(Ticket.ticket_code == ticket_code)
        if organization_id is not None:
            q = q.where(Ticket.organization_id == organization_id)
        res = await self.session.execute(q.limit(1))
        return res.first() is not None
