import uuid
from typing import Sequence
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.permissions import Role, STAFF_ROLES
from app.modules.identity.models import Profile
from app.modules.tickets.models import Ticket
from app.modules.tickets.policy import requester_clause

class ProfileRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, profile_id: uuid.UUID) -> Profile | None:
        res = await self.session.execute(select(Profile).where(Profile.id == profile_id))
        return res.scalar_one_or_none()

    async def create(self, **data) -> Profile:
        obj = Profile(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get_in_org(self, org_id: uuid.UUID, profile_id: uuid.UUID) -> Profile | None:
        q = select(Profile).where(Profile.id == profile_id, Profile.organization_id == org_id)
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def list_staff(self, org_id: uuid.UUID) -> Sequence[Profile]:
        q = select(Profile).where(
            Profile.organization_id == org_id,
            Profile.role.in_([r.value for r in STAFF_ROLES]),
        ).order_by(Profile.full_name.asc())
        res = await self.session.execute(q)
        return res.scalars().all()

    async def list_customers(self, org_id: uuid.UUID) -> Sequence[Profile]:
        q = select(Profile).where(
            Profile.organization_id == org_id,
            Profile.role == Role.REQUESTER.value,
        ).order_by(Profile.full_name.asc())
        res = await self.session.execute(q)
        return res.scalars().all()

    async def count_customer_tickets(self, customer: Profile, status: str | None = None) -> int:
        q = select(func.count(Ticket.id)).where(requester_clause(customer))
        if status:
            q = q.where(Ticket.status == status)
        res = await self.session.execute(q)
        return res.scalar_one()
