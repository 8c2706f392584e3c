import uuid
from datetime import datetime
from typing import Sequence
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from app.modules.invitations.models import OrganizationInvitation

class InvitationRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, organization_id: uuid.UUID, **data) -> OrganizationInvitation:
        obj = OrganizationInvitation(organization_id=organization_id, **data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, organization_id: uuid.UUID, invitation_id: uuid.UUID) -> OrganizationInvitation | None:
        q = select(OrganizationInvitation).where(
            OrganizationInvitation.id == invitation_id,
            OrganizationInvitation.organization_id == organization_id,
        )
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def get_by_token(self, token: str) -> OrganizationInvitation | None:
        res = await self.session.execute(select(OrganizationInvitation).where(OrganizationInvitation.token == token))
        return res.scalar_one_or_none()

    async def token_exists(self, token: str) -> bool:
        res = await self.session.execute(select(OrganizationInvitation.id).where(OrganizationInvitation.token == token))
        return res.first() is not None

    async def list_pending(self, organization_id: uuid.UUID) -> Sequence[OrganizationInvitation]:
        q = select(OrganizationInvitation).where(
            OrganizationInvitation.organization_id == organization_id,
            OrganizationInvitation.status == "pending",
        ).order_by(OrganizationInvitation.created_at.desc())
        res = await self.session.execute(q)
        return res.scalars().all()

    async def _transition(self, invitation_id: uuid.UUID, to_status: str, **values) -> bool:
        # compare-and-set: only the caller that still sees "pending" wins
        q = (
            update(OrganizationInvitation)
            .where(OrganizationInvitation.id == invitation_id, OrganizationInvitation.status == "pending")
            .values(status=to_status, **values)
            .execution_options(synchronize_session=False)
        )
        res = await self.session.execute(q)
        return res.rowcount == 1

    async def mark_accepted(self, invitation_id: uuid.UUID, profile_id: uuid.UUID, when: datetime) -> bool:
        return await self._transition(invitation_id, "accepted", accepted_by=profile_id, accepted_at=when, updated_at=when)

    async def mark_revoked(self, invitation_id: uuid.UUID, when: datetime) -> bool:
        return await self._transition(invitation_id, "revoked", updated_at=when)

    async def expire_overdue(self, now: datetime) -> int:
        q = (
            update(OrganizationInvitation)
            .where(OrganizationInvitation.status == "pending", OrganizationInvitation.expires_at <= now)
            .values(status="expired", updated_at=now)
            .execution_options(synchronize_session=False)
        )
        res = await self.session.execute(q)
        return res.rowcount or 0
