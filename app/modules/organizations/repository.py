import uuid
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from app.modules.organizations.models import Organization

class OrganizationRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **data) -> Organization:
        obj = Organization(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, org_id: uuid.UUID) -> Organization | None:
        res = await self.session.execute(select(Organization).where(Organization.id == org_id))
        return res.scalar_one_or_none()

    async def get_by_slug(self, slug: str) -> Organization | None:
        res = await self.session.execute(select(Organization).where(Organization.slug == slug))
        return res.scalar_one_or_none()

    async def slugs_like(self, base: str) -> set[str]:
        q = select(Organization.slug).where(Organization.slug.like(f"{base}%"))
        res = await self.session.execute(q)
        return set(res.scalars().all())
