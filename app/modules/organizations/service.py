import logging
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.errors import DuplicateSlug, NotFound, ValidationError
from app.core.permissions import Action, ensure_allowed
from app.modules.identity.models import Profile
from app.modules.organizations.models import Organization
from app.modules.organizations.repository import OrganizationRepository
from app.modules.organizations.schemas import OrganizationUpdate

logger = logging.getLogger(__name__)

class OrganizationService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.repo = OrganizationRepository(session)

    async def current(self, actor: Profile) -> Organization:
        if actor.organization_id is None:
            raise NotFound("Organization not found")
        org = await self.repo.get(actor.organization_id)
        if not org:
            raise NotFound("Organization not found")
        return org

    async def update(self, actor: Profile, payload: OrganizationUpdate) -> Organization:
        ensure_allowed(actor, Action.ORGANIZATION_UPDATE)
        org = await self.current(actor)
        data = payload.model_dump(exclude_unset=True)
        if "name" in data:
            name = (data["name"] or "").strip()
            if not name:
                raise ValidationError("Organization name is required")
            org.name = name
        if data.get("slug") and data["slug"] != org.slug:
            existing = await self.repo.get_by_slug(data["slug"])
            if existing and existing.id != org.id:
                raise DuplicateSlug()
            org.slug = data["slug"]
        try:
            await self.session.flush()
        except IntegrityError:
            # another org claimed the slug after the check above
            await self.session.rollback()
            raise DuplicateSlug()
        await self.session.commit()
        logger.info("Organization %s updated by %s", org.id, actor.id)
        return org
