from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_session
from app.core.errors import Unauthorized
from app.core.security import Identity, require_identity
from app.modules.identity.models import Profile
from app.modules.identity.repository import ProfileRepository

async def get_actor(
    identity: Identity = Depends(require_identity),
    session: AsyncSession = Depends(get_session),
) -> Profile:
    """The calling profile; it must be bound to an organization and active."""
    profile = await ProfileRepository(session).get(identity.id)
    if profile is None or profile.organization_id is None:
        raise Unauthorized("Account setup is not complete")
    if not profile.is_active:
        raise Unauthorized("Account is deactivated")
    return profile
