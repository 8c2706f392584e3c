from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_session
from app.modules.identity.dependencies import get_actor
from app.modules.identity.models import Profile
from app.modules.organizations.schemas import OrganizationOut, OrganizationUpdate
from app.modules.organizations.service import OrganizationService

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session)) -> OrganizationService:
    return OrganizationService(session)

@router.get("/organizations/current", response_model=OrganizationOut)
async def get_current_organization(actor: Profile = Depends(get_actor), service: OrganizationService = Depends(svc)):
    return await service.current(actor)

@router.patch("/organizations/current", response_model=OrganizationOut)
async def update_current_organization(
    payload: OrganizationUpdate,
    actor: Profile = Depends(get_actor),
    service: OrganizationService = Depends(svc),
):
    return await service.update(actor, payload)
