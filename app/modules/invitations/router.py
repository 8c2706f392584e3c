import uuid
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_session
from app.modules.identity.dependencies import get_actor
from app.modules.identity.models import Profile
from app.modules.invitations.schemas import InvitationCreate, InvitationOut, InvitationValidation
from app.modules.invitations.service import InvitationService

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session)) -> InvitationService:
    return InvitationService(session)

@router.post("/invitations", response_model=InvitationOut, status_code=201)
async def create_invitation(payload: InvitationCreate, actor: Profile = Depends(get_actor), service: InvitationService = Depends(svc)):
    return await service.create(actor, payload)

@router.get("/invitations", response_model=list[InvitationOut])
async def list_pending_invitations(actor: Profile = Depends(get_actor), service: InvitationService = Depends(svc)):
    return await service.list_pending(actor)

@router.get("/invitations/validate/{token}", response_model=InvitationValidation)
async def validate_invitation(token: str, service: InvitationService = Depends(svc)):
    return await service.validate(token)

@router.post("/invitations/{invitation_id}/revoke", response_model=InvitationOut)
async def revoke_invitation(invitation_id: uuid.UUID, actor: Profile = Depends(get_actor), service: InvitationService = Depends(svc)):
    return await service.revoke(actor, invitation_id)
