from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_session
from app.core.security import Identity, get_identity, require_identity
from app.modules.identity.dependencies import get_actor
from app.modules.identity.models import Profile
from app.modules.identity.schemas import (
    ProfileOut, ProfileUpdate, EnsureProfile,
    OwnerSignup, InvitationSignup, TicketCodeSignup,
    OnboardingOut, CustomerSessionOut, OnboardingStatusOut,
    TicketCodeInfo, CustomerOut,
)
from app.modules.identity.service import OnboardingService, ProfileService

router = APIRouter()

def onboarding_svc(session: AsyncSession = Depends(get_session)) -> OnboardingService:
    return OnboardingService(session)

def profile_svc(session: AsyncSession = Depends(get_session)) -> ProfileService:
    return ProfileService(session)

# ---- Onboarding ----

@router.post("/onboarding/profile", response_model=ProfileOut, tags=["onboarding"])
async def ensure_profile(
    payload: EnsureProfile,
    identity: Identity = Depends(require_identity),
    service: OnboardingService = Depends(onboarding_svc),
):
    return await service.ensure_profile(identity, payload.full_name)

@router.get("/onboarding/status", response_model=OnboardingStatusOut, tags=["onboarding"])
async def onboarding_status(identity: Identity = Depends(require_identity), service: OnboardingService = Depends(onboarding_svc)):
    return await service.status(identity)

@router.post("/onboarding/owner", response_model=OnboardingOut, status_code=201, tags=["onboarding"])
async def onboard_owner(
    payload: OwnerSignup,
    identity: Identity = Depends(require_identity),
    service: OnboardingService = Depends(onboarding_svc),
):
    profile, org = await service.onboard_owner(identity, payload.organization_name, payload.full_name)
    return {"profile": profile, "organization": org}

@router.post("/onboarding/invitation", response_model=OnboardingOut, tags=["onboarding"])
async def onboard_with_invitation(
    payload: InvitationSignup,
    identity: Identity = Depends(require_identity),
    service: OnboardingService = Depends(onboarding_svc),
):
    profile, org = await service.onboard_with_invitation(identity, payload.token, payload.full_name)
    return {"profile": profile, "organization": org}

@router.post("/onboarding/ticket-code", response_model=CustomerSessionOut, tags=["onboarding"])
async def onboard_with_ticket_code(
    payload: TicketCodeSignup,
    identity: Identity | None = Depends(get_identity),
    service: OnboardingService = Depends(onboarding_svc),
):
    return await service.bind_customer(payload.ticket_code, payload.full_name, identity)

@router.post("/auth/customer-login", response_model=CustomerSessionOut, tags=["onboarding"])
async def customer_login(payload: TicketCodeSignup, service: OnboardingService = Depends(onboarding_svc)):
    return await service.login_customer(payload.ticket_code, payload.full_name)

@router.get("/ticket-codes/{ticket_code}", response_model=TicketCodeInfo, tags=["onboarding"])
async def validate_ticket_code(ticket_code: str, service: OnboardingService = Depends(onboarding_svc)):
    return await service.validate_ticket_code(ticket_code)

# ---- Profiles ----

@router.get("/profiles/me", response_model=ProfileOut, tags=["profiles"])
async def get_me(actor: Profile = Depends(get_actor)):
    return actor

@router.patch("/profiles/me", response_model=ProfileOut, tags=["profiles"])
async def update_me(payload: ProfileUpdate, actor: Profile = Depends(get_actor), service: ProfileService = Depends(profile_svc)):
    return await service.update_me(actor, payload.full_name)

@router.get("/team", response_model=list[ProfileOut], tags=["profiles"])
async def list_team(actor: Profile = Depends(get_actor), service: ProfileService = Depends(profile_svc)):
    return await service.team(actor)

@router.get("/customers", response_model=list[CustomerOut], tags=["profiles"])
async def list_customers(actor: Profile = Depends(get_actor), service: ProfileService = Depends(profile_svc)):
    return await service.customers(actor)
