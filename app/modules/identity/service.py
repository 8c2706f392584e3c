import uuid
import logging
from datetime import datetime, timezone
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.codes import normalize_code, mask_code
from app.core.config import settings
from app.core.errors import (
    AlreadyOnboarded, CodeAlreadyUsed, DomainError, DuplicateSlug, EmailMismatch, InvalidCode, Unauthorized,
    ValidationError,
)
from app.core.permissions import Action, Role, ensure_allowed
from app.core.security import Identity, create_access_token
from app.modules.events.outbox import OutboxService
from app.modules.identity.models import Profile
from app.modules.identity.repository import ProfileRepository
from app.modules.invitations.repository import InvitationRepository
from app.modules.invitations.service import ensure_usable
from app.modules.organizations.models import Organization
from app.modules.organizations.repository import OrganizationRepository
from app.modules.organizations.slugs import slugify, next_free_slug
from app.modules.tickets.repository import TicketRepository

logger = logging.getLogger(__name__)

# namespace for ids of customers who only ever authenticate with (ticket code, name)
CUSTOMER_NAMESPACE = uuid.UUID("5b0c6f8e-3f55-4f0c-9d2a-6a1f3c7e9b41")

def _now() -> datetime:
    return datetime.now(timezone.utc)

def _clean_name(value: str | None) -> str:
    return " ".join((value or "").split())

def customer_profile_id(organization_id: uuid.UUID, ticket_code: str, full_name: str) -> uuid.UUID:
    """Same (organization, code, name) always yields the same profile id."""
    key = f"{organization_id}:{normalize_code(ticket_code)}:{_clean_name(full_name).casefold()}"
    return uuid.uuid5(CUSTOMER_NAMESPACE, key)

class OnboardingService:
    """Binds an identity to exactly one (organization, role)."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.profiles = ProfileRepository(session)
        self.orgs = OrganizationRepository(session)
        self.invitations = InvitationRepository(session)
        self.tickets = TicketRepository(session)
        self.outbox = OutboxService(session)

    async def _profile_for(self, identity: Identity, full_name: str) -> Profile:
        profile = await self.profiles.get(identity.id)
        if profile is None:
            profile = await self.profiles.create(id=identity.id, email=identity.email, full_name=full_name)
        if profile.organization_id is not None:
            raise AlreadyOnboarded()
        return profile

    async def _onboarded(self, profile: Profile, path: str) -> None:
        await self.outbox.enqueue(
            profile.organization_id, "PROFILE_ONBOARDED", "profile", profile.id,
            {"role": profile.role, "path": path},
        )

    async def ensure_profile(self, identity: Identity, full_name: str = "") -> Profile:
        """Pending profile for a freshly authenticated identity; returns the existing one otherwise."""
        profile = await self.profiles.get(identity.id)
        if profile:
            return profile
        try:
            profile = await self.profiles.create(id=identity.id, email=identity.email, full_name=_clean_name(full_name))
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            profile = await self.profiles.get(identity.id)
            if profile is None:
                raise
        return profile

    async def status(self, identity: Identity) -> dict:
        profile = await self.profiles.get(identity.id)
        if profile is None or profile.organization_id is None:
            return {"state": "pending"}
        return {"state": "bound", "organization_id": profile.organization_id, "role": profile.role}

    # ---- Owner ----
    async def onboard_owner(self, identity: Identity, organization_name: str, full_name: str) -> tuple[Profile, Organization]:
        name = _clean_name(organization_name)
        full_name = _clean_name(full_name)
        if not name:
            raise ValidationError("Organization name is required")
        if not full_name:
            raise ValidationError("Full name is required")
        if not identity.email:
            raise ValidationError("An email address is required to create an organization")

        base = slugify(name)
        slug = next_free_slug(base, await self.orgs.slugs_like(base), settings.SLUG_MAX_ATTEMPTS)
        if slug is None:
            raise DuplicateSlug()
        profile = await self._profile_for(identity, full_name)
        try:
            org = await self.orgs.create(name=name, slug=slug)
        except IntegrityError:
            # another signup took the slug between our read and insert
            await self.session.rollback()
            raise DuplicateSlug()

        profile.organization_id = org.id
        profile.role = Role.OWNER.value
        profile.full_name = full_name
        profile.email = profile.email or identity.email
        await self.session.flush()
        await self.outbox.enqueue(org.id, "ORGANIZATION_CREATED", "organization", org.id, {"slug": org.slug, "owner_id": str(profile.id)})
        await self._onboarded(profile, "owner")
        await self.session.commit()
        logger.info("Organization %s (%s) created by owner %s", org.id, org.slug, profile.id)
        return profile, org

    # ---- Employee (invitation) ----
    async def onboard_with_invitation(self, identity: Identity, token: str, full_name: str) -> tuple[Profile, Organization]:
        full_name = _clean_name(full_name)
        if not full_name:
            raise ValidationError("Full name is required")
        token = normalize_code(token)
        if not token:
            raise ValidationError("Invitation code is required")

        now = _now()
        inv = await self.invitations.get_by_token(token)
        try:
            ensure_usable(inv, now)
        except DomainError:
            logger.info("Invitation %s rejected for identity %s", mask_code(token), identity.id)
            raise
        if inv.email and (identity.email or "").strip().lower() != inv.email.lower():
            logger.info("Invitation %s email mismatch for identity %s", mask_code(token), identity.id)
            raise EmailMismatch()

        profile = await self._profile_for(identity, full_name)
        if not await self.invitations.mark_accepted(inv.id, profile.id, now):
            # lost the race to a concurrent consumer
            await self.session.rollback()
            raise CodeAlreadyUsed("This invitation has already been used")
        await self.session.refresh(inv)

        profile.organization_id = inv.organization_id
        profile.role = inv.role
        profile.full_name = full_name
        profile.email = profile.email or identity.email
        await self.session.flush()
        await self.outbox.enqueue(inv.organization_id, "INVITATION_ACCEPTED", "invitation", inv.id, {"profile_id": str(profile.id)})
        await self._onboarded(profile, "invitation")
        await self.session.commit()
        org = await self.orgs.get(inv.organization_id)
        logger.info("Profile %s joined org=%s as %s via invitation", profile.id, inv.organization_id, inv.role)
        return profile, org

    # ---- Customer (ticket code) ----
    async def validate_ticket_code(self, ticket_code: str) -> dict:
        code = normalize_code(ticket_code)
        ticket = await self.tickets.first_by_code(code) if code else None
        if ticket is None:
            raise InvalidCode("Invalid ticket code")
        org = await self.orgs.get(ticket.organization_id)
        return {
            "ticket_id": ticket.id,
            "ticket_title": ticket.title,
            "organization_id": ticket.organization_id,
            "organization_name": org.name if org else "",
        }

    async def _customer_lookup(self, ticket_code: str, full_name: str):
        code = normalize_code(ticket_code)
        name = _clean_name(full_name)
        if not code or not name:
            raise ValidationError("Ticket code and full name are required")
        ticket = await self.tickets.first_by_code(code)
        if ticket is None:
            logger.info("Unknown ticket code %s", mask_code(code))
            raise InvalidCode("Invalid ticket code")
        return code, name, ticket, customer_profile_id(ticket.organization_id, code, name)

    def _customer_session(self, profile: Profile, org: Organization) -> dict:
        token = create_access_token(
            profile.id, profile.email,
            org_id=str(profile.organization_id), role=profile.role, kind="customer",
        )
        return {"profile": profile, "organization": org, "access_token": token}

    async def bind_customer(self, ticket_code: str, full_name: str, identity: Identity | None = None) -> dict:
        """Bind a requester through a ticket code.

        A signed-in caller has their own pending profile bound. Anonymous callers
        get the profile derived from (ticket code, name), which makes repeats idempotent.
        """
        if identity is not None:
            return await self._bind_identity_as_customer(identity, ticket_code, full_name)
        code, name, ticket, profile_id = await self._customer_lookup(ticket_code, full_name)
        profile = await self.profiles.get(profile_id)
        if profile is None:
            try:
                profile = await self.profiles.create(
                    id=profile_id,
                    organization_id=ticket.organization_id,
                    full_name=name,
                    email=f"customer+{profile_id.hex[:12]}@{settings.CUSTOMER_EMAIL_DOMAIN}",
                    role=Role.REQUESTER.value,
                    ticket_code=code,
                )
                await self._onboarded(profile, "ticket_code")
                await self.session.commit()
                logger.info("Customer profile %s bound to org=%s via ticket code %s", profile.id, ticket.organization_id, mask_code(code))
            except IntegrityError:
                # concurrent bind with the same pair won; converge on its row
                await self.session.rollback()
                profile = await self.profiles.get(profile_id)
                if profile is None:
                    raise
        if not profile.is_active:
            logger.info("Ticket code bind refused for deactivated profile %s", profile.id)
            raise Unauthorized("Account is deactivated")
        org = await self.orgs.get(profile.organization_id)
        return self._customer_session(profile, org)

    async def _bind_identity_as_customer(self, identity: Identity, ticket_code: str, full_name: str) -> dict:
        code, name, ticket, _ = await self._customer_lookup(ticket_code, full_name)
        profile = await self._profile_for(identity, name)
        profile.organization_id = ticket.organization_id
        profile.role = Role.REQUESTER.value
        profile.ticket_code = code
        profile.full_name = name
        profile.email = profile.email or identity.email
        await self.session.flush()
        await self._onboarded(profile, "ticket_code")
        await self.session.commit()
        logger.info("Profile %s joined org=%s as requester via ticket code %s", profile.id, ticket.organization_id, mask_code(code))
        org = await self.orgs.get(ticket.organization_id)
        return self._customer_session(profile, org)

    async def login_customer(self, ticket_code: str, full_name: str) -> dict:
        code, _, _, profile_id = await self._customer_lookup(ticket_code, full_name)
        profile = await self.profiles.get(profile_id)
        if profile is None:
            logger.info("Customer login failed for ticket code %s", mask_code(code))
            raise InvalidCode("No customer found for this ticket code and name")
        if not profile.is_active:
            logger.info("Customer login refused for deactivated profile %s", profile.id)
            raise Unauthorized("Account is deactivated")
        org = await self.orgs.get(profile.organization_id)
        return self._customer_session(profile, org)

class ProfileService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.repo = ProfileRepository(session)

    async def update_me(self, actor: Profile, full_name: str) -> Profile:
        name = _clean_name(full_name)
        if not name:
            raise ValidationError("Full name is required")
        actor.full_name = name
        await self.session.flush()
        await self.session.commit()
        return actor

    async def team(self, actor: Profile):
        ensure_allowed(actor, Action.TEAM_VIEW)
        return await self.repo.list_staff(actor.organization_id)

    async def customers(self, actor: Profile) -> list[dict]:
        ensure_allowed(actor, Action.CUSTOMERS_VIEW)
        out = []
        for c in await self.repo.list_customers(actor.organization_id):
            out.append({
                **{k: getattr(c, k) for k in ("id", "organization_id", "full_name", "email", "role", "is_active", "ticket_code", "created_at")},
                "ticket_count": await self.repo.count_customer_tickets(c),
                "open_tickets": await self.repo.count_customer_tickets(c, status="open"),
            })
        return out

