import uuid
import logging
from datetime import datetime, timedelta, timezone
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.codes import random_code, normalize_code
from app.core.config import settings
from app.core.errors import (
    CodeAlreadyUsed, CodeExpired, CodeRevoked, InvalidCode, NotFound, ValidationError,
)
from app.core.permissions import Action, INVITABLE_ROLES, Role, ensure_allowed
from app.modules.events.outbox import OutboxService
from app.modules.identity.models import Profile
from app.modules.invitations.models import OrganizationInvitation
from app.modules.invitations.repository import InvitationRepository
from app.modules.invitations.schemas import InvitationCreate, InvitationValidation
from app.modules.organizations.repository import OrganizationRepository

logger = logging.getLogger(__name__)

TOKEN_ATTEMPTS = 5

def _now() -> datetime:
    return datetime.now(timezone.utc)

def ensure_usable(inv: OrganizationInvitation | None, now: datetime) -> OrganizationInvitation:
    """Reject anything but a pending, unexpired invitation."""
    if inv is None:
        raise InvalidCode("Invalid invitation code")
    if inv.status == "accepted":
        raise CodeAlreadyUsed("This invitation has already been used")
    if inv.status == "revoked":
        raise CodeRevoked("This invitation has been revoked")
    if inv.effective_status(now) == "expired":
        raise CodeExpired("This invitation has expired")
    return inv

class InvitationService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.repo = InvitationRepository(session)
        self.orgs = OrganizationRepository(session)

    async def _new_token(self) -> str:
        for _ in range(TOKEN_ATTEMPTS):
            token = random_code("INV", groups=2, group_len=4)
            if not await self.repo.token_exists(token):
                return token
        raise RuntimeError("Could not allocate a unique invitation token")

    async def create(self, actor: Profile, payload: InvitationCreate) -> OrganizationInvitation:
        ensure_allowed(actor, Action.INVITATION_CREATE)
        if Role(payload.role) not in INVITABLE_ROLES:
            raise ValidationError("Role cannot be invited")
        email = payload.email.lower() if payload.email else None
        days = payload.expires_in_days or settings.INVITATION_TTL_DAYS
        now = _now()
        obj = await self.repo.create(
            actor.organization_id,
            email=email,
            role=payload.role,
            invited_by=actor.id,
            token=await self._new_token(),
            expires_at=now + timedelta(days=days),
            status="pending",
        )
        await OutboxService(self.session).enqueue(
            actor.organization_id, "INVITATION_CREATED", "invitation", obj.id,
            {"role": obj.role, "email": obj.email, "expires_at": obj.expires_at.isoformat()}
        )
        await self.session.commit()
        logger.info("Invitation %s created for org=%s role=%s by %s", obj.id, obj.organization_id, obj.role, actor.id)
        return obj

    async def validate(self, token: str) -> InvitationValidation:
        """Read-only check used for live form feedback."""
        inv = ensure_usable(await self.repo.get_by_token(normalize_code(token)), _now())
        org = await self.orgs.get(inv.organization_id)
        return InvitationValidation(
            organization_id=inv.organization_id,
            organization_name=org.name if org else "",
            role=inv.role,
            email=inv.email,
            expires_at=inv.expires_at,
        )

    async def list_pending(self, actor: Profile) -> list[dict]:
        ensure_allowed(actor, Action.INVITATION_LIST)
        now = _now()
        rows = await self.repo.list_pending(actor.organization_id)
        # overdue rows are reported as expired until the sweep persists it
        return [
            {**{c: getattr(r, c) for c in ("id", "organization_id", "email", "role", "token", "invited_by", "expires_at", "created_at")},
             "status": r.effective_status(now)}
            for r in rows
        ]

    async def revoke(self, actor: Profile, invitation_id: uuid.UUID) -> OrganizationInvitation:
        ensure_allowed(actor, Action.INVITATION_REVOKE)
        inv = await self.repo.get(actor.organization_id, invitation_id)
        if not inv:
            raise NotFound("Invitation not found")
        if inv.status != "pending":
            ensure_usable(inv, _now())
        if not await self.repo.mark_revoked(inv.id, _now()):
            await self.session.rollback()
            raise CodeAlreadyUsed("This invitation is no longer pending")
        await OutboxService(self.session).enqueue(
            actor.organization_id, "INVITATION_REVOKED", "invitation", inv.id, {"revoked_by": str(actor.id)}
        )
        await self.session.commit()
        await self.session.refresh(inv)
        logger.info("Invitation %s revoked by %s", inv.id, actor.id)
        return inv

    async def expire_overdue(self) -> int:
        n = await self.repo.expire_overdue(_now())
        await self.session.commit()
        if n:
            logger.info("Expired %d overdue invitations", n)
        return n
