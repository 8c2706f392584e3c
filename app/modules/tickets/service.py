import uuid
import logging
from datetime import datetime, timezone
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.codes import random_code, normalize_code
from app.core.errors import NotFound, ValidationError
from app.core.permissions import Action, Role, STAFF_ROLES, ensure_allowed, as_role
from app.modules.activity.service import ActivityRecorder
from app.modules.events.outbox import OutboxService
from app.modules.identity.models import Profile
from app.modules.identity.repository import ProfileRepository
from app.modules.tickets.models import Ticket, STATUSES, PRIORITIES
from app.modules.tickets.repository import TicketRepository
from app.modules.tickets.schemas import TicketCreate

logger = logging.getLogger(__name__)

CODE_ATTEMPTS = 5

def _now() -> datetime:
    return datetime.now(timezone.utc)

class TicketService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.tickets = TicketRepository(session)
        self.profiles = ProfileRepository(session)
        self.activity = ActivityRecorder(session)
        self.outbox = OutboxService(session)

    async def _new_ticket_code(self) -> str:
        for _ in range(CODE_ATTEMPTS):
            code = random_code("TC", groups=1, group_len=6)
            if not await self.tickets.code_in_use(code):
                return code
        raise RuntimeError("Could not allocate a unique ticket code")

    async def _ticket_code_for(self, actor: Profile | None, organization_id: uuid.UUID, requested: str | None) -> str | None:
        if actor is not None and as_role(actor.role) == Role.REQUESTER:
            # customers keep every ticket under the code they signed in with
            return actor.ticket_code
        code = normalize_code(requested)
        if code:
            if not await self.tickets.code_in_use(code, organization_id):
                raise ValidationError("Unknown ticket code")
            return code
        return await self._new_ticket_code()

    # ---- Tickets ----
    async def create_ticket(self, actor: Profile | None, payload: TicketCreate, organization_id: uuid.UUID | None = None) -> Ticket:
        """Open a ticket. ``actor=None`` is system intake for ``organization_id``."""
        if actor is not None:
            ensure_allowed(actor, Action.TICKET_CREATE)
            organization_id = actor.organization_id
        if organization_id is None:
            raise ValidationError("Organization is required")
        title = payload.title.strip()
        description = payload.description.strip()
        if not title or not description:
            raise ValidationError("Title and description are required")

        obj = await self.tickets.create(
            organization_id,
            title=title,
            description=description,
            category=(payload.category or "general").strip() or "general",
            tags=[t.strip() for t in payload.tags if t and t.strip()],
            priority=payload.priority,
            status="open",
            created_by=actor.id if actor else None,
            ticket_code=await self._ticket_code_for(actor, organization_id, payload.ticket_code),
        )
        await self.activity.record(obj.id, actor.id if actor else None, "created", new_value=obj.title[:100])
        await self.outbox.enqueue(
            organization_id, "TICKET_CREATED", "ticket", obj.id,
            {"priority": obj.priority, "category": obj.category, "created_by": str(obj.created_by) if obj.created_by else None}
        )
        await self.session.commit()
        logger.info("Ticket %s created in org=%s by %s", obj.id, organization_id, obj.created_by or "system")
        return obj

    async def get_visible(self, actor: Profile, ticket_id: uuid.UUID) -> Ticket:
        """The ticket if ``actor`` may see it. Absent and out-of-scope look the same."""
        ensure_allowed(actor, Action.TICKET_VIEW)
        obj = await self.tickets.get_visible(actor, ticket_id)
        if obj is None:
            raise NotFound("Ticket not found")
        return obj

    async def list_tickets(self, actor: Profile, **filters):
        ensure_allowed(actor, Action.TICKET_VIEW)
        return await self.tickets.list_visible(actor, **filters)

    async def stats(self, actor: Profile) -> dict:
        ensure_allowed(actor, Action.TICKET_VIEW)
        return await self.tickets.stats(actor)

    # ---- Lifecycle ----
    async def change_status(self, actor: Profile, ticket_id: uuid.UUID, new_status: str) -> Ticket:
        ensure_allowed(actor, Action.TICKET_CHANGE_STATUS)
        if new_status not in STATUSES:
            raise ValidationError("Unknown status")
        obj = await self.get_visible(actor, ticket_id)
        old_status = obj.status
        if old_status == new_status:
            return obj

        now = _now()
        obj.status = new_status
        # first entry only; re-opening keeps the original timestamps
        if new_status == "resolved" and obj.resolved_at is None:
            obj.resolved_at = now
        if new_status == "closed" and obj.closed_at is None:
            obj.closed_at = now
        await self.session.flush()
        await self.activity.record(obj.id, actor.id, "status_changed", old_value=old_status, new_value=new_status)
        await self.outbox.enqueue(
            obj.organization_id, "TICKET_STATUS_CHANGED", "ticket", obj.id,
            {"from": old_status, "to": new_status}
        )
        await self.session.commit()
        logger.info("Ticket %s status %s -> %s by %s", obj.id, old_status, new_status, actor.id)
        return obj

    async def change_priority(self, actor: Profile, ticket_id: uuid.UUID, new_priority: str) -> Ticket:
        ensure_allowed(actor, Action.TICKET_CHANGE_PRIORITY)
        if new_priority not in PRIORITIES:
            raise ValidationError("Unknown priority")
        obj = await self.get_visible(actor, ticket_id)
        old_priority = obj.priority
        if old_priority == new_priority:
            return obj
        obj.priority = new_priority
        await self.session.flush()
        await self.activity.record(obj.id, actor.id, "priority_changed", old_value=old_priority, new_value=new_priority)
        await self.session.commit()
        logger.info("Ticket %s priority %s -> %s by %s", obj.id, old_priority, new_priority, actor.id)
        return obj

    async def assign(self, actor: Profile, ticket_id: uuid.UUID, assignee_id: uuid.UUID) -> Ticket:
        ensure_allowed(actor, Action.TICKET_ASSIGN)
        obj = await self.get_visible(actor, ticket_id)
        assignee = await self.profiles.get_in_org(obj.organization_id, assignee_id)
        if assignee is None or not assignee.is_active or as_role(assignee.role) not in STAFF_ROLES:
            raise ValidationError("Tickets can only be assigned to active team members of this organization")

        previous = obj.assigned_to
        obj.assigned_to = assignee.id
        await self.session.flush()
        await self.activity.record(
            obj.id, actor.id, "assigned",
            old_value=previous if previous else "none",
            new_value=assignee.id,
        )
        await self.outbox.enqueue(
            obj.organization_id, "TICKET_ASSIGNED", "ticket", obj.id,
            {"from": str(previous) if previous else None, "to": str(assignee.id)}
        )
        await self.session.commit()
        logger.info("Ticket %s assigned to %s by %s", obj.id, assignee.id, actor.id)
        return obj
