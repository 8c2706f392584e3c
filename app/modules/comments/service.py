import uuid
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.errors import ValidationError
from app.core.permissions import Action, ensure_allowed, is_allowed, is_staff
from app.modules.activity.service import ActivityRecorder, MAX_VALUE_LENGTH
from app.modules.comments.models import Comment
from app.modules.comments.repository import CommentRepository
from app.modules.events.outbox import OutboxService
from app.modules.identity.models import Profile
from app.modules.tickets.service import TicketService

logger = logging.getLogger(__name__)

class CommentService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.repo = CommentRepository(session)
        self.tickets = TicketService(session)
        self.activity = ActivityRecorder(session)

    async def add(self, actor: Profile, ticket_id: uuid.UUID, message: str, is_internal: bool = False) -> Comment:
        ensure_allowed(actor, Action.COMMENT_CREATE)
        ticket = await self.tickets.get_visible(actor, ticket_id)
        message = (message or "").strip()
        if not message:
            raise ValidationError("Comment cannot be empty")
        # requesters can never write internal notes, whatever the request says
        internal = bool(is_internal) and is_allowed(actor.role, Action.COMMENT_CREATE_INTERNAL)
        obj = await self.repo.create(ticket.id, actor.id, message, internal)
        await self.activity.record(ticket.id, actor.id, "commented", new_value=message[:MAX_VALUE_LENGTH], is_internal=internal)
        await OutboxService(self.session).enqueue(
            ticket.organization_id, "COMMENT_ADDED", "ticket", ticket.id,
            {"comment_id": str(obj.id), "is_internal": internal}
        )
        await self.session.commit()
        logger.info("Comment %s added to ticket %s by %s (internal=%s)", obj.id, ticket.id, actor.id, internal)
        return obj

    async def list(self, actor: Profile, ticket_id: uuid.UUID):
        ticket = await self.tickets.get_visible(actor, ticket_id)
        return await self.repo.list_for_ticket(ticket.id, include_internal=is_staff(actor.role))
