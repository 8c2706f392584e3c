import uuid
from typing import Sequence
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from app.modules.comments.models import Comment

class CommentRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, ticket_id: uuid.UUID, user_id: uuid.UUID | None, message: str, is_internal: bool) -> Comment:
        obj = Comment(ticket_id=ticket_id, user_id=user_id, message=message, is_internal=is_internal)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def list_for_ticket(self, ticket_id: uuid.UUID, include_internal: bool) -> Sequence[Comment]:
        q = select(Comment).where(Comment.ticket_id == ticket_id)
        if not include_internal:
            q = q.where(Comment.is_internal.is_(False))
        q = q.order_by(Comment.created_at.asc())
        res = await self.session.execute(q)
        return res.scalars().all()
