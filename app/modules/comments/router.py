import uuid
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_session
from app.modules.comments.schemas import CommentCreate, CommentOut
from app.modules.comments.service import CommentService
from app.modules.identity.dependencies import get_actor
from app.modules.identity.models import Profile

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session)) -> CommentService:
    return CommentService(session)

@router.post("/tickets/{ticket_id}/comments", response_model=CommentOut, status_code=201)
async def add_comment(
    ticket_id: uuid.UUID,
    payload: CommentCreate,
    actor: Profile = Depends(get_actor),
    service: CommentService = Depends(svc),
):
    return await service.add(actor, ticket_id, payload.message, payload.is_internal)

@router.get("/tickets/{ticket_id}/comments", response_model=list[CommentOut])
async def list_comments(ticket_id: uuid.UUID, actor: Profile = Depends(get_actor), service: CommentService = Depends(svc)):
    return await service.list(actor, ticket_id)
