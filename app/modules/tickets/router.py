import uuid
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_session
from app.modules.identity.dependencies import get_actor
from app.modules.identity.models import Profile
from app.modules.tickets.schemas import (
    TicketCreate, TicketOut, TicketStats,
    StatusChange, PriorityChange, AssignmentChange,
)
from app.modules.tickets.service import TicketService

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session)) -> TicketService:
    return TicketService(session)

# ---- Tickets ----

@router.post("/tickets", response_model=TicketOut, status_code=201)
async def create_ticket(
    payload: TicketCreate,
    actor: Profile = Depends(get_actor),
    service: TicketService = Depends(svc),
):
    return await service.create_ticket(actor, payload)

@router.get("/tickets", response_model=list[TicketOut])
async def list_tickets(
    status: str | None = Query(default=None, pattern="^(open|in_progress|resolved|closed)$"),
    priority: str | None = Query(default=None, pattern="^(low|medium|high|critical)$"),
    search: str | None = Query(default=None, max_length=200),
    limit: int = Query(50, ge=1, le=200), offset: int = Query(0, ge=0),
    actor: Profile = Depends(get_actor),
    service: TicketService = Depends(svc),
):
    return await service.list_tickets(actor, status=status, priority=priority, search=search, limit=limit, offset=offset)

@router.get("/tickets/stats", response_model=TicketStats)
async def ticket_stats(actor: Profile = Depends(get_actor), service: TicketService = Depends(svc)):
    return await service.stats(actor)

@router.get("/tickets/{ticket_id}", response_model=TicketOut)
async def get_ticket(
    ticket_id: uuid.UUID,
    actor: Profile = Depends(get_actor),
    service: TicketService = Depends(svc),
):
    return await service.get_visible(actor, ticket_id)

# ---- Lifecycle ----

@router.post("/tickets/{ticket_id}/status", response_model=TicketOut)
async def change_status(
    ticket_id: uuid.UUID,
    payload: StatusChange,
    actor: Profile = Depends(get_actor),
    service: TicketService = Depends(svc),
):
    return await service.change_status(actor, ticket_id, payload.status)

@router.post("/tickets/{ticket_id}/priority", response_model=TicketOut)
async def change_priority(
    ticket_id: uuid.UUID,
    payload: PriorityChange,
    actor: Profile = Depends(get_actor),
    service: TicketService = Depends(svc),
):
    return await service.change_priority(actor, ticket_id, payload.priority)

@router.post("/tickets/{ticket_id}/assign", response_model=TicketOut)
async def assign_ticket(
    ticket_id: uuid.UUID,
    payload: AssignmentChange,
    actor: Profile = Depends(get_actor),
    service: TicketService = Depends(svc),
):
    return await service.assign(actor, ticket_id, payload.assignee_id)
