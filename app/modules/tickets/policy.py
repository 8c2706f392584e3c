"""Which tickets a profile may see.

``can_view`` and ``visibility_clause`` express the same rule, one in Python
for a loaded ticket and one as a SQL predicate for listings and counts:

- owner/admin: every ticket of their organization
- agent: tickets assigned to them
- requester: tickets they created, or carrying their ticket code
"""
from sqlalchemy import and_, or_, false

from app.core.permissions import Role, MANAGER_ROLES, as_role
from app.modules.tickets.models import Ticket


def _bound(profile) -> bool:
    return profile is not None and profile.organization_id is not None and profile.is_active


def requester_clause(profile):
    in_org = Ticket.organization_id == profile.organization_id
    if profile.ticket_code:
        return and_(in_org, or_(Ticket.created_by == profile.id, Ticket.ticket_code == profile.ticket_code))
    return and_(in_org, Ticket.created_by == profile.id)


def visibility_clause(profile):
    if not _bound(profile):
        return false()
    role = as_role(profile.role)
    if role in MANAGER_ROLES:
        return Ticket.organization_id == profile.organization_id
    if role == Role.AGENT:
        return and_(Ticket.organization_id == profile.organization_id, Ticket.assigned_to == profile.id)
    if role == Role.REQUESTER:
        return requester_clause(profile)
    return false()


def can_view(profile, ticket: Ticket) -> bool:
    if not _bound(profile) or ticket.organization_id != profile.organization_id:
        return False
    role = as_role(profile.role)
    if role in MANAGER_ROLES:
        return True
    if role == Role.AGENT:
        return ticket.assigned_to == profile.id
    if role == Role.REQUESTER:
        if ticket.created_by == profile.id:
            return True
        return bool(profile.ticket_code) and ticket.ticket_code == profile.ticket_code
    return False
