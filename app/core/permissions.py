"""Role based authorization.

One table answers "may role R perform action A" for every entry point
(HTTP routes, services, scripts). Ticket *scope* (which tickets a profile
can see at all) lives in ``app.modules.tickets.policy``.
"""
import enum
import logging

from app.core.errors import Unauthorized

logger = logging.getLogger(__name__)


class Role(str, enum.Enum):
    OWNER = "owner"
    ADMIN = "admin"
    AGENT = "agent"
    REQUESTER = "requester"


STAFF_ROLES = frozenset({Role.OWNER, Role.ADMIN, Role.AGENT})
MANAGER_ROLES = frozenset({Role.OWNER, Role.ADMIN})
ALL_ROLES = frozenset(Role)
INVITABLE_ROLES = frozenset({Role.ADMIN, Role.AGENT, Role.REQUESTER})


class Action(str, enum.Enum):
    TICKET_CREATE = "ticket.create"
    TICKET_VIEW = "ticket.view"
    TICKET_CHANGE_STATUS = "ticket.change_status"
    TICKET_CHANGE_PRIORITY = "ticket.change_priority"
    TICKET_ASSIGN = "ticket.assign"
    COMMENT_CREATE = "comment.create"
    COMMENT_CREATE_INTERNAL = "comment.create_internal"
    INVITATION_CREATE = "invitation.create"
    INVITATION_LIST = "invitation.list"
    INVITATION_REVOKE = "invitation.revoke"
    ORGANIZATION_UPDATE = "organization.update"
    TEAM_VIEW = "team.view"
    CUSTOMERS_VIEW = "customers.view"


PERMISSIONS: dict[Action, frozenset[Role]] = {
    Action.TICKET_CREATE: ALL_ROLES,
    Action.TICKET_VIEW: ALL_ROLES,
    Action.TICKET_CHANGE_STATUS: STAFF_ROLES,
    Action.TICKET_CHANGE_PRIORITY: STAFF_ROLES,
    Action.TICKET_ASSIGN: STAFF_ROLES,
    Action.COMMENT_CREATE: ALL_ROLES,
    Action.COMMENT_CREATE_INTERNAL: STAFF_ROLES,
    Action.INVITATION_CREATE: MANAGER_ROLES,
    Action.INVITATION_LIST: MANAGER_ROLES,
    Action.INVITATION_REVOKE: MANAGER_ROLES,
    Action.ORGANIZATION_UPDATE: MANAGER_ROLES,
    Action.TEAM_VIEW: STAFF_ROLES,
    Action.CUSTOMERS_VIEW: STAFF_ROLES,
}


def as_role(role) -> Role | None:
    if role is None:
        return None
    try:
        return Role(role)
    except ValueError:
        return None


def is_staff(role) -> bool:
    return as_role(role) in STAFF_ROLES


def is_allowed(role, action: Action) -> bool:
    r = as_role(role)
    if r is None:
        return False
    return r in PERMISSIONS.get(action, frozenset())


def ensure_allowed(profile, action: Action) -> None:
    """Raise Unauthorized unless ``profile`` is bound, active and its role permits ``action``."""
    if profile is None or profile.organization_id is None or not profile.is_active:
        raise Unauthorized()
    if not is_allowed(profile.role, action):
        logger.info("Denied %s for profile=%s role=%s", action.value, profile.id, profile.role)
        raise Unauthorized()
