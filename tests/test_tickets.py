import re
import uuid

import pytest
from sqlalchemy import select

from app.core.errors import NotFound, Unauthorized, ValidationError
from app.modules.activity.models import TicketActivityLog
from app.modules.events.outbox import EventOutbox
from app.modules.tickets.schemas import TicketCreate
from app.modules.tickets.service import TicketService


async def _activity(session, ticket_id):
    res = await session.execute(
        select(TicketActivityLog.action, TicketActivityLog.old_value, TicketActivityLog.new_value)
        .where(TicketActivityLog.ticket_id == ticket_id)
    )
    return [tuple(r) for r in res.all()]


@pytest.fixture
async def acme(factory):
    org = await factory.org("Acme")
    return {
        "org": org,
        "owner": await factory.profile(org, "owner", "Alice"),
        "agent": await factory.profile(org, "agent", "Bob"),
        "agent2": await factory.profile(org, "agent", "Eve"),
        "requester": await factory.profile(org, "requester", "Rita"),
    }


# ---- create ----

async def test_create_defaults_and_activity(session, acme):
    ticket = await TicketService(session).create_ticket(acme["owner"], TicketCreate(title=" VPN down ", description="since noon"))

    assert ticket.status == "open"
    assert ticket.priority == "medium"
    assert ticket.category == "general"
    assert ticket.tags == []
    assert ticket.created_by == acme["owner"].id
    assert ticket.title == "VPN down"
    assert re.fullmatch(r"TC-[A-Z2-9]{6}", ticket.ticket_code)
    assert await _activity(session, ticket.id) == [("created", None, "VPN down")]

    events = (await session.execute(select(EventOutbox.event_type).where(EventOutbox.subject_id == str(ticket.id)))).scalars().all()
    assert events == ["TICKET_CREATED"]


@pytest.mark.parametrize("title,description", [("", "x"), ("x", "   ")])
async def test_create_requires_title_and_description(session, acme, title, description):
    with pytest.raises(ValidationError):
        await TicketService(session).create_ticket(acme["owner"], TicketCreate(title=title, description=description))


async def test_requester_ticket_inherits_code(session, factory, acme):
    customer = await factory.profile(acme["org"], "requester", "Dana", ticket_code="TC-AAA")
    ticket = await TicketService(session).create_ticket(customer, TicketCreate(title="Another one", description="d", ticket_code="TC-OTHER"))

    assert ticket.ticket_code == "TC-AAA"


async def test_staff_code_must_exist_in_organization(session, factory, acme):
    globex = await factory.org("Globex")
    await factory.ticket(globex, ticket_code="TC-GLOBEX")
    await factory.ticket(acme["org"], ticket_code="TC-ACME")
    svc = TicketService(session)

    with pytest.raises(ValidationError):
        await svc.create_ticket(acme["owner"], TicketCreate(title="t", description="d", ticket_code="TC-GLOBEX"))

    ticket = await svc.create_ticket(acme["owner"], TicketCreate(title="t", description="d", ticket_code="tc-acme"))
    assert ticket.ticket_code == "TC-ACME"


async def test_system_intake_without_actor(session, acme):
    ticket = await TicketService(session).create_ticket(
        None, TicketCreate(title="From email", description="d"), organization_id=acme["org"].id
    )
    assert ticket.created_by is None
    assert await _activity(session, ticket.id) == [("created", None, "From email")]


# ---- visibility ----

async def test_agent_sees_only_assigned(session, factory, acme):
    """agent is assigned T2 and lists tickets: T2 only, not T3 of another agent."""
    t2 = await factory.ticket(acme["org"], title="T2", assigned_to=acme["agent"])
    t3 = await factory.ticket(acme["org"], title="T3", assigned_to=acme["agent2"])
    svc = TicketService(session)

    listed = await svc.list_tickets(acme["agent"])
    assert [t.id for t in listed] == [t2.id]

    with pytest.raises(NotFound) as missing:
        await svc.get_visible(acme["agent"], uuid.uuid4())
    with pytest.raises(NotFound) as hidden:
        await svc.get_visible(acme["agent"], t3.id)
    assert str(missing.value) == str(hidden.value)


async def test_list_filters(session, factory, acme):
    await factory.ticket(acme["org"], title="Printer jam", priority="low")
    await factory.ticket(acme["org"], title="Email bounce", priority="critical", status="in_progress")
    svc = TicketService(session)

    assert [t.title for t in await svc.list_tickets(acme["owner"], search="PRINTER")] == ["Printer jam"]
    assert [t.title for t in await svc.list_tickets(acme["owner"], priority="critical")] == ["Email bounce"]
    assert [t.title for t in await svc.list_tickets(acme["owner"], status="open")] == ["Printer jam"]


@pytest.mark.parametrize("search,expected", [
    ("100%", ["100% down"]),
    ("a_b", ["a_b broken"]),
    ("\\", ["back\\slash"]),
])
async def test_search_wildcards_are_literal(session, factory, acme, search, expected):
    for title in ("100% down", "1000 down", "a_b broken", "axb broken", "back\\slash"):
        await factory.ticket(acme["org"], title=title)

    listed = await TicketService(session).list_tickets(acme["owner"], search=search)
    assert [t.title for t in listed] == expected


async def test_stats_follow_visibility(session, factory, acme):
    await factory.ticket(acme["org"], assigned_to=acme["agent"], priority="critical")
    await factory.ticket(acme["org"], assigned_to=acme["agent"], status="resolved")
    await factory.ticket(acme["org"], status="in_progress")
    svc = TicketService(session)

    assert await svc.stats(acme["owner"]) == {"open": 1, "in_progress": 1, "resolved": 1, "critical": 1, "total": 3}
    assert await svc.stats(acme["agent"]) == {"open": 1, "in_progress": 0, "resolved": 1, "critical": 1, "total": 2}
    assert await svc.stats(acme["requester"]) == {"open": 0, "in_progress": 0, "resolved": 0, "critical": 0, "total": 0}


# ---- lifecycle ----

async def test_resolved_at_set_once(session, factory, acme):
    ticket = await factory.ticket(acme["org"])
    svc = TicketService(session)

    await svc.change_status(acme["owner"], ticket.id, "resolved")
    first = ticket.resolved_at
    assert first is not None

    await svc.change_status(acme["owner"], ticket.id, "open")
    await svc.change_status(acme["owner"], ticket.id, "resolved")

    assert ticket.resolved_at == first
    assert await _activity(session, ticket.id) == [
        ("status_changed", "open", "resolved"),
        ("status_changed", "resolved", "open"),
        ("status_changed", "open", "resolved"),
    ]


async def test_reopen_keeps_closed_at(session, factory, acme):
    ticket = await factory.ticket(acme["org"])
    svc = TicketService(session)

    await svc.change_status(acme["owner"], ticket.id, "closed")
    closed_at = ticket.closed_at
    await svc.change_status(acme["owner"], ticket.id, "in_progress")

    assert ticket.status == "in_progress"
    assert ticket.closed_at == closed_at


async def test_same_status_is_a_noop(session, factory, acme):
    ticket = await factory.ticket(acme["org"])
    await TicketService(session).change_status(acme["owner"], ticket.id, "open")
    assert await _activity(session, ticket.id) == []


async def test_requester_cannot_change_ticket(session, factory, acme):
    ticket = await factory.ticket(acme["org"], created_by=acme["requester"])
    svc = TicketService(session)

    with pytest.raises(Unauthorized):
        await svc.change_status(acme["requester"], ticket.id, "closed")
    with pytest.raises(Unauthorized):
        await svc.change_priority(acme["requester"], ticket.id, "critical")
    with pytest.raises(Unauthorized):
        await svc.assign(acme["requester"], ticket.id, acme["agent"].id)

    await session.refresh(ticket)
    assert (ticket.status, ticket.priority, ticket.assigned_to) == ("open", "medium", None)
    assert await _activity(session, ticket.id) == []


async def test_agent_cannot_touch_unassigned_ticket(session, factory, acme):
    ticket = await factory.ticket(acme["org"])
    with pytest.raises(NotFound):
        await TicketService(session).change_status(acme["agent"], ticket.id, "closed")


async def test_change_priority(session, factory, acme):
    ticket = await factory.ticket(acme["org"], assigned_to=acme["agent"])
    await TicketService(session).change_priority(acme["agent"], ticket.id, "high")

    assert ticket.priority == "high"
    assert await _activity(session, ticket.id) == [("priority_changed", "medium", "high")]


async def test_assign_and_reassign(session, factory, acme):
    ticket = await factory.ticket(acme["org"])
    svc = TicketService(session)

    await svc.assign(acme["owner"], ticket.id, acme["agent"].id)
    await svc.assign(acme["owner"], ticket.id, acme["agent2"].id)

    assert ticket.assigned_to == acme["agent2"].id
    assert sorted(await _activity(session, ticket.id)) == sorted([
        ("assigned", "none", str(acme["agent"].id)),
        ("assigned", str(acme["agent"].id), str(acme["agent2"].id)),
    ])


async def test_assignee_must_be_active_staff_of_same_org(session, factory, acme):
    ticket = await factory.ticket(acme["org"])
    globex = await factory.org("Globex")
    outsider = await factory.profile(globex, "agent")
    retired = await factory.profile(acme["org"], "agent", is_active=False)
    svc = TicketService(session)

    for candidate in (acme["requester"].id, outsider.id, retired.id, uuid.uuid4()):
        with pytest.raises(ValidationError):
            await svc.assign(acme["owner"], ticket.id, candidate)
    assert ticket.assigned_to is None


async def test_unknown_status_rejected(session, factory, acme):
    ticket = await factory.ticket(acme["org"])
    with pytest.raises(ValidationError):
        await TicketService(session).change_status(acme["owner"], ticket.id, "archived")
