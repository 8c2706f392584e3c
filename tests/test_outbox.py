import json

import pytest
from sqlalchemy import select

from app.modules.events.outbox import EventOutbox, OutboxRepository, OutboxService, MAX_ATTEMPTS, TOPIC, relay_once
from app.platform.adapters.bus_noop import NoopEventBus
from app.platform.adapters.bus_redis import RedisEventBus


class FailingBus:
    async def publish(self, topic, key, value, headers=None):
        raise RuntimeError("broker unavailable")


class FakeRedis:
    def __init__(self):
        self.calls = []

    async def xadd(self, stream, fields, maxlen=None, approximate=False):
        self.calls.append((stream, fields, maxlen))


async def test_relay_publishes_pending_events(session, session_factory, factory):
    acme = await factory.org("Acme")
    await OutboxService(session).enqueue(acme.id, "TICKET_CREATED", "ticket", "t-1", {"priority": "high"})
    await session.commit()
    bus = NoopEventBus()

    assert await relay_once(session_factory, bus=bus) == 1
    assert await relay_once(session_factory, bus=bus) == 0

    [event] = bus.published
    assert event["topic"] == TOPIC
    assert event["key"] == "t-1"
    assert event["value"]["event_type"] == "TICKET_CREATED"
    assert event["value"]["organization_id"] == str(acme.id)

    async with session_factory() as s:
        row = (await s.execute(select(EventOutbox))).scalar_one()
        assert row.status == "sent"


async def test_failed_publish_is_rescheduled(session, session_factory, factory):
    acme = await factory.org("Acme")
    await OutboxService(session).enqueue(acme.id, "COMMENT_ADDED", "ticket", "t-1", {})
    await session.commit()

    assert await relay_once(session_factory, bus=FailingBus()) == 1

    async with session_factory() as s:
        row = (await s.execute(select(EventOutbox))).scalar_one()
        assert row.status == "pending"
        assert row.attempts == 1
        assert row.last_error == "broker unavailable"
        assert row.next_attempt_at > row.occurred_at

    # backoff keeps it out of the next batch
    assert await relay_once(session_factory, bus=NoopEventBus()) == 0


async def test_event_is_parked_after_max_attempts(session, factory):
    acme = await factory.org("Acme")
    ev = await OutboxService(session).enqueue(acme.id, "TICKET_ASSIGNED", "ticket", "t-1", {})
    ev.attempts = MAX_ATTEMPTS - 1

    await OutboxRepository(session).mark_failed(ev, "still down")

    assert ev.status == "failed"
    assert ev.attempts == MAX_ATTEMPTS


async def test_redis_bus_writes_stream_entry():
    redis = FakeRedis()
    await RedisEventBus(redis=redis).publish(TOPIC, "k", {"event_type": "PROFILE_ONBOARDED"})

    [(stream, fields, maxlen)] = redis.calls
    assert stream == "helpdesk.events"
    assert fields["topic"] == TOPIC
    assert fields["event_type"] == "PROFILE_ONBOARDED"
    assert fields["organization_id"] == "-"
    assert json.loads(fields["value"]) == {"event_type": "PROFILE_ONBOARDED"}
    assert maxlen == 10000


def test_registry_selects_bus_from_settings(monkeypatch):
    from app.core.config import settings
    from app.platform.provider_registry import registry

    registry.use_event_bus(None)
    try:
        assert isinstance(registry.event_bus(), NoopEventBus)
        assert registry.event_bus() is registry.event_bus()

        registry.use_event_bus(None)
        monkeypatch.setattr(settings, "EVENT_BUS_PROVIDER", "redis")
        monkeypatch.setattr(settings, "REDIS_URL", None)
        with pytest.raises(RuntimeError):
            registry.event_bus()

        monkeypatch.setattr(settings, "EVENT_BUS_PROVIDER", "kafka")
        with pytest.raises(RuntimeError):
            registry.event_bus()

        bus = NoopEventBus()
        registry.use_event_bus(bus)
        assert registry.event_bus() is bus
    finally:
        registry.use_event_bus(None)
