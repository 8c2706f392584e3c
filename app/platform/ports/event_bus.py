from typing import Protocol, runtime_checkable

@runtime_checkable
class EventBusPort(Protocol):
    """Where relayed outbox events go.

    ``value`` is the envelope built by the outbox relay: organization_id,
    event_type, subject, payload, occurred_at and outbox_id.
    """

    async def publish(self, topic: str, key: str, value: dict, headers: dict | None = None) -> None: ...
