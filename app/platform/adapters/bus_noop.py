import logging
from app.platform.ports.event_bus import EventBusPort

log = logging.getLogger("bus.noop")

class NoopEventBus(EventBusPort):
    """Logs events instead of shipping them; keeps the last few for inspection."""

    def __init__(self, keep: int = 100):
        self.keep = keep
        self.published: list[dict] = []

    async def publish(self, topic: str, key: str, value: dict, headers: dict | None = None) -> None:
        self.published.append({"topic": topic, "key": key, "value": value, "headers": headers or {}})
        del self.published[:-self.keep]
        log.info("[NOOP BUS] topic=%s key=%s event_type=%s", topic, key, value.get("event_type"))
