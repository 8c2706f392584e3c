import json
import logging
from redis.asyncio import from_url as redis_from_url
from app.platform.ports.event_bus import EventBusPort
from app.core.config import settings

log = logging.getLogger("bus.redis")

DEFAULT_STREAM = "helpdesk.events"

class RedisEventBus(EventBusPort):
    """Appends each event to one Redis stream; consumers filter on ``event_type``."""

    def __init__(self, redis=None, stream: str | None = None):
        if redis is None and not settings.REDIS_URL:
            raise RuntimeError("REDIS_URL not configured")
        self.redis = redis or redis_from_url(settings.REDIS_URL, encoding="utf-8", decode_responses=True)
        self.stream = stream or settings.REDIS_STREAM or DEFAULT_STREAM

    async def publish(self, topic: str, key: str, value: dict, headers: dict | None = None) -> None:
        entry = {
            "topic": topic,
            "key": key,
            "event_type": value.get("event_type") or "-",
            "organization_id": value.get("organization_id") or "-",
            "value": json.dumps(value),
            "headers": json.dumps(headers or {}),
        }
        await self.redis.xadd(self.stream, entry, maxlen=settings.REDIS_STREAM_MAXLEN, approximate=True)
        log.debug("XADD stream=%s event_type=%s key=%s", self.stream, entry["event_type"], key)
