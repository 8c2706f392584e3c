from app.core.config import settings
from app.platform.ports.event_bus import EventBusPort
from app.platform.adapters.bus_noop import NoopEventBus
from app.platform.adapters.bus_redis import RedisEventBus

def _build_event_bus(provider: str | None) -> EventBusPort:
    prov = (provider or "noop").lower()
    if prov == "redis":
        return RedisEventBus()
    if prov != "noop":
        raise RuntimeError(f"Unknown EVENT_BUS_PROVIDER: {provider}")
    return NoopEventBus()

class ProviderRegistry:
    """Process-wide adapters, built lazily from settings."""
    _event_bus: EventBusPort | None = None

    @classmethod
    def event_bus(cls) -> EventBusPort:
        if cls._event_bus is None:
            cls._event_bus = _build_event_bus(settings.EVENT_BUS_PROVIDER)
        return cls._event_bus

    @classmethod
    def use_event_bus(cls, bus: EventBusPort | None) -> None:
        # None drops the current adapter; the next call rebuilds it from settings
        cls._event_bus = bus

registry = ProviderRegistry()
