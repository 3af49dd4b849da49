import json
import logging
from bulkshorts.platform.ports.event_bus import EventBusPort

log = logging.getLogger("bus.noop")

class NoopEventBus(EventBusPort):
    """Logs each change instead of shipping it anywhere; the default when no Redis is configured."""

    def __init__(self):
        self.published = 0

    async def publish(self, topic: str, key: str, value: dict, headers: dict | None = None) -> None:
        self.published += 1
        log.info(
            "[NOOP BUS] topic=%s key=%s event=%s value=%s",
            topic, key, value.get("event_type", "-"), json.dumps(value, sort_keys=True, default=str),
        )

    async def close(self) -> None:
        if self.published:
            log.debug("[NOOP BUS] closed after %d event(s)", self.published)
