from typing import Protocol, runtime_checkable

@runtime_checkable
class EventBusPort(Protocol):
    """Outbound sink for change notifications; ``key`` is the user partition."""

    async def publish(self, topic: str, key: str, value: dict, headers: dict | None = None) -> None: ...

    async def close(self) -> None: ...
