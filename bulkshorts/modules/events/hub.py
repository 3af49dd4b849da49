import logging
from dataclasses import dataclass, field
from typing import Callable

log = logging.getLogger("event.hub")


@dataclass(frozen=True)
class ChangeEvent:
    topic: str
    detail: dict = field(default_factory=dict)


ChangeHandler = Callable[[ChangeEvent], None]


class ChangeHub:
    """In-process pub/sub used to broadcast store mutations to open views.

    Handlers run synchronously in ``emit``. A failing handler is logged and
    does not stop delivery to the others.
    """

    def __init__(self):
        self._handlers: dict[str, list[ChangeHandler]] = {}

    def subscribe(self, topic: str, handler: ChangeHandler) -> Callable[[], None]:
        self._handlers.setdefault(topic, []).append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(topic, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def emit(self, topic: str, **detail) -> ChangeEvent:
        event = ChangeEvent(topic=topic, detail=detail)
        for handler in list(self._handlers.get(topic, [])):
            try:
                handler(event)
            except Exception:
                log.exception("Change handler failed topic=%s", topic)
        return event

    def subscriber_count(self, topic: str) -> int:
        return len(self._handlers.get(topic, []))
