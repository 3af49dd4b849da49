import asyncio
import logging
from datetime import datetime, timezone

from bulkshorts.core.kv_store import LocalKeyValueStore
from bulkshorts.modules.events.hub import ChangeEvent, ChangeHub
from bulkshorts.platform.ports.event_bus import EventBusPort

log = logging.getLogger("event.relay")

TOPIC = "bulkshorts.events"

# ---- hub -> bus ----

async def run_change_relay(hub: ChangeHub, bus: EventBusPort, topics: tuple[str, ...] = ("posts",)):
    """Forward in-process change events to the external event bus until cancelled."""
    queue: asyncio.Queue[ChangeEvent] = asyncio.Queue()
    unsubscribers = [hub.subscribe(t, queue.put_nowait) for t in topics]
    log.info("Change relay started with bus=%s topics=%s", bus.__class__.__name__, ",".join(topics))
    try:
        while True:
            ev = await queue.get()
            try:
                await bus.publish(topic=TOPIC, key=str(ev.detail.get("user_id") or "-"), value={
                    "event_type": f"{ev.topic}.changed",
                    "detail": ev.detail,
                    "occurred_at": datetime.now(timezone.utc).isoformat(),
                })
            except Exception:
                # dropped, no retry
                log.exception("Publish failed topic=%s", ev.topic)
    except asyncio.CancelledError:
        log.info("Change relay cancelled; shutting down")
        raise
    finally:
        for unsubscribe in unsubscribers:
            unsubscribe()

# ---- external writers -> storage events ----

async def run_storage_watcher(store: LocalKeyValueStore, poll_interval_seconds: float = 1.0):
    """Poll the key/value file so writes from other processes reach subscribers."""
    log.info("Storage watcher started path=%s interval=%.2fs", store.path, poll_interval_seconds)
    try:
        while True:
            try:
                store.poll()
            except Exception:
                log.exception("Storage watcher iteration failed")
            await asyncio.sleep(poll_interval_seconds)
    except asyncio.CancelledError:
        log.info("Storage watcher cancelled; shutting down")
        raise
