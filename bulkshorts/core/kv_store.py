import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from .errors import StorageAccessError

log = logging.getLogger("store.kv")


@dataclass(frozen=True)
class StorageEvent:
    """A key changed in the backing file because some other writer touched it."""
    key: str
    old_value: str | None
    new_value: str | None


StorageListener = Callable[[StorageEvent], None]


class LocalKeyValueStore:
    """Synchronous string key/value store persisted as one JSON file.

    Reads always reflect the file on disk, so writes made by another process
    are visible immediately. Those foreign writes are additionally reported to
    listeners as ``StorageEvent``s when ``poll()`` runs; writes made through
    this handle are never reported back to its own listeners.
    """

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)
        self._listeners: list[StorageListener] = []
        self._seen: dict[str, str] = {}
        self._opened = False

    @property
    def is_open(self) -> bool:
        return self._opened

    def open(self) -> "LocalKeyValueStore":
        if self._opened:
            return self
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageAccessError(f"cannot create {self.path.parent}: {e}") from e
        self._seen = dict(self._read())
        self._opened = True
        log.debug("Opened key/value store path=%s keys=%d", self.path, len(self._seen))
        return self

    def close(self) -> None:
        self._listeners.clear()
        self._opened = False

    def __enter__(self) -> "LocalKeyValueStore":
        return self.open()

    def __exit__(self, *exc) -> None:
        self.close()

    # ---- reads/writes ----

    def get_item(self, key: str) -> str | None:
        self._require_open()
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        self._require_open()
        data = self._read()
        self._dispatch_changes(data)
        data[key] = value
        self._write(data)

    def remove_item(self, key: str) -> None:
        self._require_open()
        data = self._read()
        self._dispatch_changes(data)
        if key not in data:
            return
        del data[key]
        self._write(data)

    # ---- change detection ----

    def add_listener(self, listener: StorageListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def poll(self) -> list[StorageEvent]:
        """Dispatch events for keys changed on disk since the last poll or own write."""
        self._require_open()
        return self._dispatch_changes(self._read())

    # ---- internals ----

    def _dispatch_changes(self, current: dict[str, str]) -> list[StorageEvent]:
        # foreign writes not yet reported must go out before an own write overwrites _seen
        events = [
            StorageEvent(key, self._seen.get(key), current.get(key))
            for key in sorted(set(self._seen) | set(current))
            if self._seen.get(key) != current.get(key)
        ]
        self._seen = dict(current)
        for event in events:
            for listener in list(self._listeners):
                listener(event)
        if events:
            log.debug("Detected %d external change(s) in %s", len(events), self.path)
        return events

    def _require_open(self) -> None:
        if not self._opened:
            raise RuntimeError("LocalKeyValueStore is not open; call open() first")

    def _read(self) -> dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise StorageAccessError(f"cannot read {self.path}: {e}") from e
        try:
            parsed = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError:
            log.warning("Key/value file %s is not valid JSON; treating it as empty", self.path)
            parsed = {}
        if not isinstance(parsed, dict):
            log.warning("Key/value file %s does not hold an object; treating it as empty", self.path)
            parsed = {}
        return {str(k): v for k, v in parsed.items() if isinstance(v, str)}

    def _write(self, data: dict[str, str]) -> None:
        try:
            fd, tmp = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, separators=(",", ":"))
                os.replace(tmp, self.path)
            except BaseException:
                if os.path.exists(tmp):
                    os.remove(tmp)
                raise
        except OSError as e:
            raise StorageAccessError(f"cannot write {self.path}: {e}") from e
        self._seen = dict(data)
