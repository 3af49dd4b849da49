import logging
import uuid
from dataclasses import dataclass

log = logging.getLogger("media.playback")

BLOB_PREFIX = "blob:"

@dataclass(frozen=True)
class PlaybackBlob:
    data: bytes
    mime_type: str
    owner: str | None = None

class PlaybackSources:
    """Transient ``blob:`` handles over locally stored media binaries.

    Every ``mint`` returns a new handle, even for the same bytes. Handles stay
    live until ``release`` is called; nothing is released automatically. A
    handle minted for an owner can only be opened or released by that owner
    (callers passing no owner are trusted).
    """

    def __init__(self):
        self._live: dict[str, PlaybackBlob] = {}

    def mint(self, data: bytes, mime_type: str | None = None, owner: str | None = None) -> str:
        handle = f"{BLOB_PREFIX}{uuid.uuid4()}"
        self._live[handle] = PlaybackBlob(
            data=data, mime_type=mime_type or "application/octet-stream", owner=owner,
        )
        return handle

    def open(self, handle: str, owner: str | None = None) -> PlaybackBlob | None:
        blob = self._live.get(handle)
        if blob is None or not self._allowed(blob, owner):
            return None
        return blob

    def release(self, handle: str | None, owner: str | None = None) -> None:
        if not handle or not handle.startswith(BLOB_PREFIX):
            return
        blob = self._live.get(handle)
        if blob is None or not self._allowed(blob, owner):
            return
        del self._live[handle]
        log.debug("Released playback handle %s", handle)

    def release_all(self) -> int:
        n = len(self._live)
        self._live.clear()
        return n

    @staticmethod
    def _allowed(blob: PlaybackBlob, owner: str | None) -> bool:
        return owner is None or blob.owner is None or blob.owner == owner

    def __len__(self) -> int:
        return len(self._live)

    def __contains__(self, handle: str) -> bool:
        return handle in self._live
