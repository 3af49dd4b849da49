import asyncio
import inspect
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, Iterable, Protocol, Sequence

from bulkshorts.core.base import next_timestamp
from bulkshorts.core.db import Database
from bulkshorts.core.errors import MediaBlobNotFound, MediaValidationError, StorageAccessError
from bulkshorts.core.users import normalize_user_id
from bulkshorts.modules.media.playback import PlaybackBlob, PlaybackSources
from bulkshorts.modules.media.repository import MediaRepository
from bulkshorts.modules.media.schemas import MediaRecord, MediaUpdate, ResolvedMediaItem
from bulkshorts.platform.ports.object_storage import ObjectStoragePort
from bulkshorts.platform.ports.url_validator import UrlValidatorPort

log = logging.getLogger("media.registry")

# fields that may be cleared back to NULL through update()
_NULLABLE_UPDATES = {"trim_end"}


class UploadedFile(Protocol):
    """Anything shaped like fastapi's UploadFile; ``read`` may be sync or async."""
    filename: str | None
    content_type: str | None

    def read(self) -> Any: ...


class MediaRegistry:
    def __init__(self, db: Database, storage: ObjectStoragePort, sources: PlaybackSources | None = None):
        self.db = db
        self.storage = storage
        self.sources = sources or PlaybackSources()
        self._url_locks: dict[tuple[str, str], list] = {}

    # ---- ingestion ----

    async def ingest_local(self, file: UploadedFile, user_id: str | None = None) -> MediaRecord:
        data = file.read()
        if inspect.isawaitable(data):
            data = await data
        uid = normalize_user_id(user_id)
        media_id = str(uuid.uuid4())
        name = getattr(file, "filename", None) or media_id
        mime = getattr(file, "content_type", None) or "application/octet-stream"

        # Normalize key: media/user/id.ext
        ext = ""
        if "." in name:
            ext = name.rsplit(".", 1)[1].lower()
        key = f"media/{uid}/{media_id}{('.' + ext) if ext else ''}"

        self.storage.put_bytes(key, data, content_type=mime)
        try:
            async with self.db.session() as session:
                obj = await MediaRepository(session).create(
                    id=media_id, source="local", user_id=uid,
                    title=name, description="", trim_start=0.0, trim_end=None,
                    file_name=name, mime_type=mime, file_size=len(data), blob_key=key,
                )
                await session.commit()
        except Exception:
            try:
                self.storage.delete(key)
            except StorageAccessError:
                log.exception("Could not remove orphaned object key=%s", key)
            raise
        log.info("Ingested local media id=%s user=%s size=%d", media_id, uid, len(data))
        return MediaRecord.model_validate(obj)

    async def ingest_remote(self, url: str, user_id: str | None = None) -> MediaRecord:
        normalized = url.strip() if isinstance(url, str) else ""
        if not normalized:
            raise MediaValidationError("A remote media URL must not be empty")
        uid = normalize_user_id(user_id)

        async with self._url_lock(uid, normalized):
            async with self.db.session() as session:
                repo = MediaRepository(session)
                existing = await repo.find_by_original_url(uid, normalized)
                if existing is not None:
                    log.debug("Remote media already known id=%s user=%s", existing.id, uid)
                    return MediaRecord.model_validate(existing)
                obj = await repo.create(
                    source="remote", user_id=uid, title=normalized, description="",
                    trim_start=0.0, trim_end=None, original_url=normalized,
                )
                await session.commit()
        log.info("Ingested remote media id=%s user=%s", obj.id, uid)
        return MediaRecord.model_validate(obj)

    async def ingest_remote_batch(
        self,
        urls: str | Iterable[str],
        user_id: str | None = None,
        validator: UrlValidatorPort | None = None,
    ) -> list[MediaRecord]:
        """Ingest pasted URLs (a list or newline-separated text), one record per distinct URL."""
        raw = urls.splitlines() if isinstance(urls, str) else list(urls)
        candidates = [u.strip() for u in raw if isinstance(u, str) and u.strip()]
        if validator is not None and candidates:
            accepted = await validator.validate(candidates)
            log.debug("Validator kept %d of %d URLs", len(accepted), len(candidates))
            candidates = accepted

        records: list[MediaRecord] = []
        seen: set[str] = set()
        for url in candidates:
            record = await self.ingest_remote(url, user_id)
            if record.id in seen:
                continue
            seen.add(record.id)
            records.append(record)
        return records

    # ---- mutation ----

    async def update(self, media_id: str, patch: MediaUpdate | dict) -> MediaRecord | None:
        if isinstance(patch, dict):
            patch = MediaUpdate.model_validate(patch)
        changes = patch.model_dump(exclude_unset=True)
        async with self.db.session() as session:
            obj = await MediaRepository(session).get(media_id)
            if obj is None:
                return None
            for k, v in changes.items():
                if v is None and k not in _NULLABLE_UPDATES:
                    continue
                setattr(obj, k, v)
            obj.updated_at = next_timestamp(obj.updated_at)
            await session.commit()
        log.debug("Updated media id=%s fields=%s", media_id, ",".join(sorted(changes)) or "-")
        return MediaRecord.model_validate(obj)

    # ---- reads ----

    async def get(self, media_id: str) -> MediaRecord | None:
        async with self.db.session() as session:
            obj = await MediaRepository(session).get(media_id)
            return MediaRecord.model_validate(obj) if obj is not None else None

    async def get_batch(self, media_ids: Sequence[str], user_id: str | None = None) -> list[MediaRecord]:
        """Records for ``media_ids`` in the order given; unknown ids (and other users' media) are skipped."""
        async with self.db.session() as session:
            found = await MediaRepository(session).get_many(list(media_ids))
        owner = normalize_user_id(user_id) if user_id is not None else None
        out: list[MediaRecord] = []
        for media_id in media_ids:
            obj = found.get(media_id)
            if obj is None:
                continue
            record = MediaRecord.model_validate(obj)
            if owner is not None and record.user_id != owner:
                continue
            out.append(record)
        return out

    async def list_all(self) -> list[MediaRecord]:
        async with self.db.session() as session:
            rows = await MediaRepository(session).list_all()
            return [MediaRecord.model_validate(obj) for obj in rows]

    # ---- playback ----

    async def resolve_source(self, record: MediaRecord) -> str:
        if record.source == "remote":
            return record.original_url or ""

        if record.blob_key is None:
            stored = await self.get(record.id)
            if stored is None:
                raise MediaBlobNotFound(record.id)
            record = stored
        data = self.storage.get_bytes(record.blob_key) if record.blob_key else None
        if data is None:
            raise MediaBlobNotFound(record.id)
        return self.sources.mint(data, record.mime_type, owner=record.user_id)

    async def resolve_batch(self, media_ids: Sequence[str], user_id: str | None = None) -> list[ResolvedMediaItem]:
        items: list[ResolvedMediaItem] = []
        for record in await self.get_batch(media_ids, user_id):
            try:
                src = await self.resolve_source(record)
            except MediaBlobNotFound:
                # don't leak handles minted for earlier items
                for item in items:
                    self.release_source(item.src)
                raise
            items.append(ResolvedMediaItem(id=record.id, src=src, record=record))
        return items

    def release_source(self, handle: str | None, user_id: str | None = None) -> None:
        owner = normalize_user_id(user_id) if user_id is not None else None
        self.sources.release(handle, owner)

    def open_source(self, handle: str, user_id: str | None = None) -> PlaybackBlob | None:
        owner = normalize_user_id(user_id) if user_id is not None else None
        return self.sources.open(handle, owner)

    # ---- internals ----

    @asynccontextmanager
    async def _url_lock(self, user_id: str, url: str):
        key = (user_id, url)
        entry = self._url_locks.get(key)
        if entry is None:
            entry = self._url_locks[key] = [asyncio.Lock(), 0]
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                self._url_locks.pop(key, None)
