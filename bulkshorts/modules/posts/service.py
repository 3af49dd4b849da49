import logging
import uuid
from typing import Any, Callable, Iterable

from bulkshorts.core.base import next_timestamp
from bulkshorts.core.config import settings
from bulkshorts.core.errors import PostValidationError
from bulkshorts.core.kv_store import LocalKeyValueStore, StorageEvent
from bulkshorts.core.users import normalize_user_id
from bulkshorts.modules.events.hub import ChangeEvent, ChangeHub
from bulkshorts.modules.posts.repository import PostRepository, partition_snapshot
from bulkshorts.modules.posts.schemas import PostCreate, PostMediaMeta, PostRecord, PostUpdate

log = logging.getLogger("posts.registry")

TOPIC = "posts"


def sanitize_text(value: str | None) -> str:
    return value.strip() if isinstance(value, str) else ""


def sanitize_media_ids(media_ids: Iterable[Any]) -> list[str]:
    """Drop blank/non-string ids and duplicates, keeping first-seen order."""
    return list(dict.fromkeys(i for i in media_ids if isinstance(i, str) and i.strip()))


def sanitize_media_meta(meta: Iterable[PostMediaMeta | dict] | None, media_ids: list[str]) -> list[PostMediaMeta]:
    """One annotation per media id, in ``media_ids`` order.

    Entries for ids outside ``media_ids`` are dropped; ids without an entry
    get an empty one. The first entry wins when an id is annotated twice.
    """
    by_id: dict[str, PostMediaMeta] = {}
    for entry in meta or []:
        if isinstance(entry, dict):
            if not isinstance(entry.get("id"), str):
                continue
            entry = PostMediaMeta.model_validate(entry)
        elif not isinstance(entry, PostMediaMeta):
            continue
        by_id.setdefault(entry.id, entry)
    return [
        by_id[i].model_copy() if i in by_id else PostMediaMeta(id=i)
        for i in media_ids
    ]


def get_post_display_label(post: PostRecord, fallback: str = "Untitled post") -> str:
    return post.title.strip() or post.name.strip() or fallback


class PostRegistry:
    def __init__(self, store: LocalKeyValueStore, hub: ChangeHub | None = None, key: str | None = None):
        self.repo = PostRepository(store, key or settings.POSTS_STORAGE_KEY)
        self.hub = hub or ChangeHub()

    @property
    def store(self) -> LocalKeyValueStore:
        return self.repo.store

    def create(self, payload: PostCreate | dict) -> PostRecord:
        if isinstance(payload, dict):
            payload = PostCreate.model_validate(payload)
        user_id = normalize_user_id(payload.user_id)
        media_ids = sanitize_media_ids(payload.media_ids)
        if not media_ids:
            raise PostValidationError("A post requires at least one media item")

        partitions = self.repo.read_all()
        current = partitions.get(user_id, [])
        newest = max((p.created_at for p in current), default=None)
        post = PostRecord(
            id=str(uuid.uuid4()),
            user_id=user_id,
            name=sanitize_text(payload.name),
            title=sanitize_text(payload.title),
            description=sanitize_text(payload.description),
            media_ids=media_ids,
            media_meta=sanitize_media_meta(payload.media_meta, media_ids),
            created_at=next_timestamp(newest),
        )
        partitions[user_id] = [post, *current]
        self.repo.write_all(partitions)
        log.info("Created post id=%s user=%s media=%d", post.id, user_id, len(media_ids))
        self._emit(user_id, "created", post.id)
        return post

    def list(self, user_id: str | None) -> list[PostRecord]:
        posts = self.repo.partition(normalize_user_id(user_id))
        resynced = [
            p.model_copy(update={"media_meta": sanitize_media_meta(p.media_meta, p.media_ids)})
            for p in posts
        ]
        return sorted(resynced, key=lambda p: p.created_at, reverse=True)

    def get(self, user_id: str | None, post_id: str) -> PostRecord | None:
        for post in self.list(user_id):
            if post.id == post_id:
                return post
        return None

    def update(self, user_id: str | None, post_id: str, patch: PostUpdate | dict) -> PostRecord | None:
        if isinstance(patch, dict):
            patch = PostUpdate.model_validate(patch)
        uid = normalize_user_id(user_id)
        partitions = self.repo.read_all()
        posts = partitions.get(uid, [])
        index = next((i for i, p in enumerate(posts) if p.id == post_id), None)
        if index is None:
            return None

        current = posts[index]
        changes: dict[str, Any] = {}
        for field in ("name", "title", "description"):
            value = getattr(patch, field)
            if value is not None:
                changes[field] = value.strip()
        # the referenced media are fixed at creation; only their annotations change
        if patch.media_meta is not None:
            changes["media_meta"] = sanitize_media_meta(patch.media_meta, current.media_ids)
        else:
            changes["media_meta"] = sanitize_media_meta(current.media_meta, current.media_ids)

        updated = current.model_copy(update=changes)
        posts[index] = updated
        partitions[uid] = posts
        self.repo.write_all(partitions)
        log.info("Updated post id=%s user=%s", post_id, uid)
        self._emit(uid, "updated", post_id)
        return updated

    def delete(self, user_id: str | None, post_id: str) -> None:
        uid = normalize_user_id(user_id)
        partitions = self.repo.read_all()
        posts = partitions.get(uid, [])
        remaining = [p for p in posts if p.id != post_id]
        if len(remaining) == len(posts):
            return
        partitions[uid] = remaining
        self.repo.write_all(partitions)
        log.info("Deleted post id=%s user=%s", post_id, uid)
        self._emit(uid, "deleted", post_id)

    def subscribe(self, user_id: str | None, callback: Callable[[], None]) -> Callable[[], None]:
        """Call ``callback`` whenever ``user_id``'s posts change, here or in another process."""
        uid = normalize_user_id(user_id)

        def on_change(event: ChangeEvent) -> None:
            if normalize_user_id(event.detail.get("user_id")) != uid:
                return
            callback()

        def on_storage(event: StorageEvent) -> None:
            if event.key != self.repo.key:
                return
            if partition_snapshot(event.old_value, uid) == partition_snapshot(event.new_value, uid):
                return
            callback()

        remove_hub = self.hub.subscribe(TOPIC, on_change)
        remove_storage = self.store.add_listener(on_storage)

        def unsubscribe() -> None:
            remove_hub()
            remove_storage()

        return unsubscribe

    def _emit(self, user_id: str, action: str, post_id: str) -> None:
        self.hub.emit(TOPIC, user_id=user_id, action=action, post_id=post_id)

