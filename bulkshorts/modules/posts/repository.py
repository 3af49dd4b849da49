import json
import logging
from pydantic import ValidationError
from bulkshorts.core.kv_store import LocalKeyValueStore
from bulkshorts.modules.posts.schemas import PostRecord

log = logging.getLogger("posts.repository")

PostPartitions = dict[str, list[PostRecord]]

def parse_partitions(raw: str | None) -> PostPartitions:
    """Decode the stored user -> posts map, dropping anything that doesn't validate."""
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        log.warning("Failed to read post storage: %s", e)
        return {}
    if not isinstance(parsed, dict):
        log.warning("Post storage holds %s, expected an object", type(parsed).__name__)
        return {}
    out: PostPartitions = {}
    for user_id, posts in parsed.items():
        if not isinstance(posts, list):
            log.warning("Skipping malformed partition user=%s", user_id)
            continue
        valid = []
        for entry in posts:
            try:
                valid.append(PostRecord.model_validate(entry))
            except ValidationError as e:
                log.warning("Skipping malformed post in partition user=%s: %s", user_id, e.error_count())
        out[user_id] = valid
    return out

def dump_partitions(partitions: PostPartitions) -> str:
    return json.dumps({
        user_id: [p.model_dump(mode="json", by_alias=True) for p in posts]
        for user_id, posts in partitions.items()
    }, separators=(",", ":"))

class PostRepository:
    """Whole-document read/write of every user's posts under one key."""

    def __init__(self, store: LocalKeyValueStore, key: str):
        self.store = store
        self.key = key

    def read_all(self) -> PostPartitions:
        return parse_partitions(self.store.get_item(self.key))

    def write_all(self, partitions: PostPartitions) -> None:
        self.store.set_item(self.key, dump_partitions(partitions))

    def partition(self, user_id: str) -> list[PostRecord]:
        return self.read_all().get(user_id, [])

def partition_snapshot(raw: str | None, user_id: str) -> list[dict]:
    """Comparable view of one user's posts inside a raw stored document."""
    return [p.model_dump(mode="json") for p in parse_partitions(raw).get(user_id, [])]
