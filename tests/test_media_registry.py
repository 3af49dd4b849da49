import asyncio
from pathlib import Path

import pytest

from bulkshorts.core.errors import MediaBlobNotFound, MediaValidationError, StorageAccessError
from bulkshorts.modules.media.models import MediaAsset
from bulkshorts.modules.media.schemas import MediaUpdate
from bulkshorts.platform.adapters.url_validator_basic import SchemeUrlValidator

pytestmark = pytest.mark.anyio


# ---- remote ingestion / dedup ----

async def test_same_remote_url_same_user_returns_same_record(media):
    first = await media.ingest_remote("https://a/v1.mp4", "u1")
    again = await media.ingest_remote("https://a/v1.mp4", "u1")

    assert again.id == first.id
    assert again.updated_at == first.updated_at
    assert len(await media.list_all()) == 1


async def test_same_remote_url_other_user_gets_own_record(media):
    mine = await media.ingest_remote("https://a/v1.mp4", "alice")
    theirs = await media.ingest_remote("https://a/v1.mp4", "bob")

    assert mine.id != theirs.id
    assert mine.user_id == "alice"
    assert theirs.user_id == "bob"


async def test_remote_url_is_trimmed_before_dedup(media):
    first = await media.ingest_remote("  https://a/v1.mp4\n", "u1")
    again = await media.ingest_remote("https://a/v1.mp4", "u1")

    assert first.original_url == "https://a/v1.mp4"
    assert first.title == "https://a/v1.mp4"
    assert first.source == "remote"
    assert again.id == first.id


async def test_blank_remote_url_is_rejected(media):
    with pytest.raises(MediaValidationError):
        await media.ingest_remote("   ", "u1")


async def test_missing_user_lands_in_guest_partition(media):
    record = await media.ingest_remote("https://a/v1.mp4", None)
    assert record.user_id == "guest"


async def test_concurrent_ingest_of_one_url_creates_one_record(media):
    results = await asyncio.gather(*[media.ingest_remote("https://a/v1.mp4", "u1") for _ in range(5)])

    assert len({r.id for r in results}) == 1
    assert len(await media.list_all()) == 1


async def test_batch_ingest_collapses_duplicates(media):
    records = await media.ingest_remote_batch(
        ["https://a/v1.mp4", "https://a/v1.mp4", "https://b/v2.mp4"], "u1",
    )

    assert [r.original_url for r in records] == ["https://a/v1.mp4", "https://b/v2.mp4"]
    assert len(await media.list_all()) == 2


async def test_batch_ingest_accepts_pasted_text_and_validator(media):
    text = "https://a/v1.mp4\n\nnot a url\nftp://c/v3.mp4\n  https://b/v2.mp4  "

    records = await media.ingest_remote_batch(text, "u1", validator=SchemeUrlValidator())

    assert [r.original_url for r in records] == ["https://a/v1.mp4", "https://b/v2.mp4"]


# ---- local ingestion ----

async def test_local_upload_copies_file_metadata(media, make_upload):
    record = await media.ingest_local(make_upload("Beach Day.MP4", b"abcdef", "video/mp4"), "u1")

    assert record.source == "local"
    assert record.file_name == "Beach Day.MP4"
    assert record.title == "Beach Day.MP4"
    assert record.mime_type == "video/mp4"
    assert record.file_size == 6
    assert record.original_url is None
    assert record.trim_start == 0
    assert record.trim_end is None
    assert record.blob_key.endswith(".mp4")


async def test_identical_local_uploads_are_distinct(media, make_upload):
    a = await media.ingest_local(make_upload(data=b"same-bytes"), "u1")
    b = await media.ingest_local(make_upload(data=b"same-bytes"), "u1")

    assert a.id != b.id
    assert len(await media.list_all()) == 2


async def test_local_upload_without_content_type(media, make_upload):
    upload = make_upload("raw", b"xyz", "")
    record = await media.ingest_local(upload, "u1")
    assert record.mime_type == "application/octet-stream"


# ---- update ----

async def test_update_title_leaves_other_fields(media):
    record = await media.ingest_remote("https://a/v1.mp4", "u1")
    await media.update(record.id, MediaUpdate(description="desc", trim_start=1.5, trim_end=8.0))
    before = await media.get(record.id)

    after = await media.update(record.id, {"title": "Sunset"})

    assert after.title == "Sunset"
    assert after.description == "desc"
    assert after.trim_start == 1.5
    assert after.trim_end == 8.0
    assert after.updated_at > before.updated_at
    assert after.created_at == before.created_at


async def test_update_can_clear_trim_end(media):
    record = await media.ingest_remote("https://a/v1.mp4", "u1")
    await media.update(record.id, {"trim_end": 4.0})

    cleared = await media.update(record.id, {"trim_end": None})

    assert cleared.trim_end is None
    assert (await media.get(record.id)).trim_end is None


async def test_update_ignores_null_for_required_fields(media):
    record = await media.ingest_remote("https://a/v1.mp4", "u1")
    updated = await media.update(record.id, {"title": None})
    assert updated.title == "https://a/v1.mp4"


async def test_update_missing_record_returns_none(media):
    assert await media.update("does-not-exist", {"title": "x"}) is None


async def test_effective_trim_drops_inverted_end(media):
    record = await media.ingest_remote("https://a/v1.mp4", "u1")
    inverted = await media.update(record.id, {"trim_start": 5.0, "trim_end": 2.0})
    ok = await media.update(record.id, {"trim_end": 9.0})

    assert inverted.effective_trim() == (5.0, None)
    assert ok.effective_trim() == (5.0, 9.0)


# ---- reads ----

async def test_get_missing_returns_none(media):
    assert await media.get("nope") is None


async def test_get_batch_keeps_caller_order_and_skips_unknown(media):
    a = await media.ingest_remote("https://x/a.mp4", "u1")
    b = await media.ingest_remote("https://x/b.mp4", "u1")
    c = await media.ingest_remote("https://x/c.mp4", "u1")

    batch = await media.get_batch([c.id, "ghost", a.id, b.id])

    assert [r.id for r in batch] == [c.id, a.id, b.id]


async def test_get_batch_user_filter_excludes_other_users(media):
    alice = await media.ingest_remote("https://x/a.mp4", "alice")
    bob = await media.ingest_remote("https://x/b.mp4", "bob")

    assert [r.id for r in await media.get_batch([alice.id, bob.id], "alice")] == [alice.id]
    assert [r.id for r in await media.get_batch([alice.id, bob.id])] == [alice.id, bob.id]


async def test_list_all_spans_users(media):
    await media.ingest_remote("https://x/a.mp4", "alice")
    await media.ingest_remote("https://x/b.mp4", "bob")

    assert {r.user_id for r in await media.list_all()} == {"alice", "bob"}


async def test_legacy_row_without_user_reads_as_guest(media, database):
    async with database.session() as session:
        session.add(MediaAsset(id="legacy-1", source="remote", user_id=None, title="old",
                               description="", trim_start=0.0, original_url="https://old/v.mp4"))
        await session.commit()

    legacy = await media.get("legacy-1")
    again = await media.ingest_remote("https://old/v.mp4", "guest")

    assert legacy.user_id == "guest"
    assert again.id == "legacy-1"
    assert [r.id for r in await media.get_batch(["legacy-1"], "guest")] == ["legacy-1"]


# ---- playback sources ----

async def test_remote_source_is_the_url(media):
    record = await media.ingest_remote("https://a/v1.mp4", "u1")
    assert await media.resolve_source(record) == "https://a/v1.mp4"


async def test_local_source_mints_a_new_handle_each_time(media, make_upload):
    record = await media.ingest_local(make_upload(data=b"video-bytes"), "u1")

    first = await media.resolve_source(record)
    second = await media.resolve_source(record)

    assert first.startswith("blob:")
    assert first != second
    assert media.open_source(first).data == b"video-bytes"
    assert media.open_source(first).mime_type == "video/mp4"


async def test_local_source_resolves_from_id_only_record(media, make_upload):
    record = await media.ingest_local(make_upload(data=b"video-bytes"), "u1")
    bare = record.model_copy(update={"blob_key": None})

    handle = await media.resolve_source(bare)

    assert media.open_source(handle).data == b"video-bytes"


async def test_release_is_idempotent_and_ignores_remote_urls(media, make_upload):
    record = await media.ingest_local(make_upload(), "u1")
    handle = await media.resolve_source(record)

    media.release_source(handle)
    media.release_source(handle)
    media.release_source("https://a/v1.mp4")
    media.release_source(None)

    assert media.open_source(handle) is None
    assert len(media.sources) == 0


async def test_missing_binary_is_a_distinct_error(media, object_storage, make_upload):
    record = await media.ingest_local(make_upload(), "u1")
    object_storage.delete(record.blob_key)

    with pytest.raises(MediaBlobNotFound) as exc:
        await media.resolve_source(record)
    assert exc.value.media_id == record.id


async def test_resolve_batch_pairs_sources_with_records(media, make_upload):
    remote = await media.ingest_remote("https://a/v1.mp4", "u1")
    local = await media.ingest_local(make_upload(data=b"clip"), "u1")

    items = await media.resolve_batch([local.id, remote.id, "ghost"], "u1")

    assert [i.id for i in items] == [local.id, remote.id]
    assert items[0].src.startswith("blob:")
    assert items[1].src == "https://a/v1.mp4"
    assert items[1].record.id == remote.id


async def test_resolve_batch_releases_handles_when_a_binary_is_missing(media, object_storage, make_upload):
    good = await media.ingest_local(make_upload(data=b"ok"), "u1")
    broken = await media.ingest_local(make_upload(data=b"gone"), "u1")
    object_storage.delete(broken.blob_key)

    with pytest.raises(MediaBlobNotFound):
        await media.resolve_batch([good.id, broken.id], "u1")
    assert len(media.sources) == 0


async def test_handles_belong_to_the_media_owner(media, make_upload):
    record = await media.ingest_local(make_upload(data=b"private"), "Alice")
    handle = await media.resolve_source(record)

    assert media.open_source(handle, "bob") is None
    media.release_source(handle, "bob")
    assert handle in media.sources

    assert media.open_source(handle, " ALICE ").data == b"private"
    media.release_source(handle, "alice")
    assert handle not in media.sources


async def test_failed_commit_removes_binary_and_keeps_the_original_error(media, object_storage, make_upload, monkeypatch):
    async def broken_create(self, **fields):
        raise RuntimeError("db down")

    monkeypatch.setattr("bulkshorts.modules.media.service.MediaRepository.create", broken_create)

    with pytest.raises(RuntimeError, match="db down"):
        await media.ingest_local(make_upload(data=b"orphan"), "u1")
    assert [p for p in Path(object_storage.root).rglob("*") if p.is_file()] == []

    def failing_delete(key):
        raise StorageAccessError(f"cannot delete object {key}")

    monkeypatch.setattr(object_storage, "delete", failing_delete)
    with pytest.raises(RuntimeError, match="db down"):
        await media.ingest_local(make_upload(data=b"orphan"), "u1")
