# tests/conftest.py
"""
Fixtures giving every test its own throwaway stores:

- a SQLite media database under tmp_path (aiosqlite)
- a local object-storage root for uploaded binaries
- a JSON key/value file for posts

Nothing is shared between tests; settings come from the defaults.
"""

from __future__ import annotations

import io
import logging
import os
import sys

import pytest
from starlette.datastructures import Headers, UploadFile

from bulkshorts.core.db import Database
from bulkshorts.core.kv_store import LocalKeyValueStore
from bulkshorts.modules.events.hub import ChangeHub
from bulkshorts.modules.media.service import MediaRegistry
from bulkshorts.modules.posts.service import PostRegistry
from bulkshorts.platform.adapters.storage_local import LocalFilesystemStorage


@pytest.fixture(scope="session", autouse=True)
def _tests_log_to_stdout():
    root = logging.getLogger()
    if not any(isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) is sys.stdout for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        root.addHandler(handler)
    root.setLevel(os.getenv("TEST_LOG_LEVEL", "INFO").upper())


# Make anyio run on asyncio (so our async fixtures work everywhere)
@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def database(tmp_path):
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'media.db'}")
    await db.open()
    yield db
    await db.close()


@pytest.fixture
def object_storage(tmp_path):
    return LocalFilesystemStorage(str(tmp_path / "objects"))


@pytest.fixture
def media(database, object_storage):
    return MediaRegistry(database, object_storage)


@pytest.fixture
def post_store(tmp_path):
    store = LocalKeyValueStore(tmp_path / "posts.json").open()
    yield store
    store.close()


@pytest.fixture
def hub():
    return ChangeHub()


@pytest.fixture
def posts(post_store, hub):
    return PostRegistry(post_store, hub)


@pytest.fixture
def make_upload():
    def _make(filename: str = "clip.mp4", data: bytes = b"\x00\x00\x00\x18ftypmp42", content_type: str = "video/mp4"):
        return UploadFile(
            file=io.BytesIO(data),
            filename=filename,
            headers=Headers({"content-type": content_type}),
        )
    return _make
