import os
from urllib.parse import quote
from bulkshorts.platform.ports.object_storage import ObjectStoragePort
from bulkshorts.core.config import settings
from bulkshorts.core.errors import StorageAccessError

class LocalFilesystemStorage(ObjectStoragePort):
    def __init__(self, root: str | None = None):
        self.root = os.path.abspath(root or settings.LOCAL_STORAGE_ROOT)
        os.makedirs(self.root, exist_ok=True)

    def _path(self, key: str) -> str:
        safe = key.replace("..", "").strip("/")
        return os.path.join(self.root, safe)

    def presign_download(self, key: str, expires_seconds: int = 900) -> str:
        # No signing locally; serve via the API or a static file server.
        path = self._path(key)
        return f"file://{quote(path)}"

    def put_bytes(self, key: str, data: bytes, content_type: str) -> None:
        path = self._path(key)
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, "wb") as f:
                f.write(data)
        except OSError as e:
            raise StorageAccessError(f"cannot write object {key}: {e}") from e

    def get_bytes(self, key: str) -> bytes | None:
        path = self._path(key)
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageAccessError(f"cannot read object {key}: {e}") from e

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            os.remove(path)
        except FileNotFoundError:
            return
        except OSError as e:
            raise StorageAccessError(f"cannot delete object {key}: {e}") from e
