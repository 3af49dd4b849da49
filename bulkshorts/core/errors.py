class StoreError(Exception):
    """Base class for errors raised by the media and post stores."""


class StorageAccessError(StoreError):
    """The backing store could not be read or written (unavailable, quota, I/O)."""


class MediaValidationError(StoreError, ValueError):
    pass


class PostValidationError(StoreError, ValueError):
    pass


class MediaBlobNotFound(StoreError):
    """A local media record exists but its binary is gone, so it cannot be played."""

    def __init__(self, media_id: str):
        super().__init__(f"binary not found for local media {media_id}")
        self.media_id = media_id
