from datetime import datetime
from typing import Literal
from pydantic import BaseModel, ConfigDict, Field, field_validator
from bulkshorts.core.base import as_utc
from bulkshorts.core.users import normalize_user_id

MediaSource = Literal["local", "remote"]

class MediaRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    source: MediaSource
    title: str = ""
    description: str = ""
    trim_start: float = 0.0
    trim_end: float | None = None
    user_id: str
    original_url: str | None = None
    file_name: str | None = None
    mime_type: str | None = None
    file_size: int | None = None
    created_at: datetime
    updated_at: datetime
    blob_key: str | None = Field(default=None, exclude=True)

    @field_validator("user_id", mode="before")
    @classmethod
    def _default_user(cls, v):
        return normalize_user_id(v)

    @field_validator("created_at", "updated_at")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return as_utc(v)

    @field_validator("title", "description", mode="before")
    @classmethod
    def _text(cls, v):
        return v if v is not None else ""

    @field_validator("trim_start", mode="before")
    @classmethod
    def _start(cls, v):
        return v if v is not None else 0.0

    def effective_trim(self) -> tuple[float, float | None]:
        """Trim window a player should apply; an end at or before the start is ignored."""
        start = max(self.trim_start, 0.0)
        if self.trim_end is None or self.trim_end <= start:
            return start, None
        return start, self.trim_end

class MediaUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    trim_start: float | None = Field(default=None, ge=0)
    trim_end: float | None = Field(default=None, ge=0)

class RemoteIngest(BaseModel):
    url: str = Field(..., min_length=1)

class RemoteBatchIngest(BaseModel):
    urls: list[str] | str
    validate_urls: bool = False

class MediaBatchQuery(BaseModel):
    ids: list[str]

class ResolvedMediaItem(BaseModel):
    id: str
    src: str
    record: MediaRecord
