from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from bulkshorts.core.base import as_utc

class _CamelModel(BaseModel):
    # stored documents use camelCase keys; python code uses snake_case
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

def _has_media_id(entry) -> bool:
    if isinstance(entry, PostMediaMeta):
        return True
    return isinstance(entry, dict) and isinstance(entry.get("id"), str) and bool(entry["id"].strip())

def prune_media_meta(v):
    """Drop annotations that can't be tied to a media id instead of rejecting the post."""
    if v is None:
        return None
    if not isinstance(v, list):
        return []
    return [entry for entry in v if _has_media_id(entry)]

class PostMediaMeta(_CamelModel):
    id: str
    title: str = ""
    description: str = ""
    subtitle: str = ""
    post_fact: str = ""

    @field_validator("title", "description", "subtitle", "post_fact", mode="before")
    @classmethod
    def _trim(cls, v):
        return v.strip() if isinstance(v, str) else ""

class PostRecord(_CamelModel):
    id: str
    user_id: str
    name: str = ""
    title: str = ""
    description: str = ""
    media_ids: list[str] = Field(default_factory=list)
    media_meta: list[PostMediaMeta] = Field(default_factory=list)
    created_at: datetime

    @field_validator("name", "title", "description", mode="before")
    @classmethod
    def _text(cls, v):
        return v if isinstance(v, str) else ""

    @field_validator("media_ids", mode="before")
    @classmethod
    def _ids(cls, v):
        return [i for i in v if isinstance(i, str)] if isinstance(v, list) else []

    @field_validator("media_meta", mode="before")
    @classmethod
    def _meta(cls, v):
        return prune_media_meta(v) or []

    @field_validator("created_at")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return as_utc(v)

class PostCreate(_CamelModel):
    user_id: str | None = None
    name: str | None = None
    title: str | None = None
    description: str | None = None
    media_ids: list[str]
    media_meta: list[PostMediaMeta] | None = None

    @field_validator("media_meta", mode="before")
    @classmethod
    def _meta(cls, v):
        return prune_media_meta(v)

class PostUpdate(_CamelModel):
    name: str | None = None
    title: str | None = None
    description: str | None = None
    media_meta: list[PostMediaMeta] | None = None

    @field_validator("media_meta", mode="before")
    @classmethod
    def _meta(cls, v):
        return prune_media_meta(v)
