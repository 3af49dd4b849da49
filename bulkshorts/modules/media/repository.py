from typing import Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from bulkshorts.core.config import settings
from bulkshorts.modules.media.models import MediaAsset

class MediaRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **data) -> MediaAsset:
        obj = MediaAsset(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, media_id: str) -> MediaAsset | None:
        return await self.session.get(MediaAsset, media_id)

    async def get_many(self, media_ids: Sequence[str]) -> dict[str, MediaAsset]:
        if not media_ids:
            return {}
        q = select(MediaAsset).where(MediaAsset.id.in_(set(media_ids)))
        res = await self.session.execute(q)
        return {obj.id: obj for obj in res.scalars().all()}

    async def find_by_original_url(self, user_id: str, url: str) -> MediaAsset | None:
        owner = MediaAsset.user_id == user_id
        if user_id == settings.DEFAULT_USER_ID:
            owner = or_(owner, MediaAsset.user_id.is_(None))
        q = (
            select(MediaAsset)
            .where(MediaAsset.source == "remote", MediaAsset.original_url == url, owner)
            .order_by(MediaAsset.created_at.asc())
            .limit(1)
        )
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def list_all(self) -> Sequence[MediaAsset]:
        q = select(MediaAsset).order_by(MediaAsset.created_at.asc())
        res = await self.session.execute(q)
        return res.scalars().all()
