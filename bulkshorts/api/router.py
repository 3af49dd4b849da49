from fastapi import APIRouter
from bulkshorts.modules.media.router import router as media_router
from bulkshorts.modules.posts.router import router as posts_router

api_router = APIRouter()
api_router.include_router(media_router, prefix="/media", tags=["media"])
api_router.include_router(posts_router, prefix="/posts", tags=["posts"])

@api_router.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
