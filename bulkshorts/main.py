import asyncio
import logging
import time
from dotenv import load_dotenv

# Load environment variables from .env file before anything else
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from bulkshorts.api.router import api_router
from bulkshorts.core.config import settings
from bulkshorts.core.db import Database
from bulkshorts.core.errors import MediaValidationError, PostValidationError, StorageAccessError
from bulkshorts.core.kv_store import LocalKeyValueStore
from bulkshorts.core.logging import request_id_ctx, setup_logging
from bulkshorts.modules.events.hub import ChangeHub
from bulkshorts.modules.events.relay import run_change_relay, run_storage_watcher
from bulkshorts.modules.media.service import MediaRegistry
from bulkshorts.modules.posts.service import PostRegistry
from bulkshorts.platform.ports.event_bus import EventBusPort
from bulkshorts.platform.ports.object_storage import ObjectStoragePort
from bulkshorts.platform.ports.url_validator import UrlValidatorPort
from bulkshorts.platform.provider_registry import registry

setup_logging()
logger = logging.getLogger(__name__)


async def startup(app: FastAPI) -> None:
    state = app.state
    await state.database.open()
    state.post_store.open()
    state.hub = ChangeHub()
    state.object_storage = state.object_storage or registry.object_storage()
    state.event_bus = state.event_bus or registry.event_bus()
    state.url_validator = state.url_validator or registry.url_validator()
    state.media = MediaRegistry(state.database, state.object_storage)
    state.posts = PostRegistry(state.post_store, state.hub)
    state.tasks = [asyncio.create_task(run_change_relay(state.hub, state.event_bus))]
    if state.watch_post_store:
        state.tasks.append(asyncio.create_task(
            run_storage_watcher(state.post_store, settings.POSTS_WATCH_INTERVAL_SECONDS)
        ))


async def shutdown(app: FastAPI) -> None:
    state = app.state
    for task in getattr(state, "tasks", []):
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
    state.tasks = []
    media = getattr(state, "media", None)
    if media is not None:
        released = media.sources.release_all()
        if released:
            logger.info("Released %d playback handle(s) on shutdown", released)
    bus = getattr(state, "event_bus", None)
    if bus is not None:
        await bus.close()
    state.post_store.close()
    await state.database.close()


def create_app(
    *,
    database: Database | None = None,
    post_store: LocalKeyValueStore | None = None,
    object_storage: ObjectStoragePort | None = None,
    event_bus: EventBusPort | None = None,
    url_validator: UrlValidatorPort | None = None,
    watch_post_store: bool = True,
) -> FastAPI:
    app = FastAPI(title=settings.APP_NAME)
    app.state.database = database or Database(settings.DATABASE_DSN)
    app.state.post_store = post_store or LocalKeyValueStore(settings.POSTS_STORAGE_PATH)
    app.state.object_storage = object_storage
    app.state.event_bus = event_bus
    app.state.url_validator = url_validator
    app.state.watch_post_store = watch_post_store

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id_ctx.set(request.headers.get("x-request-id", "-"))
        start_time = time.time()

        response = await call_next(request)

        process_time = (time.time() - start_time) * 1000
        logger.info(
            f"Request: {request.method} {request.url.path} - Response: {response.status_code} - Time: {process_time:.2f}ms"
        )
        return response

    @app.exception_handler(MediaValidationError)
    @app.exception_handler(PostValidationError)
    async def validation_exception_handler(request: Request, exc: Exception):
        return JSONResponse(status_code=422, content={"message": str(exc)})

    @app.exception_handler(StorageAccessError)
    async def storage_exception_handler(request: Request, exc: StorageAccessError):
        logger.error(f"Storage failure for request {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=503, content={"message": "Local storage is unavailable."})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.critical(f"Unhandled exception for request {request.method} {request.url.path}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"message": "An internal server error occurred."},
        )

    @app.on_event("startup")
    async def on_startup():
        await startup(app)

    @app.on_event("shutdown")
    async def on_shutdown():
        await shutdown(app)

    app.include_router(api_router, prefix=settings.API_PREFIX)
    return app


app = create_app()
