import logging
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from .config import settings
from .base import Base

log = logging.getLogger("store.db")

class Database:
    """Handle on the durable media record store.

    Owns the async engine and session factory. Nothing is connected until
    ``open()``; ``close()`` disposes the pool so several handles (one per test,
    one per app) can coexist.
    """

    def __init__(self, dsn: str | None = None):
        self.dsn = dsn or settings.DATABASE_DSN
        self.engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None

    @property
    def is_open(self) -> bool:
        return self.engine is not None

    async def open(self) -> "Database":
        if self.engine is not None:
            return self
        # import models so their tables are registered on Base.metadata
        from bulkshorts.modules.media import models  # noqa: F401

        kwargs = {} if self.dsn.startswith("sqlite") else {"pool_pre_ping": True}
        self.engine = create_async_engine(self.dsn, **kwargs)
        self._sessionmaker = async_sessionmaker(self.engine, expire_on_commit=False, class_=AsyncSession)
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        log.info("Opened media store dsn=%s", self.engine.url.render_as_string(hide_password=True))
        return self

    async def close(self) -> None:
        if self.engine is None:
            return
        await self.engine.dispose()
        self.engine = None
        self._sessionmaker = None
        log.info("Closed media store")

    def session(self) -> AsyncSession:
        if self._sessionmaker is None:
            raise RuntimeError("Database is not open; call open() first")
        return self._sessionmaker()

    async def __aenter__(self) -> "Database":
        return await self.open()

    async def __aexit__(self, *exc) -> None:
        await self.close()
