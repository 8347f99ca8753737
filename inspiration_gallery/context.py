"""Process-wide resources, created once at startup and passed to every layer."""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from .config import Settings
from .db import build_engine, check_db_connection, create_tables, dispose_engine
from .logger import logger
from .storage import ImageStore, build_image_store


class AppContext:
    """Holds settings, the database engine and session factory, and the image store.

    ``connect`` verifies the database (and creates the schema when
    ``DB_CREATE_TABLES`` is set); ``close`` releases the HTTP client and the
    connection pool.
    """

    def __init__(
        self,
        settings: Settings,
        engine: AsyncEngine | None = None,
        image_store: ImageStore | None = None,
    ) -> None:
        self.settings = settings
        self.engine = engine or build_engine(settings)
        self.session = async_sessionmaker(self.engine, expire_on_commit=False, class_=AsyncSession)
        self.image_store = image_store or build_image_store(settings)

    async def connect(self) -> None:
        if self.settings.DB_CREATE_TABLES:
            await create_tables(self.engine)

        healthy = await check_db_connection(
            self.session,
            max_retries=self.settings.DB_RETRY_MAX_ATTEMPTS,
            base_delay=self.settings.DB_RETRY_BASE_DELAY,
        )
        if healthy:
            logger.info("Connected to database successfully")
        else:
            logger.error("Database is unreachable at startup - requests will fail until it recovers")

    async def close(self) -> None:
        await self.image_store.close()
        await dispose_engine(self.engine)
