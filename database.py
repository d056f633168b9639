import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, TypeVar

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from config import Settings
from errors import TransientStoreFault, is_transient

logger = logging.getLogger(__name__)

T = TypeVar("T")


def create_store_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    kwargs = {"echo": echo, "future": True, "pool_pre_ping": True}
    if not database_url.startswith("sqlite"):
        # Bounded pool shared by all requests.
        kwargs.update(pool_size=8, max_overflow=10, pool_recycle=300, pool_timeout=30)
    return create_async_engine(database_url, **kwargs)


class BookingStore:
    """
    Handle on the bookings database: engine, session factory and the retry
    policy for transient faults. Constructed once and passed to whoever needs it.
    """

    def __init__(self, engine: AsyncEngine, retries: int = 2, retry_delay: float = 0.5):
        self.engine = engine
        self.retries = retries
        self.retry_delay = retry_delay
        self._session_factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> "BookingStore":
        engine = create_store_engine(settings.database_url, echo=settings.db_echo)
        return cls(engine, retries=settings.db_retries, retry_delay=settings.db_retry_delay)

    async def init_schema(self) -> None:
        async with self.engine.begin() as conn:
            # This creates the tables if they don't exist
            await conn.run_sync(SQLModel.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        # Dedicated session for one unit of work; closed on every exit path.
        async with self._session_factory() as session:
            yield session

    async def run(self, operation: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """
        Run `operation` with a fresh session, retrying transient faults a bounded
        number of times with a fixed delay. Every other exception propagates on
        the first occurrence.
        """
        attempt = 0
        while True:
            try:
                async with self.session() as session:
                    return await operation(session)
            except Exception as exc:
                if not (isinstance(exc, TransientStoreFault) or is_transient(exc)):
                    raise
                if attempt >= self.retries:
                    logger.error("Store operation failed after %s retries: %s", attempt, exc)
                    if isinstance(exc, TransientStoreFault):
                        raise
                    raise TransientStoreFault(str(exc)) from exc
                attempt += 1
                logger.warning("Retrying store operation (%s/%s) after error: %s", attempt, self.retries, exc)
                await asyncio.sleep(self.retry_delay)

    async def ping(self) -> bool:
        async def _select_one(session: AsyncSession) -> bool:
            result = await session.execute(text("SELECT 1"))
            return result.scalar_one() == 1

        return await self.run(_select_one)


def get_store(request: Request) -> BookingStore:
    return request.app.state.store

