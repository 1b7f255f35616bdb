import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import TypeVar

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.orm.exc import StaleDataError

from cueledger.config import settings
from cueledger.errors import ConcurrentModification

logger = logging.getLogger(__name__)

T = TypeVar('T')

# serialization_failure, deadlock_detected, lock_not_available, unique_violation
TRANSIENT_SQLSTATES = {'40001', '40P01', '55P03', '23505'}


class Base(DeclarativeBase):
    pass


engine = create_async_engine(settings.database_url, echo=settings.debug)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db() -> None:
    """Create tables that do not exist yet."""
    import cueledger.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db() -> AsyncIterator[AsyncSession]:
    """Read-only session dependency."""
    async with async_session() as session:
        yield session


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Session factory dependency; routes pass it to run_atomic."""
    return async_session


def is_transient(exc: Exception) -> bool:
    """True for lost optimistic races, lock timeouts and unique-key races."""
    if isinstance(exc, (StaleDataError, OperationalError)):
        return True
    if isinstance(exc, IntegrityError):
        orig = getattr(exc, 'orig', None)
        sqlstate = getattr(orig, 'sqlstate', None) or getattr(orig, 'pgcode', None)
        return sqlstate == '23505' or 'UNIQUE constraint failed' in str(exc)
    if isinstance(exc, DBAPIError):
        orig = getattr(exc, 'orig', None)
        sqlstate = getattr(orig, 'sqlstate', None) or getattr(orig, 'pgcode', None)
        return sqlstate in TRANSIENT_SQLSTATES
    return False


async def run_atomic(
    operation: Callable[[AsyncSession], Awaitable[T]],
    *,
    sessionmaker: async_sessionmaker[AsyncSession] | None = None,
    max_retries: int | None = None,
) -> T:
    """Run ``operation`` inside one database transaction.

    The operation receives a fresh session for every attempt and must not
    commit itself. Domain errors roll back and propagate unchanged. Write
    conflicts roll back and are retried with linear backoff; when the retry
    budget is spent the caller gets ConcurrentModification.
    """
    factory = sessionmaker or async_session
    attempts = max_retries or settings.max_retries

    for attempt in range(1, attempts + 1):
        async with factory() as session:
            try:
                async with session.begin():
                    if session.bind.dialect.name == 'postgresql':
                        await session.execute(
                            text(f"SET LOCAL lock_timeout = '{int(settings.lock_timeout_ms)}ms'")
                        )
                    return await operation(session)
            except (StaleDataError, DBAPIError) as e:
                if not is_transient(e):
                    raise
                logger.warning(
                    f'Write conflict on attempt {attempt}/{attempts}: {type(e).__name__}'
                )
        if attempt < attempts:
            await asyncio.sleep(settings.retry_backoff_seconds * attempt)

    raise ConcurrentModification()
