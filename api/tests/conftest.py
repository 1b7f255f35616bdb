import os

# Configure before cueledger.config is imported
os.environ.setdefault('DATABASE_URL', 'sqlite+aiosqlite://')
os.environ.setdefault('PLATFORM_REVENUE_USER_ID', 'platform-revenue')
os.environ.setdefault('MAX_RETRIES', '10')
os.environ.setdefault('RETRY_BACKOFF_SECONDS', '0.01')

from decimal import Decimal

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

from cueledger.config import settings
from cueledger.db.database import Base, get_db, get_sessionmaker, run_atomic
from cueledger.main import app
from cueledger.models.credits import Credits
from cueledger.models.wallet import Bucket, Wallet
from cueledger.services.credits_service import CreditsService
from cueledger.services.ledger_service import LedgerService
from cueledger.services.settings_service import settings_cache

REVENUE_ID = settings.platform_revenue_user_id


@pytest.fixture(autouse=True)
def fresh_settings_cache():
    """Platform settings are cached per process; start every test cold."""
    settings_cache.invalidate()
    yield
    settings_cache.invalidate()


@pytest.fixture
async def engine(tmp_path):
    """One SQLite file per test, so concurrent sessions see each other's commits."""
    engine = create_async_engine(f'sqlite+aiosqlite:///{tmp_path / "test.db"}', echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def sessionmaker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(sessionmaker):
    """Session for direct reads in assertions."""
    async with sessionmaker() as session:
        yield session


@pytest.fixture
async def revenue_wallet(sessionmaker):
    async def operation(db):
        await LedgerService(db).open_wallet(REVENUE_ID)
    await run_atomic(operation, sessionmaker=sessionmaker)
    return REVENUE_ID


@pytest.fixture
def make_user(sessionmaker, revenue_wallet):
    """Create a wallet (and credits row) with the given opening balances."""
    async def _make(
        user_id: str,
        deposit='0',
        winnings='0',
        bonus='0',
        credits: int = 0,
    ) -> str:
        async def operation(db):
            ledger = LedgerService(db)
            await ledger.open_wallet(user_id)
            for bucket, amount in (
                (Bucket.DEPOSIT, deposit),
                (Bucket.WINNINGS, winnings),
                (Bucket.BONUS, bonus),
            ):
                if Decimal(amount) > 0:
                    await ledger.credit(user_id, Decimal(amount), bucket, 'Opening balance')
            await CreditsService(db).open_account(user_id, initial=credits)

        await run_atomic(operation, sessionmaker=sessionmaker)
        return user_id
    return _make


@pytest.fixture
def get_wallet(sessionmaker):
    """Fresh read of a wallet row."""
    async def _get(user_id: str) -> Wallet:
        async with sessionmaker() as db:
            return await db.get(Wallet, user_id)
    return _get


@pytest.fixture
def get_credits(sessionmaker):
    async def _get(user_id: str) -> Credits:
        async with sessionmaker() as db:
            return await db.get(Credits, user_id)
    return _get


@pytest.fixture
def atomic(sessionmaker):
    """run_atomic bound to the test database."""
    async def _run(operation):
        return await run_atomic(operation, sessionmaker=sessionmaker)
    return _run


@pytest.fixture
async def client(sessionmaker):
    """Async HTTP client for testing."""
    async def override_get_db():
        async with sessionmaker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_sessionmaker] = lambda: sessionmaker

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()
