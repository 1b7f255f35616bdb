"""Seed script: wipe all data and create demo wallets ready for testing.

Usage (from inside the api container):
    python seed.py

Usage (from host, via docker):
    docker compose exec api python seed.py

The platform revenue wallet is created under PLATFORM_REVENUE_USER_ID
(defaults to 'platform-revenue' here when the variable is unset).
"""
import asyncio
from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from cueledger.config import settings
from cueledger.db.database import engine, async_session, init_db
from cueledger.models.wallet import Bucket
from cueledger.services.credits_service import CreditsService
from cueledger.services.ledger_service import LedgerService

REVENUE_USER_ID = settings.platform_revenue_user_id or 'platform-revenue'

# Demo accounts to create
TEST_USERS = [
    {'user_id': 'alice', 'deposit': Decimal('100.00'), 'winnings': Decimal('0.00')},
    {'user_id': 'bob', 'deposit': Decimal('50.00'), 'winnings': Decimal('25.00')},
    {'user_id': 'eve', 'deposit': Decimal('0.00'), 'winnings': Decimal('40.00')},
]


async def wipe_all(db: AsyncSession):
    """Truncate all tables."""
    tables = [
        'transactions',
        'withdrawal_requests',
        'bonus_records',
        'credits',
        'wallets',
        'admin_logs',
        'system_settings',
        'platform_revenue',
    ]
    for table in tables:
        await db.execute(text(f'TRUNCATE TABLE {table} RESTART IDENTITY CASCADE'))
    await db.commit()
    print('✓ All tables wiped')


async def create_accounts(db: AsyncSession):
    """Create the revenue wallet and demo users with opening balances."""
    ledger = LedgerService(db)
    credits = CreditsService(db, revenue_account_id=REVENUE_USER_ID)

    await ledger.open_wallet(REVENUE_USER_ID)
    print(f'  ✓ revenue wallet: {REVENUE_USER_ID}')

    for u in TEST_USERS:
        await ledger.open_wallet(u['user_id'])
        await credits.open_account(u['user_id'])
        if u['deposit']:
            await ledger.credit(u['user_id'], u['deposit'], Bucket.DEPOSIT, 'Seed deposit')
        if u['winnings']:
            await ledger.credit(u['user_id'], u['winnings'], Bucket.WINNINGS, 'Seed winnings')
        print(f'  ✓ {u["user_id"]}: deposit {u["deposit"]}, winnings {u["winnings"]}')

    await db.commit()


async def main():
    print()
    print('=' * 50)
    print('  CueLedger Seed Script')
    print('=' * 50)
    print()

    await init_db()
    async with async_session() as db:
        print('[1/2] Wiping all data...')
        await wipe_all(db)

        print('[2/2] Creating accounts...')
        await create_accounts(db)

    await engine.dispose()

    print()
    print('Done! Ready for testing.')
    print()


if __name__ == '__main__':
    asyncio.run(main())
