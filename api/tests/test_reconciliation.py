from decimal import Decimal

from sqlalchemy import update

from cueledger.models.wallet import Wallet
from cueledger.services.ledger_service import LedgerService
from cueledger.services.reconciliation_service import ReconciliationService, check_wallet
from cueledger.worker.reconciliation_worker import ReconciliationWorker

D = Decimal


def test_check_wallet_detects_broken_total():
    wallet = Wallet(
        user_id='u1',
        balance=D('10'),
        deposit_balance=D('5'),
        winnings_balance=D('0'),
        bonus_balance=D('0'),
    )
    issues = check_wallet(wallet)
    assert len(issues) == 1
    assert 'sum of buckets' in issues[0]


def test_check_wallet_detects_negative_bucket():
    wallet = Wallet(
        user_id='u1',
        balance=D('0'),
        deposit_balance=D('-5'),
        winnings_balance=D('5'),
        bonus_balance=D('0'),
    )
    assert any('deposit_balance is negative' in issue for issue in check_wallet(wallet))


async def test_consistent_ledger_passes(make_user, atomic, db_session):
    await make_user('u1', deposit='10', winnings='5', bonus='3')

    async def bet(db):
        return await LedgerService(db).debit_for_bet('u1', D('12'), 'Bet')
    await atomic(bet)

    report = await ReconciliationService(db_session).reconcile_wallet('u1')
    assert report.ok
    assert report.balance == D('6')
    assert report.ledger_sum == D('6')


async def test_tampered_wallet_reported(make_user, sessionmaker):
    await make_user('u1', deposit='10')
    await make_user('u2', winnings='4')

    # Bypass the ledger: the row no longer matches its transactions
    async with sessionmaker() as db:
        await db.execute(
            update(Wallet)
            .where(Wallet.user_id == 'u1')
            .values(balance=D('99'), deposit_balance=D('99'))
        )
        await db.commit()

    async with sessionmaker() as db:
        result = await ReconciliationService(db).reconcile_all()

    assert result['checked'] == 3
    assert result['discrepancies'] == 1
    assert result['wallets'] == ['u1']


async def test_worker_run_once(make_user, sessionmaker):
    await make_user('u1', deposit='10')

    worker = ReconciliationWorker(sessionmaker=sessionmaker)
    result = await worker.run_once()

    assert result['checked'] == 2
    assert result['discrepancies'] == 0


async def test_worker_schedules_daily_job(sessionmaker):
    worker = ReconciliationWorker(sessionmaker=sessionmaker)
    worker.schedule()

    job = worker.scheduler.get_job('daily_reconciliation')
    assert job is not None
    assert job.name == 'Daily Wallet Reconciliation'
