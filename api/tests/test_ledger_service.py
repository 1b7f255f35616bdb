from decimal import Decimal

import pytest
from sqlalchemy import select

from cueledger.errors import InsufficientFunds, InvalidAmount, WalletBlocked, WalletNotFound
from cueledger.models.admin_log import AdminLog
from cueledger.models.credits import BonusRecord
from cueledger.models.ledger import Transaction, TransactionType
from cueledger.models.wallet import Bucket
from cueledger.services.ledger_service import LedgerService, to_amount

D = Decimal


def assert_consistent(wallet):
    assert wallet.balance == wallet.deposit_balance + wallet.winnings_balance + wallet.bonus_balance


# ── Amount validation ────────────────────────────────────────────────────────

@pytest.mark.parametrize('bad', [0, -1, '0.001', 'NaN', 'Infinity', 'abc', None, True])
def test_to_amount_rejects_invalid(bad):
    with pytest.raises(InvalidAmount):
        to_amount(bad)


def test_to_amount_normalizes_to_cents():
    assert to_amount('12.5') == D('12.50')
    assert to_amount(3) == D('3.00')


# ── Credits ──────────────────────────────────────────────────────────────────

async def test_credit_updates_bucket_and_logs(make_user, atomic, get_wallet, db_session):
    await make_user('u1')

    async def operation(db):
        return await LedgerService(db).credit('u1', D('25.00'), Bucket.DEPOSIT, 'PIX deposit', 'pix-1')
    await atomic(operation)

    wallet = await get_wallet('u1')
    assert wallet.deposit_balance == D('25.00')
    assert wallet.balance == D('25.00')
    assert_consistent(wallet)

    entries = (await db_session.execute(
        select(Transaction).where(Transaction.user_id == 'u1')
    )).scalars().all()
    assert len(entries) == 1
    assert entries[0].type == TransactionType.DEPOSIT.value
    assert entries[0].amount == D('25.00')
    assert entries[0].balance_after == D('25.00')
    assert entries[0].reference_id == 'pix-1'


async def test_credit_with_idempotency_key_applies_once(make_user, atomic, get_wallet):
    await make_user('u1')

    async def operation(db):
        return await LedgerService(db).credit(
            'u1', D('10'), Bucket.WINNINGS, 'Prize', 'm1', idempotency_key='prize:m1',
        )
    await atomic(operation)
    await atomic(operation)

    wallet = await get_wallet('u1')
    assert wallet.winnings_balance == D('10.00')


async def test_credit_missing_wallet(atomic, revenue_wallet):
    async def operation(db):
        return await LedgerService(db).credit('ghost', D('1'), Bucket.DEPOSIT, 'x')
    with pytest.raises(WalletNotFound):
        await atomic(operation)


# ── Debits ───────────────────────────────────────────────────────────────────

async def test_purchase_drains_deposit_then_winnings(make_user, atomic, get_wallet):
    await make_user('u1', deposit='10', winnings='5', bonus='20')

    async def operation(db):
        return await LedgerService(db).debit_for_purchase('u1', D('12'), 'Credits')
    await atomic(operation)

    wallet = await get_wallet('u1')
    assert wallet.deposit_balance == D('0')
    assert wallet.winnings_balance == D('3')
    assert wallet.bonus_balance == D('20')
    assert wallet.balance == D('23')
    assert_consistent(wallet)


async def test_bet_never_touches_bonus(make_user, atomic, get_wallet):
    await make_user('u1', deposit='3', winnings='2', bonus='100')

    async def operation(db):
        return await LedgerService(db).debit_for_bet('u1', D('10'), 'Bet', 'match-1')

    with pytest.raises(InsufficientFunds) as exc_info:
        await atomic(operation)

    assert exc_info.value.available == D('5')
    assert exc_info.value.required == D('10')
    assert exc_info.value.details['excluded_buckets'] == ['bonus']

    wallet = await get_wallet('u1')
    assert wallet.deposit_balance == D('3')
    assert wallet.winnings_balance == D('2')
    assert wallet.bonus_balance == D('100')


async def test_bet_records_negative_entry(make_user, atomic, sessionmaker):
    await make_user('u1', deposit='20')

    async def operation(db):
        return await LedgerService(db).debit_for_bet('u1', D('5'), 'Bet', 'match-1')
    await atomic(operation)

    async with sessionmaker() as db:
        entries, total = await LedgerService(db).get_transactions('u1')
    assert total == 2
    assert entries[0].type == TransactionType.BET_LOSS.value
    assert entries[0].amount == D('-5.00')
    assert entries[0].balance_after == D('15.00')


async def test_invalid_amount_rejected_before_io(atomic):
    # No wallet exists: validation must fail first
    async def operation(db):
        return await LedgerService(db).debit_for_bet('nobody', D('-3'), 'Bet')
    with pytest.raises(InvalidAmount):
        await atomic(operation)


async def test_blocked_wallet_refuses_movements(make_user, atomic, get_wallet):
    await make_user('u1', deposit='50')

    async def block(db):
        return await LedgerService(db).set_blocked('u1', True)
    await atomic(block)

    async def bet(db):
        return await LedgerService(db).debit_for_bet('u1', D('5'), 'Bet')

    async def deposit(db):
        return await LedgerService(db).credit('u1', D('5'), Bucket.DEPOSIT, 'PIX')

    with pytest.raises(WalletBlocked):
        await atomic(bet)
    with pytest.raises(WalletBlocked):
        await atomic(deposit)

    wallet = await get_wallet('u1')
    assert wallet.is_blocked
    assert wallet.deposit_balance == D('50')


# ── Reads ────────────────────────────────────────────────────────────────────

async def test_available_and_withdrawable(make_user, db_session):
    await make_user('u1', deposit='10', winnings='5', bonus='20')
    ledger = LedgerService(db_session)
    assert await ledger.available_for_bet('u1') == D('15')
    assert await ledger.withdrawable_balance('u1') == D('5')


async def test_transactions_paginated_newest_first(make_user, atomic, sessionmaker):
    await make_user('u1')
    for i in range(5):
        async def operation(db, i=i):
            return await LedgerService(db).credit('u1', D(i + 1), Bucket.DEPOSIT, f'Deposit {i}')
        await atomic(operation)

    async with sessionmaker() as db:
        first, total = await LedgerService(db).get_transactions('u1', limit=2)
        second, _ = await LedgerService(db).get_transactions('u1', limit=2, offset=2)

    assert total == 5
    assert [e.description for e in first] == ['Deposit 4', 'Deposit 3']
    assert [e.description for e in second] == ['Deposit 2', 'Deposit 1']


# ── Admin adjustments ────────────────────────────────────────────────────────

async def test_admin_adjust_logs_and_records_bonus(make_user, atomic, get_wallet, db_session):
    await make_user('u1')

    async def operation(db):
        return await LedgerService(db).admin_adjust('u1', D('15'), Bucket.BONUS, 'Goodwill', 'admin-1')
    await atomic(operation)

    wallet = await get_wallet('u1')
    assert wallet.bonus_balance == D('15')
    assert_consistent(wallet)

    log = (await db_session.execute(select(AdminLog))).scalar_one()
    assert log.action == 'wallet_adjustment'
    assert log.admin_id == 'admin-1'
    assert log.details['applied'] == '15.00'

    record = (await db_session.execute(select(BonusRecord))).scalar_one()
    assert record.bonus_type == 'admin_balance'
    assert record.amount == D('15')


async def test_admin_adjust_clamps_at_zero(make_user, atomic, get_wallet, sessionmaker):
    await make_user('u1', deposit='4')

    async def operation(db):
        return await LedgerService(db).admin_adjust('u1', D('-10'), Bucket.DEPOSIT, 'Chargeback', 'admin-1')
    await atomic(operation)

    wallet = await get_wallet('u1')
    assert wallet.deposit_balance == D('0')

    async with sessionmaker() as db:
        entries, _ = await LedgerService(db).get_transactions('u1', limit=1)
    assert entries[0].type == TransactionType.ADMIN_ADJUSTMENT.value
    assert entries[0].amount == D('-4.00')
    assert entries[0].description == '[ADMIN] Chargeback'


async def test_admin_adjust_works_on_blocked_wallet(make_user, atomic, get_wallet):
    await make_user('u1', winnings='10')

    async def block(db):
        return await LedgerService(db).set_blocked('u1', True, admin_id='admin-1')
    await atomic(block)

    async def adjust(db):
        return await LedgerService(db).admin_adjust('u1', D('-10'), Bucket.WINNINGS, 'Fraud', 'admin-1')
    await atomic(adjust)

    wallet = await get_wallet('u1')
    assert wallet.winnings_balance == D('0')
