from decimal import Decimal

import pytest
from sqlalchemy import select

from cueledger.errors import ValidationError
from cueledger.models.admin_log import AdminLog
from cueledger.services.credits_service import CreditsService
from cueledger.services.settings_service import (
    DEFAULT_SETTINGS, SettingsCache, SettingsService, validate_setting,
)


# ── Cache component ──────────────────────────────────────────────────────────

def test_cache_expiry():
    cache = SettingsCache(ttl_seconds=60)
    assert cache.is_expired(0)

    cache.store({'a': 1}, now=100)
    assert not cache.is_expired(159.9)
    assert cache.is_expired(160)


def test_cache_invalidate():
    cache = SettingsCache(ttl_seconds=60)
    cache.store({'a': 1}, now=100)
    cache.invalidate()
    assert cache.is_expired(101)
    assert cache.value is None


# ── Validation ───────────────────────────────────────────────────────────────

@pytest.mark.parametrize('key,value', [
    ('platform_fee_percent', 51),
    ('platform_fee_percent', -1),
    ('credits_per_match', 11),
    ('credits_price_per_unit', 0),
    ('credits_min_purchase', 0),
    ('min_bet_amount', 0.5),
    ('max_bet_amount', 5),
    ('min_withdrawal_amount', 20000),
    ('max_withdrawal_amount', 1),
    ('bet_enabled', 'yes'),
    ('credits_price_per_unit', 'cheap'),
    ('credits_price_per_unit', 0.005),
    ('min_withdrawal_amount', 10.001),
    ('max_bet_amount', 99.999),
    ('credits_min_purchase', 2.5),
    ('credits_per_match', 1.5),
    ('free_credits_on_register', 0.5),
    ('unknown_key', 1),
])
def test_invalid_values_rejected(key, value):
    with pytest.raises(ValidationError):
        validate_setting(key, value, dict(DEFAULT_SETTINGS))


@pytest.mark.parametrize('key,value', [
    ('platform_fee_percent', 15),
    ('platform_fee_percent', 12.5),
    ('credits_price_per_unit', 0.75),
    ('credits_price_per_unit', 0.01),
    ('min_withdrawal_amount', 20),
    ('credits_min_purchase', 2),
])
def test_valid_values_accepted(key, value):
    validate_setting(key, value, dict(DEFAULT_SETTINGS))


# ── Service ──────────────────────────────────────────────────────────────────

async def test_defaults_when_nothing_stored(db_session):
    values = await SettingsService(db_session).get_all()
    assert values == DEFAULT_SETTINGS


async def test_set_overrides_and_invalidates(atomic, db_session):
    svc = SettingsService(db_session)
    assert await svc.get('platform_fee_percent') == 10

    async def update(db):
        await SettingsService(db).set('platform_fee_percent', 15, 'admin-1')
    await atomic(update)

    assert await SettingsService(db_session).get_decimal('platform_fee_percent') == Decimal('15')
    log = (await db_session.execute(select(AdminLog))).scalar_one()
    assert log.action == 'update_setting'
    assert log.details['previous'] == 10


async def test_reads_are_cached(atomic, sessionmaker):
    cache = SettingsCache(ttl_seconds=3600)

    async with sessionmaker() as db:
        assert await SettingsService(db, cache).get('min_bet_amount') == 5.0

    # Written through a service with a different cache: ours stays stale until expiry
    async def update(db):
        await SettingsService(db, SettingsCache(ttl_seconds=0)).set('min_bet_amount', 2, 'admin-1')
    await atomic(update)

    async with sessionmaker() as db:
        assert await SettingsService(db, cache).get('min_bet_amount') == 5.0
        cache.invalidate()
        assert await SettingsService(db, cache).get('min_bet_amount') == 2


async def test_reset_to_defaults(atomic, db_session):
    async def update(db):
        await SettingsService(db).set('max_bet_amount', 500, 'admin-1')
    await atomic(update)

    async def reset(db):
        await SettingsService(db).reset_to_defaults('admin-1')
    await atomic(reset)

    assert await SettingsService(db_session).get('max_bet_amount') == DEFAULT_SETTINGS['max_bet_amount']


async def test_withdrawal_limits(db_session):
    assert await SettingsService(db_session).withdrawal_limits() == (Decimal('10.0'), Decimal('10000.0'))


async def test_read_during_write_does_not_outlive_commit(atomic, sessionmaker):
    async def update(db):
        await SettingsService(db).set('platform_fee_percent', 25, 'admin-1')
        # Another request reads before the write commits and refills the cache
        async with sessionmaker() as other:
            return await SettingsService(other).get('platform_fee_percent')

    assert await atomic(update) == 10

    async with sessionmaker() as db:
        assert await SettingsService(db).get('platform_fee_percent') == 25


async def test_reset_during_read_does_not_outlive_commit(atomic, sessionmaker):
    async def update(db):
        await SettingsService(db).set('max_bet_amount', 500, 'admin-1')
    await atomic(update)

    async def reset(db):
        await SettingsService(db).reset_to_defaults('admin-1')
        async with sessionmaker() as other:
            return await SettingsService(other).get('max_bet_amount')

    assert await atomic(reset) == 500

    async with sessionmaker() as db:
        assert await SettingsService(db).get('max_bet_amount') == DEFAULT_SETTINGS['max_bet_amount']


async def test_sub_cent_price_rejected_before_it_breaks_purchases(atomic, make_user, get_credits):
    await make_user('u1', deposit='10')

    async def update(db):
        await SettingsService(db).set('credits_price_per_unit', 0.005, 'admin-1')
    with pytest.raises(ValidationError):
        await atomic(update)

    async def buy(db):
        return await CreditsService(db).purchase_credits('u1', 4)
    await atomic(buy)
    assert (await get_credits('u1')).amount == 4
