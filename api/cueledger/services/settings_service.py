"""Platform settings: code defaults overridden by rows in ``system_settings``.

Reads go through a small TTL cache; every write path invalidates it.
"""
import time
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any
from sqlalchemy import event, select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from cueledger.config import settings as app_settings
from cueledger.errors import ValidationError
from cueledger.models.setting import SystemSetting
from cueledger.services.audit_service import AuditService

DEFAULT_SETTINGS: dict[str, Any] = {
    # Credits
    'credits_price_per_unit': 0.50,
    'credits_min_purchase': 4,
    'credits_per_match': 1,
    'free_credits_on_register': 2,

    # Fees
    'platform_fee_percent': 10,

    # Withdrawals
    'min_withdrawal_amount': 10.00,
    'max_withdrawal_amount': 10000.00,

    # Bets
    'min_bet_amount': 5.00,
    'max_bet_amount': 1000.00,
    'bet_enabled': True,
}


@dataclass
class SettingsCache:
    """Holds the merged settings and the moment they stop being valid."""
    ttl_seconds: float
    value: dict[str, Any] | None = None
    expires_at: float = 0.0

    def is_expired(self, now: float) -> bool:
        return self.value is None or now >= self.expires_at

    def store(self, value: dict[str, Any], now: float) -> None:
        self.value = value
        self.expires_at = now + self.ttl_seconds

    def invalidate(self) -> None:
        self.value = None
        self.expires_at = 0.0


settings_cache = SettingsCache(ttl_seconds=app_settings.settings_cache_ttl_seconds)


# Stored as whole cents, spent through the ledger
MONEY_SETTINGS = {
    'credits_price_per_unit',
    'min_withdrawal_amount',
    'max_withdrawal_amount',
    'min_bet_amount',
    'max_bet_amount',
}

# Whole units
COUNT_SETTINGS = {'credits_min_purchase', 'credits_per_match', 'free_credits_on_register'}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def _is_whole_cents(value: Any) -> bool:
    try:
        amount = Decimal(str(value))
        return amount.is_finite() and amount == amount.quantize(Decimal('0.01'))
    except InvalidOperation:
        return False


def validate_setting(key: str, value: Any, current: dict[str, Any]) -> None:
    """Raise ValidationError when ``value`` is out of bounds for ``key``."""
    if key not in DEFAULT_SETTINGS:
        raise ValidationError(f'Unknown setting: {key}', {'key': key})

    expected = DEFAULT_SETTINGS[key]
    if isinstance(expected, bool):
        if not isinstance(value, bool):
            raise ValidationError(f'{key} must be true or false', {'key': key})
        return
    if not _is_number(value):
        raise ValidationError(f'{key} must be a number', {'key': key})
    if key in COUNT_SETTINGS and not isinstance(value, int):
        raise ValidationError(f'{key} must be a whole number', {'key': key})
    if key in MONEY_SETTINGS and not _is_whole_cents(value):
        raise ValidationError(f'{key} must be in whole cents', {'key': key})

    if key == 'platform_fee_percent' and not 0 <= value <= 50:
        raise ValidationError('Platform fee must be between 0% and 50%', {'key': key})
    if key == 'credits_per_match' and not 0 <= value <= 10:
        raise ValidationError('Credits per match must be between 0 and 10', {'key': key})
    if key == 'credits_price_per_unit' and value <= 0:
        raise ValidationError('Credit price must be positive', {'key': key})
    if key == 'credits_min_purchase' and value < 1:
        raise ValidationError('Minimum purchase must be at least 1 credit', {'key': key})
    if key == 'free_credits_on_register' and value < 0:
        raise ValidationError('Registration credits cannot be negative', {'key': key})
    if key == 'min_bet_amount' and value < 1:
        raise ValidationError('Minimum bet must be at least 1.00', {'key': key})
    if key == 'max_bet_amount' and value < 10:
        raise ValidationError('Maximum bet must be at least 10.00', {'key': key})
    if key == 'min_withdrawal_amount':
        if value <= 0 or value > current['max_withdrawal_amount']:
            raise ValidationError(
                'Minimum withdrawal must be positive and not above the maximum',
                {'key': key},
            )
    if key == 'max_withdrawal_amount' and value < current['min_withdrawal_amount']:
        raise ValidationError('Maximum withdrawal cannot be below the minimum', {'key': key})


class SettingsService:
    """Reads and writes platform settings."""

    def __init__(self, db: AsyncSession, cache: SettingsCache | None = None):
        self.db = db
        self.cache = cache or settings_cache

    async def get_all(self) -> dict[str, Any]:
        now = time.monotonic()
        if not self.cache.is_expired(now):
            return dict(self.cache.value)

        merged = dict(DEFAULT_SETTINGS)
        result = await self.db.execute(select(SystemSetting))
        for row in result.scalars().all():
            if row.key in merged:
                merged[row.key] = row.value

        self.cache.store(merged, now)
        return dict(merged)

    async def get(self, key: str) -> Any:
        return (await self.get_all())[key]

    async def get_decimal(self, key: str) -> Decimal:
        return Decimal(str(await self.get(key)))

    async def set(self, key: str, value: Any, admin_id: str) -> None:
        """Validate, upsert, log and invalidate. Runs in the caller's transaction."""
        current = await self.get_all()
        validate_setting(key, value, current)

        row = await self.db.get(SystemSetting, key)
        if row:
            row.value = value
            row.updated_by = admin_id
        else:
            self.db.add(SystemSetting(key=key, value=value, updated_by=admin_id))

        await AuditService(self.db).log(
            admin_id, 'update_setting', 'setting', key,
            {'key': key, 'value': value, 'previous': current.get(key)},
        )
        await self.db.flush()
        self._invalidate_cache()

    async def reset_to_defaults(self, admin_id: str) -> None:
        await self.db.execute(delete(SystemSetting))
        await AuditService(self.db).log(
            admin_id, 'reset_settings', 'setting', 'all', {'reset_to': 'defaults'},
        )
        self._invalidate_cache()

    def _invalidate_cache(self) -> None:
        # Readers may refill the cache with old rows until this transaction
        # commits, so drop it again once the commit lands
        self.cache.invalidate()
        event.listen(
            self.db.sync_session, 'after_commit',
            lambda session: self.cache.invalidate(),
            once=True,
        )

    async def withdrawal_limits(self) -> tuple[Decimal, Decimal]:
        all_settings = await self.get_all()
        return (
            Decimal(str(all_settings['min_withdrawal_amount'])),
            Decimal(str(all_settings['max_withdrawal_amount'])),
        )
