import logging
import math
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import uuid4
from sqlalchemy import select, desc, func
from sqlalchemy.ext.asyncio import AsyncSession

from cueledger.errors import (
    AlreadyClaimedToday, CreditsNotFound, InsufficientCredits, ValidationError,
)
from cueledger.models.credits import Credits, BonusRecord, BonusType, AmountType
from cueledger.services.audit_service import AuditService
from cueledger.services.ledger_service import LedgerService, to_amount, utc_today
from cueledger.services.revenue_service import RevenueRouter, RevenueSource
from cueledger.services.settings_service import SettingsService

logger = logging.getLogger(__name__)


@dataclass
class DailyGrantResult:
    granted: bool
    reason: str | None = None


def _require_int(value, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f'{name} must be an integer', {name: str(value)})
    return value


class CreditsService:
    """Play-token balances: daily free grant, purchase, consumption, VIP override."""

    def __init__(self, db: AsyncSession, revenue_account_id: str | None = None):
        self.db = db
        self.ledger = LedgerService(db)
        self.revenue = RevenueRouter(db, revenue_account_id)
        self.settings = SettingsService(db)
        self.audit = AuditService(db)

    async def get_credits(self, user_id: str) -> Credits:
        credits = await self.db.get(Credits, user_id)
        if not credits:
            raise CreditsNotFound(user_id)
        return credits

    async def open_account(self, user_id: str, initial: int | None = None) -> Credits:
        """Create the credits row at registration, with the welcome grant."""
        credits = await self.db.get(Credits, user_id)
        if credits:
            return credits

        if initial is None:
            initial = int(await self.settings.get('free_credits_on_register'))

        credits = Credits(
            user_id=user_id,
            amount=initial,
            is_unlimited=False,
            free_remaining=0,
        )
        self.db.add(credits)
        if initial > 0:
            self._add_bonus_record(
                user_id, BonusType.WELCOME, initial, 'Welcome credits',
            )
        await self.db.flush()
        return credits

    async def has_enough(self, user_id: str, amount: int | None = None) -> bool:
        credits = await self.db.get(Credits, user_id)
        if not credits:
            return False
        if credits.is_unlimited:
            return True
        if amount is None:
            amount = int(await self.settings.get('credits_per_match'))
        return credits.amount >= amount

    async def calculate_credits(self, amount: Decimal) -> int:
        """How many credits ``amount`` buys at the current unit price."""
        price = await self.settings.get_decimal('credits_price_per_unit')
        return math.floor(to_amount(amount) / price)

    # ── Daily free credit ────────────────────────────────────────────────────

    async def grant_daily_free(
        self,
        user_id: str,
        today: date | None = None,
    ) -> DailyGrantResult:
        """One courtesy credit per calendar day (UTC). No wallet involvement."""
        today = today or utc_today()
        credits = await self._lock_credits(user_id)

        # VIP doesn't need it
        if credits.is_unlimited:
            return DailyGrantResult(granted=False, reason='unlimited')

        if credits.last_free_credit == today:
            raise AlreadyClaimedToday(user_id)

        credits.amount += 1
        credits.free_remaining += 1
        credits.last_free_credit = today
        self._add_bonus_record(user_id, BonusType.DAILY_FREE, 1, 'Daily free credit')
        await self.db.flush()
        return DailyGrantResult(granted=True)

    # ── Purchase & usage ─────────────────────────────────────────────────────

    async def purchase_credits(
        self,
        user_id: str,
        quantity: int,
        price_per_credit: Decimal | None = None,
    ) -> Credits:
        """Debit deposit/winnings, route proceeds to revenue, then add credits.

        All three writes share the caller's transaction: a failed debit or
        revenue credit leaves no credits behind.
        """
        quantity = _require_int(quantity, 'quantity')
        min_purchase = int(await self.settings.get('credits_min_purchase'))
        if quantity < max(min_purchase, 1):
            raise ValidationError(
                f'Minimum purchase is {min_purchase} credits',
                {'quantity': quantity, 'minimum': min_purchase},
            )

        if price_per_credit is None:
            price_per_credit = await self.settings.get_decimal('credits_price_per_unit')
        price_per_credit = to_amount(price_per_credit)
        total_cost = to_amount(price_per_credit * quantity)

        credits = await self._lock_credits(user_id)
        reference_id = f'purchase:{uuid4().hex}'

        await self.ledger.debit_for_purchase(
            user_id, total_cost, f'Purchase of {quantity} credits', reference_id,
        )
        await self.revenue.route_revenue(
            total_cost, user_id, f'Sale of {quantity} credits',
            reference_id, RevenueSource.CREDIT_SALE,
        )

        credits.amount += quantity
        await self.db.flush()
        logger.info(f'User {user_id} bought {quantity} credits for {total_cost}')
        return credits

    async def use_credit(
        self,
        user_id: str,
        is_free_credit: bool | None = None,
    ) -> Credits:
        """Consume one credit to start a match.

        ``is_free_credit`` is the caller's classification; when omitted the
        stored count of unspent daily-grant credits decides. Claiming a free
        unit when none is left is a ValidationError. A paid credit
        also charges the unit price (deposit, then winnings) to revenue; if
        that charge fails the credit is not consumed.
        """
        credits = await self._lock_credits(user_id)
        if credits.is_unlimited:
            return credits

        if credits.amount < 1:
            raise InsufficientCredits(credits.amount)

        if is_free_credit and credits.free_remaining < 1:
            raise ValidationError(
                'No free credit left to spend',
                {'user_id': user_id, 'free_remaining': credits.free_remaining},
            )

        is_free = credits.free_remaining > 0 if is_free_credit is None else is_free_credit

        credits.amount -= 1
        if is_free:
            credits.free_remaining -= 1
        credits.free_remaining = min(credits.free_remaining, credits.amount)

        if not is_free:
            price = await self.settings.get_decimal('credits_price_per_unit')
            reference_id = f'credit_use:{uuid4().hex}'
            await self.ledger.debit_for_purchase(
                user_id, price, 'Use of 1 credit in a match', reference_id,
            )
            await self.revenue.route_revenue(
                price, user_id, 'Revenue from credit used in a match',
                reference_id, RevenueSource.CREDIT_USAGE,
            )

        await self.db.flush()
        return credits

    # ── Admin ────────────────────────────────────────────────────────────────

    async def admin_adjust_credits(self, user_id: str, delta: int, admin_id: str) -> Credits:
        """Add or remove credits, clamped at zero. Always audit-logged."""
        delta = _require_int(delta, 'delta')
        credits = await self._lock_credits(user_id)

        new_amount = max(0, credits.amount + delta)
        credits.amount = new_amount
        credits.free_remaining = min(credits.free_remaining, new_amount)

        await self.audit.log(
            admin_id, 'credits_adjustment', 'credits', user_id,
            {'amount': delta, 'new_amount': new_amount},
        )
        if delta > 0:
            self._add_bonus_record(
                user_id, BonusType.ADMIN_CREDIT, delta,
                'Credits added by administrator', admin_id=admin_id,
            )
        await self.db.flush()
        return credits

    async def set_unlimited(
        self,
        user_id: str,
        unlimited: bool,
        admin_id: str | None = None,
    ) -> Credits:
        credits = await self._lock_credits(user_id)
        credits.is_unlimited = unlimited
        if admin_id:
            await self.audit.log(
                admin_id,
                'user_vip_grant' if unlimited else 'user_vip_revoke',
                'credits', user_id,
                {'is_unlimited': unlimited},
            )
        await self.db.flush()
        return credits

    async def get_history(
        self,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[BonusRecord], int]:
        """Credits received as grants, newest first."""
        query = select(BonusRecord).where(
            BonusRecord.user_id == user_id,
            BonusRecord.amount_type == AmountType.CREDITS.value,
        )
        total = await self.db.scalar(select(func.count()).select_from(query.subquery()))
        result = await self.db.execute(
            query.order_by(desc(BonusRecord.created_at), desc(BonusRecord.id))
            .limit(limit).offset(offset)
        )
        return list(result.scalars().all()), total or 0

    # ── Internals ────────────────────────────────────────────────────────────

    async def _lock_credits(self, user_id: str) -> Credits:
        result = await self.db.execute(
            select(Credits)
            .where(Credits.user_id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        credits = result.scalar_one_or_none()
        if not credits:
            raise CreditsNotFound(user_id)
        return credits

    def _add_bonus_record(
        self,
        user_id: str,
        bonus_type: BonusType,
        amount: int,
        description: str,
        admin_id: str | None = None,
    ) -> None:
        self.db.add(BonusRecord(
            user_id=user_id,
            admin_id=admin_id,
            bonus_type=bonus_type.value,
            amount=Decimal(amount),
            amount_type=AmountType.CREDITS.value,
            description=description,
        ))
