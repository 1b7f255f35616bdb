import logging
from decimal import Decimal
from enum import Enum
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cueledger.config import settings
from cueledger.errors import RevenueAccountNotConfigured
from cueledger.models.ledger import TransactionType
from cueledger.models.revenue import PlatformRevenue
from cueledger.models.wallet import Bucket
from cueledger.services.ledger_service import LedgerService, to_amount, utc_today

logger = logging.getLogger(__name__)


class RevenueSource(str, Enum):
    CREDIT_SALE = 'credit_sale'
    CREDIT_USAGE = 'credit_usage'
    BET_FEE = 'bet_fee'


class RevenueRouter:
    """Moves platform fees and credit proceeds into the revenue wallet."""

    def __init__(self, db: AsyncSession, revenue_account_id: str | None = None):
        self.db = db
        self.ledger = LedgerService(db)
        self.revenue_account_id = (
            revenue_account_id if revenue_account_id is not None
            else settings.platform_revenue_user_id
        )

    async def route_revenue(
        self,
        amount: Decimal,
        from_user_id: str,
        description: str,
        reference_id: str | None = None,
        source: RevenueSource = RevenueSource.CREDIT_SALE,
    ) -> bool:
        """Credit the revenue account's winnings bucket.

        Idempotent per (source, reference_id): a repeat for an already routed
        reference returns False and changes nothing.
        """
        amount = to_amount(amount)
        source = RevenueSource(source)
        if not self.revenue_account_id:
            raise RevenueAccountNotConfigured()

        key = f'revenue:{source.value}:{reference_id}' if reference_id else None
        if key and await self.ledger.has_entry(key):
            logger.info(f'Revenue for {key} already routed, skipping')
            return False

        await self.ledger.credit(
            self.revenue_account_id, amount, Bucket.WINNINGS,
            f'{description} (from user {from_user_id})',
            reference_id,
            type=TransactionType.WINNINGS,
            idempotency_key=key,
        )
        await self._add_platform_revenue(amount, source)
        return True

    async def _add_platform_revenue(self, amount: Decimal, source: RevenueSource) -> None:
        """Add revenue to today's reporting row."""
        today = utc_today()

        # Get or create today's record
        result = await self.db.execute(
            select(PlatformRevenue).where(PlatformRevenue.day == today)
        )
        revenue = result.scalar_one_or_none()

        if not revenue:
            revenue = PlatformRevenue(
                day=today,
                credit_sale_revenue=Decimal('0'),
                credit_usage_revenue=Decimal('0'),
                bet_fee_revenue=Decimal('0'),
                total=Decimal('0'),
            )
            self.db.add(revenue)

        # Update the appropriate column
        if source == RevenueSource.CREDIT_SALE:
            revenue.credit_sale_revenue += amount
        elif source == RevenueSource.CREDIT_USAGE:
            revenue.credit_usage_revenue += amount
        elif source == RevenueSource.BET_FEE:
            revenue.bet_fee_revenue += amount

        revenue.total += amount
        await self.db.flush()
