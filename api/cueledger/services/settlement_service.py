"""Bet escrow and settlement for paid matches.

Both players' stakes are taken with bet eligibility when they join; the
winner receives the pool minus the platform fee into winnings and the fee
goes to the revenue wallet.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from sqlalchemy.ext.asyncio import AsyncSession

from cueledger.errors import ValidationError
from cueledger.models.ledger import TransactionType
from cueledger.models.wallet import Bucket, Wallet
from cueledger.services.ledger_service import LedgerService, CENT, to_amount
from cueledger.services.revenue_service import RevenueRouter, RevenueSource
from cueledger.services.settings_service import SettingsService


@dataclass
class SettlementResult:
    settled: bool
    prize: Decimal
    fee: Decimal


class SettlementService:
    """Glue used by match settlement. All wallet effects go through LedgerService."""

    def __init__(self, db: AsyncSession, revenue_account_id: str | None = None):
        self.db = db
        self.ledger = LedgerService(db)
        self.revenue = RevenueRouter(db, revenue_account_id)
        self.settings = SettingsService(db)

    async def escrow_stake(self, user_id: str, amount: Decimal, match_id: str) -> Wallet:
        """Take a player's stake (deposit, then winnings) within the bet limits."""
        amount = to_amount(amount)
        bet_settings = await self.settings.get_all()
        if not bet_settings['bet_enabled']:
            raise ValidationError('Bets are disabled', {'match_id': match_id})

        min_bet = Decimal(str(bet_settings['min_bet_amount']))
        max_bet = Decimal(str(bet_settings['max_bet_amount']))
        if amount < min_bet or amount > max_bet:
            raise ValidationError(
                f'Bet must be between {min_bet} and {max_bet}',
                {'amount': str(amount), 'min': str(min_bet), 'max': str(max_bet)},
            )

        return await self.ledger.debit_for_bet(
            user_id, amount, f'Bet stake for match {match_id}', match_id,
        )

    async def settle(self, match_id: str, winner_id: str, pool: Decimal) -> SettlementResult:
        """Pay the winner and route the fee. A second call for the same match is a no-op."""
        pool = to_amount(pool)
        fee_percent = await self.settings.get_decimal('platform_fee_percent')
        fee = (pool * fee_percent / 100).quantize(CENT, rounding=ROUND_HALF_UP)
        prize = pool - fee

        key = f'bet_win:{match_id}'
        if await self.ledger.has_entry(key):
            return SettlementResult(settled=False, prize=prize, fee=fee)

        await self.ledger.credit(
            winner_id, prize, Bucket.WINNINGS, f'Victory in match {match_id}', match_id,
            type=TransactionType.BET_WIN,
            idempotency_key=key,
        )
        if fee > 0:
            await self.revenue.route_revenue(
                fee, winner_id, f'Platform fee for match {match_id}',
                match_id, RevenueSource.BET_FEE,
            )
        return SettlementResult(settled=True, prize=prize, fee=fee)
