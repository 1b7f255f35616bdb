"""
Reconciliation Service

Checks every wallet against its own invariants and against the transaction
log, which is the source of truth: a wallet's total must equal the sum of
its transaction amounts.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from cueledger.models.ledger import Transaction
from cueledger.models.wallet import Wallet
from cueledger.services.ledger_service import CENT, LedgerService

logger = logging.getLogger(__name__)


@dataclass
class WalletReport:
    user_id: str
    balance: Decimal
    ledger_sum: Decimal
    issues: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.issues


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(CENT)


def check_wallet(wallet: Wallet) -> list[str]:
    """Invariant violations for a single wallet row (pure)."""
    issues = []
    buckets = {
        'deposit_balance': _money(wallet.deposit_balance),
        'winnings_balance': _money(wallet.winnings_balance),
        'bonus_balance': _money(wallet.bonus_balance),
    }
    for name, value in buckets.items():
        if value < 0:
            issues.append(f'{name} is negative ({value})')

    total = _money(wallet.balance)
    if total < 0:
        issues.append(f'balance is negative ({total})')
    if total != sum(buckets.values(), Decimal('0')):
        issues.append(f'balance {total} != sum of buckets {sum(buckets.values())}')
    return issues


class ReconciliationService:
    """Compares wallet rows with the ledger."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger = LedgerService(db)

    async def reconcile_wallet(self, user_id: str) -> WalletReport:
        wallet = await self.ledger.get_wallet(user_id)
        ledger_sum = _money(await self.db.scalar(
            select(func.sum(Transaction.amount)).where(Transaction.user_id == user_id)
        ))
        return self._report(wallet, ledger_sum)

    async def reconcile_all(self) -> dict:
        """Check every wallet. Returns summary stats and logs each discrepancy."""
        sums_result = await self.db.execute(
            select(Transaction.user_id, func.sum(Transaction.amount))
            .group_by(Transaction.user_id)
        )
        sums = {user_id: _money(total) for user_id, total in sums_result.all()}

        result = await self.db.execute(select(Wallet).order_by(Wallet.user_id))
        wallets = list(result.scalars().all())

        failing = []
        for wallet in wallets:
            report = self._report(wallet, sums.get(wallet.user_id, Decimal('0.00')))
            if not report.ok:
                failing.append(report.user_id)
                logger.error(f'Wallet {report.user_id} failed reconciliation: {"; ".join(report.issues)}')

        logger.info(f'Reconciliation complete: {len(wallets)} wallets, {len(failing)} discrepancies')
        return {
            'checked': len(wallets),
            'discrepancies': len(failing),
            'wallets': failing,
        }

    def _report(self, wallet: Wallet, ledger_sum: Decimal) -> WalletReport:
        issues = check_wallet(wallet)
        balance = _money(wallet.balance)
        if balance != ledger_sum:
            issues.append(f'balance {balance} != ledger sum {ledger_sum}')
        return WalletReport(
            user_id=wallet.user_id,
            balance=balance,
            ledger_sum=ledger_sum,
            issues=issues,
        )
