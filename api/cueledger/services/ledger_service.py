import logging
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from sqlalchemy import select, desc, func
from sqlalchemy.ext.asyncio import AsyncSession

from cueledger.errors import InsufficientFunds, InvalidAmount, WalletBlocked, WalletNotFound
from cueledger.models.credits import BonusRecord, BonusType, AmountType
from cueledger.models.ledger import Transaction, TransactionType, BalanceType
from cueledger.models.wallet import Wallet, Bucket
from cueledger.services.allocator import allocate
from cueledger.services.audit_service import AuditService

logger = logging.getLogger(__name__)

ZERO = Decimal('0')
CENT = Decimal('0.01')

# Bets and credit purchases: deposit first, then winnings. Bonus never.
SPENDABLE_BUCKETS = (Bucket.DEPOSIT, Bucket.WINNINGS)

CREDIT_TYPES = {
    Bucket.DEPOSIT: TransactionType.DEPOSIT,
    Bucket.WINNINGS: TransactionType.WINNINGS,
    Bucket.BONUS: TransactionType.BONUS,
}


def utc_today() -> date:
    """Calendar day used for daily grants and revenue rollups."""
    return datetime.now(timezone.utc).date()


def _to_decimal(amount) -> Decimal:
    if isinstance(amount, bool):
        raise InvalidAmount(amount)
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
        if not value.is_finite() or value != value.quantize(CENT):
            raise InvalidAmount(amount)
        return value.quantize(CENT)
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidAmount(amount)


def to_amount(amount) -> Decimal:
    """Validate a positive money amount (whole cents) before any I/O."""
    value = _to_decimal(amount)
    if value <= 0:
        raise InvalidAmount(amount)
    return value


def to_signed_amount(amount) -> Decimal:
    """Validate a non-zero signed money amount, for admin corrections."""
    value = _to_decimal(amount)
    if value == 0:
        raise InvalidAmount(amount)
    return value


class LedgerService:
    """Owns wallets and the transaction log. Every balance movement goes through here.

    Methods flush but never commit: callers run them inside ``run_atomic`` so a
    whole business operation commits or rolls back as one unit.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    # ── Reads ────────────────────────────────────────────────────────────────

    async def get_wallet(self, user_id: str) -> Wallet:
        wallet = await self.db.get(Wallet, user_id)
        if not wallet:
            raise WalletNotFound(user_id)
        return wallet

    async def available_for_bet(self, user_id: str) -> Decimal:
        """Deposit + winnings. Bonus cannot be wagered."""
        wallet = await self.get_wallet(user_id)
        return wallet.deposit_balance + wallet.winnings_balance

    async def withdrawable_balance(self, user_id: str) -> Decimal:
        """Only winnings can be cashed out."""
        wallet = await self.get_wallet(user_id)
        return wallet.winnings_balance

    async def get_transactions(
        self,
        user_id: str,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Transaction], int]:
        """Get transactions for a user, newest first, with the total count."""
        total = await self.db.scalar(
            select(func.count()).where(Transaction.user_id == user_id)
        )
        result = await self.db.execute(
            select(Transaction)
            .where(Transaction.user_id == user_id)
            .order_by(desc(Transaction.created_at), desc(Transaction.id))
            .limit(limit).offset(offset)
        )
        return list(result.scalars().all()), total or 0

    # ── Wallet lifecycle ─────────────────────────────────────────────────────

    async def open_wallet(self, user_id: str) -> Wallet:
        """Create an empty wallet for a new user. Returns the existing one if present."""
        wallet = await self.db.get(Wallet, user_id)
        if wallet:
            return wallet

        wallet = Wallet(
            user_id=user_id,
            balance=ZERO,
            deposit_balance=ZERO,
            winnings_balance=ZERO,
            bonus_balance=ZERO,
            is_blocked=False,
        )
        self.db.add(wallet)
        await self.db.flush()
        return wallet

    async def set_blocked(
        self,
        user_id: str,
        blocked: bool,
        admin_id: str | None = None,
    ) -> Wallet:
        wallet = await self.lock_wallet(user_id)
        wallet.is_blocked = blocked

        if admin_id:
            await self.audit.log(
                admin_id,
                'wallet_block' if blocked else 'wallet_unblock',
                'wallet', user_id,
                {'blocked': blocked},
            )
            logger.info(f'Wallet {user_id} {"blocked" if blocked else "unblocked"} by {admin_id}')
        await self.db.flush()
        return wallet

    # ── Credits ──────────────────────────────────────────────────────────────

    async def credit(
        self,
        user_id: str,
        amount: Decimal,
        bucket: Bucket,
        description: str,
        reference_id: str | None = None,
        *,
        type: TransactionType | None = None,
        idempotency_key: str | None = None,
    ) -> Wallet:
        """Add funds to one bucket. Fails with WalletBlocked on a blocked wallet.

        With an ``idempotency_key`` a repeated call is a no-op that returns the
        wallet unchanged.
        """
        return await self._credit(
            user_id, amount, Bucket(bucket), description, reference_id,
            type=type, idempotency_key=idempotency_key,
        )

    async def release_winnings(
        self,
        user_id: str,
        amount: Decimal,
        description: str,
        reference_id: str,
    ) -> Wallet:
        """Give a withdrawal reservation back. Allowed on blocked wallets."""
        return await self._credit(
            user_id, amount, Bucket.WINNINGS, description, reference_id,
            type=TransactionType.WITHDRAWAL,
            idempotency_key=f'withdrawal_release:{reference_id}',
            allow_blocked=True,
        )

    async def _credit(
        self,
        user_id: str,
        amount: Decimal,
        bucket: Bucket,
        description: str,
        reference_id: str | None,
        *,
        type: TransactionType | None = None,
        idempotency_key: str | None = None,
        allow_blocked: bool = False,
    ) -> Wallet:
        amount = to_amount(amount)

        if idempotency_key and await self.has_entry(idempotency_key):
            return await self.get_wallet(user_id)

        wallet = await self.lock_wallet(user_id)
        if wallet.is_blocked and not allow_blocked:
            raise WalletBlocked(user_id)

        wallet.set_bucket_balance(bucket, wallet.bucket_balance(bucket) + amount)
        await self._record(
            wallet, type or CREDIT_TYPES[bucket], amount, bucket.value,
            description, reference_id, idempotency_key,
        )
        return wallet

    # ── Debits ───────────────────────────────────────────────────────────────

    async def debit_for_bet(
        self,
        user_id: str,
        amount: Decimal,
        description: str,
        reference_id: str | None = None,
    ) -> Wallet:
        """Take a wager from deposit, then winnings. Bonus never settles a bet."""
        return await self._debit_spendable(
            user_id, amount, TransactionType.BET_LOSS, BalanceType.BET,
            description, reference_id,
        )

    async def debit_for_purchase(
        self,
        user_id: str,
        amount: Decimal,
        description: str,
        reference_id: str | None = None,
    ) -> Wallet:
        """Pay for credits from deposit, then winnings. Bonus never buys credits."""
        return await self._debit_spendable(
            user_id, amount, TransactionType.CREDIT_PURCHASE, BalanceType.PURCHASE,
            description, reference_id,
        )

    async def _debit_spendable(
        self,
        user_id: str,
        amount: Decimal,
        tx_type: TransactionType,
        balance_type: BalanceType,
        description: str,
        reference_id: str | None,
    ) -> Wallet:
        amount = to_amount(amount)
        wallet = await self.lock_wallet(user_id)
        if wallet.is_blocked:
            raise WalletBlocked(user_id)

        # Compute and validate the whole split before touching any bucket
        allocation = allocate(
            [(bucket.value, wallet.bucket_balance(bucket)) for bucket in SPENDABLE_BUCKETS],
            amount,
        )
        if not allocation.is_complete:
            raise InsufficientFunds(
                available=allocation.covered,
                required=amount,
                excluded_buckets=[Bucket.BONUS.value],
            )

        for bucket in SPENDABLE_BUCKETS:
            taken = allocation.per_bucket[bucket.value]
            if taken:
                wallet.set_bucket_balance(bucket, wallet.bucket_balance(bucket) - taken)

        await self._record(
            wallet, tx_type, -amount, balance_type.value, description, reference_id,
        )
        return wallet

    async def reserve_winnings(
        self,
        user_id: str,
        amount: Decimal,
        description: str,
        reference_id: str,
    ) -> Wallet:
        """Withdrawal reservation: debits winnings only, whatever the total is."""
        amount = to_amount(amount)
        wallet = await self.lock_wallet(user_id)
        if wallet.is_blocked:
            raise WalletBlocked(user_id)

        if wallet.winnings_balance < amount:
            raise InsufficientFunds(
                available=wallet.winnings_balance,
                required=amount,
                excluded_buckets=[Bucket.DEPOSIT.value, Bucket.BONUS.value],
            )

        wallet.set_bucket_balance(Bucket.WINNINGS, wallet.winnings_balance - amount)
        await self._record(
            wallet, TransactionType.WITHDRAWAL, -amount, BalanceType.WINNINGS.value,
            description, reference_id,
        )
        return wallet

    # ── Admin ────────────────────────────────────────────────────────────────

    async def admin_adjust(
        self,
        user_id: str,
        amount: Decimal,
        bucket: Bucket,
        description: str,
        admin_id: str,
    ) -> Wallet:
        """Administrative correction of one bucket, clamped at zero.

        Works on blocked wallets. Always writes an admin log entry in the same
        transaction; positive bonus adjustments also get a bonus record.
        """
        delta = to_signed_amount(amount)
        bucket = Bucket(bucket)
        wallet = await self.lock_wallet(user_id)

        current = wallet.bucket_balance(bucket)
        new_value = max(ZERO, current + delta)
        applied = new_value - current

        if applied:
            wallet.set_bucket_balance(bucket, new_value)
            await self._record(
                wallet, TransactionType.ADMIN_ADJUSTMENT, applied, bucket.value,
                f'[ADMIN] {description}', None,
            )

        await self.audit.log(
            admin_id, 'wallet_adjustment', 'wallet', user_id,
            {
                'amount': str(delta),
                'applied': str(applied),
                'balance_type': bucket.value,
                'description': description,
                'new_balance': str(wallet.balance),
            },
        )

        if delta > 0 and bucket == Bucket.BONUS:
            self.db.add(BonusRecord(
                user_id=user_id,
                admin_id=admin_id,
                bonus_type=BonusType.ADMIN_BALANCE.value,
                amount=delta,
                amount_type=AmountType.BALANCE.value,
                description=description or 'Bonus balance added by administrator',
            ))
            await self.db.flush()

        logger.info(f'Admin {admin_id} adjusted {bucket.value} of {user_id} by {applied}')
        return wallet

    # ── Internals ────────────────────────────────────────────────────────────

    async def has_entry(self, idempotency_key: str) -> bool:
        found = await self.db.scalar(
            select(Transaction.id).where(Transaction.idempotency_key == idempotency_key)
        )
        return found is not None

    async def lock_wallet(self, user_id: str) -> Wallet:
        """Load the wallet row for update (row lock where supported, version CAS always)."""
        result = await self.db.execute(
            select(Wallet)
            .where(Wallet.user_id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        wallet = result.scalar_one_or_none()
        if not wallet:
            raise WalletNotFound(user_id)
        return wallet

    async def _record(
        self,
        wallet: Wallet,
        tx_type: TransactionType,
        amount: Decimal,
        balance_type: str | None,
        description: str,
        reference_id: str | None,
        idempotency_key: str | None = None,
    ) -> Transaction:
        entry = Transaction(
            user_id=wallet.user_id,
            type=tx_type.value,
            amount=amount,
            balance_after=wallet.balance,
            balance_type=balance_type,
            reference_id=reference_id,
            description=description,
            idempotency_key=idempotency_key,
        )
        self.db.add(entry)
        # Flushes the wallet UPDATE too; a lost version race raises StaleDataError here
        await self.db.flush()
        return entry
