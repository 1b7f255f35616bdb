from datetime import datetime
from decimal import Decimal
from enum import Enum
from sqlalchemy import String, Integer, Boolean, DateTime, Numeric, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from cueledger.db.database import Base

MONEY = Numeric(14, 2)


class Bucket(str, Enum):
    """Wallet balance partitions, by provenance."""
    DEPOSIT = 'deposit'
    WINNINGS = 'winnings'
    BONUS = 'bonus'


class Wallet(Base):
    """Per-user segregated balance. Only LedgerService mutates it."""

    __tablename__ = 'wallets'

    user_id: Mapped[str] = mapped_column(String(36), primary_key=True)

    # balance == deposit_balance + winnings_balance + bonus_balance
    balance: Mapped[Decimal] = mapped_column(MONEY, default=Decimal('0'))
    deposit_balance: Mapped[Decimal] = mapped_column(MONEY, default=Decimal('0'))
    winnings_balance: Mapped[Decimal] = mapped_column(MONEY, default=Decimal('0'))
    bonus_balance: Mapped[Decimal] = mapped_column(MONEY, default=Decimal('0'))

    is_blocked: Mapped[bool] = mapped_column(Boolean, default=False)

    # Optimistic concurrency: every UPDATE is "WHERE version = :expected"
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __mapper_args__ = {'version_id_col': version}

    __table_args__ = (
        CheckConstraint('deposit_balance >= 0', name='ck_wallet_deposit_non_negative'),
        CheckConstraint('winnings_balance >= 0', name='ck_wallet_winnings_non_negative'),
        CheckConstraint('bonus_balance >= 0', name='ck_wallet_bonus_non_negative'),
    )

    def bucket_balance(self, bucket: Bucket) -> Decimal:
        return getattr(self, f'{bucket.value}_balance')

    def set_bucket_balance(self, bucket: Bucket, value: Decimal) -> None:
        setattr(self, f'{bucket.value}_balance', value)
        self.balance = self.deposit_balance + self.winnings_balance + self.bonus_balance
