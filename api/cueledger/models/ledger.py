from datetime import datetime
from decimal import Decimal
from enum import Enum
from sqlalchemy import String, DateTime, Numeric, Index
from sqlalchemy.orm import Mapped, mapped_column

from cueledger.db.database import Base


class TransactionType(str, Enum):
    """All possible ledger transaction types."""
    # Income
    DEPOSIT = 'deposit'
    BET_WIN = 'bet_win'
    WINNINGS = 'winnings'
    BONUS = 'bonus'

    # Spending
    BET_LOSS = 'bet_loss'
    CREDIT_PURCHASE = 'credit_purchase'
    WITHDRAWAL = 'withdrawal'

    # Corrections
    ADMIN_ADJUSTMENT = 'admin_adjustment'


class BalanceType(str, Enum):
    """Which part of the wallet an entry principally affected."""
    DEPOSIT = 'deposit'
    WINNINGS = 'winnings'
    BONUS = 'bonus'
    BET = 'bet'
    PURCHASE = 'purchase'


class Transaction(Base):
    """Transaction log. Every balance movement is recorded here, never edited."""

    __tablename__ = 'transactions'

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), index=True)

    type: Mapped[str] = mapped_column(String(30))

    # +amount = credit, -amount = debit
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2))
    balance_after: Mapped[Decimal] = mapped_column(Numeric(14, 2))
    balance_type: Mapped[str | None] = mapped_column(String(20), default=None)

    reference_id: Mapped[str | None] = mapped_column(String(64), default=None)
    description: Mapped[str | None] = mapped_column(String(255), default=None)

    # Set when a retried business event must not be applied twice
    idempotency_key: Mapped[str | None] = mapped_column(
        String(128), unique=True, default=None
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index('ix_transactions_user_created', 'user_id', 'created_at'),
    )
