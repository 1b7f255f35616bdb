from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from sqlalchemy import String, Integer, Boolean, DateTime, Date, Numeric, CheckConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column

from cueledger.db.database import Base


class BonusType(str, Enum):
    DAILY_FREE = 'daily_free'
    WELCOME = 'welcome'
    ADMIN_CREDIT = 'admin_credit'
    ADMIN_BALANCE = 'admin_balance'


class AmountType(str, Enum):
    CREDITS = 'credits'
    BALANCE = 'balance'


class Credits(Base):
    """Consumable play tokens. One credit starts one match."""

    __tablename__ = 'credits'

    user_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    amount: Mapped[int] = mapped_column(Integer, default=0)

    # VIP subscribers: amount is never decremented
    is_unlimited: Mapped[bool] = mapped_column(Boolean, default=False)

    # Calendar day (UTC) of the last daily free grant
    last_free_credit: Mapped[date | None] = mapped_column(Date, default=None)

    # Units of `amount` that came from the daily grant and are still unspent
    free_remaining: Mapped[int] = mapped_column(Integer, default=0)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __mapper_args__ = {'version_id_col': version}

    __table_args__ = (
        CheckConstraint('amount >= 0', name='ck_credits_amount_non_negative'),
    )


class BonusRecord(Base):
    """Courtesy grants with no monetary backing (daily credit, admin bonus)."""

    __tablename__ = 'bonus_records'

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), index=True)
    admin_id: Mapped[str | None] = mapped_column(String(36), default=None)

    bonus_type: Mapped[str] = mapped_column(String(30))
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2))
    amount_type: Mapped[str] = mapped_column(String(20))
    description: Mapped[str | None] = mapped_column(String(255), default=None)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index('ix_bonus_records_user_created', 'user_id', 'created_at'),
    )
