from datetime import datetime
from decimal import Decimal
from enum import Enum
from sqlalchemy import String, Integer, DateTime, Numeric, Index
from sqlalchemy.orm import Mapped, mapped_column

from cueledger.db.database import Base


class WithdrawalStatus(str, Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'


class WithdrawalRequest(Base):
    """Cash-out request. The amount is reserved from winnings when created."""

    __tablename__ = 'withdrawal_requests'

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2))

    # Opaque payout destination
    pix_key: Mapped[str] = mapped_column(String(140))
    pix_key_type: Mapped[str] = mapped_column(String(20), default='cpf')

    status: Mapped[str] = mapped_column(String(20), default=WithdrawalStatus.PENDING.value)
    rejection_reason: Mapped[str | None] = mapped_column(String(255), default=None)

    processed_by: Mapped[str | None] = mapped_column(String(36), default=None)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime, default=None)
    admin_notes: Mapped[str | None] = mapped_column(String(255), default=None)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __mapper_args__ = {'version_id_col': version}

    __table_args__ = (
        Index('ix_withdrawal_user_status', 'user_id', 'status'),
    )
