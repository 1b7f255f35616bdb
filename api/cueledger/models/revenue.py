from datetime import datetime, date
from decimal import Decimal
from sqlalchemy import Integer, DateTime, Date, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from cueledger.db.database import Base


class PlatformRevenue(Base):
    """Daily platform revenue rollup. The money itself sits in the revenue wallet."""

    __tablename__ = 'platform_revenue'

    id: Mapped[int] = mapped_column(primary_key=True)
    day: Mapped[date] = mapped_column('date', Date, unique=True, index=True)

    # Revenue by source
    credit_sale_revenue: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal('0'))
    credit_usage_revenue: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal('0'))
    bet_fee_revenue: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal('0'))

    # Total = sum of all sources
    total: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal('0'))

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __mapper_args__ = {'version_id_col': version}
