from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field


class WalletResponse(BaseModel):
    """Segregated wallet balances."""
    user_id: str
    balance: Decimal
    deposit_balance: Decimal
    winnings_balance: Decimal
    bonus_balance: Decimal
    is_blocked: bool

    class Config:
        from_attributes = True


class TransactionEntry(BaseModel):
    """Single ledger transaction."""
    id: int
    user_id: str
    type: str
    amount: Decimal
    balance_after: Decimal
    balance_type: str | None
    reference_id: str | None
    description: str | None
    created_at: datetime

    class Config:
        from_attributes = True


class TransactionPage(BaseModel):
    transactions: list[TransactionEntry]
    total: int


class WithdrawableResponse(BaseModel):
    """What can be cashed out, and why the rest cannot."""
    total_balance: Decimal
    deposit_balance: Decimal
    winnings_balance: Decimal
    bonus_balance: Decimal
    withdrawable_balance: Decimal
    min_withdrawal: Decimal
    max_withdrawal: Decimal
    can_withdraw: list[str] = ['winnings_balance']
    cannot_withdraw: list[str] = ['deposit_balance', 'bonus_balance']


class WalletAdjust(BaseModel):
    """Admin correction of one bucket (signed amount)."""
    amount: Decimal
    balance_type: str = Field('bonus', pattern=r'^(deposit|winnings|bonus)$')
    description: str = Field(..., min_length=1, max_length=200)


class WalletBlock(BaseModel):
    blocked: bool
