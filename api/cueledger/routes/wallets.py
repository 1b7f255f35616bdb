"""Wallet balances, transaction history and withdrawable amount."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from cueledger.db.database import get_db
from cueledger.schemas.wallet import (
    WalletResponse, TransactionEntry, TransactionPage, WithdrawableResponse,
)
from cueledger.services.ledger_service import LedgerService
from cueledger.services.settings_service import SettingsService

router = APIRouter()


@router.get('/{user_id}', response_model=WalletResponse)
async def get_wallet(user_id: str, db: AsyncSession = Depends(get_db)):
    """Total and per-bucket balances."""
    return await LedgerService(db).get_wallet(user_id)


@router.get('/{user_id}/transactions', response_model=TransactionPage)
async def get_transactions(
    user_id: str,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """Transaction history, newest first."""
    ledger = LedgerService(db)
    await ledger.get_wallet(user_id)
    entries, total = await ledger.get_transactions(user_id, limit=limit, offset=offset)
    return TransactionPage(
        transactions=[TransactionEntry.model_validate(e) for e in entries],
        total=total,
    )


@router.get('/{user_id}/withdrawable', response_model=WithdrawableResponse)
async def get_withdrawable(user_id: str, db: AsyncSession = Depends(get_db)):
    wallet = await LedgerService(db).get_wallet(user_id)
    min_amount, max_amount = await SettingsService(db).withdrawal_limits()
    return WithdrawableResponse(
        total_balance=wallet.balance,
        deposit_balance=wallet.deposit_balance,
        winnings_balance=wallet.winnings_balance,
        bonus_balance=wallet.bonus_balance,
        withdrawable_balance=wallet.winnings_balance,
        min_withdrawal=min_amount,
        max_withdrawal=max_amount,
    )
