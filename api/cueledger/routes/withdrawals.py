"""User-facing withdrawal requests (PIX payout of winnings)."""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cueledger.db.database import get_db, get_sessionmaker, run_atomic
from cueledger.schemas.withdrawal import WithdrawalCreate, WithdrawalResponse, WithdrawalPage
from cueledger.services.withdrawal_service import WithdrawalService

router = APIRouter()


@router.post('', response_model=WithdrawalResponse, status_code=status.HTTP_201_CREATED)
async def request_withdrawal(
    data: WithdrawalCreate,
    sessionmaker: async_sessionmaker = Depends(get_sessionmaker),
):
    """Reserve winnings and open a pending request. One pending request per user."""
    async def operation(db: AsyncSession) -> WithdrawalResponse:
        request = await WithdrawalService(db).request_withdrawal(
            data.user_id, data.amount, data.pix_key, data.pix_key_type,
        )
        return WithdrawalResponse.model_validate(request)

    return await run_atomic(operation, sessionmaker=sessionmaker)


@router.get('', response_model=WithdrawalPage)
async def list_withdrawals(
    user_id: str = Query(..., min_length=1),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    requests, total = await WithdrawalService(db).list_requests(user_id, limit, offset)
    return WithdrawalPage(
        withdrawals=[WithdrawalResponse.model_validate(r) for r in requests],
        total=total,
    )


@router.delete('/{request_id}', response_model=WithdrawalResponse)
async def cancel_withdrawal(
    request_id: int,
    user_id: str = Query(..., min_length=1),
    sessionmaker: async_sessionmaker = Depends(get_sessionmaker),
):
    """Cancel a pending request and get the reserved winnings back."""
    async def operation(db: AsyncSession) -> WithdrawalResponse:
        request = await WithdrawalService(db).cancel(request_id, user_id)
        return WithdrawalResponse.model_validate(request)

    return await run_atomic(operation, sessionmaker=sessionmaker)
