"""Credits: balance, daily free grant, purchase and match usage."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cueledger.db.database import get_db, get_sessionmaker, run_atomic
from cueledger.schemas.credits import (
    CreditsResponse, DailyGrantResponse, CreditPurchase, CreditUse, BonusRecordEntry,
)
from cueledger.services.credits_service import CreditsService

router = APIRouter()


@router.get('/{user_id}', response_model=CreditsResponse)
async def get_credits(user_id: str, db: AsyncSession = Depends(get_db)):
    return await CreditsService(db).get_credits(user_id)


@router.get('/{user_id}/history', response_model=list[BonusRecordEntry])
async def get_credits_history(
    user_id: str,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """Credits received as grants (welcome, daily, admin)."""
    records, _ = await CreditsService(db).get_history(user_id, limit=limit, offset=offset)
    return records


@router.post('/{user_id}/daily', response_model=DailyGrantResponse)
async def claim_daily_credit(
    user_id: str,
    sessionmaker: async_sessionmaker = Depends(get_sessionmaker),
):
    """Claim today's free credit. A second claim on the same UTC day is a 409."""
    async def operation(db: AsyncSession) -> DailyGrantResponse:
        svc = CreditsService(db)
        result = await svc.grant_daily_free(user_id)
        credits = await svc.get_credits(user_id)
        return DailyGrantResponse(
            granted=result.granted,
            reason=result.reason,
            credits=CreditsResponse.model_validate(credits),
        )

    return await run_atomic(operation, sessionmaker=sessionmaker)


@router.post('/{user_id}/purchase', response_model=CreditsResponse)
async def purchase_credits(
    user_id: str,
    data: CreditPurchase,
    sessionmaker: async_sessionmaker = Depends(get_sessionmaker),
):
    """Buy credits with deposit, then winnings, at the configured unit price."""
    async def operation(db: AsyncSession) -> CreditsResponse:
        credits = await CreditsService(db).purchase_credits(user_id, data.quantity)
        return CreditsResponse.model_validate(credits)

    return await run_atomic(operation, sessionmaker=sessionmaker)


@router.post('/{user_id}/use', response_model=CreditsResponse)
async def use_credit(
    user_id: str,
    data: CreditUse | None = None,
    sessionmaker: async_sessionmaker = Depends(get_sessionmaker),
):
    """Consume one credit to join a match."""
    is_free_credit = data.is_free_credit if data else None

    async def operation(db: AsyncSession) -> CreditsResponse:
        credits = await CreditsService(db).use_credit(user_id, is_free_credit)
        return CreditsResponse.model_validate(credits)

    return await run_atomic(operation, sessionmaker=sessionmaker)
