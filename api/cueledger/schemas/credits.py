from datetime import date, datetime
from decimal import Decimal
from pydantic import BaseModel, Field


class CreditsResponse(BaseModel):
    user_id: str
    amount: int
    is_unlimited: bool
    last_free_credit: date | None
    free_remaining: int

    class Config:
        from_attributes = True


class DailyGrantResponse(BaseModel):
    granted: bool
    reason: str | None = None
    credits: CreditsResponse


class CreditPurchase(BaseModel):
    quantity: int = Field(..., ge=1)


class CreditUse(BaseModel):
    # Omitted: decided from the stored count of unspent daily credits
    is_free_credit: bool | None = None


class CreditsAdjust(BaseModel):
    delta: int


class CreditsUnlimited(BaseModel):
    unlimited: bool


class BonusRecordEntry(BaseModel):
    id: int
    bonus_type: str
    amount: Decimal
    amount_type: str
    description: str | None
    created_at: datetime

    class Config:
        from_attributes = True
