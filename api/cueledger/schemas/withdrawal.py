from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field


class WithdrawalCreate(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=36)
    amount: Decimal = Field(..., gt=0)
    pix_key: str = Field(..., min_length=1, max_length=140)
    pix_key_type: str = Field('cpf', pattern=r'^(cpf|cnpj|email|phone|random)$')


class WithdrawalReject(BaseModel):
    reason: str = Field(..., min_length=1, max_length=255)


class WithdrawalApprove(BaseModel):
    notes: str | None = Field(None, max_length=255)


class WithdrawalResponse(BaseModel):
    id: int
    user_id: str
    amount: Decimal
    pix_key: str
    pix_key_type: str
    status: str
    rejection_reason: str | None
    processed_by: str | None
    processed_at: datetime | None
    created_at: datetime

    class Config:
        from_attributes = True


class WithdrawalPage(BaseModel):
    withdrawals: list[WithdrawalResponse]
    total: int
