"""Back-office endpoints. Callers identify with X-Admin-Id and X-Admin-Roles.

Each route asks for one capability; the role-to-capability map lives in
``cueledger.permissions``.
"""
from typing import Any
from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cueledger.db.database import get_db, get_sessionmaker, run_atomic
from cueledger.errors import PermissionDenied
from cueledger.models.wallet import Bucket
from cueledger.permissions import Capability, has_capability, parse_roles
from cueledger.schemas.admin import SettingUpdate, AdminLogEntry, AdminLogPage
from cueledger.schemas.credits import CreditsResponse, CreditsAdjust, CreditsUnlimited
from cueledger.schemas.wallet import WalletResponse, WalletAdjust, WalletBlock
from cueledger.schemas.withdrawal import (
    WithdrawalApprove, WithdrawalReject, WithdrawalResponse, WithdrawalPage,
)
from cueledger.services.audit_service import AuditService
from cueledger.services.credits_service import CreditsService
from cueledger.services.ledger_service import LedgerService
from cueledger.services.reconciliation_service import ReconciliationService
from cueledger.services.settings_service import SettingsService
from cueledger.services.withdrawal_service import WithdrawalService

router = APIRouter()


def require(capability: Capability):
    """Dependency returning the admin id when the caller's roles grant ``capability``."""
    async def dependency(
        x_admin_id: str = Header(..., min_length=1),
        x_admin_roles: str = Header(''),
    ) -> str:
        if not has_capability(parse_roles(x_admin_roles), capability):
            raise PermissionDenied(
                f'Missing capability: {capability.value}',
                {'capability': capability.value},
            )
        return x_admin_id
    return dependency


# ── Wallets ──────────────────────────────────────────────────────────────────

@router.post('/wallets/{user_id}/adjust', response_model=WalletResponse)
async def adjust_wallet(
    user_id: str,
    data: WalletAdjust,
    admin_id: str = Depends(require(Capability.ADJUST_BALANCE)),
    sessionmaker: async_sessionmaker = Depends(get_sessionmaker),
):
    async def operation(db: AsyncSession) -> WalletResponse:
        wallet = await LedgerService(db).admin_adjust(
            user_id, data.amount, Bucket(data.balance_type), data.description, admin_id,
        )
        return WalletResponse.model_validate(wallet)

    return await run_atomic(operation, sessionmaker=sessionmaker)


@router.post('/wallets/{user_id}/block', response_model=WalletResponse)
async def block_wallet(
    user_id: str,
    data: WalletBlock,
    admin_id: str = Depends(require(Capability.BLOCK_WALLETS)),
    sessionmaker: async_sessionmaker = Depends(get_sessionmaker),
):
    async def operation(db: AsyncSession) -> WalletResponse:
        wallet = await LedgerService(db).set_blocked(user_id, data.blocked, admin_id)
        return WalletResponse.model_validate(wallet)

    return await run_atomic(operation, sessionmaker=sessionmaker)


# ── Credits ──────────────────────────────────────────────────────────────────

@router.post('/credits/{user_id}/adjust', response_model=CreditsResponse)
async def adjust_credits(
    user_id: str,
    data: CreditsAdjust,
    admin_id: str = Depends(require(Capability.ADJUST_BALANCE)),
    sessionmaker: async_sessionmaker = Depends(get_sessionmaker),
):
    async def operation(db: AsyncSession) -> CreditsResponse:
        credits = await CreditsService(db).admin_adjust_credits(user_id, data.delta, admin_id)
        return CreditsResponse.model_validate(credits)

    return await run_atomic(operation, sessionmaker=sessionmaker)


@router.post('/credits/{user_id}/unlimited', response_model=CreditsResponse)
async def set_unlimited_credits(
    user_id: str,
    data: CreditsUnlimited,
    admin_id: str = Depends(require(Capability.ADJUST_BALANCE)),
    sessionmaker: async_sessionmaker = Depends(get_sessionmaker),
):
    """Grant or revoke VIP (unlimited credits)."""
    async def operation(db: AsyncSession) -> CreditsResponse:
        credits = await CreditsService(db).set_unlimited(user_id, data.unlimited, admin_id)
        return CreditsResponse.model_validate(credits)

    return await run_atomic(operation, sessionmaker=sessionmaker)


# ── Withdrawals ──────────────────────────────────────────────────────────────

@router.get('/withdrawals/pending', response_model=WithdrawalPage)
async def list_pending_withdrawals(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    admin_id: str = Depends(require(Capability.APPROVE_WITHDRAWALS)),
    db: AsyncSession = Depends(get_db),
):
    requests, total = await WithdrawalService(db).list_pending(limit, offset)
    return WithdrawalPage(
        withdrawals=[WithdrawalResponse.model_validate(r) for r in requests],
        total=total,
    )


@router.post('/withdrawals/{request_id}/approve', response_model=WithdrawalResponse)
async def approve_withdrawal(
    request_id: int,
    data: WithdrawalApprove | None = None,
    admin_id: str = Depends(require(Capability.APPROVE_WITHDRAWALS)),
    sessionmaker: async_sessionmaker = Depends(get_sessionmaker),
):
    """Confirm the payout was sent. The reservation already left the wallet."""
    notes = data.notes if data else None

    async def operation(db: AsyncSession) -> WithdrawalResponse:
        request = await WithdrawalService(db).approve(request_id, admin_id, notes)
        return WithdrawalResponse.model_validate(request)

    return await run_atomic(operation, sessionmaker=sessionmaker)


@router.post('/withdrawals/{request_id}/reject', response_model=WithdrawalResponse)
async def reject_withdrawal(
    request_id: int,
    data: WithdrawalReject,
    admin_id: str = Depends(require(Capability.APPROVE_WITHDRAWALS)),
    sessionmaker: async_sessionmaker = Depends(get_sessionmaker),
):
    """Reject a pending request and return the reserved winnings."""
    async def operation(db: AsyncSession) -> WithdrawalResponse:
        request = await WithdrawalService(db).cancel_or_reject(
            request_id, data.reason, admin_id=admin_id,
        )
        return WithdrawalResponse.model_validate(request)

    return await run_atomic(operation, sessionmaker=sessionmaker)


# ── Settings ─────────────────────────────────────────────────────────────────

@router.get('/settings')
async def get_settings(
    admin_id: str = Depends(require(Capability.MANAGE_SETTINGS)),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    return await SettingsService(db).get_all()


@router.put('/settings/{key}')
async def update_setting(
    key: str,
    data: SettingUpdate,
    admin_id: str = Depends(require(Capability.MANAGE_SETTINGS)),
    sessionmaker: async_sessionmaker = Depends(get_sessionmaker),
) -> dict[str, Any]:
    async def operation(db: AsyncSession) -> None:
        await SettingsService(db).set(key, data.value, admin_id)

    await run_atomic(operation, sessionmaker=sessionmaker)
    return {'key': key, 'value': data.value}


@router.post('/settings/reset')
async def reset_settings(
    admin_id: str = Depends(require(Capability.MANAGE_SETTINGS)),
    sessionmaker: async_sessionmaker = Depends(get_sessionmaker),
) -> dict[str, Any]:
    async def operation(db: AsyncSession) -> None:
        await SettingsService(db).reset_to_defaults(admin_id)

    await run_atomic(operation, sessionmaker=sessionmaker)
    return {'reset': True}


# ── Audit & reconciliation ───────────────────────────────────────────────────

@router.get('/logs', response_model=AdminLogPage)
async def get_admin_logs(
    action: str | None = Query(None),
    target_type: str | None = Query(None),
    target_id: str | None = Query(None),
    filter_admin_id: str | None = Query(None, alias='admin_id'),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    admin_id: str = Depends(require(Capability.VIEW_LOGS)),
    db: AsyncSession = Depends(get_db),
):
    logs, total = await AuditService(db).get_logs(
        admin_id=filter_admin_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        limit=limit,
        offset=offset,
    )
    return AdminLogPage(
        logs=[AdminLogEntry.model_validate(entry) for entry in logs],
        total=total,
    )


@router.post('/reconciliation')
async def run_reconciliation(
    admin_id: str = Depends(require(Capability.VIEW_FINANCES)),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Check every wallet against the transaction log now (read-only)."""
    return await ReconciliationService(db).reconcile_all()
