"""Withdrawal requests: winnings-only cash-out with an up-front reservation.

pending -> approved   payout confirmed outside the ledger; nothing to move
pending -> rejected   admin rejection or user cancellation; reservation returned
"""
import logging
from datetime import datetime
from decimal import Decimal
from sqlalchemy import select, desc, func
from sqlalchemy.ext.asyncio import AsyncSession

from cueledger.errors import (
    InvalidStateTransition, PendingWithdrawalExists, ValidationError,
    WalletBlocked, WithdrawalNotFound,
)
from cueledger.models.withdrawal import WithdrawalRequest, WithdrawalStatus
from cueledger.services.audit_service import AuditService
from cueledger.services.ledger_service import LedgerService, to_amount
from cueledger.services.settings_service import SettingsService

logger = logging.getLogger(__name__)

CANCELLED_BY_USER = 'Cancelled by user'


class WithdrawalService:
    """Enforces the withdrawal rules and lifecycle. Wallet changes go through LedgerService."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger = LedgerService(db)
        self.settings = SettingsService(db)
        self.audit = AuditService(db)

    async def request_withdrawal(
        self,
        user_id: str,
        amount: Decimal,
        pix_key: str,
        pix_key_type: str = 'cpf',
    ) -> WithdrawalRequest:
        """Reserve ``amount`` from winnings and open a pending request."""
        amount = to_amount(amount)
        if not pix_key or not pix_key.strip():
            raise ValidationError('PIX key is required', {'field': 'pix_key'})

        min_amount, max_amount = await self.settings.withdrawal_limits()
        if amount < min_amount or amount > max_amount:
            raise ValidationError(
                f'Withdrawal must be between {min_amount} and {max_amount}',
                {'amount': str(amount), 'min': str(min_amount), 'max': str(max_amount)},
            )

        # Lock first: concurrent requests for the same user serialize on the wallet row
        wallet = await self.ledger.lock_wallet(user_id)
        if wallet.is_blocked:
            raise WalletBlocked(user_id)

        pending = await self.db.scalar(
            select(WithdrawalRequest.id).where(
                WithdrawalRequest.user_id == user_id,
                WithdrawalRequest.status == WithdrawalStatus.PENDING.value,
            ).limit(1)
        )
        if pending is not None:
            raise PendingWithdrawalExists(user_id)

        request = WithdrawalRequest(
            user_id=user_id,
            amount=amount,
            pix_key=pix_key.strip(),
            pix_key_type=pix_key_type,
            status=WithdrawalStatus.PENDING.value,
        )
        self.db.add(request)
        await self.db.flush()

        await self.ledger.reserve_winnings(
            user_id, amount, 'Withdrawal request', f'withdrawal:{request.id}',
        )
        logger.info(f'Withdrawal {request.id} of {amount} requested by {user_id}')
        return request

    async def cancel_or_reject(
        self,
        request_id: int,
        reason: str | None = None,
        *,
        admin_id: str | None = None,
    ) -> WithdrawalRequest:
        """Return the reservation and close the request as rejected.

        Only pending requests qualify; a replay raises InvalidStateTransition
        instead of crediting twice.
        """
        request = await self._lock_request(request_id)
        if request.status != WithdrawalStatus.PENDING.value:
            raise InvalidStateTransition(request_id, request.status)

        await self.ledger.release_winnings(
            request.user_id, request.amount,
            'Withdrawal rejected - refund' if admin_id else 'Withdrawal cancelled by user - refund',
            f'withdrawal:{request.id}',
        )

        request.status = WithdrawalStatus.REJECTED.value
        request.rejection_reason = reason or ('Rejected' if admin_id else CANCELLED_BY_USER)
        request.processed_at = datetime.utcnow()
        if admin_id:
            request.processed_by = admin_id
            request.admin_notes = reason
            await self.audit.log(
                admin_id, 'withdrawal_reject', 'withdrawal', str(request.id),
                {'user_id': request.user_id, 'amount': str(request.amount), 'reason': reason},
            )
        await self.db.flush()
        return request

    async def cancel(self, request_id: int, user_id: str) -> WithdrawalRequest:
        """User-initiated cancellation of their own pending request."""
        request = await self.db.get(WithdrawalRequest, request_id)
        if not request or request.user_id != user_id:
            raise WithdrawalNotFound(request_id)
        return await self.cancel_or_reject(request_id, CANCELLED_BY_USER)

    async def approve(
        self,
        request_id: int,
        admin_id: str,
        notes: str | None = None,
    ) -> WithdrawalRequest:
        """Mark the payout done. Funds already left the wallet at reservation."""
        request = await self._lock_request(request_id)
        if request.status != WithdrawalStatus.PENDING.value:
            raise InvalidStateTransition(request_id, request.status)

        request.status = WithdrawalStatus.APPROVED.value
        request.processed_by = admin_id
        request.processed_at = datetime.utcnow()
        request.admin_notes = notes

        await self.audit.log(
            admin_id, 'withdrawal_approve', 'withdrawal', str(request.id),
            {'user_id': request.user_id, 'amount': str(request.amount), 'notes': notes},
        )
        await self.db.flush()
        return request

    async def get_request(self, request_id: int) -> WithdrawalRequest:
        request = await self.db.get(WithdrawalRequest, request_id)
        if not request:
            raise WithdrawalNotFound(request_id)
        return request

    async def list_requests(
        self,
        user_id: str,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[WithdrawalRequest], int]:
        return await self._list(WithdrawalRequest.user_id == user_id, limit, offset)

    async def list_pending(
        self,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[WithdrawalRequest], int]:
        return await self._list(
            WithdrawalRequest.status == WithdrawalStatus.PENDING.value, limit, offset,
        )

    async def _list(self, condition, limit: int, offset: int) -> tuple[list[WithdrawalRequest], int]:
        total = await self.db.scalar(
            select(func.count()).select_from(WithdrawalRequest).where(condition)
        )
        result = await self.db.execute(
            select(WithdrawalRequest)
            .where(condition)
            .order_by(desc(WithdrawalRequest.created_at), desc(WithdrawalRequest.id))
            .limit(limit).offset(offset)
        )
        return list(result.scalars().all()), total or 0

    async def _lock_request(self, request_id: int) -> WithdrawalRequest:
        result = await self.db.execute(
            select(WithdrawalRequest)
            .where(WithdrawalRequest.id == request_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        request = result.scalar_one_or_none()
        if not request:
            raise WithdrawalNotFound(request_id)
        return request
