"""Domain errors raised by the wallet, credits and withdrawal services.

Every error carries a stable ``code``, the HTTP status the API layer maps it
to, and a ``details`` dict with the structured data a caller needs to explain
the failure (e.g. available vs. required amounts).
"""
from decimal import Decimal
from typing import Any


class LedgerError(Exception):
    """Base class for all domain errors."""

    code = 'LEDGER_ERROR'
    status_code = 400
    # Internal errors render a generic message without details
    public = True

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class WalletNotFound(LedgerError):
    """A valid user has no wallet row. Invariant violation, not user error."""

    code = 'WALLET_NOT_FOUND'
    status_code = 404
    public = False

    def __init__(self, user_id: str, message: str | None = None):
        self.user_id = user_id
        super().__init__(message or f'Wallet for user {user_id} not found', {'user_id': user_id})


class RevenueAccountNotConfigured(WalletNotFound):
    code = 'REVENUE_ACCOUNT_NOT_CONFIGURED'

    def __init__(self):
        super().__init__('', 'Platform revenue account is not configured')


class CreditsNotFound(LedgerError):
    code = 'CREDITS_NOT_FOUND'
    status_code = 404

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f'Credits record for user {user_id} not found', {'user_id': user_id})


class WithdrawalNotFound(LedgerError):
    code = 'WITHDRAWAL_NOT_FOUND'
    status_code = 404

    def __init__(self, request_id: int):
        super().__init__(f'Withdrawal request {request_id} not found', {'request_id': request_id})


class WalletBlocked(LedgerError):
    code = 'WALLET_BLOCKED'
    status_code = 403

    def __init__(self, user_id: str):
        super().__init__('Wallet is blocked', {'user_id': user_id})


class InsufficientFunds(LedgerError):
    """Eligible buckets cannot cover the requested amount."""

    code = 'INSUFFICIENT_FUNDS'

    def __init__(
        self,
        available: Decimal,
        required: Decimal,
        excluded_buckets: list[str] | None = None,
    ):
        self.available = available
        self.required = required
        self.excluded_buckets = excluded_buckets or []
        message = f'Insufficient funds: available {available}, required {required}'
        if self.excluded_buckets:
            message += f' ({", ".join(self.excluded_buckets)} not eligible)'
        super().__init__(message, {
            'available': str(available),
            'required': str(required),
            'excluded_buckets': self.excluded_buckets,
        })


class InvalidAmount(LedgerError):
    code = 'INVALID_AMOUNT'

    def __init__(self, amount: Any):
        super().__init__(f'Invalid amount: {amount}', {'amount': str(amount)})


class InsufficientCredits(LedgerError):
    code = 'INSUFFICIENT_CREDITS'

    def __init__(self, available: int, required: int = 1):
        super().__init__(
            'Insufficient credits',
            {'available': available, 'required': required},
        )


class AlreadyClaimedToday(LedgerError):
    code = 'ALREADY_CLAIMED_TODAY'
    status_code = 409

    def __init__(self, user_id: str):
        super().__init__('Daily free credit already claimed today', {'user_id': user_id})


class ConcurrentModification(LedgerError):
    """Row stayed contended after all retries. Transient; retry with backoff."""

    code = 'CONCURRENT_MODIFICATION'
    status_code = 409
    public = False

    def __init__(self, message: str = 'Concurrent modification, try again'):
        super().__init__(message)


class ValidationError(LedgerError):
    code = 'VALIDATION_ERROR'
    status_code = 422


class PendingWithdrawalExists(LedgerError):
    code = 'PENDING_WITHDRAWAL_EXISTS'
    status_code = 409

    def __init__(self, user_id: str):
        super().__init__('A withdrawal request is already pending', {'user_id': user_id})


class InvalidStateTransition(LedgerError):
    code = 'INVALID_STATE_TRANSITION'
    status_code = 409

    def __init__(self, request_id: int, status: str):
        super().__init__(
            f'Withdrawal request {request_id} is already {status}',
            {'request_id': request_id, 'status': status},
        )


class PermissionDenied(LedgerError):
    code = 'PERMISSION_DENIED'
    status_code = 403
