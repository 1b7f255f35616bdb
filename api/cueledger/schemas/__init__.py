from cueledger.schemas.wallet import (
    WalletResponse, TransactionEntry, TransactionPage, WithdrawableResponse,
    WalletAdjust, WalletBlock,
)
from cueledger.schemas.credits import (
    CreditsResponse, DailyGrantResponse, CreditPurchase, CreditUse,
    CreditsAdjust, CreditsUnlimited, BonusRecordEntry,
)
from cueledger.schemas.withdrawal import (
    WithdrawalCreate, WithdrawalReject, WithdrawalApprove, WithdrawalResponse,
    WithdrawalPage,
)
from cueledger.schemas.admin import SettingUpdate, AdminLogEntry, AdminLogPage

__all__ = [
    'WalletResponse',
    'TransactionEntry',
    'TransactionPage',
    'WithdrawableResponse',
    'WalletAdjust',
    'WalletBlock',
    'CreditsResponse',
    'DailyGrantResponse',
    'CreditPurchase',
    'CreditUse',
    'CreditsAdjust',
    'CreditsUnlimited',
    'BonusRecordEntry',
    'WithdrawalCreate',
    'WithdrawalReject',
    'WithdrawalApprove',
    'WithdrawalResponse',
    'WithdrawalPage',
    'SettingUpdate',
    'AdminLogEntry',
    'AdminLogPage',
]
