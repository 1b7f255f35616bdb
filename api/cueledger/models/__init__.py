from cueledger.models.wallet import Wallet, Bucket
from cueledger.models.ledger import Transaction, TransactionType, BalanceType
from cueledger.models.credits import Credits, BonusRecord, BonusType, AmountType
from cueledger.models.withdrawal import WithdrawalRequest, WithdrawalStatus
from cueledger.models.admin_log import AdminLog
from cueledger.models.revenue import PlatformRevenue
from cueledger.models.setting import SystemSetting

__all__ = [
    'Wallet',
    'Bucket',
    'Transaction',
    'TransactionType',
    'BalanceType',
    'Credits',
    'BonusRecord',
    'BonusType',
    'AmountType',
    'WithdrawalRequest',
    'WithdrawalStatus',
    'AdminLog',
    'PlatformRevenue',
    'SystemSetting',
]
