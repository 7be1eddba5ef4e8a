"""
Wallet capacity: funding, confirmations, spend locking and output splitting.
"""

from ytsync.wallet.accounts import enable_address_reuse, resolve_default_account
from ytsync.wallet.capacity import (
    CapacityPlan,
    CapacityReport,
    UtxoReport,
    WalletCapacityManager,
    plan_capacity,
)
from ytsync.wallet.confirmations import ConfirmationWaiter
from ytsync.wallet.funding import FundingSource, LbrycrdFunding, WalletFunder
from ytsync.wallet.locks import AccountLocks, SpendGuard

__all__ = [
    "AccountLocks",
    "CapacityPlan",
    "CapacityReport",
    "ConfirmationWaiter",
    "FundingSource",
    "LbrycrdFunding",
    "SpendGuard",
    "UtxoReport",
    "WalletCapacityManager",
    "WalletFunder",
    "enable_address_reuse",
    "plan_capacity",
    "resolve_default_account",
]
