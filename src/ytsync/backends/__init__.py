"""
Wallet daemon backends.

Available backends:
- LbrynetBackend: lbrynet JSON-RPC API
"""

from ytsync.backends.base import (
    Account,
    Claim,
    ClaimOutput,
    DaemonStatus,
    UnspentOutput,
    WalletDaemon,
)
from ytsync.backends.lbrynet import LbrynetBackend

__all__ = [
    "Account",
    "Claim",
    "ClaimOutput",
    "DaemonStatus",
    "LbrynetBackend",
    "UnspentOutput",
    "WalletDaemon",
]
