"""
Account resolution and wallet setup, done once at startup.
"""

from __future__ import annotations

from loguru import logger

from ytsync.backends.base import Account, WalletDaemon
from ytsync.errors import ConfigurationError, NoDaemonResponse
from ytsync.models import NetworkType

CHANGE_MAX_USES = 1000
RECEIVING_MAX_USES = 100


async def _ledger_accounts(daemon: WalletDaemon, network: NetworkType) -> list[Account]:
    accounts = await daemon.account_list()
    if accounts is None:
        raise NoDaemonResponse("account_list")
    return [a for a in accounts if a.ledger == network.ledger]


async def resolve_default_account(daemon: WalletDaemon, network: NetworkType) -> Account:
    """Find the default account on the network's ledger."""
    for account in await _ledger_accounts(daemon, network):
        if account.is_default:
            logger.debug(f"Using default account {account.id} ({network.ledger})")
            return account
    raise ConfigurationError(f"no default account found on {network.ledger}")


async def enable_address_reuse(daemon: WalletDaemon, network: NetworkType) -> int:
    """
    Let every account on the ledger reuse addresses.

    Returns:
        Number of accounts updated
    """
    accounts = await _ledger_accounts(daemon, network)
    for account in accounts:
        await daemon.account_set(
            account.id,
            change_max_uses=CHANGE_MAX_USES,
            receiving_max_uses=RECEIVING_MAX_USES,
        )
    logger.debug(f"Enabled address reuse on {len(accounts)} account(s)")
    return len(accounts)
