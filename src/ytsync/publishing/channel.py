"""
Channel claim ownership.

The recorded channel claim id is the identity check for every later call:
a wallet that holds claims must hold exactly the recorded one, under the
configured name. Mismatches are reported, never repaired.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from loguru import logger

from ytsync.backends.base import Claim, WalletDaemon
from ytsync.config import SyncConfig
from ytsync.errors import (
    ChannelAbandoned,
    ConfigurationError,
    MissingRecordedClaim,
    NoDaemonResponse,
    OwnershipMismatch,
    RecordedClaimMissing,
)
from ytsync.media.thumbnails import ThumbnailMirror, best_thumbnail
from ytsync.models import Location, TransferState
from ytsync.publishing.tags import TagSanitizer
from ytsync.sources.base import SourcePlatform
from ytsync.store import RecordStore

if TYPE_CHECKING:
    from ytsync.wallet.funding import WalletFunder

# Legacy language codes still returned by the source platform
LANGUAGE_ALIASES = {"iw": "he"}


class ChannelOwnershipManager:
    """
    Makes sure the channel claim exists, is ours and carries current metadata.
    """

    def __init__(
        self,
        daemon: WalletDaemon,
        config: SyncConfig,
        source: SourcePlatform,
        mirror: ThumbnailMirror,
        sanitizer: TagSanitizer,
        store: RecordStore,
        funder: WalletFunder,
    ):
        self.daemon = daemon
        self.config = config
        self.source = source
        self.mirror = mirror
        self.sanitizer = sanitizer
        self.store = store
        self.funder = funder
        self.claim_id = config.channel_claim_id or store.get_channel().claim_id

    async def find_owned_channel(self) -> Claim | None:
        """
        Check wallet claims against the recorded claim id.

        Returns:
            The owned channel claim, or None if the wallet holds no channels
        """
        channels = await self.daemon.channel_list()
        if channels is None:
            raise NoDaemonResponse("channel_list")

        if not channels:
            if self.config.transfer_state == TransferState.COMPLETE:
                raise ChannelAbandoned(
                    "the channel was transferred but appears to have been abandoned!"
                )
            if self.claim_id:
                raise RecordedClaimMissing(
                    f"the database has a channel recorded ({self.claim_id}) "
                    "but nothing was found in our control"
                )
            return None

        if not self.claim_id:
            raise MissingRecordedClaim(
                "this channel does not have a recorded claimID in the database. To prevent "
                "failures, updates are not supported until an entry is manually added"
            )
        for channel in channels:
            logger.debug(f"checking listed channel {channel.claim_id} ({channel.name})")
            if channel.claim_id != self.claim_id:
                continue
            if channel.name != self.config.channel_name:
                raise OwnershipMismatch(
                    "the channel in the wallet is different than the channel in the database"
                )
            return channel
        raise OwnershipMismatch(
            "this wallet has channels but not a single one is ours! "
            f"Expected claim_id: {self.claim_id} ({self.config.channel_name})"
        )

    async def ensure_ownership(self) -> str:
        """
        Create the channel claim, or upgrade its legacy metadata.

        Idempotent: an owned channel with a thumbnail is left untouched.

        Returns:
            The channel claim id
        """
        if not self.config.channel_name:
            raise ConfigurationError("no channel name set")

        channel = await self.find_owned_channel()
        if channel is not None and channel.has_thumbnail:
            return channel.claim_id
        uses_old_metadata = channel is not None

        bid = self.config.wallet.channel_claim_amount
        balance = await self.daemon.account_balance()
        if balance is None:
            raise NoDaemonResponse("account_balance")
        if balance < bid:
            await self.funder.add_credits(bid + self.config.wallet.channel_bid_margin)

        options = await self._channel_options()
        if uses_old_metadata:
            logger.info(f"Upgrading metadata of channel {self.claim_id}")
            output = await self.daemon.channel_update(self.claim_id, options, clear=True)
        else:
            logger.info(f"Creating channel {self.config.channel_name}")
            output = await self.daemon.channel_create(self.config.channel_name, bid, options)

        self.claim_id = output.claim_id
        self.store.set_channel_claim_id(self.claim_id)
        return self.claim_id

    async def _channel_options(self) -> dict[str, Any]:
        channel_id = self.config.source_channel_id
        snippet = await self.source.get_channel_snippet(channel_id)

        thumbnail = best_thumbnail(snippet.thumbnails)
        options: dict[str, Any] = {
            "title": snippet.title,
            "description": snippet.description,
            "tags": self.sanitizer.tags_for_channel(channel_id),
            "thumbnail_url": await self.mirror.mirror(thumbnail.url, channel_id),
        }
        if snippet.banner_url:
            options["cover_url"] = await self.mirror.mirror(
                snippet.banner_url, f"banner-{channel_id}"
            )
        if snippet.default_language:
            language = LANGUAGE_ALIASES.get(snippet.default_language, snippet.default_language)
            options["languages"] = [language]
        if snippet.country:
            options["locations"] = [Location(country=snippet.country).to_rpc()]
        return options
