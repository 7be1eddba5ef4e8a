"""
ytsync CLI using Typer.
"""

from __future__ import annotations

import asyncio
import sys
from contextlib import AsyncExitStack
from decimal import Decimal
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger
from pydantic import ValidationError

from ytsync.backends.lbrynet import LbrynetBackend
from ytsync.config import Settings, SyncConfig, WalletPolicy, get_settings
from ytsync.errors import YtSyncError
from ytsync.media.download import VideoDownloadPipeline, YtDlpCliFallback, YtDlpDownloader
from ytsync.media.thumbnails import HttpThumbnailMirror
from ytsync.models import NetworkType, RecordStats
from ytsync.publishing.channel import ChannelOwnershipManager
from ytsync.publishing.namer import Namer
from ytsync.publishing.publish import PublishEngine
from ytsync.publishing.reprocess import ReprocessEngine
from ytsync.publishing.tags import BasicTagSanitizer
from ytsync.sources.youtube import YouTubeDataAPI
from ytsync.store import JsonRecordStore
from ytsync.sync import ChannelSync, SyncResult
from ytsync.wallet.accounts import enable_address_reuse, resolve_default_account
from ytsync.wallet.capacity import WalletCapacityManager, plan_capacity
from ytsync.wallet.confirmations import ConfirmationWaiter
from ytsync.wallet.funding import LbrycrdFunding, WalletFunder
from ytsync.wallet.locks import AccountLocks

app = typer.Typer(
    name="ytsync",
    help="Sync a source video channel to an LBRY channel",
    add_completion=False,
)


def setup_logging(level: str = "INFO") -> None:
    """Configure loguru logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )


def load_sync_config(path: Path, network: NetworkType) -> SyncConfig:
    """Load a channel config file; the network always comes from settings."""
    if not path.exists():
        raise ValueError(f"Config file not found: {path}")
    config = SyncConfig.model_validate_json(path.read_text(encoding="utf-8"))
    return config.model_copy(update={"network": network})


async def run_sync(
    config: SyncConfig,
    settings: Settings,
    concurrency: int = 1,
    confirmation_timeout: float | None = None,
) -> SyncResult:
    async with AsyncExitStack() as stack:
        daemon = LbrynetBackend(rpc_url=settings.lbrynet_url)
        stack.push_async_callback(daemon.close)
        funding = LbrycrdFunding(
            rpc_url=settings.lbrycrd_url,
            rpc_user=settings.lbrycrd_user,
            rpc_password=settings.lbrycrd_password,
            regtest=config.network == NetworkType.REGTEST,
        )
        stack.push_async_callback(funding.close)
        source = YouTubeDataAPI(settings.youtube_api_key, settings.youtube_api_url)
        stack.push_async_callback(source.close)
        mirror = HttpThumbnailMirror(settings.thumbnail_mirror_url, settings.thumbnail_endpoint)
        stack.push_async_callback(mirror.close)

        await enable_address_reuse(daemon, config.network)
        account = await resolve_default_account(daemon, config.network)

        store = JsonRecordStore(
            settings.data_dir / f"{config.source_channel_id}.json", config.source_channel_id
        )
        sanitizer = BasicTagSanitizer()
        guard = AccountLocks().for_account(account.id)
        funder = WalletFunder(daemon, account, funding, config.wallet.refill_settle_seconds)

        ownership = ChannelOwnershipManager(
            daemon, config, source, mirror, sanitizer, store, funder
        )
        capacity = WalletCapacityManager(
            daemon=daemon,
            account=account,
            config=config,
            ownership=ownership,
            source=source,
            store=store,
            funder=funder,
            waiter=ConfirmationWaiter(daemon, generator=funding),
            guard=guard,
            confirmation_timeout=confirmation_timeout,
        )
        downloads = VideoDownloadPipeline(
            config.download_dir,
            YtDlpDownloader(),
            YtDlpCliFallback(),
            max_size=config.max_video_size_bytes,
            max_length_hours=config.max_video_length_hours,
        )
        publisher = PublishEngine(
            daemon, Namer(), sanitizer, config.claim_bid, config.fee, config.description_notes
        )
        reprocessor = ReprocessEngine(
            daemon, mirror, sanitizer, config.fee, config.description_notes
        )

        sync = ChannelSync(
            config=config,
            source=source,
            store=store,
            capacity=capacity,
            ownership=ownership,
            downloads=downloads,
            mirror=mirror,
            publisher=publisher,
            reprocessor=reprocessor,
            guard=guard,
            concurrency=concurrency,
        )
        return await sync.run()


@app.command()
def sync(
    config_file: Annotated[Path, typer.Argument(help="Channel config (JSON)")],
    concurrency: Annotated[int, typer.Option(min=1, help="Videos processed in parallel")] = 1,
    confirmation_timeout: Annotated[
        float | None,
        typer.Option(help="Give up waiting for a block after this many seconds"),
    ] = None,
    log_level: Annotated[str | None, typer.Option(envvar="LOG_LEVEL")] = None,
) -> None:
    """Sync one channel."""
    settings = get_settings()
    setup_logging(log_level or settings.log_level)

    try:
        config = load_sync_config(config_file, settings.network)
    except (ValueError, ValidationError) as e:
        logger.error(str(e))
        raise typer.Exit(1)

    try:
        result = asyncio.run(run_sync(config, settings, concurrency, confirmation_timeout))
    except YtSyncError as e:
        logger.error(f"Sync aborted: {e}")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted")
        raise typer.Exit(130)

    for video_id, error in result.failed.items():
        typer.echo(f"{video_id}: {error}", err=True)
    if result.failed:
        raise typer.Exit(2)


@app.command()
def status(
    log_level: Annotated[str | None, typer.Option(envvar="LOG_LEVEL")] = None,
) -> None:
    """Show wallet sync status and balance."""
    settings = get_settings()
    setup_logging(log_level or settings.log_level)

    async def fetch() -> tuple[int, int, Decimal | None]:
        daemon = LbrynetBackend(rpc_url=settings.lbrynet_url)
        try:
            daemon_status = await daemon.status()
            balance = await daemon.account_balance()
        finally:
            await daemon.close()
        return daemon_status.blocks, daemon_status.blocks_behind, balance

    try:
        blocks, behind, balance = asyncio.run(fetch())
    except Exception as e:
        logger.error(f"Could not reach lbrynet at {settings.lbrynet_url}: {e}")
        raise typer.Exit(1)

    typer.echo(f"Blocks: {blocks} ({behind} behind)")
    typer.echo(f"Available balance: {balance if balance is not None else 'unknown'} LBC")


@app.command("plan-capacity")
def plan_capacity_cmd(
    balance: Annotated[str, typer.Option(help="Current balance in LBC")],
    videos: Annotated[int, typer.Option(help="Videos on the source channel")],
    published: Annotated[int, typer.Option(help="Videos already published")] = 0,
    failed: Annotated[int, typer.Option(help="Videos that failed")] = 0,
    not_upgraded: Annotated[int, typer.Option(help="Published on legacy metadata")] = 0,
    videos_limit: Annotated[int, typer.Option(help="Workload cap")] = 1000,
    channel_claimed: Annotated[bool, typer.Option(help="Channel claim exists")] = True,
    upgrade_metadata: Annotated[bool, typer.Option()] = False,
    refill: Annotated[str, typer.Option(help="Extra top-up in LBC")] = "0",
) -> None:
    """Print the refill decision for the given numbers without touching the wallet."""
    plan = plan_capacity(
        balance=Decimal(balance),
        item_count=videos,
        stats=RecordStats(published=published, failed=failed, not_upgraded=not_upgraded),
        policy=WalletPolicy(),
        videos_limit=videos_limit,
        channel_claimed=channel_claimed,
        upgrade_metadata=upgrade_metadata,
        top_up=Decimal(refill),
    )
    typer.echo(f"Unallocated videos: {plan.unallocated}")
    typer.echo(f"Required balance: {plan.required}")
    typer.echo(f"Refill: {plan.refill}")


def main() -> None:  # pragma: no cover
    app()
