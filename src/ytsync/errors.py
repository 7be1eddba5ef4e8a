"""
Exception taxonomy for channel syncs.

Integrity faults between local records and ledger state are never repaired
automatically; they need manual correction of the record store.
"""

from __future__ import annotations


class YtSyncError(Exception):
    """Base class for every error raised by ytsync."""


class ConfigurationError(YtSyncError):
    """Required identity or configuration is missing."""


class NoDaemonResponse(YtSyncError):
    """The daemon returned no data for a call that expects data."""

    def __init__(self, method: str):
        super().__init__(f"no response from daemon for {method}")
        self.method = method


class DaemonRPCError(YtSyncError):
    """A JSON-RPC server answered with an error object."""

    def __init__(self, method: str, code: int | str, message: str):
        super().__init__(f"RPC error {code} in {method}: {message}")
        self.method = method
        self.code = code
        self.message = message


class SourceNotFound(YtSyncError):
    """The source platform does not know the requested channel."""


class IntegrityError(YtSyncError):
    """Local records disagree with ledger state."""


class OwnershipMismatch(IntegrityError):
    pass


class MissingRecordedClaim(IntegrityError):
    pass


class RecordedClaimMissing(IntegrityError):
    pass


class ChannelAbandoned(IntegrityError):
    pass


class ClaimNotFound(IntegrityError):
    pass


class AmbiguousClaim(IntegrityError):
    pass


class UnsuitableContent(YtSyncError):
    """The source item can never be synced; skip it permanently."""


class NoCompatibleFormat(UnsuitableContent):
    pass


class ContentTooLong(UnsuitableContent):
    pass


class SizeExceeded(YtSyncError):
    """A downloaded format was larger than the configured maximum."""

    def __init__(self, format_id: str, size: int, limit: int):
        super().__init__(f"format {format_id} is {size} bytes, limit is {limit}")
        self.format_id = format_id
        self.size = size
        self.limit = limit


class FormatsExhausted(YtSyncError):
    """Every attempted format exceeded the size limit."""

    def __init__(self, attempts: list[SizeExceeded]):
        sizes = ", ".join(f"{a.format_id}={a.size}" for a in attempts)
        super().__init__(f"file is too big and there is no other format available ({sizes})")
        self.attempts = attempts


class DownloadError(YtSyncError):
    """A download attempt failed for a reason other than size."""


class FallbackExhausted(YtSyncError):
    """The primary downloader and the fallback tool both failed."""

    def __init__(self, primary: Exception, fallback: Exception):
        super().__init__(f"primary downloader failed ({primary}); fallback failed ({fallback})")
        self.primary = primary
        self.fallback = fallback


class NoThumbnail(YtSyncError):
    """No usable thumbnail for a video."""


class MustRepublish(YtSyncError):
    """The claim cannot be updated in place; a full republish is required."""


class ConfirmationTimeout(YtSyncError):
    """The deadline passed before a new block was seen."""


class WaitCancelled(YtSyncError):
    """A confirmation wait was cancelled by its caller."""


class StageError(YtSyncError):
    """An error labelled with the pipeline stage it came from."""

    def __init__(self, stage: str, cause: Exception):
        super().__init__(f"{stage}: {cause}")
        self.stage = stage
        self.cause = cause
