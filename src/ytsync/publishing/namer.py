"""
Claim names and the publish-with-retry helper for taken names.
"""

from __future__ import annotations

import re
from decimal import Decimal
from pathlib import Path
from typing import Any

from loguru import logger

from ytsync.backends.base import ClaimOutput, WalletDaemon
from ytsync.errors import DaemonRPCError

MAX_NAME_LENGTH = 40
MAX_NAME_ATTEMPTS = 10

_NON_NAME_CHARS = re.compile(r"[^a-z0-9]+")


def claim_name(title: str, fallback: str) -> str:
    name = _NON_NAME_CHARS.sub("-", title.lower()).strip("-")[:MAX_NAME_LENGTH].rstrip("-")
    return name or fallback


def is_name_taken(error: DaemonRPCError) -> bool:
    message = error.message.lower()
    return "already exists" in message or "name is taken" in message


class Namer:
    """
    Hands out claim names, skipping ones already used in this run.
    """

    def __init__(self) -> None:
        self._used: set[str] = set()

    def next_name(self, title: str, fallback: str, attempt: int = 0) -> str:
        base = claim_name(title, fallback)
        name = base if attempt == 0 else f"{base}-{attempt + 1}"
        while name in self._used:
            attempt += 1
            name = f"{base}-{attempt + 1}"
        return name

    def mark_used(self, name: str) -> None:
        self._used.add(name)

    async def publish(
        self,
        daemon: WalletDaemon,
        title: str,
        fallback: str,
        file_path: Path,
        bid: Decimal,
        options: dict[str, Any],
    ) -> ClaimOutput:
        """
        Publish a stream, retrying under another name when the name is taken.
        """
        attempt = 0
        while True:
            name = self.next_name(title, fallback, attempt)
            try:
                output = await daemon.stream_create(name, bid, file_path, options)
            except DaemonRPCError as e:
                if not is_name_taken(e):
                    raise
                self.mark_used(name)
                attempt += 1
                if attempt >= MAX_NAME_ATTEMPTS:
                    raise
                logger.debug(f"Claim name {name} taken, retrying")
                continue
            self.mark_used(output.name or name)
            return output
