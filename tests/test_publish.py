"""
Tests for claim metadata, naming and publishing.
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path

import pytest
from conftest import CHANNEL_CLAIM, make_item

from ytsync.backends.base import ClaimOutput
from ytsync.constants import LICENSE
from ytsync.errors import DaemonRPCError
from ytsync.models import FeeConfig
from ytsync.publishing.metadata import (
    abbreviated_description,
    duration_seconds,
    parse_duration,
    resolve_metadata,
)
from ytsync.publishing.namer import MAX_NAME_ATTEMPTS, Namer, claim_name
from ytsync.publishing.publish import PublishEngine
from ytsync.publishing.tags import BasicTagSanitizer


class TestDuration:
    def test_parse(self) -> None:
        assert parse_duration("PT1H2M3S") == 3723
        assert parse_duration("PT45S") == 45
        assert parse_duration("P1DT1S") == 86401

    def test_rounds_up(self) -> None:
        assert duration_seconds("PT1.2S") == 2

    @pytest.mark.parametrize("value", ["", "PT", "1H", "PTXS"])
    def test_invalid(self, value: str) -> None:
        with pytest.raises(ValueError):
            parse_duration(value)


class TestDescription:
    def test_short_description_unchanged(self) -> None:
        item = make_item(description="line one\nline two")
        assert abbreviated_description(item) == "line one\nline two"

    def test_long_description_abbreviated(self) -> None:
        lines = [f"line {i}" for i in range(15)]
        item = make_item("abc123", description="\n".join(lines))

        text = abbreviated_description(item)
        assert text.startswith("line 0\n")
        assert "line 10" not in text
        assert text.endswith("\n...\nhttps://www.youtube.com/watch?v=abc123")

    def test_channel_note_appended(self) -> None:
        item = make_item("abc123", description="\n".join(["x"] * 12))
        text = abbreviated_description(item, CHANNEL_CLAIM, {CHANNEL_CLAIM: "Support me!"})
        assert text.endswith("watch?v=abc123\nSupport me!")


class TestResolveMetadata:
    def test_full_item(self) -> None:
        item = make_item(
            default_language="en",
            latitude=52.52,
            longitude=13.405,
            tags=["Cats", "cats", "  Funny   Videos "],
            category_id="15",
        )
        languages, locations, tags = resolve_metadata(item, BasicTagSanitizer())
        assert languages == ["en"]
        assert locations[0].latitude == "52.5200000"
        assert tags == ["cats", "funny videos", "pets & animals"]

    def test_record_only_item(self) -> None:
        item = make_item(tags=["cats"], category_id="15", default_language="en", mocked=True)
        languages, locations, tags = resolve_metadata(item, BasicTagSanitizer())
        assert languages is None
        assert locations is None
        assert tags == []


class TestClaimNames:
    def test_claim_name(self) -> None:
        assert claim_name("Hello, World! 2024", "vid") == "hello-world-2024"
        assert claim_name("???", "vid") == "vid"

    def test_next_name_skips_used(self) -> None:
        namer = Namer()
        namer.mark_used("hello")
        assert namer.next_name("Hello", "vid") == "hello-2"

    @pytest.mark.asyncio
    async def test_retries_taken_name(self, daemon) -> None:
        daemon.stream_create.side_effect = [
            DaemonRPCError("stream_create", -32500, "a claim with this name already exists"),
            ClaimOutput(claim_id="c1", name="hello-2"),
        ]
        output = await Namer().publish(
            daemon, "Hello", "vid", Path("f.mp4"), Decimal("0.01"), {}
        )
        assert output.name == "hello-2"
        names = [c.args[0] for c in daemon.stream_create.await_args_list]
        assert names == ["hello", "hello-2"]

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self, daemon) -> None:
        daemon.stream_create.side_effect = DaemonRPCError("stream_create", -1, "not enough funds")
        with pytest.raises(DaemonRPCError, match="not enough funds"):
            await Namer().publish(daemon, "Hello", "vid", Path("f.mp4"), Decimal("0.01"), {})
        assert daemon.stream_create.await_count == 1

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, daemon) -> None:
        daemon.stream_create.side_effect = DaemonRPCError(
            "stream_create", -32500, "a claim with this name already exists"
        )
        namer = Namer()
        with pytest.raises(DaemonRPCError, match="already exists"):
            await namer.publish(daemon, "Hello", "vid", Path("f.mp4"), Decimal("0.01"), {})
        assert daemon.stream_create.await_count == MAX_NAME_ATTEMPTS
        names = [c.args[0] for c in daemon.stream_create.await_args_list]
        assert names[0] == "hello"
        assert names[-1] == f"hello-{MAX_NAME_ATTEMPTS}"
        assert len(set(names)) == MAX_NAME_ATTEMPTS


class TestPublishEngine:
    def engine(self, daemon, **kwargs) -> PublishEngine:
        return PublishEngine(daemon, Namer(), BasicTagSanitizer(), Decimal("0.01"), **kwargs)

    def test_build_options(self, daemon) -> None:
        item = make_item(published_at=datetime(2024, 1, 2, tzinfo=UTC))
        item.thumbnail_url = "https://thumbs.example/vid00000001"

        options = self.engine(daemon).build_options(item, CHANNEL_CLAIM, "bClaimAddress")
        assert options["title"] == "Hello, World! 2024"
        assert options["claim_address"] == "bClaimAddress"
        assert options["channel_id"] == CHANNEL_CLAIM
        assert options["license"] == LICENSE
        assert options["release_time"] == 1704153600
        assert options["thumbnail_url"] == "https://thumbs.example/vid00000001"
        assert "fee_amount" not in options

    def test_fee_options(self, daemon) -> None:
        fee = FeeConfig(amount=Decimal("1.5"), currency="LBC", address="bFeeAddress")
        options = self.engine(daemon, fee=fee).build_options(make_item(), CHANNEL_CLAIM, "b")
        assert options["fee_amount"] == "1.5"
        assert options["fee_currency"] == "LBC"
        assert options["fee_address"] == "bFeeAddress"

    @pytest.mark.asyncio
    async def test_publish(self, daemon) -> None:
        daemon.stream_create.return_value = ClaimOutput(claim_id="c9", name="hello-world-2024")

        summary = await self.engine(daemon).publish(
            make_item(), Path("v.mp4"), CHANNEL_CLAIM, "bClaimAddress"
        )
        assert summary.claim_id == "c9"
        assert summary.claim_name == "hello-world-2024"
        name, bid, path, options = daemon.stream_create.await_args.args
        assert bid == Decimal("0.01")
        assert path == Path("v.mp4")
        assert options["claim_address"] == "bClaimAddress"
