from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

import pytest

from flagbridge.errors import ProviderInitError
from flagbridge.providers.base import ChangeCallback
from flagbridge.providers.static import StaticFlagProvider
from flagbridge.store import FlagChange, FlagStore


class _FailingProvider:
    def __init__(self) -> None:
        self.subscribed = False
        self.closed = False

    async def start(self) -> Mapping[str, Any]:
        raise RuntimeError("network unreachable")

    def subscribe(self, callback: ChangeCallback) -> None:
        self.subscribed = True

    def close(self) -> None:
        self.closed = True


def test_get_falls_back_to_default() -> None:
    store = FlagStore({"present": 1, "cleared": None})
    assert store.get("present", 5) == 1
    assert store.get("missing", 5) == 5
    assert store.get("cleared", 5) == 5
    assert store.read("missing") is None
    assert "cleared" in store


def test_apply_changes_updates_then_publishes() -> None:
    store = FlagStore({"tempo": 100})
    seen: list[tuple[FlagChange, Any]] = []
    store.changes.subscribe(lambda change: seen.append((change, store.get(change.key))))

    store.apply_changes({"tempo": {"current": 120}, "kit": "RolandTR909"})

    assert [change.key for change, _ in seen] == ["tempo", "kit"]
    first, value_during_publish = seen[0]
    assert first.previous == 100
    assert first.current == 120
    assert value_during_publish == 120
    assert store.get("kit") == "RolandTR909"


def test_keyed_listeners_only_see_their_key() -> None:
    store = FlagStore()
    seen: list[str] = []
    subscription = store.changes.subscribe(lambda change: seen.append(change.key), key="a")

    store.set("b", 1)
    store.set("a", 1)
    assert seen == ["a"]
    assert store.changes.listener_count("a") == 1

    subscription.close()
    assert not subscription.active
    store.set("a", 2)
    assert seen == ["a"]


def test_failing_listener_does_not_block_others(caplog: pytest.LogCaptureFixture) -> None:
    store = FlagStore()
    seen: list[str] = []

    def explode(change: FlagChange) -> None:
        raise RuntimeError("boom")

    store.changes.subscribe(explode)
    store.changes.subscribe(lambda change: seen.append(change.key))

    with caplog.at_level(logging.WARNING, logger="flagbridge.store"):
        store.set("a", 1)

    assert seen == ["a"]
    assert "Change listener" in caplog.text


def test_snapshot_is_read_only() -> None:
    store = FlagStore({"a": 1})
    snapshot = store.snapshot()
    with pytest.raises(TypeError):
        snapshot["a"] = 2  # type: ignore[index]
    store.set("a", 3)
    assert snapshot["a"] == 1


@pytest.mark.asyncio
async def test_initialize_merges_snapshot_and_follows_changes() -> None:
    store = FlagStore({"local": True})
    provider = StaticFlagProvider({"tempo": 110})

    await store.initialize(provider)

    assert store.initialized
    assert store.get("tempo") == 110
    assert store.get("local") is True

    provider.push({"tempo": 140})
    assert store.get("tempo") == 140


@pytest.mark.asyncio
async def test_initialize_twice_is_a_no_op() -> None:
    store = FlagStore()
    await store.initialize(StaticFlagProvider({"tempo": 110}))
    await store.initialize(StaticFlagProvider({"tempo": 90}))
    assert store.get("tempo") == 110


@pytest.mark.asyncio
async def test_initialize_failure_leaves_store_untouched(caplog: pytest.LogCaptureFixture) -> None:
    store = FlagStore({"tempo": 100})
    provider = _FailingProvider()

    with caplog.at_level(logging.ERROR, logger="flagbridge.store"):
        with pytest.raises(ProviderInitError) as excinfo:
            await store.initialize(provider)

    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert not store.initialized
    assert not provider.subscribed
    assert provider.closed
    assert store.snapshot() == {"tempo": 100}
    assert "failed to initialize" in caplog.text


@pytest.mark.asyncio
async def test_changes_from_other_threads_land_on_the_loop() -> None:
    store = FlagStore()
    provider = StaticFlagProvider({"tempo": 110})
    await store.initialize(provider)

    await asyncio.to_thread(provider.push, {"tempo": 125})
    await asyncio.sleep(0)

    assert store.get("tempo") == 125


@pytest.mark.asyncio
async def test_close_stops_following_provider() -> None:
    store = FlagStore()
    provider = StaticFlagProvider({"tempo": 110})
    await store.initialize(provider)

    store.close()
    provider.push({"tempo": 60})

    assert store.get("tempo") == 110
    assert not store.initialized
