from __future__ import annotations

import logging

import pytest

from flagbridge.mini import mini
from flagbridge.pattern import Pattern, values_of
from flagbridge.scalar import resolve
from flagbridge.store import FlagStore


class _CountingParser:
    def __init__(self) -> None:
        self.calls: list[str] = []

    def __call__(self, source: str) -> Pattern:
        self.calls.append(source)
        return mini(source)


def test_absent_flag_plays_default() -> None:
    pattern = resolve(FlagStore(), "root", "c")
    assert values_of(pattern.first_cycle()) == ["c"]


def test_absent_flag_matches_explicit_default() -> None:
    empty = resolve(FlagStore(), "melody", "<0 2 4>")
    explicit = resolve(FlagStore({"melody": "<0 2 4>"}), "melody", "<0 2 4>")
    assert empty.query_arc(0, 3) == explicit.query_arc(0, 3)


def test_plain_values_are_lifted() -> None:
    store = FlagStore({"degree": 3})
    assert values_of(resolve(store, "degree", 0).first_cycle()) == [3]


def test_mini_notation_follows_the_flag() -> None:
    store = FlagStore({"melody": "<0 2>"})
    pattern = resolve(store, "melody", "0")

    assert values_of(pattern.onsets(0, 1)) == [0]
    store.set("melody", "<7 9>")
    assert values_of(pattern.onsets(0, 1)) == [7]


def test_parse_happens_once_per_distinct_text() -> None:
    parser = _CountingParser()
    store = FlagStore({"melody": "<0 2 4>"})
    pattern = resolve(store, "melody", parser=parser)

    for cycle in range(4):
        pattern.query_arc(cycle, cycle + 1)
    assert parser.calls == ["<0 2 4>"]

    store.set("melody", "<0 4>")
    pattern.first_cycle()
    pattern.first_cycle()
    assert parser.calls == ["<0 2 4>", "<0 4>"]
    assert pattern.cache.misses == 2


def test_parse_failure_falls_back_without_caching(caplog: pytest.LogCaptureFixture) -> None:
    parser = _CountingParser()
    store = FlagStore({"melody": "<0 2>"})
    pattern = resolve(store, "melody", parser=parser)
    pattern.first_cycle()

    store.set("melody", "[0 2")
    with caplog.at_level(logging.ERROR, logger="flagbridge.scalar"):
        assert values_of(pattern.first_cycle()) == ["[0 2"]
        assert values_of(pattern.first_cycle()) == ["[0 2"]

    assert parser.calls == ["<0 2>", "[0 2", "[0 2"]
    assert caplog.text.count("Failed to parse") == 1
    assert pattern.cache.key == "<0 2>"

    store.set("melody", "<0 2>")
    pattern.first_cycle()
    assert parser.calls == ["<0 2>", "[0 2", "[0 2"]
