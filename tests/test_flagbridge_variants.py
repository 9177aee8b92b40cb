from __future__ import annotations

import logging
from collections.abc import Callable

import pytest

from flagbridge.mini import mini
from flagbridge.pattern import Pattern, values_of
from flagbridge.store import FlagStore
from flagbridge.variants import select


class _Factories:
    def __init__(self) -> None:
        self.calls: list[str] = []

    def make(self, name: str, source: str) -> Callable[[], Pattern]:
        def build() -> Pattern:
            self.calls.append(name)
            return mini(source)

        return build


def _registry(factories: _Factories) -> dict[str, Callable[[], Pattern]]:
    return {
        "original": factories.make("original", "e3 c4"),
        "techno": factories.make("techno", "<e3 g3>*4"),
        "epiano": factories.make("epiano", "[e3,g3,b3]"),
    }


def test_factory_runs_once_while_selection_holds() -> None:
    factories = _Factories()
    store = FlagStore({"lead": "techno"})
    pattern = select(store, "lead", "original", _registry(factories))

    for cycle in range(8):
        pattern.query_arc(cycle, cycle + 1)

    assert factories.calls == ["techno"]
    assert pattern.resolved is not None
    assert pattern.resolved.name == "techno"


def test_switching_away_and_back_rebuilds() -> None:
    factories = _Factories()
    store = FlagStore({"lead": "techno"})
    pattern = select(store, "lead", "original", _registry(factories))

    pattern.first_cycle()
    store.set("lead", "epiano")
    assert values_of(pattern.first_cycle()) == ["e3", "g3", "b3"]
    store.set("lead", "techno")
    pattern.first_cycle()

    assert factories.calls == ["techno", "epiano", "techno"]


def test_unknown_name_falls_back_to_default() -> None:
    factories = _Factories()
    store = FlagStore({"lead": "dubstep"})
    pattern = select(store, "lead", "original", _registry(factories))

    assert values_of(pattern.first_cycle()) == ["e3", "c4"]
    assert pattern.selected_name() == "original"

    store.set("lead", "original")
    pattern.first_cycle()
    assert factories.calls == ["original"]


def test_missing_variant_and_default_is_silent(caplog: pytest.LogCaptureFixture) -> None:
    store = FlagStore({"lead": "dubstep"})
    pattern = select(store, "lead", "nope", {"original": lambda: mini("e3")})

    with caplog.at_level(logging.WARNING, logger="flagbridge.variants"):
        assert pattern.first_cycle() == []
        assert pattern.first_cycle() == []

    assert caplog.text.count("No variant found") == 1


def test_pattern_entries_are_used_directly() -> None:
    techno = mini("e3 g3")
    pattern = select(FlagStore(), "lead", "techno", {"techno": techno})
    assert pattern.first_cycle() == techno.first_cycle()


def test_non_pattern_factory_results_are_lifted() -> None:
    pattern = select(FlagStore(), "lead", "root", {"root": lambda: "c3"})
    assert values_of(pattern.first_cycle()) == ["c3"]


def test_registry_is_copied() -> None:
    registry = {"original": lambda: mini("e3")}
    pattern = select(FlagStore(), "lead", "original", registry)
    registry["techno"] = lambda: mini("g3")

    assert "techno" not in pattern.registry
    with pytest.raises(TypeError):
        pattern.registry["techno"] = lambda: mini("g3")  # type: ignore[index]


def test_failing_factory_falls_back_to_default(caplog: pytest.LogCaptureFixture) -> None:
    attempts: list[str] = []

    def broken() -> Pattern:
        attempts.append("broken")
        raise RuntimeError("factory failed")

    store = FlagStore({"lead": "broken"})
    pattern = select(store, "lead", "original", {"original": lambda: mini("e3"), "broken": broken})

    with caplog.at_level(logging.ERROR, logger="flagbridge.variants"):
        assert values_of(pattern.first_cycle()) == ["e3"]
        assert values_of(pattern.first_cycle()) == ["e3"]

    assert attempts == ["broken", "broken"]
    assert caplog.text.count("failed to build") == 1
    assert pattern.resolved is not None
    assert pattern.resolved.name == "original"


def test_failing_default_factory_is_silent() -> None:
    def broken() -> Pattern:
        raise RuntimeError("factory failed")

    pattern = select(FlagStore(), "lead", "original", {"original": broken})
    assert pattern.first_cycle() == []
    assert pattern.resolved is None
