from __future__ import annotations

import pytest

from flagbridge.demo import DEFAULT_FLAGS, LEAD_VARIATIONS, build_demo
from flagbridge.mini import mini
from flagbridge.pattern import Pattern
from flagbridge.providers.static import StaticFlagProvider
from flagbridge.session import FlagBridge
from flagbridge.store import FlagStore
from flagbridge.transport import Transport

BASE = mini("bd sd")


def _ops(bridge: FlagBridge) -> list[Pattern]:
    return [
        bridge.flag("melody", "<0 2 4>"),
        bridge.layered(BASE, "speed", [4, 2]),
        bridge.drum_kit(BASE, "kit", {"bank": "RolandTR909", "gain": 0.8}),
        bridge.bass_sound(BASE, "bass", {"sound": "sawtooth", "lpf": 600}),
        bridge.lead_sound(BASE, "lead", {"sound": "square", "lpq": 2}),
        bridge.gate(BASE, "enabled", True),
        bridge.select("arrangement", "b", {"a": lambda: mini("a"), "b": lambda: mini("b c")}),
    ]


def test_absent_flags_behave_like_explicit_defaults() -> None:
    empty = FlagBridge()
    explicit = FlagBridge(
        FlagStore(
            {
                "melody": "<0 2 4>",
                "speed": [4, 2],
                "kit": {"bank": "RolandTR909", "gain": 0.8},
                "bass": {"sound": "sawtooth", "lpf": 600},
                "lead": {"sound": "square", "lpq": 2},
                "enabled": True,
                "arrangement": "b",
            }
        )
    )
    for implicit, declared in zip(_ops(empty), _ops(explicit)):
        assert implicit.query_arc(0, 3) == declared.query_arc(0, 3)


@pytest.mark.asyncio
async def test_connect_follows_provider_pushes() -> None:
    transport = Transport()
    bridge = FlagBridge(tempo_target=transport)
    provider = StaticFlagProvider({"globalTempo": 120})
    await bridge.connect(provider)

    bridge.sync_tempo("globalTempo", 110, 4)
    assert transport.cpm == 30.0

    provider.push({"globalTempo": 100})
    assert transport.cpm == 25.0

    bridge.close()
    provider.push({"globalTempo": 160})
    assert transport.cpm == 25.0


@pytest.mark.asyncio
async def test_demo_arrangement_reacts_to_flags() -> None:
    transport = Transport()
    bridge = FlagBridge(tempo_target=transport)
    provider = StaticFlagProvider(DEFAULT_FLAGS)
    await bridge.connect(provider)

    arrangement = build_demo(bridge)
    haps = arrangement.onsets(0, 1)
    assert transport.cpm == pytest.approx(27.5)
    assert any(hap.value.get("bank") == "RolandTR808" for hap in haps)

    provider.push({"drums-enabled": False, "leadArrangement": "techno"})
    haps = arrangement.onsets(0, 1)
    assert not any("bank" in hap.value for hap in haps)
    assert set(LEAD_VARIATIONS) == {"original", "techno", "epiano"}
