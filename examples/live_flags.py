"""Flip flags while the demo arrangement plays, printing each cycle's onsets."""

from __future__ import annotations

import asyncio
from pathlib import Path

from flagbridge import FlagBridge, StaticFlagProvider, Transport
from flagbridge.demo import build_demo

FLAGS_FILE = Path(__file__).with_name("flags.json")

CHANGES = [
    {"leadArrangement": "epiano"},
    {"drums-enabled": False, "globalTempo": 90},
    {"melodySpeed": 16, "drum-kit-settings": {"bank": "RolandTR808", "gain": 1.5}},
]


async def main() -> None:
    transport = Transport()
    provider = StaticFlagProvider.from_file(FLAGS_FILE)
    bridge = FlagBridge(tempo_target=transport)
    await bridge.connect(provider)
    arrangement = build_demo(bridge)
    try:
        for cycle, change in enumerate([{}, *CHANGES]):
            provider.push(change)
            haps = arrangement.onsets(cycle, cycle + 1)
            print(f"cycle {cycle} @ {transport.cpm:g} cpm: {len(haps)} onsets")
            for hap in haps[:6]:
                print("   ", hap.whole_or_part(), hap.value)
    finally:
        bridge.close()


if __name__ == "__main__":
    asyncio.run(main())
