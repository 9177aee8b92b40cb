"""Demo arrangement wired entirely through flags.

Every part reads its settings from the flags below, so pushing new values to
the provider reshapes the arrangement on the next query:

    globalTempo          tempo in BPM (divided by 4 into cycles per minute)
    drum-kit-settings    drum bundle, e.g. {"bank": "RolandTR909", "gain": 0.8}
    drums-enabled        mute/unmute the drums
    bass-sound-settings  bass bundle, e.g. {"sound": "sawtooth", "lpf": 600}
    melody               mini-notation for the melody degrees
    melodySpeed          melody speed, or a list of speeds to layer
    melody-enabled       mute/unmute the melody
    leadArrangement      name of the lead variant to play
    lead-synth-settings  lead bundle
"""

from __future__ import annotations

from collections.abc import Mapping

from .controls import n, note, s
from .pattern import Pattern, stack
from .session import FlagBridge
from .variants import VariantEntry

LEAD_VARIATIONS: Mapping[str, VariantEntry] = {
    "original": lambda: note("<[[e3,b3] ~ c4 ~] [e3 ~ f3 c4] [~ c4 a4 ~] [~ ~ ~ ~]>"),
    "techno": lambda: note("<e3 g3 e3 b3 a3>*4"),
    "epiano": lambda: note("<[e3,g3,b3] [c3,e3,g3]>"),
}

DEFAULT_FLAGS: Mapping[str, object] = {
    "globalTempo": 110,
    "drums-enabled": True,
    "melody-enabled": True,
    "melody": "<0 2 0 4 9 7>",
    "melodySpeed": [4, 2],
    "leadArrangement": "original",
}


def build_demo(bridge: FlagBridge) -> Pattern:
    tempo = bridge.sync_tempo("globalTempo", 110, 4)
    drums = bridge.gate(
        bridge.drum_kit(s("bd sd [~ bd] sd, hh*8"), "drum-kit-settings"),
        "drums-enabled",
    )
    bass = bridge.gate(
        bridge.bass_sound(note("<e2 f2 g2 a2>*4"), "bass-sound-settings"),
        "bass-enabled",
    )
    melody = bridge.gate(
        bridge.layered(n(bridge.flag("melody", "<0 2 0 4 9 7>")), "melodySpeed", [4, 2]),
        "melody-enabled",
    )
    lead = bridge.lead_sound(
        bridge.select("leadArrangement", "original", LEAD_VARIATIONS),
        "lead-synth-settings",
    )
    return stack(tempo, drums, bass, melody, lead)
