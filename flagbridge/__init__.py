from __future__ import annotations

from .bundles import (
    BASS_SOUND,
    DRUM_KIT,
    LEAD_SOUND,
    BassSoundBundle,
    BundleMerge,
    BundleSpec,
    DrumKitBundle,
    LeadSoundBundle,
    ParameterBundle,
    bass_sound,
    bundle,
    drum_kit,
    lead_sound,
)
from .cache import ValueCache
from .config import BridgeSettings
from .controls import n, note, s
from .errors import (
    BundleDecodeError,
    FlagBridgeError,
    InvalidSettingsError,
    MiniNotationError,
    ProviderInitError,
    ProviderNotAvailableError,
)
from .gate import Gate, gate
from .layering import LayeredPattern, layered
from .logging_utils import configure_logging as _configure_logging
from .mini import mini
from .pattern import Hap, Pattern, TimeSpan, fastcat, pure, silence, slowcat, stack, timecat
from .providers import FlagProvider, LaunchDarklyFlagProvider, StaticFlagProvider
from .scalar import ScalarBridge, resolve
from .session import FlagBridge
from .store import ChangeChannel, FlagChange, FlagStore, Subscription
from .tempo import TempoSynchronizer
from .transport import TempoTarget, Transport
from .variants import VariantSelector, select

__all__ = [
    "BASS_SOUND",
    "DRUM_KIT",
    "LEAD_SOUND",
    "BassSoundBundle",
    "BridgeSettings",
    "BundleDecodeError",
    "BundleMerge",
    "BundleSpec",
    "ChangeChannel",
    "DrumKitBundle",
    "FlagBridge",
    "FlagBridgeError",
    "FlagChange",
    "FlagProvider",
    "FlagStore",
    "Gate",
    "Hap",
    "InvalidSettingsError",
    "LaunchDarklyFlagProvider",
    "LayeredPattern",
    "LeadSoundBundle",
    "MiniNotationError",
    "ParameterBundle",
    "Pattern",
    "ProviderInitError",
    "ProviderNotAvailableError",
    "ScalarBridge",
    "StaticFlagProvider",
    "Subscription",
    "TempoSynchronizer",
    "TempoTarget",
    "TimeSpan",
    "Transport",
    "ValueCache",
    "VariantSelector",
    "bass_sound",
    "bundle",
    "drum_kit",
    "fastcat",
    "gate",
    "layered",
    "lead_sound",
    "mini",
    "n",
    "note",
    "pure",
    "resolve",
    "s",
    "select",
    "silence",
    "slowcat",
    "stack",
    "timecat",
]

__version__ = "0.1.0"

_configure_logging()
del _configure_logging
