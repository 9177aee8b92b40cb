from __future__ import annotations

from .base import ChangeCallback, FlagDeltas, FlagProvider
from .launchdarkly import LaunchDarklyFlagProvider
from .static import StaticFlagProvider

__all__ = [
    "ChangeCallback",
    "FlagDeltas",
    "FlagProvider",
    "LaunchDarklyFlagProvider",
    "StaticFlagProvider",
]
