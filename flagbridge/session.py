from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .bundles import BundleMerge, bass_sound, drum_kit, lead_sound
from .config import BridgeSettings
from .gate import Gate, gate
from .layering import LayeredPattern, layered
from .pattern import Pattern
from .providers.base import FlagProvider
from .providers.launchdarkly import LaunchDarklyFlagProvider
from .providers.static import StaticFlagProvider
from .scalar import ScalarBridge, resolve
from .store import FlagStore
from .tempo import TempoSynchronizer
from .transport import TempoTarget
from .variants import VariantEntry, VariantSelector, select


class FlagBridge:
    """One flag store plus every flag-driven pattern operation bound to it."""

    def __init__(
        self,
        store: FlagStore | None = None,
        *,
        tempo_target: TempoTarget | None = None,
    ) -> None:
        self.store = store if store is not None else FlagStore()
        self.tempo = TempoSynchronizer(self.store, tempo_target)

    async def connect(self, provider: FlagProvider) -> None:
        await self.store.initialize(provider)

    def close(self) -> None:
        self.tempo.close()
        self.store.close()

    def flag(self, key: str, default: Any = None) -> ScalarBridge:
        return resolve(self.store, key, default)

    def layered(self, base: Pattern, key: str, default: Any = 1) -> LayeredPattern:
        return layered(self.store, base, key, default)

    def drum_kit(self, base: Pattern, key: str, default: Any = None) -> BundleMerge:
        return drum_kit(self.store, base, key, default)

    def bass_sound(self, base: Pattern, key: str, default: Any = None) -> BundleMerge:
        return bass_sound(self.store, base, key, default)

    def lead_sound(self, base: Pattern, key: str, default: Any = None) -> BundleMerge:
        return lead_sound(self.store, base, key, default)

    def gate(self, base: Pattern, key: str, default: Any = True) -> Gate:
        return gate(self.store, base, key, default)

    def select(
        self,
        key: str,
        default_variant: str,
        registry: Mapping[str, VariantEntry],
    ) -> VariantSelector:
        return select(self.store, key, default_variant, registry)

    def sync_tempo(self, key: str, default: Any = 100, divisor: float = 1) -> Pattern:
        return self.tempo.sync(key, default, divisor)


def provider_from_settings(settings: BridgeSettings) -> FlagProvider | None:
    match settings.provider_kind:
        case "file":
            assert settings.flags_file is not None
            return StaticFlagProvider.from_file(settings.flags_file)
        case "launchdarkly":
            assert settings.sdk_key is not None
            return LaunchDarklyFlagProvider(settings.sdk_key, start_wait=settings.start_wait)
        case _:
            return None
