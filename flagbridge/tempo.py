from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Any

from .pattern import Pattern, silence
from .store import FlagChange, FlagStore, Subscription
from .transport import TempoTarget
from .values import NumberValue, TextValue, classify

_LOGGER = logging.getLogger("flagbridge.tempo")
_LEADING_NUMBER = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


@dataclass(frozen=True, slots=True)
class TempoBinding:
    default: Any
    divisor: float


class TempoSynchronizer:
    """Keeps a tempo target in step with numeric flags.

    Each synced key gets exactly one listener on the store's change channel,
    however often ``sync`` is called for it. The listener uses the default and
    divisor from the latest ``sync`` call for that key.
    """

    def __init__(self, store: FlagStore, target: TempoTarget | None = None) -> None:
        self._store = store
        self._target = target
        self._bindings: dict[str, TempoBinding] = {}
        self._listeners: dict[str, Subscription] = {}
        self._pending: float | None = None

    @property
    def target(self) -> TempoTarget | None:
        return self._target

    def attach(self, target: TempoTarget) -> None:
        """Set the tempo target, applying any tempo computed while there was none."""

        self._target = target
        pending = self._pending
        self._pending = None
        if pending is not None:
            target.set_cpm(pending)

    def is_registered(self, key: str) -> bool:
        return key in self._listeners

    def listener_count(self) -> int:
        return len(self._listeners)

    def compute_cpm(self, key: str) -> float | None:
        binding = self._bindings[key]
        raw = self._store.get(key, binding.default)
        number = _as_number(raw)
        if number is None:
            _LOGGER.warning(
                "Tempo flag %r value %r is not numeric; using default %r.", key, raw, binding.default
            )
            number = _as_number(binding.default)
            if number is None:
                return None
        cpm = number / binding.divisor
        if not math.isfinite(cpm) or cpm <= 0:
            _LOGGER.warning("Tempo flag %r gives unusable cpm %r; tempo unchanged.", key, cpm)
            return None
        return cpm

    def apply(self, key: str) -> float | None:
        cpm = self.compute_cpm(key)
        if cpm is None:
            return None
        if self._target is None:
            self._pending = cpm
            _LOGGER.warning("No tempo target attached; tempo change to %.3f cpm deferred.", cpm)
            return cpm
        self._target.set_cpm(cpm)
        return cpm

    def sync(self, key: str, default: Any = 100, divisor: float = 1) -> Pattern:
        if divisor == 0 or not math.isfinite(divisor):
            raise ValueError(f"divisor must be a non-zero finite number, got {divisor!r}")
        self._bindings[key] = TempoBinding(default=default, divisor=divisor)
        self.apply(key)
        if key not in self._listeners:
            self._listeners[key] = self._store.changes.subscribe(self._on_change, key=key)
        return silence()

    def close(self) -> None:
        for subscription in self._listeners.values():
            subscription.close()
        self._listeners.clear()

    def _on_change(self, change: FlagChange) -> None:
        self.apply(change.key)


def _as_number(raw: Any) -> float | None:
    match classify(raw):
        case NumberValue(number):
            return float(number)
        case TextValue(text):
            # Leading number only, so "120bpm" reads as 120.
            found = _LEADING_NUMBER.match(text.strip())
            return float(found.group(0)) if found else None
        case _:
            return None
