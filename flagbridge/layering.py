from __future__ import annotations

import logging
import math
from typing import Any

from .pattern import Hap, Pattern, TimeSpan, stack
from .store import FlagStore
from .values import NumberValue, SequenceValue, TextValue, classify, decode_text

_LOGGER = logging.getLogger("flagbridge.layering")

Speeds = float | int | tuple[float | int, ...]


class LayeredPattern(Pattern):
    """Polyphonic speed layering driven by a flag.

    A list of speeds stacks one copy of the base pattern per speed, in list
    order; a single number speeds the base up without stacking; an empty list
    leaves the base untouched. The stack is rebuilt on every query from the
    immutable base, so layers never share state.
    """

    def __init__(self, store: FlagStore, base: Pattern, key: str, default: Any = 1) -> None:
        super().__init__(self._query_layers)
        self._store = store
        self._base = base
        self._key = key
        self._default = default
        self._reported: Any = None

    @property
    def base(self) -> Pattern:
        return self._base

    def speeds(self) -> Speeds | None:
        """Current speed setting, or None when the flag holds something unusable."""

        raw = self._store.get(self._key, self._default)
        shape = classify(raw)
        if isinstance(shape, TextValue):
            try:
                shape = classify(decode_text(shape.value))
            except ValueError:
                self._report(raw, "is not a number or a list of numbers")
                return None
        match shape:
            case NumberValue(speed) if math.isfinite(speed):
                return speed
            case SequenceValue(items) if all(_is_speed(item) for item in items):
                return items
            case _:
                self._report(raw, "is not a number or a list of numbers")
                return None

    def current_pattern(self) -> Pattern:
        match self.speeds():
            case None | ():
                return self._base
            case tuple() as speeds:
                return stack(*(self._base.fast(speed) for speed in speeds))
            case speed:
                return self._base.fast(speed)

    def _query_layers(self, span: TimeSpan) -> list[Hap]:
        return self.current_pattern().query(span)

    def _report(self, raw: Any, problem: str) -> None:
        if raw == self._reported:
            return
        self._reported = raw
        _LOGGER.warning("Flag %r value %r %s; playing unlayered.", self._key, raw, problem)


def _is_speed(item: Any) -> bool:
    return isinstance(classify(item), NumberValue) and math.isfinite(item)


def layered(store: FlagStore, base: Pattern, key: str, default: Any = 1) -> LayeredPattern:
    return LayeredPattern(store, base, key, default)
