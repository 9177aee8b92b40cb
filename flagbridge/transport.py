from __future__ import annotations

import logging
import math
from fractions import Fraction
from typing import Protocol

from .pattern import Hap, Pattern, TimeSpan, to_time

_LOGGER = logging.getLogger("flagbridge.transport")

DEFAULT_CPM = 30.0


class TempoTarget(Protocol):
    def set_cpm(self, cpm: float) -> None: ...


class Transport:
    """Tracks the playhead in cycles and converts wall-clock time at the current tempo.

    ``advance`` hands out consecutive query spans; a tempo change takes effect
    from the next span onwards and never moves the playhead.
    """

    def __init__(self, cpm: float = DEFAULT_CPM) -> None:
        self._cpm = _validate_cpm(cpm)
        self._position = Fraction(0)

    @property
    def cpm(self) -> float:
        return self._cpm

    @property
    def cps(self) -> float:
        return self._cpm / 60.0

    @property
    def position(self) -> Fraction:
        return self._position

    def set_cpm(self, cpm: float) -> None:
        self._cpm = _validate_cpm(cpm)
        _LOGGER.info("Tempo set to %.3f cpm.", self._cpm)

    def cycles_for(self, seconds: float) -> Fraction:
        if seconds < 0:
            raise ValueError("seconds must be non-negative")
        return to_time(seconds) * to_time(self._cpm) / 60

    def seconds_for(self, cycles: Fraction | float) -> float:
        return float(cycles) * 60.0 / self._cpm

    def advance(self, seconds: float) -> TimeSpan:
        begin = self._position
        self._position = begin + self.cycles_for(seconds)
        return TimeSpan(begin, self._position)

    def query_next(self, pattern: Pattern, seconds: float) -> list[Hap]:
        return pattern.query(self.advance(seconds))

    def seek(self, cycle: Fraction | float | int) -> None:
        self._position = to_time(cycle)


def _validate_cpm(cpm: float) -> float:
    value = float(cpm)
    if not math.isfinite(value) or value <= 0:
        raise ValueError(f"cpm must be a positive finite number, got {cpm!r}")
    return value
