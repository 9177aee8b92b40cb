"""Minimal temporal pattern engine.

A pattern is a pure function from a query span (measured in cycles) to the
haps (timed events) active within it. Everything here is immutable: combinators
wrap patterns in new query functions and never touch the wrapped instance.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from fractions import Fraction
from typing import Any, Callable, Iterable

Time = Fraction
TimeLike = Fraction | int | float | str
Query = Callable[["TimeSpan"], list["Hap"]]


def to_time(value: TimeLike) -> Fraction:
    match value:
        case Fraction():
            return value
        case bool() | int():
            return Fraction(int(value))
        case float():
            if not math.isfinite(value):
                raise ValueError(f"Time value must be finite, got {value!r}")
            return Fraction(repr(value))
        case str():
            return Fraction(value)
        case _:
            raise TypeError(f"Unsupported time value: {type(value).__name__}")


def sam(time: Fraction) -> Fraction:
    """Start of the cycle containing ``time``."""

    return Fraction(math.floor(time))


@dataclass(frozen=True, slots=True)
class TimeSpan:
    begin: Fraction
    end: Fraction

    @classmethod
    def between(cls, begin: TimeLike, end: TimeLike) -> "TimeSpan":
        return cls(to_time(begin), to_time(end))

    @property
    def duration(self) -> Fraction:
        return self.end - self.begin

    def span_cycles(self) -> list["TimeSpan"]:
        """Split into pieces that never cross a cycle boundary."""

        if self.begin == self.end:
            return [self]
        pieces: list[TimeSpan] = []
        begin = self.begin
        while begin < self.end:
            next_sam = sam(begin) + 1
            if self.end <= next_sam:
                pieces.append(TimeSpan(begin, self.end))
                break
            pieces.append(TimeSpan(begin, next_sam))
            begin = next_sam
        return pieces

    def whole_cycle(self) -> "TimeSpan":
        start = sam(self.begin)
        return TimeSpan(start, start + 1)

    def with_time(self, fn: Callable[[Fraction], Fraction]) -> "TimeSpan":
        return TimeSpan(fn(self.begin), fn(self.end))

    def intersection(self, other: "TimeSpan") -> "TimeSpan | None":
        begin = max(self.begin, other.begin)
        end = min(self.end, other.end)
        if begin > end:
            return None
        if begin == end and self.begin != self.end and other.begin != other.end:
            # Touching spans share no time.
            return None
        return TimeSpan(begin, end)

    def __repr__(self) -> str:
        return f"TimeSpan({self.begin}, {self.end})"


@dataclass(frozen=True, slots=True)
class Hap:
    """A value paired with the span it is active for.

    ``whole`` is the full extent of the event, ``part`` the fragment that fell
    inside the query. Continuous values have no whole.
    """

    whole: TimeSpan | None
    part: TimeSpan
    value: Any

    def with_value(self, fn: Callable[[Any], Any]) -> "Hap":
        return replace(self, value=fn(self.value))

    def with_span(self, fn: Callable[[TimeSpan], TimeSpan]) -> "Hap":
        whole = fn(self.whole) if self.whole is not None else None
        return Hap(whole, fn(self.part), self.value)

    def has_onset(self) -> bool:
        return self.whole is not None and self.whole.begin == self.part.begin

    def whole_or_part(self) -> TimeSpan:
        return self.whole if self.whole is not None else self.part


class Pattern:
    def __init__(self, query: Query) -> None:
        self._query = query

    def query(self, span: TimeSpan) -> list[Hap]:
        return self._query(span)

    def query_arc(self, begin: TimeLike, end: TimeLike) -> list[Hap]:
        return self.query(TimeSpan.between(begin, end))

    def first_cycle(self) -> list[Hap]:
        return self.query_arc(0, 1)

    def onsets(self, begin: TimeLike, end: TimeLike) -> list[Hap]:
        return [hap for hap in self.query_arc(begin, end) if hap.has_onset()]

    def split_queries(self) -> "Pattern":
        def query(span: TimeSpan) -> list[Hap]:
            return [hap for piece in span.span_cycles() for hap in self.query(piece)]

        return Pattern(query)

    def with_query_span(self, fn: Callable[[TimeSpan], TimeSpan]) -> "Pattern":
        return Pattern(lambda span: self.query(fn(span)))

    def with_query_time(self, fn: Callable[[Fraction], Fraction]) -> "Pattern":
        return Pattern(lambda span: self.query(span.with_time(fn)))

    def with_hap_span(self, fn: Callable[[TimeSpan], TimeSpan]) -> "Pattern":
        return Pattern(lambda span: [hap.with_span(fn) for hap in self.query(span)])

    def with_hap_time(self, fn: Callable[[Fraction], Fraction]) -> "Pattern":
        return self.with_hap_span(lambda span: span.with_time(fn))

    def with_haps(self, fn: Callable[[list[Hap]], list[Hap]]) -> "Pattern":
        return Pattern(lambda span: fn(self.query(span)))

    def with_hap(self, fn: Callable[[Hap], Hap]) -> "Pattern":
        """Transform each produced hap; ``fn`` runs once per hap per query."""

        return Pattern(lambda span: [fn(hap) for hap in self.query(span)])

    def with_value(self, fn: Callable[[Any], Any]) -> "Pattern":
        return self.with_hap(lambda hap: hap.with_value(fn))

    def fast(self, factor: TimeLike) -> "Pattern":
        """Speed up by ``factor``; zero and negative factors give silence."""

        rate = to_time(factor)
        if rate <= 0:
            return silence()
        return self.with_query_time(lambda t: t * rate).with_hap_time(lambda t: t / rate)

    def slow(self, factor: TimeLike) -> "Pattern":
        rate = to_time(factor)
        if rate <= 0:
            return silence()
        return self.fast(1 / rate)

    def early(self, offset: TimeLike) -> "Pattern":
        shift = to_time(offset)
        return self.with_query_time(lambda t: t + shift).with_hap_time(lambda t: t - shift)

    def late(self, offset: TimeLike) -> "Pattern":
        return self.early(-to_time(offset))

    def compress(self, begin: TimeLike, end: TimeLike) -> "Pattern":
        """Squeeze each cycle into the ``[begin, end)`` part of the same cycle."""

        start = to_time(begin)
        stop = to_time(end)
        if start >= stop or start < 0 or stop > 1:
            return silence()
        width = stop - start

        def query(span: TimeSpan) -> list[Hap]:
            haps: list[Hap] = []
            for piece in span.span_cycles():
                cycle = sam(piece.begin)
                window = piece.intersection(TimeSpan(cycle + start, cycle + stop))
                if window is None:
                    continue
                inner = window.with_time(lambda t: cycle + (t - cycle - start) / width)
                haps.extend(
                    hap.with_span(
                        lambda s: s.with_time(lambda t: cycle + start + (t - cycle) * width)
                    )
                    for hap in self.query(inner)
                )
            return haps

        return Pattern(query)


def reify(value: Any) -> Pattern:
    if isinstance(value, Pattern):
        return value
    return pure(value)


def pure(value: Any) -> Pattern:
    """Repeat ``value`` once per cycle."""

    def query(span: TimeSpan) -> list[Hap]:
        return [Hap(piece.whole_cycle(), piece, value) for piece in span.span_cycles()]

    return Pattern(query)


def silence() -> Pattern:
    return Pattern(lambda span: [])


def stack(*items: Any) -> Pattern:
    """Play every pattern at once; haps keep argument order."""

    patterns = [reify(item) for item in items]

    def query(span: TimeSpan) -> list[Hap]:
        return [hap for pattern in patterns for hap in pattern.query(span)]

    return Pattern(query)


def slowcat(*items: Any) -> Pattern:
    """Play one pattern per cycle, each resuming from its own cycle count."""

    patterns = [reify(item) for item in items]
    if not patterns:
        return silence()
    count = len(patterns)

    def query(span: TimeSpan) -> list[Hap]:
        haps: list[Hap] = []
        for piece in span.span_cycles():
            cycle = sam(piece.begin)
            pattern = patterns[int(cycle) % count]
            offset = cycle - math.floor(cycle / count)
            shifted = piece.with_time(lambda t: t - offset)
            haps.extend(
                hap.with_span(lambda s: s.with_time(lambda t: t + offset))
                for hap in pattern.query(shifted)
            )
        return haps

    return Pattern(query)


def timecat(*steps: tuple[TimeLike, Any]) -> Pattern:
    """Concatenate ``(weight, pattern)`` steps into one cycle, proportionally."""

    weighted = [(to_time(weight), reify(item)) for weight, item in steps]
    weighted = [(weight, pattern) for weight, pattern in weighted if weight > 0]
    total = sum((weight for weight, _ in weighted), Fraction(0))
    if total == 0:
        return silence()
    parts: list[Pattern] = []
    position = Fraction(0)
    for weight, pattern in weighted:
        parts.append(pattern.compress(position / total, (position + weight) / total))
        position += weight
    return stack(*parts)


def fastcat(*items: Any) -> Pattern:
    return timecat(*((1, item) for item in items))


sequence = fastcat


def values_of(haps: Iterable[Hap]) -> list[Any]:
    return [hap.value for hap in haps]
