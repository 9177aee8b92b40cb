"""Shape detection for raw flag values.

Flag providers hand back whatever JSON they hold for a key. Bridges classify
the raw value once, at the read boundary, and branch on the resulting variant
instead of probing attributes.
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

_MINI_MARKERS = re.compile(r"[<>\[\]*!@,]")
_FALSE_WORDS = frozenset({"", "false", "0", "off", "no"})


@dataclass(frozen=True, slots=True)
class Absent:
    pass


@dataclass(frozen=True, slots=True)
class BoolValue:
    value: bool


@dataclass(frozen=True, slots=True)
class NumberValue:
    value: int | float


@dataclass(frozen=True, slots=True)
class TextValue:
    value: str


@dataclass(frozen=True, slots=True)
class ObjectValue:
    value: Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class SequenceValue:
    value: tuple[Any, ...]


@dataclass(frozen=True, slots=True)
class OtherValue:
    value: Any


FlagValue = Absent | BoolValue | NumberValue | TextValue | ObjectValue | SequenceValue | OtherValue


def classify(raw: Any) -> FlagValue:
    match raw:
        case None:
            return Absent()
        case bool():
            return BoolValue(raw)
        case int() | float():
            return NumberValue(raw)
        case str():
            return TextValue(raw)
        case Mapping():
            return ObjectValue(raw)
        case list() | tuple():
            return SequenceValue(tuple(raw))
        case _:
            return OtherValue(raw)


def has_mini_notation(raw: Any) -> bool:
    """True for text containing grouping, alternation or repetition markers."""

    return isinstance(raw, str) and _MINI_MARKERS.search(raw) is not None


def decode_text(text: str) -> Any:
    """Decode JSON text; raises ValueError when the text is not JSON."""

    return json.loads(text)


def is_truthy(value: FlagValue) -> bool:
    match value:
        case Absent():
            return False
        case BoolValue(flag):
            return flag
        case NumberValue(number):
            return number != 0 and not math.isnan(number)
        case TextValue(text):
            return text.strip().lower() not in _FALSE_WORDS
        case ObjectValue() | SequenceValue():
            return True
        case OtherValue(other):
            return bool(other)
