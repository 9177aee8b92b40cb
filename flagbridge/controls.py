from __future__ import annotations

from typing import Any, Callable

from .mini import mini
from .pattern import Pattern, reify


def as_pattern(value: Any) -> Pattern:
    """Strings are read as mini-notation, anything else is lifted as-is."""

    if isinstance(value, str):
        return mini(value)
    return reify(value)


def control(name: str) -> Callable[[Any], Pattern]:
    def build(value: Any) -> Pattern:
        return as_pattern(value).with_value(lambda v: {name: v})

    build.__name__ = name
    return build


s = control("s")
note = control("note")
n = control("n")
