from __future__ import annotations

from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")

_MISSING: Any = object()


class ValueCache(Generic[T]):
    """Single-entry cache keyed on the last-seen raw flag value.

    The derived value is valid if and only if the raw value it was built from
    equals the raw value presented now. Two raw values match when they have
    the same type and compare equal, so ``1`` and ``True`` stay distinct.
    A build that raises leaves the previous entry untouched.
    """

    def __init__(self) -> None:
        self._key: Any = _MISSING
        self._value: T | None = None
        self.hits = 0
        self.misses = 0

    @property
    def is_empty(self) -> bool:
        return self._key is _MISSING

    @property
    def key(self) -> Any:
        return None if self._key is _MISSING else self._key

    def matches(self, raw: Any) -> bool:
        if self._key is _MISSING:
            return False
        if self._key is raw:
            return True
        return type(self._key) is type(raw) and self._key == raw

    def get_or_build(self, raw: Any, build: Callable[[Any], T]) -> T:
        if self.matches(raw):
            self.hits += 1
            return self._value  # type: ignore[return-value]
        value = build(raw)
        self.misses += 1
        self._key = raw
        self._value = value
        return value

    def invalidate(self) -> None:
        self._key = _MISSING
        self._value = None
