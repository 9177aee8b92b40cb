from __future__ import annotations

from typing import Any

from .pattern import Hap, Pattern, TimeSpan
from .store import FlagStore
from .values import classify, is_truthy


class Gate(Pattern):
    """Passes ``base`` through while the flag is truthy, silence otherwise.

    The decision covers the whole query span and is taken afresh on every query.
    """

    def __init__(self, store: FlagStore, base: Pattern, key: str, default: Any = True) -> None:
        super().__init__(self._query_gated)
        self._store = store
        self._base = base
        self._key = key
        self._default = default

    def is_open(self) -> bool:
        return is_truthy(classify(self._store.get(self._key, self._default)))

    def _query_gated(self, span: TimeSpan) -> list[Hap]:
        if self.is_open():
            return self._base.query(span)
        return []


def gate(store: FlagStore, base: Pattern, key: str, default: Any = True) -> Gate:
    return Gate(store, base, key, default)
