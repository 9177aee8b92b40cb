from __future__ import annotations

import logging
from typing import Any, Callable

from .cache import ValueCache
from .errors import MiniNotationError
from .mini import mini
from .pattern import Hap, Pattern, TimeSpan, reify
from .store import FlagStore
from .values import has_mini_notation

_LOGGER = logging.getLogger("flagbridge.scalar")

Parser = Callable[[str], Pattern]


class ScalarBridge(Pattern):
    """Pattern whose value is read from a flag on every query.

    Text carrying mini-notation markers is parsed into a pattern. The parsed
    pattern is reused until the flag's text changes; a text that fails to parse
    plays as a plain value and is retried on the next query.
    """

    def __init__(
        self,
        store: FlagStore,
        key: str,
        default: Any = None,
        *,
        parser: Parser = mini,
    ) -> None:
        super().__init__(self._query_current)
        self._store = store
        self._key = key
        self._default = default
        self._parser = parser
        self._parsed: ValueCache[Pattern] = ValueCache()
        self._reported: str | None = None

    @property
    def key(self) -> str:
        return self._key

    @property
    def cache(self) -> ValueCache[Pattern]:
        return self._parsed

    def current_pattern(self) -> Pattern:
        value = self._store.get(self._key, self._default)
        if not has_mini_notation(value):
            return reify(value)
        try:
            return self._parsed.get_or_build(value, self._parser)
        except (MiniNotationError, ValueError) as exc:
            if value != self._reported:
                self._reported = value
                _LOGGER.error(
                    "Failed to parse mini-notation for flag %r: %s", self._key, exc, exc_info=True
                )
            return reify(value)

    def _query_current(self, span: TimeSpan) -> list[Hap]:
        return self.current_pattern().query(span)


def resolve(store: FlagStore, key: str, default: Any = None, *, parser: Parser = mini) -> ScalarBridge:
    return ScalarBridge(store, key, default, parser=parser)
