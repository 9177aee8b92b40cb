from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Union

from .pattern import Hap, Pattern, TimeSpan, reify
from .store import FlagStore

_LOGGER = logging.getLogger("flagbridge.variants")

VariantEntry = Union[Callable[[], Any], Pattern]


@dataclass(frozen=True, slots=True)
class ResolvedVariant:
    name: str
    pattern: Pattern


class VariantSelector(Pattern):
    """Chooses among named variants with a flag.

    The selected variant's factory runs once when the selection changes and
    its pattern is reused while the selection holds, so any state built into
    the pattern survives across cycles. Only the most recent variant is kept:
    switching away and back builds the variant again.
    """

    def __init__(
        self,
        store: FlagStore,
        key: str,
        default_variant: str,
        registry: Mapping[str, VariantEntry],
    ) -> None:
        super().__init__(self._query_selected)
        self._store = store
        self._key = key
        self._default_variant = default_variant
        self._registry: Mapping[str, VariantEntry] = MappingProxyType(dict(registry))
        self._resolved: ResolvedVariant | None = None
        self._reported: Any = None
        self._failed: set[str] = set()

    @property
    def registry(self) -> Mapping[str, VariantEntry]:
        return self._registry

    @property
    def resolved(self) -> ResolvedVariant | None:
        return self._resolved

    def selected_name(self) -> str | None:
        """Name of the variant that will play, or None when neither candidate exists."""

        requested = self._store.get(self._key, self._default_variant)
        if self._has(requested):
            return requested
        if self._has(self._default_variant):
            return self._default_variant
        if requested != self._reported:
            self._reported = requested
            _LOGGER.warning(
                "No variant found for %r or default %r (flag %r).",
                requested,
                self._default_variant,
                self._key,
            )
        return None

    def current_pattern(self) -> Pattern | None:
        """Pattern of the selected variant.

        A factory that raises is logged once and retried on later queries;
        meanwhile the default variant plays, or silence when that fails too.
        """

        name = self.selected_name()
        if name is None:
            return None
        for candidate in dict.fromkeys((name, self._default_variant)):
            resolved = self._resolved
            if resolved is not None and resolved.name == candidate:
                return resolved.pattern
            if not self._has(candidate):
                continue
            pattern = self._build(candidate)
            if pattern is not None:
                self._resolved = ResolvedVariant(candidate, pattern)
                _LOGGER.debug("Flag %r switched to variant %r.", self._key, candidate)
                return pattern
        return None

    def _has(self, name: Any) -> bool:
        return isinstance(name, str) and name in self._registry

    def _build(self, name: str) -> Pattern | None:
        try:
            pattern = self._materialize(name)
        except Exception as exc:
            if name not in self._failed:
                self._failed.add(name)
                _LOGGER.error(
                    "Variant %r for flag %r failed to build: %s", name, self._key, exc, exc_info=True
                )
            return None
        self._failed.discard(name)
        return pattern

    def _materialize(self, name: str) -> Pattern:
        entry = self._registry[name]
        if isinstance(entry, Pattern):
            return entry
        return reify(entry())

    def _query_selected(self, span: TimeSpan) -> list[Hap]:
        pattern = self.current_pattern()
        if pattern is None:
            return []
        return pattern.query(span)


def select(
    store: FlagStore,
    key: str,
    default_variant: str,
    registry: Mapping[str, VariantEntry],
) -> VariantSelector:
    return VariantSelector(store, key, default_variant, registry)
