from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable

from pydantic import BaseModel, ConfigDict

from .errors import ProviderInitError

if TYPE_CHECKING:
    from .providers.base import FlagDeltas, FlagProvider

_LOGGER = logging.getLogger("flagbridge.store")


class FlagChange(BaseModel):
    """One key's transition, published after the store has been updated."""

    key: str
    current: Any = None
    previous: Any = None

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)


ChangeListener = Callable[[FlagChange], None]


class Subscription:
    def __init__(self, channel: "ChangeChannel", token: int, key: str | None) -> None:
        self._channel = channel
        self._token = token
        self.key = key

    @property
    def active(self) -> bool:
        return self._channel._has(self._token)

    def close(self) -> None:
        self._channel._remove(self._token)


class ChangeChannel:
    """Publish/subscribe channel for flag changes.

    Listeners subscribe either to one key or, with ``key=None``, to every key.
    Delivery follows subscription order. A failing listener is logged and does
    not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._listeners: dict[int, tuple[str | None, ChangeListener]] = {}
        self._tokens = itertools.count()

    def subscribe(self, listener: ChangeListener, *, key: str | None = None) -> Subscription:
        token = next(self._tokens)
        self._listeners[token] = (key, listener)
        return Subscription(self, token, key)

    def publish(self, change: FlagChange) -> None:
        for key, listener in list(self._listeners.values()):
            if key is not None and key != change.key:
                continue
            try:
                listener(change)
            except Exception as exc:
                _LOGGER.warning(
                    "Change listener for %r failed: %s", change.key, exc, exc_info=True
                )

    def listener_count(self, key: str | None = None) -> int:
        if key is None:
            return len(self._listeners)
        return sum(1 for listener_key, _ in self._listeners.values() if listener_key == key)

    def _has(self, token: int) -> bool:
        return token in self._listeners

    def _remove(self, token: int) -> None:
        self._listeners.pop(token, None)


class FlagStore:
    """Mapping from flag key to its current raw value.

    Written by the provider's change notifications, read synchronously by
    every bridge. Keys are never deleted; a stored ``None`` reads as absent.
    """

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(initial or {})
        self.changes = ChangeChannel()
        self._provider: FlagProvider | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    @property
    def initialized(self) -> bool:
        return self._provider is not None

    def read(self, key: str) -> Any | None:
        return self._values.get(key)

    def get(self, key: str, default: Any = None) -> Any:
        value = self._values.get(key)
        return default if value is None else value

    def keys(self) -> list[str]:
        return list(self._values)

    def snapshot(self) -> Mapping[str, Any]:
        return MappingProxyType(dict(self._values))

    def merge(self, values: Mapping[str, Any]) -> None:
        """Bulk merge without publishing changes."""

        self._values.update(values)

    def apply_changes(self, deltas: "FlagDeltas") -> list[FlagChange]:
        """Merge ``{key: {"current": value}}`` deltas, then publish them."""

        changes: list[FlagChange] = []
        for key, delta in deltas.items():
            current = delta.get("current") if isinstance(delta, Mapping) else delta
            changes.append(FlagChange(key=key, current=current, previous=self._values.get(key)))
            self._values[key] = current
        for change in changes:
            self.changes.publish(change)
        return changes

    def set(self, key: str, value: Any) -> FlagChange:
        return self.apply_changes({key: {"current": value}})[0]

    async def initialize(self, provider: "FlagProvider") -> None:
        """Start ``provider``, merge its snapshot and follow its changes.

        Raises ProviderInitError when the provider fails to start; the provider
        is closed and the store keeps whatever it held before. Once
        initialized, later calls are no-ops.
        """

        if self._provider is not None:
            return
        self._loop = asyncio.get_running_loop()
        try:
            snapshot = await provider.start()
        except Exception as exc:
            _LOGGER.error("Flag provider failed to initialize: %s", exc, exc_info=True)
            try:
                provider.close()
            except Exception as close_exc:
                _LOGGER.warning("Flag provider close failed: %s", close_exc, exc_info=True)
            raise ProviderInitError(f"Flag provider failed to initialize: {exc}") from exc
        self.merge(snapshot)
        provider.subscribe(self._on_provider_change)
        self._provider = provider
        _LOGGER.info("Flag store initialized with %d flags.", len(snapshot))

    def close(self) -> None:
        provider = self._provider
        if provider is None:
            return
        self._provider = None
        provider.close()

    def _on_provider_change(self, deltas: "FlagDeltas") -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            self.apply_changes(deltas)
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            self.apply_changes(deltas)
            return
        # SDK threads hand changes to the loop so a query never sees a half-applied update.
        loop.call_soon_threadsafe(self.apply_changes, deltas)
