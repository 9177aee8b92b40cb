from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Mapping
from typing import Any, Callable

from ..errors import ProviderInitError, ProviderNotAvailableError
from .base import ChangeCallback

_LOGGER = logging.getLogger("flagbridge.providers.launchdarkly")
_CONTEXT_PREFIX = "flagbridge-user-"
_DEFAULT_START_WAIT = 5.0


def _anonymous_key() -> str:
    return f"{_CONTEXT_PREFIX}{random.randrange(10000)}"


def _load_sdk() -> Any:
    try:
        import ldclient  # type: ignore[import-untyped]
        import ldclient.config  # type: ignore[import-untyped]
    except ImportError as exc:
        _LOGGER.warning("launchdarkly-server-sdk not installed: %s", exc, exc_info=True)
        raise ProviderNotAvailableError(
            "launchdarkly-server-sdk is not installed; install flagbridge[launchdarkly]"
        ) from exc
    return ldclient


class LaunchDarklyFlagProvider:
    """Flag provider backed by the LaunchDarkly server SDK.

    Flags are evaluated for one anonymous context. The SDK's flag tracker
    only reports which key changed, so each change is re-evaluated before it
    is forwarded as a ``{key: {"current": value}}`` delta.
    """

    def __init__(
        self,
        sdk_key: str,
        *,
        start_wait: float = _DEFAULT_START_WAIT,
        context: Any | None = None,
        client_factory: Callable[[], Any] | None = None,
    ) -> None:
        if not sdk_key:
            raise ValueError("sdk_key must not be empty")
        self._sdk_key = sdk_key
        self._start_wait = start_wait
        self._context = context
        self._client_factory = client_factory
        self._client: Any | None = None
        self._callbacks: list[ChangeCallback] = []

    @property
    def context(self) -> Any | None:
        return self._context

    def _build_client(self) -> Any:
        if self._client_factory is not None:
            if self._context is None:
                self._context = _anonymous_key()
            return self._client_factory()
        sdk = _load_sdk()
        if self._context is None:
            self._context = sdk.Context.builder(_anonymous_key()).anonymous(True).build()
        config = sdk.config.Config(self._sdk_key)
        return sdk.LDClient(config=config, start_wait=self._start_wait)

    async def start(self) -> Mapping[str, Any]:
        if self._client is None:
            self._client = await asyncio.to_thread(self._build_client)
        client = self._client
        if not client.is_initialized():
            raise ProviderInitError(
                f"LaunchDarkly client did not initialize within {self._start_wait}s"
            )
        state = client.all_flags_state(self._context)
        if not state.valid:
            raise ProviderInitError("LaunchDarkly returned an invalid flag state")
        values = dict(state.to_values_map())
        client.flag_tracker.add_listener(self._on_flag_change)
        _LOGGER.info("LaunchDarkly ready with %d flags.", len(values))
        return values

    def subscribe(self, callback: ChangeCallback) -> None:
        self._callbacks.append(callback)

    def _on_flag_change(self, change: Any) -> None:
        client = self._client
        if client is None:
            return
        key = change.key
        value = client.variation(key, self._context, None)
        deltas = {key: {"current": value}}
        for callback in list(self._callbacks):
            callback(deltas)

    def close(self) -> None:
        self._callbacks.clear()
        client = self._client
        self._client = None
        if client is None:
            return
        try:
            client.flag_tracker.remove_listener(self._on_flag_change)
        except Exception as exc:
            _LOGGER.info("LaunchDarkly listener removal failed: %s", exc, exc_info=True)
        client.close()
