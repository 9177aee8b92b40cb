from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from .base import ChangeCallback

_LOGGER = logging.getLogger("flagbridge.providers.static")


class StaticFlagProvider:
    """In-process provider backed by a mapping or a JSON file.

    ``push`` plays the part of the remote service: it updates the provider's
    values and notifies subscribers with the same delta shape a network
    provider would send.
    """

    def __init__(
        self,
        flags: Mapping[str, Any] | None = None,
        *,
        path: str | Path | None = None,
    ) -> None:
        self._flags: dict[str, Any] = dict(flags or {})
        self._path = Path(path) if path is not None else None
        self._callbacks: list[ChangeCallback] = []
        self._started = False

    @classmethod
    def from_file(cls, path: str | Path) -> "StaticFlagProvider":
        return cls(path=path)

    @property
    def flags(self) -> Mapping[str, Any]:
        return dict(self._flags)

    async def start(self) -> Mapping[str, Any]:
        if self._path is not None:
            loaded = await asyncio.to_thread(_load_flags_file, self._path)
            self._flags.update(loaded)
        self._started = True
        return dict(self._flags)

    def subscribe(self, callback: ChangeCallback) -> None:
        self._callbacks.append(callback)

    def push(self, changes: Mapping[str, Any]) -> None:
        self._flags.update(changes)
        deltas = {key: {"current": value} for key, value in changes.items()}
        for callback in list(self._callbacks):
            callback(deltas)

    def close(self) -> None:
        self._callbacks.clear()


def _load_flags_file(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"Flags file {path} must contain a JSON object")
    _LOGGER.info("Loaded %d flags from %s.", len(payload), path)
    return payload
