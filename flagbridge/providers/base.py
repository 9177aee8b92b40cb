from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable, Protocol

FlagDeltas = Mapping[str, Any]
ChangeCallback = Callable[[FlagDeltas], None]


class FlagProvider(Protocol):
    """Source of flag values.

    ``start`` resolves with the full initial snapshot once the provider is
    ready. Afterwards every registered callback receives ``{key: {"current":
    value}}`` deltas, possibly from a thread other than the caller's.
    """

    async def start(self) -> Mapping[str, Any]: ...

    def subscribe(self, callback: ChangeCallback) -> None: ...

    def close(self) -> None: ...
