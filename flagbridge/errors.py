from __future__ import annotations


class FlagBridgeError(Exception):
    """Base error for the flagbridge library."""


class ProviderInitError(FlagBridgeError):
    """Raised when a flag provider fails to deliver its initial snapshot."""


class ProviderNotAvailableError(FlagBridgeError):
    """Raised when an optional provider SDK is not installed."""


class MiniNotationError(FlagBridgeError):
    """Raised when a mini-notation string cannot be parsed."""

    def __init__(self, message: str, *, source: str, position: int) -> None:
        super().__init__(f"{message} at position {position} in {source!r}")
        self.source = source
        self.position = position


class BundleDecodeError(FlagBridgeError):
    """Raised when a parameter bundle cannot be decoded or validated."""


class InvalidSettingsError(FlagBridgeError):
    """Raised when settings cannot be parsed or validated."""
