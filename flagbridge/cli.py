from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
from collections.abc import Mapping
from fractions import Fraction
from typing import Any

from rich.console import Console
from rich.table import Table

from .config import BridgeSettings
from .demo import DEFAULT_FLAGS, build_demo
from .logging_utils import configure_logging, get_log_path, log_exception
from .pattern import Hap
from .providers.static import StaticFlagProvider
from .session import FlagBridge, provider_from_settings
from .store import FlagStore
from .transport import Transport

_LOGGER = logging.getLogger("flagbridge.cli")
_CONSOLE = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="flagbridge")
    parser.add_argument("--flags", type=str, default=None, help="JSON file with flag values.")
    parser.add_argument("--sdk-key", type=str, default=None, help="LaunchDarkly SDK key.")
    sub = parser.add_subparsers(dest="command", required=True)

    events = sub.add_parser("events", help="Print the demo arrangement's events.")
    events.add_argument("--cycles", type=int, default=1)
    events.add_argument("--start", type=int, default=0)

    sub.add_parser("flags", help="Print the current flag values.")
    sub.add_parser("doctor", help="Report settings and provider availability.")
    return parser


async def _connect(settings: BridgeSettings) -> FlagBridge:
    bridge = FlagBridge(tempo_target=Transport(settings.default_cpm))
    provider = provider_from_settings(settings)
    if provider is None:
        _LOGGER.info("No flag provider configured; using demo defaults.")
        provider = StaticFlagProvider(DEFAULT_FLAGS)
    await bridge.connect(provider)
    return bridge


def _format_span(hap: Hap) -> str:
    span = hap.whole_or_part()
    return f"{_format_time(span.begin)} → {_format_time(span.end)}"


def _format_time(time: Fraction) -> str:
    if time.denominator == 1:
        return str(time.numerator)
    return f"{time.numerator}/{time.denominator}"


def _format_value(value: Any) -> str:
    if isinstance(value, Mapping):
        return " ".join(f"{key}={val}" for key, val in value.items())
    return str(value)


def _events_table(haps: list[Hap], title: str) -> Table:
    table = Table(title=title)
    table.add_column("span")
    table.add_column("value")
    for hap in sorted(haps, key=lambda hap: hap.whole_or_part().begin):
        table.add_row(_format_span(hap), _format_value(hap.value))
    return table


def _flags_table(store: FlagStore) -> Table:
    table = Table(title="Flags")
    table.add_column("key")
    table.add_column("value")
    for key, value in sorted(store.snapshot().items()):
        table.add_row(key, json.dumps(value))
    return table


def _run_events(settings: BridgeSettings, start: int, cycles: int) -> int:
    async def run() -> int:
        with _CONSOLE.status("Connecting to flag provider"):
            bridge = await _connect(settings)
        try:
            arrangement = build_demo(bridge)
            haps = arrangement.onsets(start, start + cycles)
            target = bridge.tempo.target
            cpm = target.cpm if isinstance(target, Transport) else settings.default_cpm
            _CONSOLE.print(_events_table(haps, f"Cycles {start}–{start + cycles} at {cpm:g} cpm"))
        finally:
            bridge.close()
        return 0

    return asyncio.run(run())


def _run_flags(settings: BridgeSettings) -> int:
    async def run() -> int:
        with _CONSOLE.status("Connecting to flag provider"):
            bridge = await _connect(settings)
        try:
            _CONSOLE.print(_flags_table(bridge.store))
        finally:
            bridge.close()
        return 0

    return asyncio.run(run())


def _run_doctor(settings: BridgeSettings) -> int:
    try:
        import ldclient  # type: ignore[import-untyped]  # noqa: F401

        sdk_present = True
    except ImportError:
        sdk_present = False
    report = [
        f"Provider: {settings.provider_kind}",
        f"Flags file: {settings.flags_file or '-'}",
        f"LaunchDarkly SDK installed: {sdk_present}",
        f"Default tempo: {settings.default_cpm:g} cpm",
        f"Log file: {get_log_path()}",
        "Hints:",
        "- Set FLAGBRIDGE_FLAGS_FILE or pass --flags to read flags from JSON.",
        "- Set FLAGBRIDGE_SDK_KEY or pass --sdk-key to follow LaunchDarkly.",
    ]
    for line in report:
        _CONSOLE.print(line)
    return 0


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        settings = BridgeSettings.from_env(flags_file=args.flags, sdk_key=args.sdk_key)

        if args.command == "events":
            if args.cycles <= 0:
                parser.error("--cycles must be positive")
            return _run_events(settings, args.start, args.cycles)

        if args.command == "flags":
            return _run_flags(settings)

        if args.command == "doctor":
            return _run_doctor(settings)

        parser.print_help()
        return 1
    except Exception as exc:
        debug = bool(os.environ.get("FLAGBRIDGE_DEBUG"))
        _LOGGER.warning("flagbridge CLI failed: %s", exc, exc_info=debug)
        log_exception("flagbridge CLI", exc)
        _CONSOLE.print(f"[bold red]flagbridge CLI failed:[/bold red] {exc}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
