from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from flagbridge.logging_utils import (
    LOG_DIR_ENV,
    configure_logging,
    get_log_dir,
    get_log_path,
    log_exception,
)


@pytest.fixture
def package_logger() -> Iterator[logging.Logger]:
    logger = logging.getLogger("flagbridge")
    handlers = list(logger.handlers)
    level = logger.level
    yield logger
    for handler in list(logger.handlers):
        if handler not in handlers:
            handler.close()
            logger.removeHandler(handler)
    logger.setLevel(level)


def test_log_dir_honours_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv(LOG_DIR_ENV, str(tmp_path))
    assert get_log_dir() == tmp_path
    assert get_log_path() == tmp_path / "flagbridge.log"


def test_log_dir_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(LOG_DIR_ENV, raising=False)
    assert get_log_dir() == Path.home() / ".cache" / "flagbridge" / "logs"


def test_log_exception_writes_traceback(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv(LOG_DIR_ENV, str(tmp_path))
    try:
        raise RuntimeError("boom")
    except RuntimeError as exc:
        path = log_exception("unit test", exc)

    assert path == tmp_path / "flagbridge.log"
    content = path.read_text(encoding="utf-8")
    assert "unit test failed: RuntimeError: boom" in content
    assert "Traceback" in content


def test_configure_logging_without_dir_adds_no_file(
    monkeypatch: pytest.MonkeyPatch, package_logger: logging.Logger
) -> None:
    monkeypatch.delenv(LOG_DIR_ENV, raising=False)
    assert configure_logging() is None
    assert any(isinstance(handler, logging.NullHandler) for handler in package_logger.handlers)


def test_configure_logging_adds_file_handler_once(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, package_logger: logging.Logger
) -> None:
    monkeypatch.setenv(LOG_DIR_ENV, str(tmp_path))
    path = configure_logging()
    assert path == tmp_path / "flagbridge.log"
    assert configure_logging() == path

    file_handlers = [
        handler
        for handler in package_logger.handlers
        if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == path
    ]
    assert len(file_handlers) == 1

    logging.getLogger("flagbridge.test").warning("hello file")
    file_handlers[0].flush()
    assert "hello file" in path.read_text(encoding="utf-8")
