from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import InvalidSettingsError
from .logging_utils import LOG_DIR_ENV
from .transport import DEFAULT_CPM

_LOGGER = logging.getLogger("flagbridge.config")

SDK_KEY_ENV = "FLAGBRIDGE_SDK_KEY"
FLAGS_FILE_ENV = "FLAGBRIDGE_FLAGS_FILE"
START_WAIT_ENV = "FLAGBRIDGE_START_WAIT"
DEFAULT_CPM_ENV = "FLAGBRIDGE_DEFAULT_CPM"

_ENV_FIELDS: Mapping[str, str] = {
    "sdk_key": SDK_KEY_ENV,
    "flags_file": FLAGS_FILE_ENV,
    "start_wait": START_WAIT_ENV,
    "default_cpm": DEFAULT_CPM_ENV,
    "log_dir": LOG_DIR_ENV,
}


class BridgeSettings(BaseModel):
    """Runtime settings; every field can come from a FLAGBRIDGE_* variable."""

    sdk_key: str | None = None
    flags_file: Path | None = None
    start_wait: float = Field(default=5.0, gt=0.0)
    default_cpm: float = Field(default=DEFAULT_CPM, gt=0.0)
    log_dir: Path | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **overrides: Any,
    ) -> "BridgeSettings":
        source = os.environ if environ is None else environ
        data: dict[str, Any] = {}
        for field, variable in _ENV_FIELDS.items():
            value = source.get(variable)
            if value:
                data[field] = value
        data.update({key: value for key, value in overrides.items() if value is not None})
        return parse_settings(data)

    @property
    def provider_kind(self) -> str:
        if self.flags_file is not None:
            return "file"
        if self.sdk_key:
            return "launchdarkly"
        return "none"


def parse_settings(payload: Mapping[str, Any]) -> BridgeSettings:
    """Parse settings, raising InvalidSettingsError on failure."""

    try:
        return BridgeSettings.model_validate(payload)
    except ValidationError as exc:
        _LOGGER.warning("Failed to parse settings: %s", exc, exc_info=True)
        raise InvalidSettingsError(str(exc)) from exc
