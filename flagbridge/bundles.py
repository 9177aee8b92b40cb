"""Sound parameter bundles read from structured flags.

A bundle flag holds an object such as ``{"bank": "RolandTR909", "gain": 0.8,
"room": 0.3}``. The recognised fields are applied to every hap the base
pattern produces, unknown fields are copied into the hap's payload as they
are, and gain multiplies whatever gain the hap already carries.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from .cache import ValueCache
from .errors import BundleDecodeError
from .pattern import Hap, Pattern
from .store import FlagStore
from .values import ObjectValue, TextValue, classify, decode_text

_LOGGER = logging.getLogger("flagbridge.bundles")


class ParameterBundle(BaseModel):
    gain: float = 1.0

    model_config = ConfigDict(extra="allow", frozen=True)

    @property
    def extras(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class DrumKitBundle(ParameterBundle):
    bank: str = "RolandTR808"


class BassSoundBundle(ParameterBundle):
    sound: str = "gm_synth_bass_2"
    lpf: float | None = None


class LeadSoundBundle(ParameterBundle):
    sound: str = "sawtooth"
    lpf: float | None = None
    lpq: float | None = None


@dataclass(frozen=True, slots=True)
class BundleSpec:
    """How one family of bundles maps onto hap payloads.

    ``primary_field`` is always written (under ``payload_key``); each of
    ``optional_fields`` is written only when the bundle sets it.
    """

    name: str
    model: type[ParameterBundle]
    primary_field: str
    payload_key: str
    optional_fields: tuple[str, ...]
    default_bundle: Mapping[str, Any]


DRUM_KIT = BundleSpec(
    name="drum_kit",
    model=DrumKitBundle,
    primary_field="bank",
    payload_key="bank",
    optional_fields=(),
    default_bundle=MappingProxyType({"bank": "RolandTR808", "gain": 1}),
)
BASS_SOUND = BundleSpec(
    name="bass_sound",
    model=BassSoundBundle,
    primary_field="sound",
    payload_key="s",
    optional_fields=("lpf",),
    default_bundle=MappingProxyType({"sound": "gm_synth_bass_2", "lpf": 1800, "gain": 1}),
)
LEAD_SOUND = BundleSpec(
    name="lead_sound",
    model=LeadSoundBundle,
    primary_field="sound",
    payload_key="s",
    optional_fields=("lpf", "lpq"),
    default_bundle=MappingProxyType({"sound": "sawtooth", "lpf": 300, "lpq": 0, "gain": 1}),
)


def decode_bundle(raw: Any, spec: BundleSpec) -> ParameterBundle:
    """Validate a raw flag value into the family's bundle model.

    Text is decoded as JSON first. Text that is not JSON is kept as it is and
    names the primary field, so ``"RolandTR909"`` selects that bank.
    """

    shape = classify(raw)
    if isinstance(shape, TextValue):
        try:
            shape = classify(decode_text(shape.value))
        except ValueError:
            _LOGGER.debug("Bundle text %r is not JSON; using it as %s.", raw, spec.primary_field)
        if isinstance(shape, TextValue):
            return spec.model.model_validate({spec.primary_field: shape.value})
    match shape:
        case ObjectValue(fields):
            try:
                return spec.model.model_validate(dict(fields))
            except ValidationError as exc:
                raise BundleDecodeError(f"Invalid {spec.name} bundle: {exc}") from exc
        case _:
            raise BundleDecodeError(
                f"{spec.name} bundle must be an object, got {type(raw).__name__}"
            )


def apply_bundle(payload: Any, bundle: ParameterBundle, spec: BundleSpec) -> dict[str, Any]:
    if isinstance(payload, Mapping):
        merged = dict(payload)
    elif payload is None:
        merged = {}
    else:
        merged = {"value": payload}
    existing_gain = merged.get("gain")
    merged.update(bundle.extras)
    merged[spec.payload_key] = getattr(bundle, spec.primary_field)
    for name in spec.optional_fields:
        value = getattr(bundle, name)
        if value is not None:
            merged[name] = value
    merged["gain"] = (1 if existing_gain is None else existing_gain) * bundle.gain
    return merged


class BundleMerge(Pattern):
    """Applies a flag-selected parameter bundle to each hap of ``base``.

    The flag is read once per hap, not once per query. Decoded bundles are
    cached against the raw flag value.
    """

    def __init__(
        self,
        store: FlagStore,
        base: Pattern,
        key: str,
        default_bundle: Any = None,
        *,
        spec: BundleSpec,
    ) -> None:
        super().__init__(base.with_hap(self._merge_hap).query)
        self._store = store
        self._base = base
        self._key = key
        self._spec = spec
        self._default = spec.default_bundle if default_bundle is None else default_bundle
        self._decoded: ValueCache[ParameterBundle] = ValueCache()
        self._reported: Any = None

    @property
    def cache(self) -> ValueCache[ParameterBundle]:
        return self._decoded

    def current_bundle(self) -> ParameterBundle:
        raw = self._store.get(self._key, self._default)
        try:
            return self._decoded.get_or_build(raw, self._decode)
        except BundleDecodeError as exc:
            if raw != self._reported:
                self._reported = raw
                _LOGGER.warning(
                    "Ignoring malformed %s flag %r: %s", self._spec.name, self._key, exc, exc_info=True
                )
            return self._fallback_bundle()

    def _decode(self, raw: Any) -> ParameterBundle:
        return decode_bundle(raw, self._spec)

    def _fallback_bundle(self) -> ParameterBundle:
        try:
            return decode_bundle(self._default, self._spec)
        except BundleDecodeError:
            return self._spec.model()

    def _merge_hap(self, hap: Hap) -> Hap:
        bundle = self.current_bundle()
        return hap.with_value(lambda payload: apply_bundle(payload, bundle, self._spec))


def bundle(
    store: FlagStore,
    base: Pattern,
    key: str,
    default_bundle: Any = None,
    *,
    spec: BundleSpec,
) -> BundleMerge:
    return BundleMerge(store, base, key, default_bundle, spec=spec)


def drum_kit(store: FlagStore, base: Pattern, key: str, default_bundle: Any = None) -> BundleMerge:
    return bundle(store, base, key, default_bundle, spec=DRUM_KIT)


def bass_sound(store: FlagStore, base: Pattern, key: str, default_bundle: Any = None) -> BundleMerge:
    return bundle(store, base, key, default_bundle, spec=BASS_SOUND)


def lead_sound(store: FlagStore, base: Pattern, key: str, default_bundle: Any = None) -> BundleMerge:
    return bundle(store, base, key, default_bundle, spec=LEAD_SOUND)
