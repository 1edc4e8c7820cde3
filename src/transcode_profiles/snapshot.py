"""
Config snapshot - Typed, fully populated read of the transcoding settings.

Loading never fails on bad values: every field has a documented default
that replaces a missing or uncoercible value, and each substitution is
recorded as a Diagnostic. A snapshot always has an entry for every tier of
the catalog.
"""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from .constants import (
    DEFAULT_AUDIO_CODEC,
    DEFAULT_AUDIO_PARAMS,
    DEFAULT_CODEC_PARAMS,
    DEFAULT_INPUT_PARAMS,
    DEFAULT_OUTPUT_FILTERS,
    DEFAULT_THREAD_COUNT,
    DEFAULT_TIER_ENABLED,
    DEFAULT_VIDEO_CODEC,
)
from .errors import Diagnostic, DiagnosticKind
from .settings import GLOBAL_KEYS, SettingsSource, all_keys, tier_keys
from .tiers import DEFAULT_CATALOG, TierCatalog

logger = logging.getLogger(__name__)

_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off"}


@dataclass(frozen=True)
class GlobalAudioConfig:
    audio_codec: str = DEFAULT_AUDIO_CODEC
    audio_params: str = DEFAULT_AUDIO_PARAMS
    thread_count: int = DEFAULT_THREAD_COUNT  # 0 = auto


@dataclass(frozen=True)
class ResolutionConfig:
    enabled: bool = DEFAULT_TIER_ENABLED
    video_codec: str = DEFAULT_VIDEO_CODEC
    input_params: str = DEFAULT_INPUT_PARAMS
    codec_params: str = DEFAULT_CODEC_PARAMS
    output_filters: str = DEFAULT_OUTPUT_FILTERS  # may contain %w / %h


@dataclass(frozen=True)
class ConfigSnapshot:
    """Settings at one point in time: global audio config plus one entry per tier."""

    global_config: GlobalAudioConfig
    per_tier: Mapping[int, ResolutionConfig]
    diagnostics: tuple[Diagnostic, ...] = field(default=(), compare=False)

    def __post_init__(self):
        if not isinstance(self.per_tier, MappingProxyType):
            object.__setattr__(self, "per_tier", MappingProxyType(dict(self.per_tier)))

    def tier(self, tier_id: int) -> ResolutionConfig:
        return self.per_tier[tier_id]


# =============================================================================
# Coercion
# =============================================================================


class _CoercionError(ValueError):
    pass


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise _CoercionError(f"expected a boolean, got {value!r}")


def _coerce_str(value: Any) -> str:
    if isinstance(value, str):
        return value
    # Numbers typed into a text field arrive as numbers
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    raise _CoercionError(f"expected a string, got {value!r}")


def _coerce_codec(value: Any) -> str:
    return _coerce_str(value).strip()


def _is_ascii_number(text: str) -> bool:
    # str.isdigit() also accepts superscripts and other digits int() rejects
    return text.isascii() and text.isdecimal()


def _coerce_thread_count(value: Any) -> int:
    if isinstance(value, bool):
        raise _CoercionError(f"expected a number, got {value!r}")
    if isinstance(value, int):
        count = value
    elif isinstance(value, float) and value.is_integer():
        count = int(value)
    elif isinstance(value, str) and _is_ascii_number(value.strip().lstrip("+")):
        count = int(value.strip())
    else:
        raise _CoercionError(f"expected a whole number, got {value!r}")
    if count < 0:
        raise _CoercionError(f"expected a number >= 0, got {count}")
    return count


class _FieldReader:
    """Reads fields from fetched values, falling back to defaults and recording why."""

    def __init__(self, values: Mapping[str, Any]):
        self.values = values
        self.diagnostics: list[Diagnostic] = []

    def read(self, key: str, coerce: Callable[[Any], Any], default: Any) -> Any:
        value = self.values.get(key)
        if value is None:
            self.diagnostics.append(
                Diagnostic(DiagnosticKind.VALIDATION_FALLBACK, key, f"not set, using default {default!r}")
            )
            logger.debug(f"Setting {key} not set, using default {default!r}")
            return default

        try:
            return coerce(value)
        except (TypeError, ValueError) as e:
            self.diagnostics.append(
                Diagnostic(DiagnosticKind.VALIDATION_FALLBACK, key, f"{e}, using default {default!r}")
            )
            logger.warning(f"Invalid value for {key}: {e}, using default {default!r}")
            return default


# =============================================================================
# Loading
# =============================================================================


def snapshot_from_values(values: Mapping[str, Any], catalog: TierCatalog = DEFAULT_CATALOG) -> ConfigSnapshot:
    """
    Build a snapshot from already fetched raw values.

    Args:
        values: Key -> raw value (strings, numbers or booleans)
        catalog: Tiers to build entries for

    Returns:
        ConfigSnapshot with an entry for every tier in the catalog
    """
    reader = _FieldReader(values)

    global_config = GlobalAudioConfig(
        audio_codec=reader.read(GLOBAL_KEYS.audio_codec, _coerce_codec, DEFAULT_AUDIO_CODEC),
        audio_params=reader.read(GLOBAL_KEYS.audio_params, _coerce_str, DEFAULT_AUDIO_PARAMS),
        thread_count=reader.read(GLOBAL_KEYS.thread_count, _coerce_thread_count, DEFAULT_THREAD_COUNT),
    )

    per_tier: dict[int, ResolutionConfig] = {}
    for tier in catalog:
        keys = tier_keys(tier)
        per_tier[tier.id] = ResolutionConfig(
            enabled=reader.read(keys.enabled, _coerce_bool, DEFAULT_TIER_ENABLED),
            video_codec=reader.read(keys.codec, _coerce_codec, DEFAULT_VIDEO_CODEC),
            input_params=reader.read(keys.input_params, _coerce_str, DEFAULT_INPUT_PARAMS),
            codec_params=reader.read(keys.codec_params, _coerce_str, DEFAULT_CODEC_PARAMS),
            output_filters=reader.read(keys.output_filters, _coerce_str, DEFAULT_OUTPUT_FILTERS),
        )

    return ConfigSnapshot(
        global_config=global_config,
        per_tier=MappingProxyType(per_tier),
        diagnostics=tuple(reader.diagnostics),
    )


def load_snapshot(source: SettingsSource, catalog: TierCatalog = DEFAULT_CATALOG) -> ConfigSnapshot:
    """
    Fetch every setting from a source and build a snapshot.

    Raises:
        SettingsSourceUnavailable: Propagated from the source; the registry
            decides how to recover
    """
    values = source.fetch(all_keys(catalog))
    return snapshot_from_values(values, catalog)


def default_snapshot(catalog: TierCatalog = DEFAULT_CATALOG) -> ConfigSnapshot:
    """Snapshot with every field at its default (no diagnostics)."""
    return ConfigSnapshot(
        global_config=GlobalAudioConfig(),
        per_tier=MappingProxyType({tier.id: ResolutionConfig() for tier in catalog}),
    )
