"""
Settings schema and settings sources.

The schema lists every setting the transcoder reads, with its type, default
and help text. Per-tier keys are built once per catalog tier into a TierKeys
record so that lookups never depend on ad-hoc string formatting.

Sources are the collaborators that hold the actual values:
- InMemorySettings: dict-backed, also notifies subscribers on change
- YamlSettingsSource: flat key/value YAML file
"""

import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import yaml

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
from .errors import SettingsSourceUnavailable
from .tiers import DEFAULT_CATALOG, ResolutionTier, TierCatalog

logger = logging.getLogger(__name__)

SettingsCallback = Callable[[Mapping[str, Any]], None]


# =============================================================================
# Schema
# =============================================================================


@dataclass(frozen=True)
class SettingDefinition:
    """One user-editable setting."""

    name: str
    label: str
    type: str  # "string", "number" or "boolean"
    default: Any
    description: str = ""


@dataclass(frozen=True)
class GlobalKeys:
    audio_codec: str = "audio_codec"
    audio_params: str = "audio_params"
    thread_count: str = "transcode_threads"

    def all(self) -> tuple[str, ...]:
        return (self.audio_codec, self.audio_params, self.thread_count)


@dataclass(frozen=True)
class TierKeys:
    """Setting keys of one resolution tier."""

    enabled: str
    codec: str
    input_params: str
    codec_params: str
    output_filters: str

    @classmethod
    def for_tier(cls, tier: ResolutionTier) -> "TierKeys":
        prefix = f"resolution_{tier.label}"
        return cls(
            enabled=f"{prefix}_enabled",
            codec=f"{prefix}_codec",
            input_params=f"{prefix}_input_params",
            codec_params=f"{prefix}_codec_params",
            output_filters=f"{prefix}_output_filters",
        )

    def all(self) -> tuple[str, ...]:
        return (self.enabled, self.codec, self.input_params, self.codec_params, self.output_filters)


GLOBAL_KEYS = GlobalKeys()

_TIER_KEYS: dict[int, TierKeys] = {tier.id: TierKeys.for_tier(tier) for tier in DEFAULT_CATALOG}


def tier_keys(tier: ResolutionTier) -> TierKeys:
    """Get the setting keys of a tier."""
    keys = _TIER_KEYS.get(tier.id)
    if keys is None:
        # Tier from a custom catalog
        keys = TierKeys.for_tier(tier)
    return keys


def all_keys(catalog: TierCatalog = DEFAULT_CATALOG) -> set[str]:
    """Every key the loader requests for a catalog."""
    keys = set(GLOBAL_KEYS.all())
    for tier in catalog:
        keys.update(tier_keys(tier).all())
    return keys


def setting_definitions(catalog: TierCatalog = DEFAULT_CATALOG) -> list[SettingDefinition]:
    """
    Ordered setting definitions: global settings first, then each tier ascending.

    This is what a host registers to render its settings form.
    """
    definitions = [
        SettingDefinition(
            name=GLOBAL_KEYS.audio_codec,
            label="Audio codec",
            type="string",
            default=DEFAULT_AUDIO_CODEC,
            description="FFmpeg audio codec name (e.g. aac, libopus).",
        ),
        SettingDefinition(
            name=GLOBAL_KEYS.audio_params,
            label="Audio codec options",
            type="string",
            default=DEFAULT_AUDIO_PARAMS,
            description="Extra FFmpeg options for the audio codec (e.g. -b:a 128k).",
        ),
        SettingDefinition(
            name=GLOBAL_KEYS.thread_count,
            label="Transcoding threads (0 = auto)",
            type="number",
            default=DEFAULT_THREAD_COUNT,
            description="Number of threads FFmpeg uses. 0 lets FFmpeg decide.",
        ),
    ]

    for tier in catalog:
        keys = tier_keys(tier)
        res = tier.label
        definitions.extend(
            [
                SettingDefinition(
                    name=keys.enabled,
                    label=f"Enable {res} transcoding",
                    type="boolean",
                    default=DEFAULT_TIER_ENABLED,
                    description=f"Whether {res} is produced at all.",
                ),
                SettingDefinition(
                    name=keys.codec,
                    label=f"Video codec for {res}",
                    type="string",
                    default=DEFAULT_VIDEO_CODEC,
                    description="FFmpeg video codec name (e.g. libx264, libvpx-vp9, h264_qsv, h264_rkmpp).",
                ),
                SettingDefinition(
                    name=keys.input_params,
                    label=f"Input options for {res}",
                    type="string",
                    default=DEFAULT_INPUT_PARAMS,
                    description="Options placed before the input (e.g. -hwaccel auto -hwaccel_device /dev/dri/renderD128).",
                ),
                SettingDefinition(
                    name=keys.codec_params,
                    label=f"Video codec options for {res}",
                    type="string",
                    default=DEFAULT_CODEC_PARAMS,
                    description="Extra options for the video codec (e.g. -crf 23 -preset veryfast, or -qp 20).",
                ),
                SettingDefinition(
                    name=keys.output_filters,
                    label=f"Output filters for {res}",
                    type="string",
                    default=DEFAULT_OUTPUT_FILTERS,
                    description='Options placed after the codec (e.g. -vf "scale=w=%w:h=%h"). '
                    "%w and %h are replaced with the tier width and height.",
                ),
            ]
        )

    return definitions


def default_settings(catalog: TierCatalog = DEFAULT_CATALOG) -> dict[str, Any]:
    """Key -> default value for every setting, in schema order."""
    return {d.name: d.default for d in setting_definitions(catalog)}


# =============================================================================
# Collaborator protocols
# =============================================================================


class SettingsSource(Protocol):
    """Something that can fetch raw setting values by key."""

    def fetch(self, keys: set[str]) -> Mapping[str, Any]:
        """
        Fetch raw values.

        Keys without a stored value are simply absent from the result.

        Raises:
            SettingsSourceUnavailable: If the store cannot be reached
        """
        ...


class SettingsChangeNotifier(Protocol):
    """Something that reports setting changes."""

    def subscribe(self, callback: SettingsCallback) -> Callable[[], None]:
        """Register a change callback. Returns a function that unsubscribes it."""
        ...


# =============================================================================
# Sources
# =============================================================================


class InMemorySettings:
    """
    Dict-backed settings store.

    Acts both as SettingsSource and SettingsChangeNotifier. Callbacks run
    synchronously on the thread calling update().
    """

    def __init__(self, values: Mapping[str, Any] | None = None):
        self._values: dict[str, Any] = dict(values or {})
        self._subscribers: list[SettingsCallback] = []
        self._lock = threading.Lock()

    def fetch(self, keys: set[str]) -> dict[str, Any]:
        with self._lock:
            return {key: self._values[key] for key in keys if key in self._values}

    def update(self, changes: Mapping[str, Any]) -> None:
        """Store changed values and notify subscribers with the changes."""
        with self._lock:
            self._values.update(changes)
            subscribers = list(self._subscribers)
        for callback in subscribers:
            callback(dict(changes))

    def subscribe(self, callback: SettingsCallback) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe


class YamlSettingsSource:
    """Settings stored as a flat mapping in a YAML file, read on every fetch."""

    def __init__(self, path: Path):
        self.path = path

    def fetch(self, keys: set[str]) -> dict[str, Any]:
        try:
            with open(self.path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise SettingsSourceUnavailable(f"Cannot read settings from {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise SettingsSourceUnavailable(f"Settings file {self.path} must contain a mapping")

        return {key: data[key] for key in keys if key in data}


def write_settings_yaml(path: Path, values: Mapping[str, Any]) -> None:
    """Write settings as a flat YAML mapping, keeping key order."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.safe_dump(dict(values), f, sort_keys=False, allow_unicode=True)
    logger.debug(f"Wrote {len(values)} settings to {path}")


def changed_keys_touch(changes: Mapping[str, Any], keys: Iterable[str]) -> bool:
    """Check whether a change notification concerns any of the given keys."""
    wanted = set(keys)
    return any(key in wanted for key in changes)
