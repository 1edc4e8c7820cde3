"""
Configuration management with YAML loading and environment variable support.

This is the configuration of the tool itself (where settings live, how
profiles are named, log level), not the transcoding settings.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .compiler import CompilerOptions, ProfileNaming
from .constants import DEFAULT_FIXED_PROFILE_NAME, PRIVILEGED_SCORE

logger = logging.getLogger(__name__)

SECTIONS = ["settings", "compiler", "logging"]


def _env_path(env_var: str, default: Path | None = None) -> Path | None:
    """Get path from environment variable or return default."""
    if value := os.environ.get(env_var):
        return Path(value)
    return default


@dataclass
class SettingsConfig:
    """Where transcoding settings are read from."""

    file: Path | None = field(default_factory=lambda: _env_path("CTP_SETTINGS_FILE"))


@dataclass
class CompilerConfig:
    profile_naming: str = ProfileNaming.PER_TIER.value  # "per_tier" or "fixed"
    fixed_profile_name: str = DEFAULT_FIXED_PROFILE_NAME
    priority_score: int = PRIVILEGED_SCORE
    inline_audio_codec: bool = False


@dataclass
class LoggingConfig:
    level: str = "INFO"


@dataclass
class AppConfig:
    settings: SettingsConfig = field(default_factory=SettingsConfig)
    compiler: CompilerConfig = field(default_factory=CompilerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> AppConfig:
        """Load configuration from YAML file."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict) -> AppConfig:
        """Create config from dictionary, ignoring unknown keys."""
        config = cls()

        if "settings" in data:
            for key, value in (data["settings"] or {}).items():
                if hasattr(config.settings, key):
                    setattr(config.settings, key, Path(value) if isinstance(value, str) else value)

        for attr in ("compiler", "logging"):
            if attr in data:
                section = getattr(config, attr)
                for key, value in (data[attr] or {}).items():
                    if hasattr(section, key):
                        setattr(section, key, value)

        return config

    def _to_dict(self) -> dict:
        """Convert config to dictionary."""
        result = {}
        for attr in SECTIONS:
            section = getattr(self, attr)
            result[attr] = {
                key: str(value) if isinstance(value, Path) else value for key, value in vars(section).items()
            }
        return result

    def compiler_options(self) -> CompilerOptions:
        """Build CompilerOptions, falling back to defaults for invalid values."""
        try:
            naming = ProfileNaming(str(self.compiler.profile_naming).lower())
        except ValueError:
            logger.warning(f"Unknown profile_naming {self.compiler.profile_naming!r}, using per_tier")
            naming = ProfileNaming.PER_TIER

        score = self.compiler.priority_score
        if isinstance(score, bool) or not isinstance(score, int):
            logger.warning(f"Invalid priority_score {score!r}, using {PRIVILEGED_SCORE}")
            score = PRIVILEGED_SCORE

        return CompilerOptions(
            naming=naming,
            fixed_profile_name=str(self.compiler.fixed_profile_name or DEFAULT_FIXED_PROFILE_NAME),
            priority_score=score,
            inline_audio_codec=bool(self.compiler.inline_audio_codec),
        )


def _get_default_config_dir() -> Path:
    """Get default config directory."""
    if config_dir := os.environ.get("CTP_CONFIG_DIR"):
        return Path(config_dir)

    if xdg_config := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_config) / "custom-transcode-profiles"

    return Path.home() / ".config" / "custom-transcode-profiles"


def load_config(config_path: Path | None = None, config_dir: Path | None = None) -> AppConfig:
    """
    Load configuration.

    Args:
        config_path: Path to config file (default: searches standard locations)
        config_dir: Directory searched when no path is given

    Returns:
        AppConfig (defaults if no file is found)
    """
    if config_dir is None:
        config_dir = _get_default_config_dir()

    if config_path is None:
        search_paths = [
            config_dir / "config.yaml",
            Path.cwd() / "ctp.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = path
                break

    return AppConfig.from_yaml(config_path) if config_path else AppConfig()
