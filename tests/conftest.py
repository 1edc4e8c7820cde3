"""Shared pytest fixtures for custom-transcode-profiles tests."""

import pytest
import yaml
from typer.testing import CliRunner

from transcode_profiles.settings import InMemorySettings, default_settings


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def scenario_values():
    """1080p with libx264, 144p disabled, AAC audio."""
    values = default_settings()
    values.update(
        {
            "audio_codec": "aac",
            "audio_params": "-b:a 128k",
            "transcode_threads": 0,
            "resolution_1080p_enabled": True,
            "resolution_1080p_codec": "libx264",
            "resolution_1080p_codec_params": "-crf 23 -preset veryfast",
            "resolution_1080p_output_filters": "",
            "resolution_144p_enabled": False,
        }
    )
    return values


@pytest.fixture
def only_1080p_values(scenario_values):
    """Scenario values with every tier except 1080p disabled."""
    values = dict(scenario_values)
    for key in values:
        if key.endswith("_enabled") and key != "resolution_1080p_enabled":
            values[key] = False
    return values


@pytest.fixture
def memory_settings(scenario_values):
    return InMemorySettings(scenario_values)


@pytest.fixture
def settings_file(tmp_path, scenario_values):
    """Scenario values written to a YAML settings file."""
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.safe_dump(scenario_values, sort_keys=False))
    return path
