"""Tests for CLI commands using Typer's CliRunner."""

import yaml

from transcode_profiles.cli import app


class TestCLIBasics:
    """Test basic CLI functionality."""

    def test_version_option(self, cli_runner):
        """Test --version displays version."""
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_help_option(self, cli_runner):
        """Test --help lists the commands."""
        result = cli_runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "compile" in result.output
        assert "tiers" in result.output


class TestInfoCommands:
    """Tests for tiers and settings commands."""

    def test_tiers(self, cli_runner):
        """Test tiers lists the catalog."""
        result = cli_runner.invoke(app, ["tiers"])
        assert result.exit_code == 0
        assert "2160p" in result.output
        assert "3840" in result.output

    def test_settings(self, cli_runner):
        """Test settings lists keys."""
        result = cli_runner.invoke(app, ["settings"])
        assert result.exit_code == 0
        assert "audio_codec" in result.output


class TestInitCommand:
    """Tests for init command."""

    def test_init_writes_defaults(self, cli_runner, tmp_path):
        """Test init creates a settings file with every default."""
        path = tmp_path / "settings.yaml"
        result = cli_runner.invoke(app, ["init", str(path)])

        assert result.exit_code == 0
        data = yaml.safe_load(path.read_text())
        assert data["audio_codec"] == "aac"
        assert data["resolution_720p_enabled"] is True

    def test_init_refuses_overwrite(self, cli_runner, settings_file):
        """Test init does not overwrite without --force."""
        result = cli_runner.invoke(app, ["init", str(settings_file)])
        assert result.exit_code == 1


class TestCompileCommand:
    """Tests for compile command."""

    def test_compile_settings_file(self, cli_runner, settings_file, monkeypatch, tmp_path):
        """Test compile shows profiles and priorities."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("CTP_CONFIG_DIR", str(tmp_path / "no-config"))
        result = cli_runner.invoke(app, ["compile", "--settings", str(settings_file)])

        assert result.exit_code == 0
        assert "Compiled Profiles" in result.output
        assert "Encoder Priorities" in result.output
        assert "144p" in result.output  # listed as skipped

    def test_compile_missing_settings_file(self, cli_runner, tmp_path, monkeypatch):
        """Test an unreadable settings file still compiles from defaults."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("CTP_CONFIG_DIR", str(tmp_path / "no-config"))
        result = cli_runner.invoke(app, ["compile", "--settings", str(tmp_path / "missing.yaml")])

        assert result.exit_code == 0
        assert "source_unavailable" in result.output


class TestArgsCommand:
    """Tests for args command."""

    def test_args_for_tier(self, cli_runner, settings_file, monkeypatch, tmp_path):
        """Test args prints the argument line for a tier."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("CTP_CONFIG_DIR", str(tmp_path / "no-config"))
        result = cli_runner.invoke(app, ["args", "1080p", "--settings", str(settings_file)])

        assert result.exit_code == 0
        assert "-c:v libx264 -crf 23 -preset veryfast -c:a aac -b:a 128k" in result.output

    def test_args_disabled_tier(self, cli_runner, settings_file, monkeypatch, tmp_path):
        """Test args fails for a disabled tier."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("CTP_CONFIG_DIR", str(tmp_path / "no-config"))
        result = cli_runner.invoke(app, ["args", "144p", "--settings", str(settings_file)])
        assert result.exit_code == 1

    def test_args_unknown_tier(self, cli_runner):
        """Test args rejects unknown tiers."""
        result = cli_runner.invoke(app, ["args", "4k"])
        assert result.exit_code == 1
        assert "Unknown tier" in result.output
