"""
CLI module - Command line interface for Custom Transcode Profiles

Entry point for the `ctp` command using Typer.
"""

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from . import __version__
from .arguments import join_arguments
from .compiler import CompilerOptions, MediaKind, ProfileNaming, ProfileTable, build_argument_list
from .config import AppConfig, load_config
from .registry import ProfileRegistry
from .settings import InMemorySettings, YamlSettingsSource, default_settings, setting_definitions, write_settings_yaml
from .tiers import DEFAULT_CATALOG

console = Console()
app = typer.Typer(
    name="ctp",
    help="Custom Transcode Profiles - compile per-resolution encoder profiles from settings.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def version_callback(value: bool):
    if value:
        console.print(f"ctp version {__version__}")
        raise typer.Exit()


ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to config file", exists=True, dir_okay=False),
]

SettingsOption = Annotated[
    Path | None,
    typer.Option("--settings", "-s", help="YAML settings file (default: from config or CTP_SETTINGS_FILE)"),
]


def setup_logging(level: str) -> None:
    """Route log records through Rich."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _prepare(config_path: Path | None, settings_path: Path | None, fixed_name: str | None = None):
    """Load config, set up logging and build the registry and settings source."""
    config: AppConfig = load_config(config_path)
    setup_logging(config.logging.level)

    options = config.compiler_options()
    if fixed_name:
        options = CompilerOptions(
            naming=ProfileNaming.FIXED,
            fixed_profile_name=fixed_name,
            priority_score=options.priority_score,
            inline_audio_codec=options.inline_audio_codec,
        )

    path = settings_path or config.settings.file
    if path is None:
        console.print("[dim]No settings file given, using defaults[/dim]")
        source = InMemorySettings(default_settings())
    else:
        source = YamlSettingsSource(path)

    return ProfileRegistry(DEFAULT_CATALOG, options), source


@app.callback()
def main(
    version: Annotated[
        bool, typer.Option("--version", "-v", callback=version_callback, is_eager=True, help="Show version")
    ] = False,
):
    """Custom Transcode Profiles - compile per-resolution encoder profiles from settings."""
    pass


@app.command()
def tiers():
    """List resolution tiers."""
    table = Table(title="Resolution Tiers")
    table.add_column("Tier", style="cyan")
    table.add_column("Width", justify="right")
    table.add_column("Height", justify="right")

    for tier in DEFAULT_CATALOG:
        table.add_row(tier.label, str(tier.width), str(tier.height))

    console.print(table)


@app.command("settings")
def list_settings():
    """List every setting with its type and default."""
    table = Table(title="Settings")
    table.add_column("Key", style="cyan")
    table.add_column("Type")
    table.add_column("Default")
    table.add_column("Label")

    for definition in setting_definitions():
        table.add_row(definition.name, definition.type, repr(definition.default), definition.label)

    console.print(table)


@app.command()
def init(
    path: Annotated[Path, typer.Argument(help="Settings file to create", dir_okay=False)],
    force: Annotated[bool, typer.Option("--force", "-f", help="Overwrite an existing file")] = False,
):
    """Write a settings file containing every default."""
    if path.exists() and not force:
        console.print(f"[red]Error:[/red] {path} already exists (use --force to overwrite)")
        raise typer.Exit(1)

    write_settings_yaml(path, default_settings())
    console.print(f"[green]✓[/green] Wrote default settings to {path}")


def _print_table(table: ProfileTable) -> None:
    profiles = Table(title="Compiled Profiles")
    profiles.add_column("Profile", style="cyan")
    profiles.add_column("Kind")
    profiles.add_column("Encoder")
    profiles.add_column("Input options")
    profiles.add_column("Output options")

    for profile in table.profiles:
        profiles.add_row(
            profile.profile_name,
            profile.kind.value,
            profile.encoder_name,
            escape(join_arguments(list(profile.input_options))) or "[dim]-[/dim]",
            escape(join_arguments(list(profile.output_options))) or "[dim]-[/dim]",
        )
    console.print(profiles)

    priorities = Table(title="Encoder Priorities")
    priorities.add_column("Kind")
    priorities.add_column("Encoder", style="cyan")
    priorities.add_column("Score", justify="right")
    for entry in table.priorities:
        priorities.add_row(entry.kind.value, entry.encoder_name, str(entry.score))
    console.print(priorities)

    if table.skipped_tiers:
        skipped = ", ".join(f"{t}p" for t in table.skipped_tiers)
        console.print(f"[dim]Skipped (disabled): {skipped}[/dim]")

    if table.diagnostics:
        console.print("\n[yellow]Diagnostics:[/yellow]")
        for diagnostic in table.diagnostics:
            console.print(f"  {escape(str(diagnostic))}")


@app.command("compile")
def compile_command(
    settings: SettingsOption = None,
    fixed_name: Annotated[
        str | None, typer.Option("--fixed-name", help="Use one profile name for every profile")
    ] = None,
    config: ConfigOption = None,
):
    """
    Compile settings into profiles and show the result.

    [bold]Examples:[/bold]

        ctp compile --settings ./settings.yaml

        ctp compile -s ./settings.yaml --fixed-name custom-transcoder
    """
    registry, source = _prepare(config, settings, fixed_name)
    table = registry.reload(source)

    if table.is_empty:
        console.print("[yellow]No profiles compiled (every tier is disabled)[/yellow]")
    _print_table(table)


@app.command()
def args(
    tier: Annotated[str, typer.Argument(help="Tier, e.g. 720p")],
    settings: SettingsOption = None,
    config: ConfigOption = None,
):
    """Print the FFmpeg arguments a job at TIER would use."""
    resolution = DEFAULT_CATALOG.parse(tier)
    if resolution is None:
        console.print(f"[red]Error:[/red] Unknown tier: {tier}")
        console.print(f"Available: {', '.join(t.label for t in DEFAULT_CATALOG)}")
        raise typer.Exit(1)

    registry, source = _prepare(config, settings)
    table = registry.reload(source)

    video = table.find(MediaKind.VIDEO, resolution.id)
    if video is None:
        console.print(f"[yellow]{resolution.label} is disabled[/yellow]")
        raise typer.Exit(1)
    audio = table.find(MediaKind.AUDIO, resolution.id)

    typer.echo(join_arguments(build_argument_list(video, audio)))
