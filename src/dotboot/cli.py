"""Command-line interface for dotboot."""

from __future__ import annotations

import io
from pathlib import Path
from typing import Iterable

import tomli_w
import typer
from rich.console import Console
from rich.table import Table

from .brewfile import load_brewfile
from .command import CommandError
from .config import (
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_DOTFILES_DIR,
    DEFAULT_POST_INSTALL_NOTES,
    DEFAULT_REPO_URL,
    DEFAULT_STOW_CONFLICTS,
    DEFAULT_STOW_PACKAGES,
    DEFAULT_SYMLINKS,
    DEFAULT_THEME_ASSETS,
    DEFAULT_THEME_DIRECTORIES,
    KNOWN_PLUGIN_REPOSITORIES,
    SKIPPABLE_STAGES,
    THEME_REPO_URL,
    LinkStrategyName,
    load_config,
)
from .context import RunContext
from .errors import BrewfileError, ConfigError, DotbootError, LinkError, PreflightError
from .homebrew import install_packages
from .identity import configure_identity
from .installer import Installer, RunReport
from .links import deploy_links, link_status
from .logging_utils import configure_logging
from .models import BrewfileEntry, LinkResult, LinkState, PluginAction, PluginResult, ThemeAction, ThemeResult
from .preflight import check_toolchain
from .shell import declared_plugins, install_shell, sync_zshrc
from .themes import fetch_themes

app = typer.Typer(help="Bootstrap a macOS environment from a dotfiles checkout")
console = Console()

PREFLIGHT_EXIT_CODE = 2
INTERRUPTED_EXIT_CODE = 130


def _build_context(config: Path | None, verbose: bool, *, skip_preflight: bool = False) -> RunContext:
    configure_logging(verbose, console=console)
    config_obj = load_config(config)
    return RunContext.create(config_obj, console=console, skip_preflight=skip_preflight)


def _handle_error(exc: BaseException) -> None:
    if isinstance(exc, KeyboardInterrupt):
        console.print("\n[red]Interrupted.[/red] Steps that already finished are not rolled back.")
        raise typer.Exit(code=INTERRUPTED_EXIT_CODE)
    if isinstance(exc, PreflightError):
        console.print(f"[yellow]{exc}[/yellow]")
        raise typer.Exit(code=PREFLIGHT_EXIT_CODE)
    if isinstance(exc, PermissionError):
        console.print(f"[red]Permission denied:[/red] {exc}")
        raise typer.Exit(code=1)
    if isinstance(exc, ConfigError):
        message = str(exc)
        console.print(f"[red]{message}[/red]")
        if "does not exist" in message:
            console.print("[yellow]Use 'dotboot init --config <path>' to create a configuration file.[/yellow]")
        elif "Expected to find" in message:
            console.print(
                "[yellow]Make sure you pointed to the directory containing the config file, or to the file itself.[/yellow]"
            )
        raise typer.Exit(code=1)
    if isinstance(exc, CommandError):
        console.print(f"[red]{exc}[/red]")
        console.print("[yellow]Fix the problem above and rerun; completed steps are skipped on the next run.[/yellow]")
        raise typer.Exit(code=1)
    if isinstance(exc, BrewfileError):
        console.print(f"[red]Brewfile error: {exc}[/red]")
        raise typer.Exit(code=1)
    if isinstance(exc, LinkError):
        console.print(f"[red]{exc}[/red]")
        console.print("[yellow]Check the [links] section of dotboot.toml against the checkout.[/yellow]")
        raise typer.Exit(code=1)
    if isinstance(exc, DotbootError):
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)
    raise exc


def _format_packages(entries: Iterable[BrewfileEntry]) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Kind")
    table.add_column("Name")
    table.add_column("Comment", overflow="fold")

    for entry in entries:
        table.add_row(entry.kind.value, entry.name, entry.comment or "")

    console.print(table)


def _format_plugins(results: Iterable[PluginResult]) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Plugin")
    table.add_column("Action")
    table.add_column("Path", overflow="fold")

    styles = {PluginAction.CLONED: "green", PluginAction.UNKNOWN: "yellow"}
    for result in results:
        style = styles.get(result.action, "white")
        table.add_row(result.name, f"[{style}]{result.action.value}[/{style}]", str(result.path or ""))

    console.print(table)


def _format_links(results: Iterable[LinkResult]) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Source", overflow="fold")
    table.add_column("Destination", overflow="fold")
    table.add_column("Action")
    table.add_column("Backup", overflow="fold")

    for result in results:
        table.add_row(str(result.source), str(result.destination), result.action.value, str(result.backup or ""))

    console.print(table)


def _format_themes(results: Iterable[ThemeResult]) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Asset", overflow="fold")
    table.add_column("Destination", overflow="fold")
    table.add_column("Action")

    for result in results:
        style = "green" if result.action is ThemeAction.COPIED else "yellow"
        table.add_row(
            result.source.name,
            str(result.destination),
            f"[{style}]{result.action.value}[/{style}]",
        )

    console.print(table)


def _print_summary(report: RunReport) -> None:
    settings = report.context.config.settings
    console.print()
    console.print("[bold green]=== Setup complete! ===[/bold green]")
    if report.skipped:
        console.print(f"Skipped stages: {', '.join(report.skipped)}")
    if report.backup_dir is not None:
        console.print(f"Backups of previous configs are in: {report.backup_dir}")
    for note in settings.post_install_notes:
        console.print(f"- {note}")


def _render_init_config(*, dotfiles_dir: str, repo_url: str, strategy: LinkStrategyName) -> str:
    data = {
        "settings": {
            "dotfiles_dir": dotfiles_dir,
            "repo_url": repo_url,
            "link_strategy": strategy.value,
            "skip": [],
            "post_install_notes": list(DEFAULT_POST_INSTALL_NOTES),
        },
        "homebrew": {
            "brewfile": "Brewfile",
            "profile": "~/.zprofile",
            "no_lock": False,
        },
        "shell": {
            "zshrc": "zsh/.zshrc",
            "plugins": [
                {"name": "git"},
                *(
                    {"name": name, "repository": repository}
                    for name, repository in KNOWN_PLUGIN_REPOSITORIES.items()
                ),
            ],
        },
        "links": {
            "stow_packages": list(DEFAULT_STOW_PACKAGES),
            "stow_conflicts": list(DEFAULT_STOW_CONFLICTS),
            "symlinks": [{"source": source, "destination": destination} for source, destination in DEFAULT_SYMLINKS],
        },
        "themes": {
            "repo_url": THEME_REPO_URL,
            "cache_dir": ".cache/blue-psl-10k",
            "directories": list(DEFAULT_THEME_DIRECTORIES),
            "assets": [{"source": source, "target": target} for source, target in DEFAULT_THEME_ASSETS],
        },
        "identity": {"path": "~/.gitconfig.local"},
    }

    buffer = io.StringIO()
    buffer.write("# dotboot configuration\n\n")
    buffer.write(tomli_w.dumps(data))
    return buffer.getvalue()


@app.command()
def init(
    config: Path = typer.Option(
        Path(DEFAULT_CONFIG_FILENAME),
        "--config",
        "-c",
        help="Path to write the configuration file",
        dir_okay=False,
        writable=True,
    ),
    dotfiles_dir: str = typer.Option(DEFAULT_DOTFILES_DIR, "--dotfiles-dir", help="Canonical checkout location"),
    repo_url: str = typer.Option(DEFAULT_REPO_URL, "--repo-url", help="Repository cloned during bootstrap"),
    strategy: LinkStrategyName = typer.Option(LinkStrategyName.STOW, "--strategy", help="Link deployment strategy"),
    force: bool = typer.Option(False, "--force", help="Overwrite existing config if present"),
) -> None:
    """Create a starter dotboot configuration file."""

    if config.exists() and not force:
        console.print(f"[red]Configuration '{config}' already exists. Use --force to overwrite.[/red]")
        raise typer.Exit(code=1)

    config.parent.mkdir(parents=True, exist_ok=True)
    config.write_text(_render_init_config(dotfiles_dir=dotfiles_dir, repo_url=repo_url, strategy=strategy))
    console.print(f"[green]Created '{config}'.[/green]")


@app.command()
def install(
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to dotboot.toml"),
    skip: list[str] = typer.Option(None, "--skip", "-s", help=f"Skip a stage ({', '.join(SKIPPABLE_STAGES)})"),
    strategy: LinkStrategyName | None = typer.Option(None, "--strategy", help="Override the link strategy"),
    skip_preflight: bool = typer.Option(False, "--skip-preflight", help="Do not probe for the Xcode toolchain"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every command and its output"),
) -> None:
    """Run every bootstrap stage in order, stopping at the first failure."""

    for stage in skip or []:
        if stage not in SKIPPABLE_STAGES:
            raise typer.BadParameter(f"choose from: {', '.join(SKIPPABLE_STAGES)}", param_hint="--skip")

    try:
        ctx = _build_context(config, verbose, skip_preflight=skip_preflight)
        installer = Installer(ctx, config_path=config, skip=skip or (), strategy=strategy)
        report = installer.run()
        _print_summary(report)
    except (Exception, KeyboardInterrupt) as exc:  # noqa: BLE001
        _handle_error(exc)


@app.command()
def preflight(
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to dotboot.toml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every command and its output"),
) -> None:
    """Check for the Xcode Command Line Tools, starting their installer if absent."""

    try:
        ctx = _build_context(config, verbose)
        check_toolchain(ctx.evolve(skip_preflight=False))
    except (Exception, KeyboardInterrupt) as exc:  # noqa: BLE001
        _handle_error(exc)


@app.command()
def packages(
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to dotboot.toml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every command and its output"),
) -> None:
    """Install Homebrew if needed and apply the Brewfile."""

    try:
        ctx = _build_context(config, verbose)
        entries = install_packages(ctx)
        _format_packages(entries)
    except (Exception, KeyboardInterrupt) as exc:  # noqa: BLE001
        _handle_error(exc)


@app.command()
def brewfile(
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to dotboot.toml"),
) -> None:
    """List the entries declared in the Brewfile."""

    try:
        ctx = _build_context(config, False)
        _format_packages(load_brewfile(ctx.config.homebrew.brewfile))
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)


@app.command()
def plugins(
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to dotboot.toml"),
    sync: bool = typer.Option(False, "--sync", help="Rewrite the plugins=(...) array in the managed .zshrc"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every command and its output"),
) -> None:
    """Install Oh My Zsh and the declared plugins."""

    try:
        ctx = _build_context(config, verbose)
        if sync:
            names = [spec.name for spec in declared_plugins(ctx)]
            if sync_zshrc(ctx.config.shell.zshrc, names):
                console.print(f"[green]Updated plugin list in {ctx.config.shell.zshrc}.[/green]")
            else:
                console.print(f"Plugin list in {ctx.config.shell.zshrc} is up to date.")
        _format_plugins(install_shell(ctx))
    except (Exception, KeyboardInterrupt) as exc:  # noqa: BLE001
        _handle_error(exc)


@app.command()
def link(
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to dotboot.toml"),
    strategy: LinkStrategyName | None = typer.Option(None, "--strategy", help="Override the link strategy"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every command and its output"),
) -> None:
    """Symlink (or stow) managed dotfiles, backing up real files first."""

    try:
        ctx = _build_context(config, verbose)
        results = deploy_links(ctx, strategy)
        _format_links(results)
        if ctx.backup is not None:
            console.print(f"Backups of previous configs are in: {ctx.backup.path}")
    except (Exception, KeyboardInterrupt) as exc:  # noqa: BLE001
        _handle_error(exc)


@app.command()
def themes(
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to dotboot.toml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every command and its output"),
) -> None:
    """Fetch the theme repository and copy its assets into place."""

    try:
        ctx = _build_context(config, verbose)
        _format_themes(fetch_themes(ctx))
    except (Exception, KeyboardInterrupt) as exc:  # noqa: BLE001
        _handle_error(exc)


@app.command()
def identity(
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to dotboot.toml"),
) -> None:
    """Create or update the per-machine Git identity file."""

    try:
        ctx = _build_context(config, False)
        outcome = configure_identity(ctx)
        console.print(f"Identity: {outcome.value}")
    except (Exception, KeyboardInterrupt) as exc:  # noqa: BLE001
        _handle_error(exc)


@app.command()
def status(
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to dotboot.toml"),
) -> None:
    """Show where each managed file currently points."""

    try:
        ctx = _build_context(config, False)
        report = link_status(ctx)
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Destination", overflow="fold")
    table.add_column("Source", overflow="fold")
    table.add_column("State")
    table.add_column("Details", overflow="fold")

    styles = {
        LinkState.LINKED: "green",
        LinkState.MISSING: "yellow",
        LinkState.CONFLICT: "red",
        LinkState.FOREIGN: "red",
    }
    for entry in report:
        style = styles[entry.state]
        table.add_row(
            str(entry.destination),
            str(entry.source),
            f"[{style}]{entry.state.value}[/{style}]",
            entry.details or "",
        )
    console.print(table)

    if any(entry.state is not LinkState.LINKED for entry in report):
        console.print("[yellow]Some links are not deployed. Run 'dotboot link' to deploy them.[/yellow]")


def run() -> None:
    """Entry point used for console_script bindings."""

    app()
