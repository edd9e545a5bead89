"""Command-line interface for dotsetup."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

import typer
from rich.logging import RichHandler
from rich.table import Table

from .config import ConfigError, load_config
from .errors import BootstrapError, UnsupportedPlatformError
from .models import StepOutcome, StepResult
from .orchestrator import Bootstrapper
from .output import console, error, info, success

app = typer.Typer(help="Bootstrap a machine from a dotfiles checkout")

NEXT_STEPS = (
    "Update .gitconfig with your name and email",
    "Set your terminal font to 'BlexMono Nerd Font' for best experience",
    "Restart your terminal or run: source ~/.zshrc",
    "Open vim and run :PlugInstall to install vim plugins",
    "(Optional) Customize settings in ~/.zshrc.local",
)


def _configure_logging(verbose: bool) -> None:
    root = logging.getLogger()
    if any(isinstance(handler, RichHandler) for handler in root.handlers):
        return
    handler = RichHandler(console=console, rich_tracebacks=True, show_path=False)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)


def _load_bootstrapper(config: Path | None, repo: Path) -> Bootstrapper:
    config_obj = load_config(config, repo_dir=repo)
    return Bootstrapper(config_obj)


def _handle_error(exc: Exception) -> None:
    if isinstance(exc, PermissionError):
        error("Permission denied.")
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)
    if isinstance(exc, ConfigError):
        error(str(exc))
        if "does not exist" in str(exc):
            console.print("[yellow]Pass --config only when the file exists, or drop it to use the defaults.[/yellow]")
        elif "dotfiles checkout" in str(exc):
            console.print("[yellow]Run dotsetup from your dotfiles checkout, or point --repo at it.[/yellow]")
        raise typer.Exit(code=1)
    if isinstance(exc, UnsupportedPlatformError):
        error(str(exc))
        raise typer.Exit(code=1)
    if isinstance(exc, BootstrapError):
        error(str(exc))
        console.print("[yellow]Every step is safe to repeat; fix the problem and run dotsetup again.[/yellow]")
        raise typer.Exit(code=1)
    raise exc


def _format_results(results: Iterable[StepResult]) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Step")
    table.add_column("Outcome")
    table.add_column("Details", overflow="fold")

    outcome_styles = {
        StepOutcome.APPLIED: "green",
        StepOutcome.SKIPPED: "cyan",
        StepOutcome.WARNED: "yellow",
    }

    for result in results:
        style = outcome_styles.get(result.outcome, "white")
        table.add_row(
            result.step,
            f"[{style}]{result.outcome.value}[/{style}]",
            result.details or "",
        )

    console.print(table)


def _print_next_steps() -> None:
    info("Next steps:")
    for index, hint in enumerate(NEXT_STEPS, start=1):
        console.print(f"  {index}. {hint}", highlight=False, markup=False)


@app.command()
def main(
    repo: Path = typer.Option(
        Path("."),
        "--repo",
        "-r",
        help="Dotfiles checkout holding the files to link",
        file_okay=False,
    ),
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to dotsetup.toml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every command and download"),
) -> None:
    """Back up, link and provision everything in one idempotent run."""

    _configure_logging(verbose)
    console.print()
    info("Starting dotfiles setup...")
    try:
        bootstrapper = _load_bootstrapper(config, repo)
        try:
            results = bootstrapper.run()
        finally:
            bootstrapper.fetcher.close()
        _format_results(results)
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)

    success("Dotfiles setup complete!")
    _print_next_steps()


def run() -> None:
    """Entry point used for console_script bindings."""

    app()
