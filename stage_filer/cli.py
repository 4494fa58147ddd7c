"""Command-line interface for Stage Filer."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import LOG_FORMAT, config
from .events import start_observer
from .folders import FolderService
from .models import is_actionable_stage
from .prompts import RichPrompter
from .settings import (
    SettingsError,
    StageFilingSettings,
    load_settings,
    parse_folder_list,
    save_settings,
)
from .vault import Vault
from .watcher import StageWatcher

app = typer.Typer(
    name="stage-filer",
    help="File Markdown notes when their frontmatter stage becomes done, archive or delete."
)
console = Console()

VaultOption = typer.Option(None, "--vault", "-v", help="Vault directory (default: VAULT_PATH)")


def _run_async(func, *args, **kwargs):
    """Helper to run async functions from synchronous Typer commands."""
    return asyncio.run(func(*args, **kwargs))


@app.callback()
def main(
    debug: bool = typer.Option(False, "--debug", help="Verbose logging"),
):
    """Stage-based note filing."""
    logging.basicConfig(
        level=logging.DEBUG if debug else config.log_level,
        format=LOG_FORMAT,
    )


def _open_vault(vault_path: Optional[Path]) -> tuple[Vault, Path, StageFilingSettings]:
    """Resolve the vault and load its settings, exiting on failure."""
    root = vault_path or config.vault_path
    if not root.is_dir():
        console.print(f"[red]Vault directory not found: {root}[/red]")
        raise typer.Exit(1)

    settings_path = config.settings_path(root)
    try:
        settings = load_settings(settings_path)
    except SettingsError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    return Vault(root, trash_folder=config.trash_folder), settings_path, settings


def _notify(message: str) -> None:
    console.print(f"[red]✗ {message}[/red]")


def _create_watcher(vault: Vault, settings: StageFilingSettings) -> StageWatcher:
    watcher = StageWatcher(vault, settings, RichPrompter(console), notify=_notify)
    vault.add_listener(on_rename=watcher.on_renamed, on_delete=watcher.on_deleted)
    return watcher


async def _watch(vault: Vault, settings: StageFilingSettings, scan: bool) -> None:
    watcher = _create_watcher(vault, settings)
    watcher.prime_stage_cache()
    observer = start_observer(vault, watcher, asyncio.get_running_loop())

    if scan:
        watcher.scan_watched_folders()

    try:
        while True:
            await asyncio.sleep(1)
    finally:
        observer.stop()
        observer.join()


async def _scan(vault: Vault, settings: StageFilingSettings) -> int:
    watcher = _create_watcher(vault, settings)
    count = watcher.scan_watched_folders()
    await watcher.wait_idle()
    return count


@app.command()
def watch(
    vault: Optional[Path] = VaultOption,
    scan: bool = typer.Option(False, "--scan/--no-scan", help="Also process notes that already have a stage"),
):
    """
    Watch the vault and prompt whenever a note's stage changes.

    Runs until interrupted with Ctrl+C.
    """
    store, _, settings = _open_vault(vault)

    console.print(Panel(
        f"[bold]Stage Filer[/bold]\n\n"
        f"Vault: {store.root}\n"
        f"Watching: {', '.join(settings.watched_folders) or '(nothing)'}\n"
        f"Archive: {settings.archive_folder}",
        border_style="green"
    ))

    try:
        _run_async(_watch, store, settings, scan)
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped watching.[/yellow]")


@app.command()
def scan(vault: Optional[Path] = VaultOption):
    """Process every watched note that already has an actionable stage."""
    store, _, settings = _open_vault(vault)

    count = _run_async(_scan, store, settings)
    if count:
        console.print(f"[green]✓[/green] Queued {count} notes")
    else:
        console.print("[yellow]No actionable notes found.[/yellow]")


@app.command()
def status(vault: Optional[Path] = VaultOption):
    """Show configuration, settings and the stage of every watched note."""
    store, settings_path, settings = _open_vault(vault)

    console.print(Panel("[bold]Stage Filer - Status[/bold]", border_style="blue"))

    console.print(f"\n[bold]Configuration:[/bold]")
    console.print(f"  Vault: {store.root}")
    console.print(f"  Settings: {settings_path}")
    console.print(f"  Trash: {store.trash_folder}")

    _print_settings(settings)

    watcher = StageWatcher(store, settings, RichPrompter(console))
    notes = watcher.watched_notes()

    table = Table(title="Watched notes", show_header=True)
    table.add_column("Note", style="white")
    table.add_column("Stage")

    for note in notes:
        stage = watcher.frontmatter.get_stage(note)
        if is_actionable_stage(stage):
            table.add_row(note.path, f"[yellow]{stage}[/yellow]")
        else:
            table.add_row(note.path, f"[dim]{stage or '-'}[/dim]")

    console.print()
    if notes:
        console.print(table)
    else:
        console.print("[dim]No notes in watched folders.[/dim]")


@app.command("settings")
def edit_settings(
    vault: Optional[Path] = VaultOption,
    watched: Optional[str] = typer.Option(None, "--watched", help="Watched folders, comma-separated"),
    archive: Optional[str] = typer.Option(None, "--archive", help="Destination folder for archived notes"),
    excluded: Optional[str] = typer.Option(None, "--excluded", help="Folders hidden from suggestions, comma-separated"),
):
    """Show or change the persisted settings."""
    _, settings_path, settings = _open_vault(vault)

    changed = False
    if watched is not None:
        settings.watched_folders = parse_folder_list(watched)
        changed = True
    if archive is not None:
        settings.archive_folder = archive.strip()
        changed = True
    if excluded is not None:
        settings.excluded_folders = parse_folder_list(excluded)
        changed = True

    if changed:
        save_settings(settings, settings_path)
        console.print(f"[green]✓[/green] Settings saved to {settings_path}")

    _print_settings(settings)


@app.command()
def folders(vault: Optional[Path] = VaultOption):
    """List the destination folders offered for done notes."""
    store, _, settings = _open_vault(vault)

    suggestions = FolderService(store).get_suggestions(
        settings.watched_folders,
        settings.excluded_folders,
    )
    if not suggestions:
        console.print("[yellow]No destination folders available.[/yellow]")
        return

    for folder in suggestions:
        console.print(f"  {folder.path}")


def _print_settings(settings: StageFilingSettings) -> None:
    console.print(f"\n[bold]Settings:[/bold]")
    console.print(f"  Watched folders: {', '.join(settings.watched_folders) or '-'}")
    console.print(f"  Archive folder: {settings.archive_folder}")
    console.print(f"  Excluded folders: {', '.join(settings.excluded_folders) or '-'}")


if __name__ == "__main__":
    app()
