"""Interactive confirmation and folder selection prompts."""

import asyncio
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from .models import Folder


@dataclass
class ConfirmRequest:
    """A yes/no question shown before archiving or deleting a note."""

    title: str
    message: str
    destructive: bool = False
    confirm_label: str = "Confirm"
    cancel_label: str = "Cancel"


class Prompter(ABC):
    """
    Asks the user to confirm an action or pick a destination folder.

    Both methods suspend until the user answers. Closing a prompt without
    an explicit choice counts as a cancellation.
    """

    @abstractmethod
    async def confirm(self, request: ConfirmRequest) -> bool:
        """Return True if the user confirmed, False if they cancelled."""

    @abstractmethod
    async def select_folder(self, folders: list[Folder], note_name: str) -> Optional[Folder]:
        """Return the chosen folder, or None if nothing was selected."""


async def run_in_daemon_thread(func: Callable[..., Any], *args: Any) -> Any:
    """
    Run a blocking call on a daemon thread and await its result.

    A thread blocked in input() cannot be interrupted, so it must not be
    one the event loop joins on shutdown (as asyncio.to_thread's executor
    is). A daemon thread is left behind when Ctrl+C stops the loop.
    """
    loop = asyncio.get_running_loop()
    future = loop.create_future()

    def deliver(result: Any, error: Optional[BaseException]) -> None:
        if future.done():
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(result)

    def run() -> None:
        try:
            result, error = func(*args), None
        except BaseException as e:
            result, error = None, e
        try:
            loop.call_soon_threadsafe(deliver, result, error)
        except RuntimeError:
            # Event loop already closed; nobody is waiting for the answer.
            pass

    threading.Thread(target=run, name="stage-filer-prompt", daemon=True).start()
    return await future


def filter_folders(folders: list[Folder], query: str) -> list[Folder]:
    """Folders whose path contains the query (case-insensitive)."""
    lower_query = query.lower()
    return [f for f in folders if lower_query in f.path.lower()]


class RichPrompter(Prompter):
    """Terminal prompts rendered with rich."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    async def confirm(self, request: ConfirmRequest) -> bool:
        return await run_in_daemon_thread(self._confirm, request)

    async def select_folder(self, folders: list[Folder], note_name: str) -> Optional[Folder]:
        return await run_in_daemon_thread(self._select_folder, folders, note_name)

    def _confirm(self, request: ConfirmRequest) -> bool:
        self.console.print(Panel(
            request.message,
            title=request.title,
            border_style="red" if request.destructive else "blue",
        ))
        try:
            return Confirm.ask(
                f"[bold]{request.confirm_label}[/bold] (no = {request.cancel_label})",
                console=self.console,
                default=False,
            )
        except (EOFError, KeyboardInterrupt):
            return False

    def _select_folder(self, folders: list[Folder], note_name: str) -> Optional[Folder]:
        """
        Numbered folder picker.

        A number picks a folder, any other text narrows the list, and an
        empty answer cancels.
        """
        candidates = folders
        while True:
            if not candidates:
                self.console.print("[yellow]No matching folders.[/yellow]")
                candidates = folders

            table = Table(title=f'Select destination for "{note_name}"', show_header=True)
            table.add_column("#", style="cyan", width=4)
            table.add_column("Folder", style="green")
            for i, folder in enumerate(candidates, 1):
                table.add_row(str(i), folder.path)
            self.console.print(table)

            try:
                choice = Prompt.ask(
                    "Folder number, text to filter, or Enter to cancel",
                    console=self.console,
                    default="",
                    show_default=False,
                ).strip()
            except (EOFError, KeyboardInterrupt):
                return None

            if not choice:
                return None

            if choice.isdigit():
                idx = int(choice) - 1
                if 0 <= idx < len(candidates):
                    return candidates[idx]
                self.console.print("[red]Invalid number.[/red]")
                continue

            candidates = filter_folders(folders, choice)
