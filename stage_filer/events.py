"""Bridge from watchdog filesystem events to the stage watcher."""

import asyncio
import logging
import os
from typing import Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .models import Note
from .vault import Vault
from .watcher import StageWatcher

logger = logging.getLogger(__name__)


class VaultEventHandler(FileSystemEventHandler):
    """
    Translates filesystem events inside the vault into watcher calls.

    watchdog delivers events on its observer thread; every call into the
    watcher is handed to the event loop with call_soon_threadsafe.
    """

    def __init__(self, vault: Vault, watcher: StageWatcher, loop: asyncio.AbstractEventLoop):
        super().__init__()
        self.vault = vault
        self.watcher = watcher
        self.loop = loop

    def _vault_path(self, raw_path) -> Optional[str]:
        path = self.vault.relative_path(os.fsdecode(raw_path))
        if not path or path == ".":
            return None
        return path

    def _schedule(self, callback, *args) -> None:
        self.loop.call_soon_threadsafe(callback, *args)

    def _metadata_changed(self, path: str) -> None:
        if self.vault.is_hidden(path) or not path.endswith(".md"):
            return
        note = Note(path)
        if not self.vault.exists(note):
            return
        metadata = self.vault.read_frontmatter(note)
        self._schedule(self.watcher.on_metadata_changed, note, metadata)

    def on_created(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        path = self._vault_path(event.src_path)
        if path:
            self._metadata_changed(path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        path = self._vault_path(event.src_path)
        if path:
            self._metadata_changed(path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        old_path = self._vault_path(event.src_path)
        new_path = self._vault_path(event.dest_path)

        # Editors often save through a hidden temp file renamed over the note
        if old_path and not self.vault.is_hidden(old_path):
            if not new_path or self.vault.is_in_trash(new_path):
                logger.debug(f"Moved out of the vault: {old_path}")
                self._schedule(self.watcher.on_deleted, old_path)
                return

            logger.debug(f"Moved: {old_path} → {new_path}")
            self._schedule(self.watcher.on_renamed, old_path, new_path)

        if new_path:
            self._metadata_changed(new_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        path = self._vault_path(event.src_path)
        if path:
            logger.debug(f"Deleted: {path}")
            self._schedule(self.watcher.on_deleted, path)


def start_observer(
    vault: Vault,
    watcher: StageWatcher,
    loop: asyncio.AbstractEventLoop,
) -> Observer:
    """Start a recursive observer on the vault root."""
    observer = Observer()
    observer.schedule(VaultEventHandler(vault, watcher, loop), str(vault.root), recursive=True)
    observer.start()
    logger.info(f"Watching vault at {vault.root}")
    return observer
