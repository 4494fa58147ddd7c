"""Stage watcher: detects stage transitions and files notes one at a time."""

import asyncio
import logging
from collections import deque
from typing import Any, Callable, Optional

from .folders import FolderService
from .frontmatter_service import FrontmatterService, stage_from_metadata
from .models import ActionableNote, Note, StageValue, is_actionable_stage
from .path_utils import is_in_folders
from .prompts import ConfirmRequest, Prompter
from .settings import StageFilingSettings
from .vault import Vault

logger = logging.getLogger(__name__)


class StageWatcher:
    """
    Watches notes in the configured folders for stage changes and runs
    the matching filing action.

    The host feeds events in through on_metadata_changed, on_renamed and
    on_deleted. Actionable notes are queued and handled strictly in
    order, so at most one prompt is open at any time. Declining a prompt
    puts the stage back to what it was before the transition.

    All methods must be called from the event loop thread.
    """

    def __init__(
        self,
        vault: Vault,
        settings: StageFilingSettings,
        prompter: Prompter,
        notify: Optional[Callable[[str], None]] = None,
    ):
        """
        Args:
            vault: Document store holding the notes
            settings: Watched, archive and excluded folders
            prompter: Confirmation and folder selection prompts
            notify: Receives a message when filing a note fails
        """
        self.vault = vault
        self.settings = settings
        self.prompter = prompter
        self.notify = notify
        self.frontmatter = FrontmatterService(vault)
        self.folders = FolderService(vault)

        # Last known stage per path, the baseline for reverting
        self._stage_cache: dict[str, Optional[str]] = {}
        self._queue: deque[ActionableNote] = deque()
        self._processing = False
        self._active: Optional[ActionableNote] = None
        self._drain_tasks: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # State inspection
    # ------------------------------------------------------------------

    @property
    def pending(self) -> tuple[ActionableNote, ...]:
        """Queued notes, oldest first (excludes the one being handled)."""
        return tuple(self._queue)

    @property
    def is_processing(self) -> bool:
        return self._processing

    @property
    def active(self) -> Optional[ActionableNote]:
        """The note whose action is currently in progress."""
        return self._active

    @property
    def stage_cache(self) -> dict[str, Optional[str]]:
        return dict(self._stage_cache)

    def get_cached_stage(self, path: str) -> Optional[str]:
        return self._stage_cache.get(path)

    def is_watched(self, path: str) -> bool:
        return is_in_folders(path, self.settings.watched_folders)

    def is_queued(self, path: str) -> bool:
        return any(entry.path == path for entry in self._queue)

    def watched_notes(self) -> list[Note]:
        """Markdown notes inside any watched folder."""
        return [
            note for note in self.vault.get_markdown_files()
            if self.is_watched(note.path)
        ]

    async def wait_idle(self) -> None:
        """Wait until every scheduled drain has finished."""
        while self._drain_tasks:
            await asyncio.gather(*self._drain_tasks)

    # ------------------------------------------------------------------
    # Host notifications
    # ------------------------------------------------------------------

    def on_metadata_changed(self, note: Note, metadata: Optional[dict[str, Any]]) -> None:
        """Handle freshly parsed frontmatter for a note."""
        if note.extension != "md" or not self.is_watched(note.path):
            return

        current_stage = stage_from_metadata(metadata)
        previous_stage = self._stage_cache.get(note.path)
        self._stage_cache[note.path] = current_stage

        if not is_actionable_stage(current_stage):
            return

        # One entry per path; keep the previous stage recorded at enqueue time
        if self.is_queued(note.path):
            return

        self._queue.append(ActionableNote(
            note=note,
            stage=StageValue(current_stage),
            previous_stage=previous_stage,
        ))
        logger.info(f"Queued {note.path} (stage: {current_stage}, previous: {previous_stage})")
        self._schedule_drain()

    def on_renamed(self, old_path: str, new_path: str) -> None:
        """Follow a note to its new path."""
        if old_path in self._stage_cache:
            self._stage_cache[new_path] = self._stage_cache.pop(old_path)

        if self.is_queued(new_path):
            self._queue = deque(e for e in self._queue if e.path != old_path)
        for entry in self._queue:
            if entry.path == old_path:
                entry.note.path = new_path

        if self._active and self._active.path == old_path:
            self._active.note.path = new_path

    def on_deleted(self, path: str) -> None:
        """Forget a deleted note. A queued entry fails its existence check later."""
        self._stage_cache.pop(path, None)

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    def prime_stage_cache(self) -> int:
        """Record the current stage of every watched note without queueing."""
        notes = self.watched_notes()
        for note in notes:
            self._stage_cache[note.path] = self.frontmatter.get_stage(note)
        logger.info(f"Primed stage cache with {len(notes)} notes")
        return len(notes)

    def scan_watched_folders(self) -> int:
        """
        Queue every watched note that currently has an actionable stage.

        There is no reliable "before" value on this path, so a cancelled
        action removes the stage instead of restoring an older one.

        Returns:
            Number of notes added to the queue
        """
        added = 0
        for note in self.watched_notes():
            stage = self.frontmatter.get_stage(note)
            self._stage_cache[note.path] = stage

            if not is_actionable_stage(stage) or self.is_queued(note.path):
                continue

            self._queue.append(ActionableNote(note=note, stage=StageValue(stage)))
            added += 1

        logger.info(f"Scan queued {added} actionable notes")
        self._schedule_drain()
        return added

    # ------------------------------------------------------------------
    # Queue processing
    # ------------------------------------------------------------------

    def _schedule_drain(self) -> None:
        if self._processing:
            return
        task = asyncio.get_running_loop().create_task(self.process_queue())
        self._drain_tasks.add(task)
        task.add_done_callback(self._drain_tasks.discard)

    async def process_queue(self) -> None:
        """
        Process queued notes sequentially until the queue is empty.

        A no-op while another drain is running; that drain picks up any
        notes queued in the meantime. A failure is reported and only
        affects the note it happened on.
        """
        if self._processing:
            return

        self._processing = True
        try:
            while self._queue:
                entry = self._queue.popleft()
                self._active = entry
                try:
                    await self._handle_note(entry)
                except Exception as e:
                    logger.exception(f"Failed to {entry.stage.value} {entry.path}")
                    if self.notify:
                        self.notify(f'Could not {entry.stage.value} "{entry.note.basename}": {e}')
                finally:
                    self._active = None
        finally:
            self._processing = False

    async def _handle_note(self, entry: ActionableNote) -> None:
        note = entry.note

        if not isinstance(self.vault.get_abstract_file(note.path), Note):
            logger.debug(f"Skipping {note.path}: note no longer exists")
            self._stage_cache.pop(note.path, None)
            return

        current_stage = self.frontmatter.get_stage(note)
        if current_stage != entry.stage.value:
            logger.debug(
                f"Skipping {note.path}: stage changed from {entry.stage.value} to {current_stage}"
            )
            return

        handlers = {
            StageValue.DONE: self._handle_done,
            StageValue.ARCHIVE: self._handle_archive,
            StageValue.DELETE: self._handle_delete,
        }
        await handlers[entry.stage](note, entry.previous_stage)

    async def _handle_done(self, note: Note, previous_stage: Optional[str]) -> None:
        """Ask for a destination folder and move the note there."""
        folders = self.folders.get_suggestions(
            self.settings.watched_folders,
            self.settings.excluded_folders,
        )

        selected = await self.prompter.select_folder(folders, note.basename)
        if self._note_gone(note):
            return
        if not selected:
            await self._revert_stage(note, previous_stage)
            return

        await self.folders.move_note(note, selected)
        await self.frontmatter.remove_stage(note)

    async def _handle_archive(self, note: Note, previous_stage: Optional[str]) -> None:
        """Confirm, then move the note to the archive folder."""
        confirmed = await self.prompter.confirm(ConfirmRequest(
            title="Archive note",
            message=f'Move "{note.basename}" to archive folder ({self.settings.archive_folder})?',
            destructive=False,
            confirm_label="Archive",
            cancel_label="Cancel",
        ))
        if self._note_gone(note):
            return
        if not confirmed:
            await self._revert_stage(note, previous_stage)
            return

        archive = await self.folders.ensure_folder(self.settings.archive_folder)
        await self.folders.move_note(note, archive)
        await self.frontmatter.remove_stage(note)

    async def _handle_delete(self, note: Note, previous_stage: Optional[str]) -> None:
        """Confirm, then move the note to the trash."""
        confirmed = await self.prompter.confirm(ConfirmRequest(
            title="Delete note",
            message=f'Move "{note.basename}" to the trash? It can be restored from the trash folder.',
            destructive=True,
            confirm_label="Delete",
            cancel_label="Cancel",
        ))
        if self._note_gone(note):
            return
        if not confirmed:
            await self._revert_stage(note, previous_stage)
            return

        await self.folders.trash_note(note)

    def _note_gone(self, note: Note) -> bool:
        """True, with the cache entry purged, if the note vanished while the prompt was open."""
        if self.vault.exists(note):
            return False
        logger.debug(f"Skipping {note.path}: note removed while waiting for an answer")
        self._stage_cache.pop(note.path, None)
        return True

    async def _revert_stage(self, note: Note, previous_stage: Optional[str]) -> None:
        """Restore the stage from before the transition, or remove it."""
        if previous_stage is None:
            await self.frontmatter.remove_stage(note)
        else:
            await self.frontmatter.set_stage(note, previous_stage)

        self._stage_cache[note.path] = previous_stage
        logger.info(f"Reverted stage of {note.path} to {previous_stage}")
