"""Shared fixtures: a temporary vault, scripted prompts and a watcher."""

import asyncio
from pathlib import Path
from typing import Optional

import frontmatter
import pytest

from stage_filer.models import Folder, Note
from stage_filer.prompts import ConfirmRequest, Prompter
from stage_filer.settings import StageFilingSettings
from stage_filer.vault import Vault
from stage_filer.watcher import StageWatcher


class ScriptedPrompter(Prompter):
    """
    Answers prompts from pre-loaded lists and records every request.

    Unanswered prompts are treated as cancelled. When hold() is used the
    prompt stays open until release() is called.
    """

    def __init__(self):
        self.confirm_answers: list[bool] = []
        self.folder_answers: list[Optional[str]] = []
        self.confirm_requests: list[ConfirmRequest] = []
        self.folder_requests: list[tuple[list[str], str]] = []
        self.opened = 0
        self._gate: Optional[asyncio.Event] = None

    def hold(self) -> None:
        self._gate = asyncio.Event()

    def release(self) -> None:
        if self._gate:
            self._gate.set()

    async def _wait(self) -> None:
        self.opened += 1
        if self._gate:
            await self._gate.wait()

    async def confirm(self, request: ConfirmRequest) -> bool:
        self.confirm_requests.append(request)
        await self._wait()
        return self.confirm_answers.pop(0) if self.confirm_answers else False

    async def select_folder(self, folders: list[Folder], note_name: str) -> Optional[Folder]:
        self.folder_requests.append(([f.path for f in folders], note_name))
        await self._wait()
        answer = self.folder_answers.pop(0) if self.folder_answers else None
        if answer is None:
            return None
        return next(f for f in folders if f.path == answer)


@pytest.fixture
def vault_dir(tmp_path: Path) -> Path:
    for folder in ["inbox", "projects"]:
        (tmp_path / folder).mkdir()
    return tmp_path


@pytest.fixture
def vault(vault_dir: Path) -> Vault:
    return Vault(vault_dir)


@pytest.fixture
def settings() -> StageFilingSettings:
    return StageFilingSettings(watched_folders=["inbox"], archive_folder="bin", excluded_folders=[])


@pytest.fixture
def prompter() -> ScriptedPrompter:
    return ScriptedPrompter()


@pytest.fixture
def notifications() -> list[str]:
    return []


@pytest.fixture
def watcher(vault, settings, prompter, notifications) -> StageWatcher:
    stage_watcher = StageWatcher(vault, settings, prompter, notify=notifications.append)
    vault.add_listener(on_rename=stage_watcher.on_renamed, on_delete=stage_watcher.on_deleted)
    return stage_watcher


@pytest.fixture
def write_note(vault_dir: Path):
    """Write a note with optional frontmatter; returns its handle."""

    def write(path: str, body: str = "Some text", **metadata) -> Note:
        full = vault_dir / path
        full.parent.mkdir(parents=True, exist_ok=True)
        post = frontmatter.Post(body, **metadata)
        text = frontmatter.dumps(post) if metadata else body
        full.write_text(text + "\n", encoding="utf-8")
        return Note(path)

    return write


@pytest.fixture
def edit_stage(vault, watcher, write_note):
    """Simulate a user edit: write the note, then deliver the change event."""

    def edit(path: str, stage: Optional[str], **metadata) -> Note:
        if stage is not None:
            metadata["stage"] = stage
        note = write_note(path, **metadata)
        watcher.on_metadata_changed(Note(path), vault.read_frontmatter(note))
        return note

    return edit


@pytest.fixture
def read_metadata(vault):
    def read(path: str) -> Optional[dict]:
        return vault.read_frontmatter(Note(path))

    return read
