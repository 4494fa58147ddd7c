"""Filesystem-backed vault of Markdown notes."""

import asyncio
import logging
import shutil
from pathlib import Path
from typing import Any, Callable, Optional, Union

import frontmatter
import yaml
from frontmatter.default_handlers import YAMLHandler

from .models import Folder, Note
from .path_utils import get_parent_folder, join_path, normalize_folder_path

logger = logging.getLogger(__name__)

RenameListener = Callable[[str, str], None]
DeleteListener = Callable[[str], None]


class VaultError(Exception):
    """Raised when the vault refuses a create, move or trash operation."""


def split_frontmatter(text: str) -> tuple[bool, str]:
    """
    Split a note into (has_frontmatter, body).

    The body is everything after the closing "---" line, untouched.
    """
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].rstrip() != "---":
        return False, text
    for index in range(1, len(lines)):
        if lines[index].rstrip() == "---":
            return True, "".join(lines[index + 1:])
    return False, text


class Vault:
    """
    Document store over a directory of Markdown notes.

    Paths handed in and out are vault-relative and use "/" separators.
    Directories whose name starts with "." (the trash folder, editor
    config) are not part of the vault's folders or notes.
    """

    def __init__(self, root: Union[str, Path], trash_folder: str = ".trash"):
        self.root = Path(root).resolve()
        self.trash_folder = normalize_folder_path(trash_folder)
        self._rename_listeners: list[RenameListener] = []
        self._delete_listeners: list[DeleteListener] = []

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def add_listener(
        self,
        on_rename: Optional[RenameListener] = None,
        on_delete: Optional[DeleteListener] = None,
    ) -> None:
        """Register callbacks fired after the vault moves or trashes a note."""
        if on_rename:
            self._rename_listeners.append(on_rename)
        if on_delete:
            self._delete_listeners.append(on_delete)

    def _emit_rename(self, old_path: str, new_path: str) -> None:
        for listener in self._rename_listeners:
            listener(old_path, new_path)

    def _emit_delete(self, path: str) -> None:
        for listener in self._delete_listeners:
            listener(path)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def full_path(self, path: str) -> Path:
        """Absolute filesystem path for a vault path."""
        path = normalize_folder_path(path)
        return self.root / path if path else self.root

    def relative_path(self, full_path: Union[str, Path]) -> Optional[str]:
        """Vault path for an absolute filesystem path, or None if outside the vault."""
        try:
            return Path(full_path).resolve().relative_to(self.root).as_posix()
        except ValueError:
            return None

    @staticmethod
    def is_hidden(path: str) -> bool:
        """True if any segment of the path starts with a dot."""
        return any(part.startswith(".") for part in path.split("/") if part)

    def is_in_trash(self, path: str) -> bool:
        path = normalize_folder_path(path)
        return path == self.trash_folder or path.startswith(self.trash_folder + "/")

    def get_abstract_file(self, path: str) -> Union[Note, Folder, None]:
        """Resolve a vault path to a note or folder handle."""
        full = self.full_path(path)
        if full.is_dir():
            return Folder(normalize_folder_path(path))
        if full.is_file():
            return Note(normalize_folder_path(path))
        return None

    def exists(self, note: Note) -> bool:
        return self.full_path(note.path).is_file()

    def get_all_folders(self) -> list[Folder]:
        """All visible folders below the root, parents before children."""
        folders: list[Folder] = []

        def collect(directory: Path) -> None:
            for child in sorted(directory.iterdir()):
                if child.is_dir() and not child.name.startswith("."):
                    folders.append(Folder(child.relative_to(self.root).as_posix()))
                    collect(child)

        collect(self.root)
        return folders

    def get_markdown_files(self) -> list[Note]:
        """All visible Markdown notes in the vault."""
        notes = []
        for full in sorted(self.root.rglob("*.md")):
            path = full.relative_to(self.root).as_posix()
            if full.is_file() and not self.is_hidden(path):
                notes.append(Note(path))
        return notes

    # ------------------------------------------------------------------
    # Frontmatter
    # ------------------------------------------------------------------

    def read_frontmatter(self, note: Note) -> Optional[dict[str, Any]]:
        """
        Parse the note's YAML frontmatter.

        Returns None if the note cannot be read or its frontmatter is
        malformed; an empty dict if it has none.
        """
        try:
            post = frontmatter.load(str(self.full_path(note.path)))
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
            logger.debug(f"Could not parse frontmatter of {note.path}: {e}")
            return None
        return dict(post.metadata)

    async def process_frontmatter(
        self,
        note: Note,
        mutate: Callable[[dict[str, Any]], None],
    ) -> None:
        """Apply an in-place mutation to the note's frontmatter and save it."""
        await asyncio.to_thread(self._process_frontmatter, note.path, mutate)

    def _process_frontmatter(self, path: str, mutate: Callable[[dict[str, Any]], None]) -> None:
        full = self.full_path(path)
        try:
            text = full.read_text(encoding="utf-8")
            metadata = frontmatter.loads(text).metadata
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
            raise VaultError(f"Cannot update frontmatter of {path}: {e}") from e

        before = dict(metadata)
        mutate(metadata)
        if metadata == before and list(metadata) == list(before):
            return

        # Only the frontmatter block is rewritten; the body is kept byte for byte.
        had_block, body = split_frontmatter(text)
        if metadata:
            block = YAMLHandler().export(metadata, sort_keys=False)
            text = f"---\n{block}\n---\n{body}"
        elif had_block:
            text = body.lstrip("\n")
        else:
            return

        full.write_text(text, encoding="utf-8")
        logger.debug(f"Updated frontmatter of {path}")

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_folder(self, path: str) -> Folder:
        """Create a folder (and its parents). Idempotent for existing folders."""
        path = normalize_folder_path(path)
        full = self.full_path(path)
        if full.exists() and not full.is_dir():
            raise VaultError(f"Cannot create folder {path}: a file with that name exists")

        if not full.is_dir():
            await asyncio.to_thread(full.mkdir, parents=True, exist_ok=True)
            logger.info(f"Created folder {path}")
        return Folder(path)

    async def rename(self, note: Note, new_path: str) -> None:
        """
        Move a note to a new vault path.

        The handle's path is updated in place and rename listeners fire
        once the file is in its new location.
        """
        old_path = note.path
        new_path = normalize_folder_path(new_path)
        source = self.full_path(old_path)
        dest = self.full_path(new_path)

        if not source.is_file():
            raise VaultError(f"Cannot move {old_path}: note does not exist")
        if dest.exists():
            raise VaultError(f"Cannot move {old_path}: {new_path} already exists")
        if not self.full_path(get_parent_folder(new_path)).is_dir():
            raise VaultError(f"Cannot move {old_path}: folder of {new_path} does not exist")

        await asyncio.to_thread(shutil.move, str(source), str(dest))
        note.path = new_path
        logger.info(f"Moved {old_path} → {new_path}")
        self._emit_rename(old_path, new_path)

    async def trash(self, note: Note) -> str:
        """Move a note into the vault's trash folder. Returns its trash path."""
        path = note.path
        source = self.full_path(path)
        if not source.is_file():
            raise VaultError(f"Cannot trash {path}: note does not exist")

        trash_dir = self.full_path(self.trash_folder)
        await asyncio.to_thread(trash_dir.mkdir, parents=True, exist_ok=True)

        dest = trash_dir / source.name
        counter = 1
        while dest.exists():
            dest = trash_dir / f"{source.stem}_{counter}{source.suffix}"
            counter += 1

        await asyncio.to_thread(shutil.move, str(source), str(dest))
        trash_path = join_path(self.trash_folder, dest.name)
        logger.info(f"Trashed {path} → {trash_path}")
        self._emit_delete(path)
        return trash_path
