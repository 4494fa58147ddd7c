"""Folder lookup, destination suggestions and note moves."""

import logging
from typing import Optional

from .models import Folder, Note
from .path_utils import is_subfolder_of, join_path, normalize_folder_path
from .vault import Vault, VaultError

logger = logging.getLogger(__name__)


class FolderService:
    """Service for folder operations and suggestions."""

    def __init__(self, vault: Vault):
        self.vault = vault

    def get_all_folders(self) -> list[Folder]:
        """Get all folders in the vault."""
        return self.vault.get_all_folders()

    def get_suggestions(
        self,
        watched_folders: list[str],
        excluded_folders: list[str],
    ) -> list[Folder]:
        """
        Get destination folders for the move prompt.

        Watched folders and excluded folders are left out, including
        their subfolders.
        """
        hidden = [normalize_folder_path(f) for f in [*watched_folders, *excluded_folders]]
        hidden = [f for f in hidden if f]

        return [
            folder for folder in self.get_all_folders()
            if not any(is_subfolder_of(folder.path, parent) for parent in hidden)
        ]

    def get_folder(self, path: str) -> Optional[Folder]:
        """Get a folder by path, or None if it doesn't exist."""
        found = self.vault.get_abstract_file(normalize_folder_path(path))
        return found if isinstance(found, Folder) else None

    async def ensure_folder(self, path: str) -> Folder:
        """Ensure a folder exists, creating it if necessary."""
        normalized = normalize_folder_path(path)
        existing = self.get_folder(normalized)
        if existing:
            return existing

        await self.vault.create_folder(normalized)
        created = self.get_folder(normalized)
        if not created:
            raise VaultError(f"Failed to create folder: {normalized}")
        return created

    async def move_note(self, note: Note, destination: Folder) -> None:
        """
        Move a note into a destination folder.

        After this call, note.path points at the new location.
        """
        await self.vault.rename(note, join_path(destination.path, note.name))

    async def trash_note(self, note: Note) -> None:
        """Move a note to the vault trash."""
        await self.vault.trash(note)
