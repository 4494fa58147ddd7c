"""Read and write the stage field of a note's frontmatter."""

from typing import Optional

from .models import STAGE_FIELD, Note
from .vault import Vault


class FrontmatterService:
    """Service for reading and writing frontmatter stage values."""

    def __init__(self, vault: Vault):
        self.vault = vault

    def get_stage(self, note: Note) -> Optional[str]:
        """
        Get the stage value from a note's frontmatter.

        Returns:
            The stage value, or None if missing or not a string
        """
        metadata = self.vault.read_frontmatter(note)
        return stage_from_metadata(metadata)

    async def set_stage(self, note: Note, stage: str) -> None:
        """Set the stage value in a note's frontmatter."""
        def apply(fm: dict) -> None:
            fm[STAGE_FIELD] = stage

        await self.vault.process_frontmatter(note, apply)

    async def remove_stage(self, note: Note) -> None:
        """Remove the stage property from a note's frontmatter."""
        def apply(fm: dict) -> None:
            fm.pop(STAGE_FIELD, None)

        await self.vault.process_frontmatter(note, apply)


def stage_from_metadata(metadata) -> Optional[str]:
    """Extract a string stage from parsed metadata; anything else is None."""
    if not isinstance(metadata, dict):
        return None
    stage = metadata.get(STAGE_FIELD)
    return stage if isinstance(stage, str) else None
