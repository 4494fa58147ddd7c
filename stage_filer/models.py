"""Data models for notes, folders and stage transitions."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


STAGE_FIELD = "stage"


class StageValue(str, Enum):
    """Actionable stage values that trigger filing prompts."""
    DONE = "done"
    ARCHIVE = "archive"
    DELETE = "delete"


STAGE_VALUES = frozenset(stage.value for stage in StageValue)


def is_actionable_stage(value: Any) -> bool:
    """Check if a frontmatter value is an actionable stage (exact match)."""
    return isinstance(value, str) and value in STAGE_VALUES


@dataclass
class Note:
    """A Markdown note in the vault, identified by its vault-relative path."""

    path: str

    @property
    def name(self) -> str:
        """File name including extension."""
        return self.path.rsplit("/", 1)[-1]

    @property
    def basename(self) -> str:
        """Display name (file name without extension)."""
        stem, dot, _ = self.name.rpartition(".")
        return stem if dot else self.name

    @property
    def extension(self) -> str:
        _, dot, ext = self.name.rpartition(".")
        return ext.lower() if dot else ""


@dataclass(frozen=True)
class Folder:
    """A folder in the vault ("" is the vault root)."""

    path: str

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1]


@dataclass
class ActionableNote:
    """A note with an actionable stage waiting to be processed."""

    note: Note
    stage: StageValue
    previous_stage: Optional[str] = None  # stage before the transition, None if absent

    @property
    def path(self) -> str:
        return self.note.path
