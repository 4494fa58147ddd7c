"""Persisted settings for stage-based note filing."""

import json
import logging
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class SettingsError(Exception):
    """Raised when the settings file cannot be read."""


class StageFilingSettings(BaseModel):
    """User-editable settings for the stage watcher."""

    # Folders to watch for stage changes
    watched_folders: list[str] = Field(default_factory=lambda: ["clippings", "inbox"])
    # Folder where archived notes are moved
    archive_folder: str = "bin"
    # Folders left out of destination suggestions (includes subfolders)
    excluded_folders: list[str] = Field(default_factory=list)


def parse_folder_list(value: str) -> list[str]:
    """Parse a comma-separated folder list, dropping blank entries."""
    return [s.strip() for s in value.split(",") if s.strip()]


def load_settings(path: Path) -> StageFilingSettings:
    """Load settings from a JSON file, falling back to defaults for missing keys."""
    if not path.exists():
        logger.info(f"No settings file at {path}, using defaults")
        return StageFilingSettings()

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return StageFilingSettings.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as e:
        raise SettingsError(f"Invalid settings file {path}: {e}") from e


def save_settings(settings: StageFilingSettings, path: Path) -> None:
    """Write settings to a JSON file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(settings.model_dump(), f, indent=2, ensure_ascii=False)
    logger.info(f"Saved settings to {path}")
