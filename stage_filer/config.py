"""Configuration management for Stage Filer."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

# Load .env file from project root
_project_root = Path(__file__).parent.parent
load_dotenv(_project_root / ".env")

SETTINGS_FILE_NAME = ".stage-filer.json"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class Config:
    """Application configuration."""

    vault_path: Path
    settings_file: Optional[Path] = None
    trash_folder: str = ".trash"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        settings_file = os.getenv("STAGE_FILER_SETTINGS")

        return cls(
            vault_path=Path(os.getenv("VAULT_PATH", ".")).expanduser(),
            settings_file=Path(settings_file).expanduser() if settings_file else None,
            trash_folder=os.getenv("TRASH_FOLDER", ".trash"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    def settings_path(self, vault_path: Optional[Path] = None) -> Path:
        """Settings file location; defaults to a dotfile in the vault."""
        if self.settings_file:
            return self.settings_file
        return (vault_path or self.vault_path) / SETTINGS_FILE_NAME


# Global config instance
config = Config.from_env()
