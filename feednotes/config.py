"""
Configuration and application state management.
"""

import os
from pathlib import Path
from typing import TYPE_CHECKING

from dotenv import load_dotenv
from fastapi import HTTPException

if TYPE_CHECKING:
    from .notifications import MemoryNotifier
    from .scheduler import UpdateScheduler
    from .settings import PluginSettings, SettingsStore
    from .storage import Storage
    from .updater import FeedUpdater

# Load environment variables
load_dotenv()


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """Parse boolean from environment variable."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


class Config:
    """Application configuration from environment."""
    # Root of the note storage; every note and image path is relative to it
    VAULT_PATH: Path = Path(os.getenv("VAULT_PATH", "./vault"))
    SETTINGS_PATH: Path = Path(os.getenv("SETTINGS_PATH", "./data/settings.json"))

    # Where images go when the image location is "obsidian" (host default).
    # Empty = vault root, "./" = next to the note, "./sub" = subfolder of the note
    ATTACHMENT_FOLDER: str = os.getenv("ATTACHMENT_FOLDER", "")

    USER_AGENT: str = os.getenv("USER_AGENT", "")
    PORT: int = int(os.getenv("PORT", "5005"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    ENABLE_SCHEDULER: bool = _parse_bool(os.getenv("ENABLE_SCHEDULER"), default=True)


config = Config()


class AppState:
    """Shared application state."""
    store: "SettingsStore | None" = None
    settings: "PluginSettings | None" = None
    storage: "Storage | None" = None
    updater: "FeedUpdater | None" = None
    scheduler: "UpdateScheduler | None" = None
    notifier: "MemoryNotifier | None" = None

    def get_settings(self) -> "PluginSettings":
        if self.settings is None:
            if not self.store:
                raise RuntimeError("Settings store not initialized")
            self.settings = self.store.load()
        return self.settings

    def save_settings(self, settings: "PluginSettings") -> None:
        self.settings = settings
        if self.store:
            self.store.save(settings)


state = AppState()


def get_settings() -> "PluginSettings":
    """Dependency to get the loaded settings."""
    if not state.store:
        raise HTTPException(status_code=500, detail="Settings not initialized")
    return state.get_settings()


def get_store() -> "SettingsStore":
    """Dependency to get the settings store."""
    if not state.store:
        raise HTTPException(status_code=500, detail="Settings not initialized")
    return state.store


def get_storage() -> "Storage":
    """Dependency to get the note storage."""
    if not state.storage:
        raise HTTPException(status_code=500, detail="Storage not initialized")
    return state.storage


def get_updater() -> "FeedUpdater":
    """Dependency to get the feed updater."""
    if not state.updater:
        raise HTTPException(status_code=500, detail="Updater not initialized")
    return state.updater
