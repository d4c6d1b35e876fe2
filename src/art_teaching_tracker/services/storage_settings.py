"""Persisted photo storage mode."""

from dataclasses import dataclass
from typing import Protocol

from art_teaching_tracker.domain.photos import StorageMode

STORAGE_MODE_KEY = "photo_storage_mode"


class AppSettingsRepository(Protocol):
    """Persistence interface for application-wide settings."""

    def get_value(self, key: str) -> str | None:
        """Return the stored value for a key, if any."""

    def set_value(self, key: str, value: str) -> None:
        """Store a value for a key."""


@dataclass
class StorageSettingsService:
    """Reads and writes the storage mode flag."""

    repository: AppSettingsRepository
    default_mode: StorageMode = StorageMode.EMBEDDED

    def get_mode(self) -> StorageMode:
        """Return the stored mode, or the default when unset or unknown."""
        return StorageMode.parse(self.repository.get_value(STORAGE_MODE_KEY)) or (
            self.default_mode
        )

    def set_mode(self, mode: StorageMode) -> None:
        """Persist the mode used for future uploads."""
        self.repository.set_value(STORAGE_MODE_KEY, mode.value)
