"""Supabase repository for application settings."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from art_teaching_tracker.services.storage_settings import AppSettingsRepository


@dataclass
class SupabaseAppSettingsRepository(AppSettingsRepository):
    """Supabase implementation for key-value application settings."""

    client: Client

    def get_value(self, key: str) -> str | None:
        """Return the stored value for a key."""
        response = (
            self.client.table("app_settings")
            .select("value")
            .eq("key", key)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return response.data[0].get("value")

    def set_value(self, key: str, value: str) -> None:
        """Create or update the value for a key."""
        self.client.table("app_settings").upsert(
            {
                "key": key,
                "value": value,
                "updated_at": datetime.now(tz=UTC).isoformat(),
            },
            on_conflict="key",
        ).execute()
