"""Supabase repository for stored photo references."""

from dataclasses import dataclass

from supabase import Client

from art_teaching_tracker.adapters.supabase_dataset_repository import fetch_all_rows
from art_teaching_tracker.services.usage import PhotoUsageRepository


@dataclass
class SupabasePhotoUsageRepository(PhotoUsageRepository):
    """Supabase implementation for photo usage queries."""

    client: Client

    def list_work_photos(self) -> list[str | None]:
        """Return the image reference of every work."""
        rows = fetch_all_rows(self.client, "works", "id, image_url")
        return [row.get("image_url") for row in rows]

    def list_record_photos(self) -> list[list[str | None]]:
        """Return the photo references of every teaching record."""
        rows = fetch_all_rows(self.client, "teaching_records", "id, photo_urls")
        return [_as_list(row.get("photo_urls")) for row in rows]


def _as_list(value: object) -> list[str | None]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [item if isinstance(item, str) else None for item in value]
    return []
