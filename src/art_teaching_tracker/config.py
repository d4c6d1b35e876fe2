"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from art_teaching_tracker.domain.photos import StorageMode

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    cloudinary_cloud_name: str = ""
    cloudinary_upload_preset: str = ""
    cloudinary_base_url: str = "https://api.cloudinary.com/v1_1"
    cloudinary_root_folder: str = "art-teaching"
    default_storage_mode: StorageMode = StorageMode.EMBEDDED
    restore_batch_size: int = 50
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def external_storage_configured(self) -> bool:
        """Return True when uploads to the external store are possible."""
        return bool(self.cloudinary_cloud_name and self.cloudinary_upload_preset)
