"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from art_teaching_tracker.adapters.cloudinary_uploader import HttpxCloudinaryUploader
from art_teaching_tracker.adapters.supabase_app_settings_repository import (
    SupabaseAppSettingsRepository,
)
from art_teaching_tracker.adapters.supabase_dataset_repository import (
    SupabaseDatasetRepository,
)
from art_teaching_tracker.adapters.supabase_photo_usage_repository import (
    SupabasePhotoUsageRepository,
)
from art_teaching_tracker.config import Settings
from art_teaching_tracker.domain.photos import StorageMode
from art_teaching_tracker.services.backup import RestoreEngine, SnapshotExporter
from art_teaching_tracker.services.storage import EmbeddedEncoder, StorageRouter
from art_teaching_tracker.services.storage_settings import StorageSettingsService
from art_teaching_tracker.services.usage import QuotaAccountant


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    storage_settings_service: StorageSettingsService
    storage_router: StorageRouter
    quota_accountant: QuotaAccountant
    snapshot_exporter: SnapshotExporter
    restore_engine: RestoreEngine
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    dataset_repository = SupabaseDatasetRepository(supabase_client)
    storage_settings_service = StorageSettingsService(
        repository=SupabaseAppSettingsRepository(supabase_client),
        default_mode=resolved_settings.default_storage_mode,
    )
    uploader = HttpxCloudinaryUploader.create(
        cloud_name=resolved_settings.cloudinary_cloud_name,
        upload_preset=resolved_settings.cloudinary_upload_preset,
        base_url=resolved_settings.cloudinary_base_url,
        root_folder=resolved_settings.cloudinary_root_folder,
    )
    storage_router = StorageRouter(
        mode_source=storage_settings_service,
        backends={
            StorageMode.EMBEDDED: EmbeddedEncoder(),
            StorageMode.EXTERNAL: uploader,
        },
    )

    async def close_resources() -> None:
        await uploader.close()

    return AppContainer(
        settings=resolved_settings,
        storage_settings_service=storage_settings_service,
        storage_router=storage_router,
        quota_accountant=QuotaAccountant(
            SupabasePhotoUsageRepository(supabase_client)
        ),
        snapshot_exporter=SnapshotExporter(dataset_repository),
        restore_engine=RestoreEngine(
            repository=dataset_repository,
            batch_size=resolved_settings.restore_batch_size,
        ),
        close_resources=close_resources,
    )
