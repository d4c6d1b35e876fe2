"""Shared test fixtures."""

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from io import BytesIO

import pytest
from PIL import Image

from art_teaching_tracker.app_logging import PACKAGE_LOGGER
from art_teaching_tracker.config import Settings
from art_teaching_tracker.containers import AppContainer
from art_teaching_tracker.domain.dataset import COLLECTIONS, Collection, Row
from art_teaching_tracker.domain.photos import (
    ExternalPhoto,
    PhotoReference,
    StorageMode,
    UploadError,
)
from art_teaching_tracker.services.backup import (
    DatasetRepository,
    RestoreEngine,
    SnapshotExporter,
)
from art_teaching_tracker.services.storage import (
    EmbeddedEncoder,
    PhotoBackend,
    StorageRouter,
)
from art_teaching_tracker.services.storage_settings import (
    AppSettingsRepository,
    StorageSettingsService,
)
from art_teaching_tracker.services.usage import PhotoUsageRepository, QuotaAccountant


def make_image_bytes(
    width: int, height: int, image_format: str = "JPEG", mode: str = "RGB"
) -> bytes:
    """Render a solid image of the given size."""
    color = (200, 80, 40, 128) if mode == "RGBA" else (200, 80, 40)
    image = Image.new(mode, (width, height), color)
    output = BytesIO()
    image.save(output, format=image_format)
    return output.getvalue()


def build_dataset(  # noqa: PLR0913
    locations: int = 3,
    seniors: int = 5,
    works: int = 10,
    records: int = 20,
    participants: int = 0,
    filters: int = 0,
) -> dict[Collection, list[Row]]:
    """Build consistent rows for every collection."""
    location_rows = [
        {"id": f"loc-{i:03d}", "name": f"Center {i}", "address": f"{i} Main St"}
        for i in range(locations)
    ]
    senior_rows = [
        {
            "id": f"sen-{i:03d}",
            "name": f"Senior {i}",
            "location_id": location_rows[i % locations]["id"],
            "notes": None,
        }
        for i in range(seniors)
    ]
    work_rows = [
        {
            "id": f"work-{i:03d}",
            "title": f"Work {i}",
            "image_url": f"https://res.cloudinary.com/demo/image/upload/works/{i}.jpg",
            "season": "spring",
            "festival": None,
            "material_type": "paper",
            "description": "",
            "created_at": "2026-01-01T00:00:00+00:00",
        }
        for i in range(works)
    ]
    record_rows = [
        {
            "id": f"rec-{i:03d}",
            "work_id": work_rows[i % works]["id"],
            "location_id": location_rows[i % locations]["id"],
            "teaching_date": "2026-02-01",
            "notes": "",
            "photo_urls": [],
        }
        for i in range(records)
    ]
    participant_rows = [
        {
            "id": f"par-{i:03d}",
            "teaching_record_id": record_rows[i % records]["id"],
            "senior_id": senior_rows[i % seniors]["id"],
            "completion_status": "Complete",
            "reaction": "smiled",
        }
        for i in range(participants)
    ]
    filter_rows = [
        {
            "id": f"flt-{i:03d}",
            "category": "season",
            "value": f"season {i}",
            "display_order": i,
            "is_active": True,
        }
        for i in range(filters)
    ]
    return {
        Collection.LOCATIONS: location_rows,
        Collection.SENIORS: senior_rows,
        Collection.WORKS: work_rows,
        Collection.TEACHING_RECORDS: record_rows,
        Collection.TEACHING_PARTICIPANTS: participant_rows,
        Collection.FILTER_OPTIONS: filter_rows,
    }


@dataclass
class InMemoryDatasetRepository(DatasetRepository):
    """In-memory dataset repository that enforces foreign keys."""

    tables: dict[Collection, dict[object, Row]] = field(
        default_factory=lambda: {collection: {} for collection in Collection}
    )
    calls: list[tuple[str, Collection]] = field(default_factory=list)
    failures: dict[tuple[str, Collection], Exception] = field(default_factory=dict)
    failing_row_ids: set[object] = field(default_factory=set)

    @classmethod
    def seeded(cls, dataset: dict[Collection, list[Row]]) -> "InMemoryDatasetRepository":
        repository = cls()
        for collection, rows in dataset.items():
            repository.tables[collection] = {row["id"]: dict(row) for row in rows}
        return repository

    def counts(self) -> dict[Collection, int]:
        return {collection: len(rows) for collection, rows in self.tables.items()}

    def list_rows(self, collection: Collection) -> list[Row]:
        self.calls.append(("list", collection))
        self._maybe_fail("list", collection)
        rows = self.tables[collection]
        return [dict(rows[key]) for key in sorted(rows, key=str)]

    def delete_all(self, collection: Collection) -> None:
        self.calls.append(("delete", collection))
        self._maybe_fail("delete", collection)
        doomed = set(self.tables[collection])
        for child, definition in COLLECTIONS.items():
            for parent in definition.parents:
                if parent.collection is not collection:
                    continue
                for row in self.tables[child].values():
                    if row.get(parent.column) in doomed:
                        raise RuntimeError(
                            f"{child} still references {collection} {row['id']}"
                        )
        self.tables[collection] = {}

    def insert_rows(self, collection: Collection, rows: list[Row]) -> int:
        self.calls.append(("insert", collection))
        self._maybe_fail("insert", collection)
        for row in rows:
            if row.get("id") in self.failing_row_ids:
                raise RuntimeError(f"rejected row {row['id']}")
            for parent in COLLECTIONS[collection].parents:
                if row.get(parent.column) not in self.tables[parent.collection]:
                    raise RuntimeError(
                        f"{collection} row {row['id']} violates foreign key "
                        f"{parent.column}"
                    )
        for row in rows:
            self.tables[collection][row["id"]] = dict(row)
        return len(rows)

    def _maybe_fail(self, action: str, collection: Collection) -> None:
        error = self.failures.get((action, collection))
        if error is not None:
            raise error


@dataclass
class InMemoryAppSettingsRepository(AppSettingsRepository):
    """In-memory settings repository for tests."""

    values: dict[str, str] = field(default_factory=dict)
    reads: int = 0

    def get_value(self, key: str) -> str | None:
        self.reads += 1
        return self.values.get(key)

    def set_value(self, key: str, value: str) -> None:
        self.values[key] = value


@dataclass
class InMemoryPhotoUsageRepository(PhotoUsageRepository):
    """In-memory photo usage repository for tests."""

    work_photos: list[str | None] = field(default_factory=list)
    record_photos: list[list[str | None]] = field(default_factory=list)
    error: Exception | None = None

    def list_work_photos(self) -> list[str | None]:
        if self.error:
            raise self.error
        return self.work_photos

    def list_record_photos(self) -> list[list[str | None]]:
        if self.error:
            raise self.error
        return self.record_photos


@dataclass
class FakeExternalBackend(PhotoBackend):
    """External backend that records uploads without a network."""

    uploads: list[tuple[str, bytes]] = field(default_factory=list)
    error: str | None = None

    async def put(self, data: bytes, folder: str) -> PhotoReference:
        if self.error:
            raise UploadError(self.error)
        self.uploads.append((folder, data))
        return ExternalPhoto(
            url=(
                "https://res.cloudinary.com/demo/image/upload/"
                f"{folder}/photo-{len(self.uploads)}.jpg"
            )
        )


@pytest.fixture(autouse=True)
def reset_package_logger() -> Iterator[None]:
    """Undo configure_logging so caplog sees package records."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    handlers = list(logger.handlers)
    yield
    logger.handlers = handlers
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        admin_token="admin-token",
        cloudinary_cloud_name="demo",
        cloudinary_upload_preset="unsigned-preset",
    )


@pytest.fixture
def app_settings_repository() -> InMemoryAppSettingsRepository:
    return InMemoryAppSettingsRepository()


@pytest.fixture
def external_backend() -> FakeExternalBackend:
    return FakeExternalBackend()


@pytest.fixture
def storage_settings_service(
    app_settings_repository: InMemoryAppSettingsRepository,
) -> StorageSettingsService:
    return StorageSettingsService(app_settings_repository)


@pytest.fixture
def storage_router(
    storage_settings_service: StorageSettingsService,
    external_backend: FakeExternalBackend,
) -> StorageRouter:
    return StorageRouter(
        mode_source=storage_settings_service,
        backends={
            StorageMode.EMBEDDED: EmbeddedEncoder(),
            StorageMode.EXTERNAL: external_backend,
        },
    )


@pytest.fixture
def dataset_repository() -> InMemoryDatasetRepository:
    return InMemoryDatasetRepository.seeded(build_dataset(participants=4, filters=2))


@pytest.fixture
def container(
    settings: Settings,
    storage_settings_service: StorageSettingsService,
    storage_router: StorageRouter,
    dataset_repository: InMemoryDatasetRepository,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        storage_settings_service=storage_settings_service,
        storage_router=storage_router,
        quota_accountant=QuotaAccountant(InMemoryPhotoUsageRepository()),
        snapshot_exporter=SnapshotExporter(dataset_repository),
        restore_engine=RestoreEngine(repository=dataset_repository, batch_size=4),
        close_resources=close_resources,
    )
