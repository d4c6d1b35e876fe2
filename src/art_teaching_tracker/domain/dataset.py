"""Dataset collections and the portable snapshot document."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

SNAPSHOT_VERSION = "1.0"
SUPPORTED_SNAPSHOT_VERSIONS = frozenset({SNAPSHOT_VERSION})

Row = dict[str, Any]


class Collection(StrEnum):
    """Persisted entity collections, keyed by their snapshot name."""

    LOCATIONS = "locations"
    SENIORS = "seniors"
    WORKS = "works"
    TEACHING_RECORDS = "teaching_records"
    TEACHING_PARTICIPANTS = "teaching_participants"
    FILTER_OPTIONS = "filter_options"


@dataclass(frozen=True)
class ParentRef:
    """Foreign key column pointing at a parent collection."""

    column: str
    collection: Collection


@dataclass(frozen=True)
class CollectionDef:
    """Storage table and foreign keys for one collection."""

    collection: Collection
    table: str
    parents: tuple[ParentRef, ...] = ()
    fatal: bool = True


COLLECTIONS: dict[Collection, CollectionDef] = {
    definition.collection: definition
    for definition in (
        CollectionDef(Collection.LOCATIONS, "locations"),
        CollectionDef(
            Collection.SENIORS,
            "seniors",
            parents=(ParentRef("location_id", Collection.LOCATIONS),),
        ),
        CollectionDef(Collection.WORKS, "works"),
        CollectionDef(
            Collection.TEACHING_RECORDS,
            "teaching_records",
            parents=(
                ParentRef("work_id", Collection.WORKS),
                ParentRef("location_id", Collection.LOCATIONS),
            ),
        ),
        CollectionDef(
            Collection.TEACHING_PARTICIPANTS,
            "teaching_seniors",
            parents=(
                ParentRef("teaching_record_id", Collection.TEACHING_RECORDS),
                ParentRef("senior_id", Collection.SENIORS),
            ),
            fatal=False,
        ),
        CollectionDef(Collection.FILTER_OPTIONS, "filter_options"),
    )
}

DELETE_ORDER = (
    Collection.TEACHING_PARTICIPANTS,
    Collection.TEACHING_RECORDS,
    Collection.SENIORS,
    Collection.WORKS,
    Collection.LOCATIONS,
    Collection.FILTER_OPTIONS,
)
INSERT_ORDER = (
    Collection.LOCATIONS,
    Collection.SENIORS,
    Collection.WORKS,
    Collection.TEACHING_RECORDS,
    Collection.TEACHING_PARTICIPANTS,
    Collection.FILTER_OPTIONS,
)


class InvalidSnapshotError(ValueError):
    """Raised when a snapshot document is malformed or unsupported."""


class SnapshotData(BaseModel):
    """Raw rows for every collection."""

    works: list[Row] = Field(default_factory=list)
    locations: list[Row] = Field(default_factory=list)
    seniors: list[Row] = Field(default_factory=list)
    teaching_records: list[Row] = Field(default_factory=list)
    teaching_participants: list[Row] = Field(default_factory=list)
    filter_options: list[Row] = Field(default_factory=list)

    def rows(self, collection: Collection) -> list[Row]:
        """Return the rows stored for a collection."""
        return getattr(self, collection.value)


class SnapshotStats(BaseModel):
    """Precomputed row counts."""

    model_config = ConfigDict(extra="allow")

    works_count: int = 0
    locations_count: int = 0
    seniors_count: int = 0
    records_count: int = 0
    participants_count: int = 0
    filter_options_count: int = 0

    @classmethod
    def from_data(cls, data: SnapshotData) -> "SnapshotStats":
        return cls(
            works_count=len(data.works),
            locations_count=len(data.locations),
            seniors_count=len(data.seniors),
            records_count=len(data.teaching_records),
            participants_count=len(data.teaching_participants),
            filter_options_count=len(data.filter_options),
        )


class Snapshot(BaseModel):
    """Versioned, portable serialization of the whole dataset."""

    version: str
    timestamp: datetime
    data: SnapshotData
    stats: SnapshotStats = Field(default_factory=SnapshotStats)

    def to_json(self, indent: int | None = 2) -> str:
        """Render the snapshot as a JSON document."""
        return self.model_dump_json(indent=indent)

    def data_json(self) -> str:
        """Render only the data payload, with stable key order."""
        return json.dumps(self.data.model_dump(mode="json"), sort_keys=True)


def snapshot_filename(snapshot: Snapshot) -> str:
    """Build the download filename for a snapshot."""
    return f"art-teaching-backup-{snapshot.timestamp.date().isoformat()}.json"


class RestoreStage(StrEnum):
    """Progress of one collection through a restore."""

    PENDING = "pending"
    DELETED = "deleted"
    INSERTED = "inserted"
    DELETE_FAILED = "delete_failed"
    INSERT_FAILED = "insert_failed"


@dataclass
class RestoreProgress:
    """Recorded state of a restore run, per collection."""

    stages: dict[Collection, RestoreStage] = field(
        default_factory=lambda: dict.fromkeys(Collection, RestoreStage.PENDING)
    )
    inserted: dict[Collection, int] = field(
        default_factory=lambda: dict.fromkeys(Collection, 0)
    )

    def mark(self, collection: Collection, stage: RestoreStage) -> None:
        self.stages[collection] = stage

    def replaced(self) -> list[Collection]:
        """Collections whose old rows were replaced by snapshot rows."""
        return [c for c in INSERT_ORDER if self.stages[c] is RestoreStage.INSERTED]

    def emptied(self) -> list[Collection]:
        """Collections deleted but not refilled, or only partly refilled."""
        return [
            c
            for c in INSERT_ORDER
            if self.stages[c] in {RestoreStage.DELETED, RestoreStage.INSERT_FAILED}
        ]

    def untouched(self) -> list[Collection]:
        """Collections still holding their pre-restore rows."""
        return [
            c
            for c in INSERT_ORDER
            if self.stages[c] in {RestoreStage.PENDING, RestoreStage.DELETE_FAILED}
        ]

    def as_dict(self) -> dict[str, object]:
        return {
            "stages": {c.value: stage.value for c, stage in self.stages.items()},
            "inserted": {c.value: count for c, count in self.inserted.items()},
            "replaced": [c.value for c in self.replaced()],
            "emptied": [c.value for c in self.emptied()],
            "untouched": [c.value for c in self.untouched()],
        }


class RestoreError(RuntimeError):
    """Raised when a fatal collection failure aborts a restore."""

    def __init__(
        self, message: str, collection: Collection, progress: RestoreProgress
    ) -> None:
        super().__init__(message)
        self.collection = collection
        self.progress = progress


@dataclass(frozen=True)
class RestoreResult:
    """Rows inserted per collection by a completed restore."""

    locations: int = 0
    seniors: int = 0
    works: int = 0
    records: int = 0
    participants: int = 0
    filters: int = 0
    participant_failures: int = 0
    participant_errors: list[str] = field(default_factory=list)
