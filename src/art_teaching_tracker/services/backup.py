"""Whole-dataset snapshot export and restore."""

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from pydantic import ValidationError

from art_teaching_tracker.domain.dataset import (
    COLLECTIONS,
    DELETE_ORDER,
    INSERT_ORDER,
    SNAPSHOT_VERSION,
    SUPPORTED_SNAPSHOT_VERSIONS,
    Collection,
    InvalidSnapshotError,
    RestoreError,
    RestoreProgress,
    RestoreResult,
    RestoreStage,
    Row,
    Snapshot,
    SnapshotData,
    SnapshotStats,
)

logger = logging.getLogger(__name__)


class DatasetRepository(Protocol):
    """Bulk access to persisted collections."""

    def list_rows(self, collection: Collection) -> list[Row]:
        """Return every row of a collection ordered by id."""

    def delete_all(self, collection: Collection) -> None:
        """Delete every row of a collection."""

    def insert_rows(self, collection: Collection, rows: list[Row]) -> int:
        """Insert rows keeping their ids and return how many were written."""


@dataclass
class SnapshotExporter:
    """Reads all collections into a snapshot document."""

    repository: DatasetRepository

    def export_snapshot(self) -> Snapshot:
        """Return a snapshot of every collection."""
        data = SnapshotData(
            **{
                collection.value: self.repository.list_rows(collection)
                for collection in INSERT_ORDER
            }
        )
        snapshot = Snapshot(
            version=SNAPSHOT_VERSION,
            timestamp=datetime.now(tz=UTC),
            data=data,
            stats=SnapshotStats.from_data(data),
        )
        logger.info(
            "Exported snapshot: %s",
            snapshot.stats.model_dump(),
        )
        return snapshot


def parse_snapshot(raw: Snapshot | Mapping[str, object] | str | bytes) -> Snapshot:
    """Validate a snapshot document and return the parsed model."""
    if isinstance(raw, Snapshot):
        snapshot = raw
    else:
        document = _load_document(raw)
        version = document.get("version")
        if not version:
            raise InvalidSnapshotError("Snapshot has no version")
        if (
            not isinstance(version, str)
            or version not in SUPPORTED_SNAPSHOT_VERSIONS
        ):
            raise InvalidSnapshotError(f"Unsupported snapshot version: {version}")
        data = document.get("data")
        if not isinstance(data, Mapping) or not any(
            collection.value in data for collection in Collection
        ):
            raise InvalidSnapshotError("Snapshot has no data payload")
        if "timestamp" not in document:
            document = {**document, "timestamp": datetime.now(tz=UTC)}
        try:
            snapshot = Snapshot.model_validate(document)
        except ValidationError as exc:
            raise InvalidSnapshotError(f"Malformed snapshot: {exc}") from exc

    if snapshot.version not in SUPPORTED_SNAPSHOT_VERSIONS:
        raise InvalidSnapshotError(f"Unsupported snapshot version: {snapshot.version}")
    _check_references(snapshot.data)
    return snapshot


def _load_document(raw: Mapping[str, object] | str | bytes) -> Mapping[str, object]:
    if isinstance(raw, str | bytes):
        try:
            raw = json.loads(raw)
        except ValueError as exc:
            raise InvalidSnapshotError("Snapshot is not valid JSON") from exc
    if not isinstance(raw, Mapping):
        raise InvalidSnapshotError("Snapshot must be a JSON object")
    return raw


def _check_references(data: SnapshotData) -> None:
    """Reject snapshots whose rows would violate foreign keys on insert."""
    ids: dict[Collection, set[object]] = {}
    for collection in INSERT_ORDER:
        rows = data.rows(collection)
        definition = COLLECTIONS[collection]
        for parent in definition.parents:
            if rows and not data.rows(parent.collection):
                raise InvalidSnapshotError(
                    f"Snapshot has {collection} but no {parent.collection}"
                )
        collection_ids = set()
        for row in rows:
            row_id = row.get("id")
            if row_id is None:
                if collection is Collection.FILTER_OPTIONS:
                    continue
                raise InvalidSnapshotError(f"Row in {collection} has no id")
            if not _is_key(row_id):
                raise InvalidSnapshotError(
                    f"Row in {collection} has an invalid id: {row_id!r}"
                )
            collection_ids.add(row_id)
            if not definition.fatal:
                continue
            for parent in definition.parents:
                value = row.get(parent.column)
                if not _is_key(value) or value not in ids[parent.collection]:
                    raise InvalidSnapshotError(
                        f"{collection} row {row_id} references missing "
                        f"{parent.collection} {value}"
                    )
        ids[collection] = collection_ids


def _is_key(value: object) -> bool:
    return isinstance(value, str | int) and not isinstance(value, bool)


@dataclass
class RestoreEngine:
    """Replaces every persisted collection with the rows of a snapshot."""

    repository: DatasetRepository
    batch_size: int = 50

    def restore(
        self, snapshot: Snapshot | Mapping[str, object] | str | bytes
    ) -> RestoreResult:
        """Validate a snapshot, then delete and re-insert all collections.

        Validation runs before anything is deleted. Once deletion starts
        there is no rollback: a fatal failure raises RestoreError carrying
        the progress recorded so far. Participant insert failures are
        reported on the result instead.
        """
        parsed = parse_snapshot(snapshot)
        progress = RestoreProgress()

        for collection in DELETE_ORDER:
            try:
                self.repository.delete_all(collection)
            except Exception as exc:
                progress.mark(collection, RestoreStage.DELETE_FAILED)
                raise self._fatal(collection, "delete", exc, progress) from exc
            progress.mark(collection, RestoreStage.DELETED)
            logger.info("Restore: cleared %s", collection)

        participant_errors: list[str] = []
        for collection in INSERT_ORDER:
            rows = _rows_to_insert(parsed.data, collection)
            if COLLECTIONS[collection].fatal:
                try:
                    inserted = self._insert_batches(collection, rows, progress)
                except Exception as exc:
                    progress.mark(collection, RestoreStage.INSERT_FAILED)
                    raise self._fatal(collection, "insert", exc, progress) from exc
            else:
                inserted, errors = self._insert_tolerant(collection, rows)
                participant_errors.extend(errors)
            progress.inserted[collection] = inserted
            progress.mark(collection, RestoreStage.INSERTED)
            logger.info("Restore: inserted %d %s", inserted, collection)

        counts = progress.inserted
        return RestoreResult(
            locations=counts[Collection.LOCATIONS],
            seniors=counts[Collection.SENIORS],
            works=counts[Collection.WORKS],
            records=counts[Collection.TEACHING_RECORDS],
            participants=counts[Collection.TEACHING_PARTICIPANTS],
            filters=counts[Collection.FILTER_OPTIONS],
            participant_failures=len(participant_errors),
            participant_errors=participant_errors,
        )

    def _insert_batches(
        self, collection: Collection, rows: list[Row], progress: RestoreProgress
    ) -> int:
        inserted = 0
        for batch in _batches(rows, self.batch_size):
            inserted += self.repository.insert_rows(collection, batch)
            progress.inserted[collection] = inserted
        return inserted

    def _insert_tolerant(
        self, collection: Collection, rows: list[Row]
    ) -> tuple[int, list[str]]:
        """Insert rows, falling back to one row at a time when a batch fails."""
        inserted = 0
        errors: list[str] = []
        for batch in _batches(rows, self.batch_size):
            try:
                inserted += self.repository.insert_rows(collection, batch)
                continue
            except Exception:
                logger.warning("Restore: %s batch failed, retrying rows", collection)
            for row in batch:
                try:
                    inserted += self.repository.insert_rows(collection, [row])
                except Exception as exc:
                    logger.warning(
                        "Restore: skipped %s row %s: %s", collection, row.get("id"), exc
                    )
                    errors.append(f"{row.get('id')}: {exc}")
        return inserted, errors

    @staticmethod
    def _fatal(
        collection: Collection,
        action: str,
        exc: Exception,
        progress: RestoreProgress,
    ) -> RestoreError:
        logger.error(
            "Restore aborted while trying to %s %s: %s", action, collection, exc
        )
        return RestoreError(
            f"Failed to {action} {collection}: {exc}. The dataset may be partially "
            "restored; re-run the restore from the backup file.",
            collection=collection,
            progress=progress,
        )


def _rows_to_insert(data: SnapshotData, collection: Collection) -> list[Row]:
    rows = data.rows(collection)
    if collection is Collection.FILTER_OPTIONS:
        # Built-in options have no id and are never persisted.
        return [row for row in rows if row.get("id") is not None]
    return rows


def _batches(rows: list[Row], size: int) -> list[list[Row]]:
    step = max(size, 1)
    return [rows[index : index + step] for index in range(0, len(rows), step)]
