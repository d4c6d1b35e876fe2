"""Storage usage accounting for stored photos."""

import logging
from dataclasses import dataclass
from typing import Protocol

from art_teaching_tracker.domain.photos import (
    EmbeddedPhoto,
    InvalidPhotoReferenceError,
    PhotoRole,
    parse_photo_reference,
)

logger = logging.getLogger(__name__)

KB = 1024
MB = 1024 * KB
GB = 1024 * MB

# Base64 carries 3 bytes in every 4 characters.
EMBEDDED_BYTES_PER_CHAR = 0.75

# Estimates, not measurements: remote file sizes are never fetched.
EXTERNAL_WORK_PHOTO_BYTES = 150 * KB
EXTERNAL_FIELD_PHOTO_BYTES = 80 * KB

EMBEDDED_QUOTA_BYTES = 500 * MB
EXTERNAL_QUOTA_BYTES = 25 * GB


class PhotoUsageRepository(Protocol):
    """Read access to stored photo references."""

    def list_work_photos(self) -> list[str | None]:
        """Return the image reference of every work."""

    def list_record_photos(self) -> list[list[str | None]]:
        """Return the photo references of every teaching record."""


@dataclass
class UsageReport:
    """Photo counts and estimated bytes per storage backend."""

    embedded_work_count: int = 0
    embedded_field_count: int = 0
    external_work_count: int = 0
    external_field_count: int = 0
    unrecognized_count: int = 0
    embedded_bytes: int = 0
    external_bytes: int = 0
    embedded_quota_bytes: int = EMBEDDED_QUOTA_BYTES
    external_quota_bytes: int = EXTERNAL_QUOTA_BYTES

    @property
    def embedded_count(self) -> int:
        return self.embedded_work_count + self.embedded_field_count

    @property
    def external_count(self) -> int:
        return self.external_work_count + self.external_field_count

    @property
    def embedded_percent(self) -> float:
        return _percent(self.embedded_bytes, self.embedded_quota_bytes)

    @property
    def external_percent(self) -> float:
        return _percent(self.external_bytes, self.external_quota_bytes)

    def as_dict(self) -> dict[str, object]:
        return {
            "embedded": {
                "work_photos": self.embedded_work_count,
                "field_photos": self.embedded_field_count,
                "total": self.embedded_count,
                "bytes": self.embedded_bytes,
                "quota_bytes": self.embedded_quota_bytes,
                "percent": self.embedded_percent,
            },
            "external": {
                "work_photos": self.external_work_count,
                "field_photos": self.external_field_count,
                "total": self.external_count,
                "bytes": self.external_bytes,
                "quota_bytes": self.external_quota_bytes,
                "percent": self.external_percent,
            },
            "unrecognized": self.unrecognized_count,
        }


@dataclass
class QuotaAccountant:
    """Classifies stored photo references and estimates their storage use."""

    repository: PhotoUsageRepository

    def get_usage(self) -> UsageReport | None:
        """Return a usage report, or None when the data cannot be read."""
        try:
            work_photos = self.repository.list_work_photos()
            record_photos = self.repository.list_record_photos()
        except Exception:
            logger.exception("Failed to read photo references for usage report")
            return None

        report = UsageReport()
        for raw in work_photos:
            _tally(report, raw, PhotoRole.WORK)
        for photos in record_photos:
            for raw in photos:
                _tally(report, raw, PhotoRole.FIELD)
        return report


def _tally(report: UsageReport, raw: object, role: PhotoRole) -> None:
    if raw is None or raw == "":
        return
    try:
        reference = parse_photo_reference(raw) if isinstance(raw, str) else None
    except InvalidPhotoReferenceError:
        reference = None
    if reference is None:
        logger.warning("Skipping unrecognized %s photo reference", role)
        report.unrecognized_count += 1
        return

    if isinstance(reference, EmbeddedPhoto):
        size = len(reference.data_url) * EMBEDDED_BYTES_PER_CHAR
        report.embedded_bytes += round(size)
        if role is PhotoRole.WORK:
            report.embedded_work_count += 1
        else:
            report.embedded_field_count += 1
        return

    if role is PhotoRole.WORK:
        report.external_work_count += 1
        report.external_bytes += EXTERNAL_WORK_PHOTO_BYTES
    else:
        report.external_field_count += 1
        report.external_bytes += EXTERNAL_FIELD_PHOTO_BYTES


def _percent(used: int, quota: int) -> float:
    if quota <= 0:
        return 0.0
    return round(used / quota * 100, 2)
