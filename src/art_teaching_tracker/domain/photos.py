"""Domain models for stored photos."""

from dataclasses import dataclass
from enum import StrEnum

EMBEDDED_PREFIX = "data:image/"
EXTERNAL_SCHEMES = ("https://", "http://")


class DecodeError(ValueError):
    """Raised when input bytes are not a decodable image."""


class UploadError(RuntimeError):
    """Raised when the external photo store rejects or cannot be reached."""


class InvalidPhotoReferenceError(ValueError):
    """Raised when a stored string is neither an embedded nor an external photo."""


class StorageMode(StrEnum):
    """Where newly uploaded photos are stored."""

    EMBEDDED = "embedded"
    EXTERNAL = "external"

    @classmethod
    def parse(cls, raw: str | None) -> "StorageMode | None":
        """Parse a persisted mode flag, accepting legacy values."""
        if raw is None:
            return None
        value = raw.strip().lower()
        value = _LEGACY_MODES.get(value, value)
        try:
            return cls(value)
        except ValueError:
            return None


_LEGACY_MODES = {"base64": "embedded", "cloudinary": "external"}


class PhotoRole(StrEnum):
    """What a photo depicts, which decides its transcoding profile."""

    WORK = "work"
    FIELD = "field"


@dataclass(frozen=True)
class PhotoProfile:
    """Transcoding parameters for one photo role."""

    role: PhotoRole
    max_dimension: int
    quality: float
    folder: str


WORK_PHOTO = PhotoProfile(
    role=PhotoRole.WORK, max_dimension=900, quality=0.8, folder="works"
)
FIELD_PHOTO = PhotoProfile(
    role=PhotoRole.FIELD, max_dimension=600, quality=0.6, folder="teaching-records"
)
PROFILES = {profile.role: profile for profile in (WORK_PHOTO, FIELD_PHOTO)}


def get_profile(name: str) -> PhotoProfile:
    """Return the profile for a role name."""
    try:
        return PROFILES[PhotoRole(name.strip().lower())]
    except ValueError as exc:
        raise ValueError(f"Unknown photo profile: {name!r}") from exc


@dataclass(frozen=True)
class EmbeddedPhoto:
    """Photo stored inline as a base64 data URL."""

    data_url: str

    @property
    def kind(self) -> StorageMode:
        return StorageMode.EMBEDDED

    @property
    def value(self) -> str:
        return self.data_url


@dataclass(frozen=True)
class ExternalPhoto:
    """Photo stored in a remote object store."""

    url: str

    @property
    def kind(self) -> StorageMode:
        return StorageMode.EXTERNAL

    @property
    def value(self) -> str:
        return self.url


PhotoReference = EmbeddedPhoto | ExternalPhoto


def parse_photo_reference(raw: str) -> PhotoReference:
    """Classify a persisted photo string by its structure."""
    value = raw.strip()
    if value.startswith(EMBEDDED_PREFIX) and ";base64," in value:
        return EmbeddedPhoto(data_url=value)
    if value.lower().startswith(EXTERNAL_SCHEMES):
        return ExternalPhoto(url=value)
    raise InvalidPhotoReferenceError(f"Unclassifiable photo reference: {value[:32]!r}")
