"""Request and response models for the admin API."""

from pydantic import BaseModel

from art_teaching_tracker.domain.photos import StorageMode


class StorageModeUpdate(BaseModel):
    """Body for changing where new photos are stored."""

    mode: StorageMode


class StoredPhoto(BaseModel):
    """Reference returned after a photo upload."""

    kind: StorageMode
    reference: str
