"""Photo storage backends and the mode-selecting router."""

import asyncio
import base64
import logging
from dataclasses import dataclass
from typing import Protocol

from art_teaching_tracker.domain.photos import (
    EmbeddedPhoto,
    PhotoProfile,
    PhotoReference,
    StorageMode,
)
from art_teaching_tracker.services.transcoder import transcode_for_profile

logger = logging.getLogger(__name__)


class PhotoBackend(Protocol):
    """Interface for storing transcoded photo bytes."""

    async def put(self, data: bytes, folder: str) -> PhotoReference:
        """Store bytes and return a reference to them."""


class StorageModeSource(Protocol):
    """Supplies the currently selected storage mode."""

    def get_mode(self) -> StorageMode:
        """Return the active storage mode."""


@dataclass
class EmbeddedEncoder(PhotoBackend):
    """Backend that inlines photos as base64 data URLs."""

    async def put(self, data: bytes, folder: str) -> PhotoReference:
        """Encode bytes into a self-contained data URL."""
        return EmbeddedPhoto(data_url=to_data_url(data))


@dataclass
class StorageRouter:
    """Transcodes photos and sends them to the backend for the current mode."""

    mode_source: StorageModeSource
    backends: dict[StorageMode, PhotoBackend]

    async def store(
        self,
        photo_bytes: bytes,
        profile: PhotoProfile,
        mode: StorageMode | None = None,
    ) -> PhotoReference:
        """Transcode a photo with the profile and store it."""
        selected = mode or self.mode_source.get_mode()
        backend = self.backends.get(selected)
        if backend is None:
            raise ValueError(f"No photo backend configured for mode {selected}")
        transcoded = await asyncio.to_thread(
            transcode_for_profile, photo_bytes, profile
        )
        reference = await backend.put(transcoded, folder=profile.folder)
        logger.info(
            "Stored %s photo (%d bytes) via %s backend",
            profile.role,
            len(transcoded),
            reference.kind,
        )
        return reference


def to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = _detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
