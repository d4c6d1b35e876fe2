"""Cloudinary unsigned upload client."""

from dataclasses import dataclass

import httpx

from art_teaching_tracker.domain.photos import ExternalPhoto, PhotoReference, UploadError
from art_teaching_tracker.services.storage import PhotoBackend


@dataclass
class HttpxCloudinaryUploader(PhotoBackend):
    """Uploads photos to Cloudinary using an unsigned upload preset."""

    cloud_name: str
    upload_preset: str
    base_url: str
    root_folder: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(
        cls,
        cloud_name: str,
        upload_preset: str,
        base_url: str = "https://api.cloudinary.com/v1_1",
        root_folder: str = "",
    ) -> "HttpxCloudinaryUploader":
        """Create an uploader with a managed httpx session."""
        return cls(
            cloud_name=cloud_name,
            upload_preset=upload_preset,
            base_url=base_url,
            root_folder=root_folder,
            http_client=httpx.AsyncClient(),
        )

    async def put(self, data: bytes, folder: str) -> PhotoReference:
        """Upload bytes and return the secure URL."""
        if not self.cloud_name or not self.upload_preset:
            raise UploadError("External photo storage is not configured")
        url = f"{self.base_url.rstrip('/')}/{self.cloud_name}/image/upload"
        try:
            response = await self.http_client.post(
                url,
                data={
                    "upload_preset": self.upload_preset,
                    "folder": self._folder(folder),
                },
                files={"file": ("photo.jpg", data, "image/jpeg")},
                timeout=30,
            )
        except httpx.HTTPError as exc:
            raise UploadError(f"Photo upload failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise UploadError(
                f"Photo upload failed with HTTP {response.status_code}"
            ) from exc

        error = payload.get("error") if isinstance(payload, dict) else None
        if error:
            message = error.get("message") if isinstance(error, dict) else error
            raise UploadError(str(message))
        secure_url = payload.get("secure_url") if isinstance(payload, dict) else None
        if response.is_error or not secure_url:
            raise UploadError(
                f"Photo upload failed with HTTP {response.status_code}"
            )
        return ExternalPhoto(url=secure_url)

    def _folder(self, folder: str) -> str:
        if not self.root_folder:
            return folder
        return f"{self.root_folder.strip('/')}/{folder}"

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
