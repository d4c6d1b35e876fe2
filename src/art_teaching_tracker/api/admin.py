"""Admin API endpoints with simple token auth."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import (
    APIRouter,
    Depends,
    File,
    Header,
    HTTPException,
    Request,
    Response,
    UploadFile,
    status,
)

from art_teaching_tracker.api.models import StoredPhoto, StorageModeUpdate
from art_teaching_tracker.domain.dataset import (
    InvalidSnapshotError,
    RestoreError,
    snapshot_filename,
)
from art_teaching_tracker.domain.photos import DecodeError, UploadError, get_profile

if TYPE_CHECKING:
    from art_teaching_tracker.containers import AppContainer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.get("/storage/mode", dependencies=[Depends(require_admin)])
async def get_storage_mode(request: Request) -> dict[str, object]:
    """Return the storage mode used for new uploads."""
    container: AppContainer = request.app.state.container
    return {
        "mode": container.storage_settings_service.get_mode().value,
        "external_configured": container.settings.external_storage_configured,
    }


@router.put("/storage/mode", dependencies=[Depends(require_admin)])
async def set_storage_mode(
    update: StorageModeUpdate, request: Request
) -> dict[str, object]:
    """Change where new photos are stored; existing photos stay where they are."""
    container: AppContainer = request.app.state.container
    container.storage_settings_service.set_mode(update.mode)
    logger.info("Photo storage mode set to %s", update.mode)
    return {"mode": update.mode.value}


@router.get("/storage/usage", dependencies=[Depends(require_admin)])
async def storage_usage(request: Request) -> dict[str, object]:
    """Return estimated photo storage usage, or null when unknown."""
    container: AppContainer = request.app.state.container
    report = container.quota_accountant.get_usage()
    return {"usage": report.as_dict() if report else None}


@router.post("/photos", dependencies=[Depends(require_admin)])
async def upload_photo(
    request: Request,
    file: UploadFile = File(...),
    profile: str = "work",
) -> StoredPhoto:
    """Transcode and store a photo, returning its reference."""
    container: AppContainer = request.app.state.container
    try:
        photo_profile = get_profile(profile)
    except ValueError as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    content = await file.read()
    try:
        reference = await container.storage_router.store(content, photo_profile)
    except DecodeError as exc:
        raise HTTPException(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Photo could not be processed.",
        ) from exc
    except UploadError as exc:
        raise HTTPException(status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    return StoredPhoto(kind=reference.kind, reference=reference.value)


@router.get("/backup", dependencies=[Depends(require_admin)])
async def download_backup(request: Request) -> Response:
    """Export the whole dataset as a downloadable snapshot file."""
    container: AppContainer = request.app.state.container
    snapshot = container.snapshot_exporter.export_snapshot()
    return Response(
        content=snapshot.to_json(),
        media_type="application/json",
        headers={
            "Content-Disposition": (
                f'attachment; filename="{snapshot_filename(snapshot)}"'
            )
        },
    )


@router.post("/restore", dependencies=[Depends(require_admin)])
async def restore_backup(request: Request, confirm: bool = False) -> dict[str, object]:
    """Replace the whole dataset with an uploaded snapshot.

    Every collection is overwritten, so callers must pass ``confirm=true``.
    """
    if not confirm:
        raise HTTPException(
            status.HTTP_409_CONFLICT,
            detail="Restore overwrites all data; repeat with confirm=true.",
        )
    container: AppContainer = request.app.state.container
    body = await request.body()
    try:
        result = container.restore_engine.restore(body)
    except InvalidSnapshotError as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except RestoreError as exc:
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": str(exc),
                "collection": exc.collection.value,
                "progress": exc.progress.as_dict(),
            },
        ) from exc
    return {
        "status": "ok",
        "restored": {
            "locations": result.locations,
            "seniors": result.seniors,
            "works": result.works,
            "records": result.records,
            "participants": result.participants,
            "filters": result.filters,
        },
        "participant_failures": result.participant_failures,
        "participant_errors": result.participant_errors,
    }
