"""
Serves audio from the local storage backend through signed links.
"""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse

from podcast_translator.services.storage_service import (
    LocalStorageBackend,
    StorageBackend,
    StorageError,
    get_storage_backend,
)
from podcast_translator.utils.errors import api_error
from podcast_translator.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/api/storage", tags=["storage"])


@router.get("/{bucket}/{path:path}")
def download_object(
    bucket: str,
    path: str,
    expires: int = Query(...),
    signature: str = Query(...),
    storage: StorageBackend = Depends(get_storage_backend)
) -> FileResponse:
    """
    Stream a stored object for a signed link.

    Only available with the local backend; cloud backends hand out their
    own signed URLs.
    """
    if not isinstance(storage, LocalStorageBackend):
        raise api_error(404, "NOT_FOUND", "Local storage is not enabled")

    if not storage.verify_signature(bucket, path, expires, signature):
        logger.warning("Rejected storage link", bucket=bucket, path=path)
        raise api_error(403, "FORBIDDEN", "Invalid or expired signature")

    try:
        target = storage.resolve_path(bucket, path)
    except StorageError as e:
        raise api_error(403, "FORBIDDEN", str(e))

    if not target.is_file():
        raise api_error(404, "NOT_FOUND", "Object does not exist")

    media_type = "audio/mpeg" if target.suffix == ".mp3" else None
    return FileResponse(target, media_type=media_type)
