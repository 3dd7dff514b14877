"""
API routes for podcast management.
Handles audio upload, listing, retrieval, playback links and deletion.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.orm import Session

from podcast_translator.config import get_settings
from podcast_translator.db.database import get_db
from podcast_translator.dependencies import get_job_registry
from podcast_translator.pipeline.job import JobRegistry
from podcast_translator.schemas.podcast import (
    PodcastDeleteResponse,
    PodcastListResponse,
    PodcastResponse,
    PodcastUploadResponse,
    SignedUrlResponse,
)
from podcast_translator.services.podcast_service import PodcastService
from podcast_translator.services.storage_service import StorageBackend, StorageError, get_storage_backend
from podcast_translator.utils.audio_validator import AudioValidationError
from podcast_translator.utils.auth import CurrentUser, get_current_user
from podcast_translator.utils.errors import api_error
from podcast_translator.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()
router = APIRouter(prefix="/api/podcasts", tags=["podcasts"])


@router.post("", response_model=PodcastUploadResponse, status_code=201)
async def upload_podcast(
    title: str = Form(...),
    description: Optional[str] = Form(None),
    original_language: Optional[str] = Form(None),
    file: UploadFile = File(...),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage_backend)
) -> PodcastUploadResponse:
    """
    Upload a podcast audio file.

    Accepts audio/* content or .mp3, .wav, .m4a, .ogg and .flac files up to
    the configured size limit. The podcast starts in ``uploaded`` status.
    """
    if not title.strip():
        raise api_error(400, "VALIDATION_ERROR", "Title is required")
    if len(title.strip()) > 255:
        raise api_error(400, "VALIDATION_ERROR", "Title must be at most 255 characters")

    logger.info("Upload podcast request received",
                filename=file.filename,
                content_type=file.content_type,
                user_id=user.user_id)

    try:
        service = PodcastService(db, storage)
        podcast = await service.upload_podcast(
            user, title, file, description=description, original_language=original_language
        )

    except AudioValidationError as e:
        logger.warning("Audio validation failed",
                       filename=file.filename,
                       error=str(e))
        raise api_error(400, "FILE_VALIDATION_ERROR", str(e))

    except StorageError as e:
        logger.error("Audio upload failed",
                     filename=file.filename,
                     error=str(e))
        raise api_error(500, "STORAGE_ERROR", "Failed to store the uploaded audio")

    return PodcastUploadResponse(
        podcast_id=podcast.id,
        title=podcast.title,
        status=podcast.status,
        audio_file_size=podcast.audio_file_size,
        message="Podcast uploaded successfully"
    )


@router.get("", response_model=PodcastListResponse)
def list_podcasts(
    page: int = Query(1, ge=1, description="Page number starting from 1"),
    per_page: int = Query(20, ge=1, le=100, description="Items per page (max 100)"),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage_backend)
) -> PodcastListResponse:
    """List the caller's podcasts, newest first."""
    logger.info("List podcasts request", page=page, per_page=per_page)

    service = PodcastService(db, storage)
    skip = (page - 1) * per_page
    podcasts, total = service.list_podcasts(user.user_id, skip=skip, limit=per_page)

    return PodcastListResponse(
        podcasts=[PodcastResponse.model_validate(p) for p in podcasts],
        total=total,
        page=page,
        per_page=per_page
    )


@router.get("/{podcast_id}", response_model=PodcastResponse)
def get_podcast(
    podcast_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage_backend)
) -> PodcastResponse:
    logger.info("Get podcast request", podcast_id=podcast_id)

    podcast = PodcastService(db, storage).get_podcast(podcast_id, user.user_id)
    return PodcastResponse.model_validate(podcast)


@router.get("/{podcast_id}/status", response_model=PodcastResponse)
async def wait_for_podcast_status(
    podcast_id: uuid.UUID,
    from_status: str = Query(..., description="Return once the podcast leaves this status"),
    max_wait: float = Query(30.0, gt=0, le=600, description="Seconds to wait before giving up"),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage_backend)
) -> PodcastResponse:
    """
    Long-poll for a status transition.

    Responds as soon as the podcast's status differs from ``from_status``,
    or with 408 once ``max_wait`` seconds pass without a change.
    """
    logger.info("Wait for status request", podcast_id=podcast_id, from_status=from_status)

    service = PodcastService(db, storage)
    podcast = await service.wait_for_status_change(
        podcast_id, user.user_id, from_status, max_wait_seconds=max_wait
    )
    return PodcastResponse.model_validate(podcast)


@router.get("/{podcast_id}/audio-url", response_model=SignedUrlResponse)
async def get_podcast_audio_url(
    podcast_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage_backend)
) -> SignedUrlResponse:
    """Signed playback link for the original upload."""
    url = await PodcastService(db, storage).get_audio_url(podcast_id, user.user_id)
    return SignedUrlResponse(url=url, expires_in=settings.signed_url_ttl_seconds)


@router.delete("/{podcast_id}", response_model=PodcastDeleteResponse)
async def delete_podcast(
    podcast_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage_backend),
    registry: JobRegistry = Depends(get_job_registry)
) -> PodcastDeleteResponse:
    """
    Delete a podcast with its translated episodes and audio files.

    Audio objects that cannot be removed are reported as warnings; the
    records are deleted regardless. This action cannot be undone.
    """
    logger.info("Delete podcast request", podcast_id=podcast_id)

    warnings = await PodcastService(db, storage).delete_podcast(podcast_id, user.user_id)
    registry.discard_podcast(podcast_id)

    message = "Podcast deleted successfully"
    if warnings:
        message = "Podcast deleted, but some audio files could not be removed"
    return PodcastDeleteResponse(message=message, warnings=warnings)
