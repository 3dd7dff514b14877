"""
Service layer for podcast-related business logic.
Handles audio upload, ownership checks, status tracking and deletion.
"""

import asyncio
import time
import uuid
from typing import List, Optional, Tuple

from fastapi import UploadFile
from sqlalchemy.orm import Session

from podcast_translator.config import get_settings
from podcast_translator.models.podcast import Podcast, PodcastStatus
from podcast_translator.services.storage_service import StorageBackend, StorageError
from podcast_translator.utils.audio_validator import AudioUploadValidator
from podcast_translator.utils.auth import CurrentUser
from podcast_translator.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()


class PodcastNotFoundError(Exception):
    """Raised when a podcast does not exist or belongs to another user."""
    pass


class StatusWaitTimeoutError(Exception):
    """Raised when a podcast keeps its status longer than the allowed wait."""
    pass


class PodcastService:
    """
    Service class for handling podcast operations.

    Every lookup is scoped to the owning user; a podcast owned by someone
    else is indistinguishable from a missing one.
    """

    def __init__(self, db: Session, storage: StorageBackend) -> None:
        """
        Initialize the podcast service.

        Args:
            db: Database session for operations
            storage: Object storage gateway for audio files
        """
        self.db: Session = db
        self.storage: StorageBackend = storage
        self.validator: AudioUploadValidator = AudioUploadValidator()

    async def upload_podcast(self, user: CurrentUser, title: str, file: UploadFile,
                             description: Optional[str] = None,
                             original_language: Optional[str] = None) -> Podcast:
        """
        Validate an audio upload, store it and create the podcast record.

        Raises:
            AudioValidationError: If the file is not acceptable audio
            StorageError: If the audio cannot be stored
        """
        logger.info("Podcast upload received",
                    filename=file.filename,
                    content_type=file.content_type,
                    user_id=user.user_id)

        extension = self.validator.validate_audio_type(
            file.filename, file.content_type, settings.allowed_audio_extensions
        )
        content = await file.read()
        self.validator.validate_file_size(len(content), settings.max_audio_file_size)

        bucket = settings.original_audio_bucket
        object_path = self.validator.original_object_path(user.user_id, extension)
        await self.storage.upload(
            bucket, object_path, content,
            content_type=file.content_type or "audio/mpeg",
            upsert=False,
        )

        podcast = Podcast(
            user_id=user.user_id,
            title=title.strip(),
            description=(description or "").strip() or None,
            audio_file_url=self.storage.recognition_uri(bucket, object_path),
            audio_storage_path=object_path,
            audio_file_size=len(content),
            original_language=original_language or None,
            status=PodcastStatus.UPLOADED,
        )

        try:
            self.db.add(podcast)
            self.db.commit()
            self.db.refresh(podcast)
        except Exception as e:
            self.db.rollback()
            logger.error("Podcast record creation failed", object_path=object_path, error=str(e))
            # Drop the orphaned upload
            try:
                await self.storage.remove(bucket, [object_path])
            except StorageError as cleanup_error:
                logger.warning("Could not remove orphaned upload",
                               object_path=object_path,
                               error=str(cleanup_error))
            raise

        logger.info("Podcast record created",
                    podcast_id=podcast.id,
                    title=podcast.title,
                    audio_file_size=podcast.audio_file_size)
        return podcast

    def get_podcast_by_id(self, podcast_id: uuid.UUID) -> Optional[Podcast]:
        """Retrieve a podcast by its ID regardless of owner."""
        return self.db.query(Podcast).filter(Podcast.id == podcast_id).first()

    def get_podcast(self, podcast_id: uuid.UUID, user_id: str) -> Podcast:
        """
        Retrieve a podcast owned by ``user_id``.

        Raises:
            PodcastNotFoundError: If missing or owned by another user
        """
        podcast = (
            self.db.query(Podcast)
            .filter(Podcast.id == podcast_id, Podcast.user_id == user_id)
            .first()
        )
        if not podcast:
            raise PodcastNotFoundError(f"Podcast {podcast_id} not found")
        return podcast

    def list_podcasts(self, user_id: str, skip: int = 0, limit: int = 20) -> Tuple[List[Podcast], int]:
        """
        List a user's podcasts, newest first.

        Returns:
            Tuple of (podcast_list, total_count)
        """
        query = (
            self.db.query(Podcast)
            .filter(Podcast.user_id == user_id)
            .order_by(Podcast.created_at.desc())
        )
        total = query.count()
        podcasts = query.offset(skip).limit(limit).all()

        logger.info("Listed podcasts", user_id=user_id, count=len(podcasts), total=total)
        return podcasts, total

    def update_status(self, podcast: Podcast, status: str, **fields: object) -> Podcast:
        """Persist a status transition together with any changed fields."""
        previous_status = podcast.status
        podcast.status = status
        for name, value in fields.items():
            setattr(podcast, name, value)

        try:
            self.db.commit()
            self.db.refresh(podcast)
        except Exception as e:
            self.db.rollback()
            logger.error("Failed to update podcast status",
                         podcast_id=podcast.id,
                         status=status,
                         error=str(e))
            raise

        logger.info("Podcast status updated",
                    podcast_id=podcast.id,
                    previous_status=previous_status,
                    status=status)
        return podcast

    async def get_audio_url(self, podcast_id: uuid.UUID, user_id: str) -> str:
        """Signed playback URL for the original upload."""
        podcast = self.get_podcast(podcast_id, user_id)
        if not podcast.audio_storage_path:
            raise PodcastNotFoundError(f"Podcast {podcast_id} has no audio")
        return await self.storage.create_signed_url(
            settings.original_audio_bucket,
            podcast.audio_storage_path,
            settings.signed_url_ttl_seconds,
        )

    async def delete_podcast(self, podcast_id: uuid.UUID, user_id: str) -> List[str]:
        """
        Delete a podcast, its translated episodes and their audio objects.

        Every audio object removal is attempted even when an earlier one
        fails; failures are returned as warnings and the records are
        deleted regardless.

        Returns:
            Warning messages for objects that could not be removed

        Raises:
            PodcastNotFoundError: If missing or owned by another user
        """
        podcast = self.get_podcast(podcast_id, user_id)
        targets = [
            (settings.translated_audio_bucket, episode.audio_storage_path)
            for episode in podcast.translated_episodes
        ]
        if podcast.audio_storage_path:
            targets.append((settings.original_audio_bucket, podcast.audio_storage_path))

        warnings: List[str] = []
        for bucket, path in targets:
            try:
                await self.storage.remove(bucket, [path])
            except StorageError as e:
                logger.warning("Audio cleanup failed during delete",
                               podcast_id=podcast_id,
                               bucket=bucket,
                               path=path,
                               error=str(e))
                warnings.append(f"Could not remove {bucket}/{path}: {str(e)}")

        try:
            self.db.delete(podcast)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error("Failed to delete podcast", podcast_id=podcast_id, error=str(e))
            raise

        logger.info("Deleted podcast",
                    podcast_id=podcast_id,
                    removed_objects=len(targets) - len(warnings),
                    cleanup_warnings=len(warnings))
        return warnings

    async def wait_for_status_change(self, podcast_id: uuid.UUID, user_id: str, from_status: str,
                                     max_wait_seconds: Optional[float] = None,
                                     initial_interval: Optional[float] = None,
                                     max_interval: Optional[float] = None) -> Podcast:
        """
        Poll until the podcast leaves ``from_status``.

        The interval doubles after every poll up to ``max_interval``.

        Raises:
            StatusWaitTimeoutError: If the status is unchanged after ``max_wait_seconds``
            PodcastNotFoundError: If the podcast disappears
        """
        max_wait = settings.status_wait_max_seconds if max_wait_seconds is None else max_wait_seconds
        interval = settings.status_poll_initial_seconds if initial_interval is None else initial_interval
        interval_cap = settings.status_poll_max_interval_seconds if max_interval is None else max_interval
        deadline = time.monotonic() + max_wait

        while True:
            self.db.expire_all()
            podcast = self.get_podcast(podcast_id, user_id)
            if podcast.status != from_status:
                logger.info("Podcast status changed",
                            podcast_id=podcast_id,
                            from_status=from_status,
                            status=podcast.status)
                return podcast

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.warning("Timed out waiting for status change",
                               podcast_id=podcast_id,
                               status=from_status,
                               max_wait_seconds=max_wait)
                raise StatusWaitTimeoutError(
                    f"Podcast {podcast_id} still '{from_status}' after {max_wait} seconds"
                )

            await asyncio.sleep(min(interval, remaining))
            interval = min(interval * 2, interval_cap)
