"""
Service layer for translated episodes.
Publishes synthesized audio and its database row as one idempotent operation.
"""

import uuid
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from podcast_translator.config import get_settings
from podcast_translator.models.podcast import Podcast
from podcast_translator.models.translated_episode import TranslatedEpisode, EpisodeStatus
from podcast_translator.services.storage_service import StorageBackend, StorageError
from podcast_translator.utils.audio_validator import AudioUploadValidator
from podcast_translator.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()


class EpisodeNotFoundError(Exception):
    """Raised when a translated episode is not found for the caller."""
    pass


class EpisodeService:
    """
    Service class for translated episode storage and records.

    Rows are keyed by (podcast_id, language_code, voice_name); the audio
    object path is derived from the same key plus the owner.
    """

    def __init__(self, db: Session, storage: StorageBackend) -> None:
        self.db: Session = db
        self.storage: StorageBackend = storage

    @staticmethod
    def episode_object_path(user_id: str, podcast_id: uuid.UUID, language_code: str, voice_name: str) -> str:
        """
        Object path ``{user}/{podcast}/{language}/{voice}.mp3``.

        Raises:
            AudioValidationError: If the language code or voice name is not a plain key
        """
        AudioUploadValidator.validate_episode_key(language_code, voice_name)
        return f"{user_id}/{podcast_id}/{language_code}/{voice_name}.mp3"

    def find_episode(self, podcast_id: uuid.UUID, language_code: str, voice_name: str) -> Optional[TranslatedEpisode]:
        return (
            self.db.query(TranslatedEpisode)
            .filter(
                TranslatedEpisode.podcast_id == podcast_id,
                TranslatedEpisode.language_code == language_code,
                TranslatedEpisode.voice_name == voice_name,
            )
            .first()
        )

    def record_episode(self, podcast_id: uuid.UUID, user_id: str, language_code: str, voice_name: str,
                       storage_path: str, file_size: int) -> Tuple[TranslatedEpisode, bool]:
        """
        Insert a completed episode row, or refresh the one already recorded.

        A unique-constraint conflict from a concurrent run is not an error;
        the existing row is returned instead.

        Returns:
            Tuple of (episode, created)
        """
        existing = self.find_episode(podcast_id, language_code, voice_name)
        if existing:
            return self._refresh_existing(existing, storage_path, file_size), False

        episode = TranslatedEpisode(
            podcast_id=podcast_id,
            user_id=user_id,
            language_code=language_code,
            voice_name=voice_name,
            audio_storage_path=storage_path,
            file_size=file_size,
            status=EpisodeStatus.COMPLETED,
        )

        try:
            self.db.add(episode)
            self.db.commit()
            self.db.refresh(episode)
        except IntegrityError:
            self.db.rollback()
            existing = self.find_episode(podcast_id, language_code, voice_name)
            if existing is None:
                raise
            logger.info("Translated episode already recorded",
                        podcast_id=podcast_id,
                        language_code=language_code,
                        voice_name=voice_name)
            return self._refresh_existing(existing, storage_path, file_size), False

        logger.info("Translated episode recorded",
                    episode_id=episode.id,
                    podcast_id=podcast_id,
                    language_code=language_code,
                    voice_name=voice_name,
                    file_size=file_size)
        return episode, True

    def _refresh_existing(self, episode: TranslatedEpisode, storage_path: str, file_size: int) -> TranslatedEpisode:
        episode.audio_storage_path = storage_path
        episode.file_size = file_size
        episode.status = EpisodeStatus.COMPLETED
        try:
            self.db.commit()
            self.db.refresh(episode)
        except Exception:
            self.db.rollback()
            raise
        return episode

    async def publish_episode(self, podcast_id: uuid.UUID, user_id: str, language_code: str,
                              voice_name: str, audio: bytes) -> TranslatedEpisode:
        """
        Store synthesized audio and record its episode row.

        The upload overwrites any earlier object at the same path. If the
        row cannot be written and no earlier row exists, the uploaded object
        is removed again. An earlier row keeps its object, so a failure
        leaves neither an orphaned object nor a row without audio.

        Raises:
            AudioValidationError: If the language code or voice name is rejected
            StorageError: If the upload fails
            SQLAlchemyError: If the row cannot be written
        """
        bucket = settings.translated_audio_bucket
        object_path = self.episode_object_path(user_id, podcast_id, language_code, voice_name)
        previous = self.find_episode(podcast_id, language_code, voice_name)

        await self.storage.upload(bucket, object_path, audio, content_type="audio/mpeg", upsert=True)

        try:
            episode, _ = self.record_episode(
                podcast_id, user_id, language_code, voice_name, object_path, len(audio)
            )
        except Exception as e:
            if previous is not None:
                # The earlier row still points at this object
                logger.error("Episode row refresh failed, keeping stored audio",
                             episode_id=previous.id,
                             object_path=object_path,
                             error=str(e))
                raise

            logger.error("Episode row failed, removing uploaded audio",
                         podcast_id=podcast_id,
                         object_path=object_path,
                         error=str(e))
            try:
                await self.storage.remove(bucket, [object_path])
            except StorageError as cleanup_error:
                logger.error("Could not remove uploaded audio",
                             object_path=object_path,
                             error=str(cleanup_error))
            raise

        return episode

    def list_episodes(self, podcast_id: uuid.UUID) -> List[TranslatedEpisode]:
        """Episodes of a podcast, newest first."""
        return (
            self.db.query(TranslatedEpisode)
            .filter(TranslatedEpisode.podcast_id == podcast_id)
            .order_by(TranslatedEpisode.created_at.desc())
            .all()
        )

    def get_episode(self, episode_id: uuid.UUID, user_id: str) -> TranslatedEpisode:
        """
        Retrieve an episode whose podcast belongs to ``user_id``.

        Raises:
            EpisodeNotFoundError: If missing or not owned by the caller
        """
        episode = (
            self.db.query(TranslatedEpisode)
            .join(Podcast, Podcast.id == TranslatedEpisode.podcast_id)
            .filter(TranslatedEpisode.id == episode_id, Podcast.user_id == user_id)
            .first()
        )
        if not episode:
            raise EpisodeNotFoundError(f"Translated episode {episode_id} not found")
        return episode

    async def get_episode_url(self, episode_id: uuid.UUID, user_id: str) -> str:
        """Signed playback or download URL for an episode's audio."""
        episode = self.get_episode(episode_id, user_id)
        return await self.storage.create_signed_url(
            settings.translated_audio_bucket,
            episode.audio_storage_path,
            settings.signed_url_ttl_seconds,
        )
