"""
Transcription invoker: runs speech-to-text for a podcast and records the result.
"""

from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from podcast_translator.config import get_settings
from podcast_translator.models.podcast import Podcast, PodcastStatus
from podcast_translator.providers.base_provider import ProviderError
from podcast_translator.providers.speech_to_text import SpeechToTextProvider
from podcast_translator.services.event_service import notify_status_change
from podcast_translator.services.podcast_service import PodcastService
from podcast_translator.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()


class TranscriptionInProgressError(Exception):
    """Raised when a transcription is requested while one is running."""
    pass


class TranscriptionRequestError(Exception):
    """Raised when a transcription request lacks an audio location."""
    pass


class TranscriptionFailedError(Exception):
    """Raised after a podcast has been moved to transcription_failed."""
    pass


class TranscriptionService:
    """
    Transcribes a podcast's audio and moves it to a terminal status.

    Each invocation ends in exactly one of ``transcribed`` or
    ``transcription_failed``. Re-running overwrites an earlier transcript.
    """

    def __init__(self, podcasts: PodcastService, provider: SpeechToTextProvider) -> None:
        self.podcasts: PodcastService = podcasts
        self.provider: SpeechToTextProvider = provider

    async def transcribe_podcast(self, podcast: Podcast, audio_file_url: Optional[str] = None,
                                 language_code: Optional[str] = None) -> Podcast:
        """
        Transcribe ``podcast`` and store the transcript.

        Args:
            podcast: Podcast to transcribe
            audio_file_url: Audio location; defaults to the podcast's upload
            language_code: Spoken language; defaults to the podcast's
                original language, then the configured default

        Returns:
            The podcast in ``transcribed`` status

        Raises:
            TranscriptionInProgressError: If the podcast is already transcribing
            TranscriptionRequestError: If no audio location is known
            TranscriptionFailedError: If the provider or the update failed
        """
        if podcast.status == PodcastStatus.TRANSCRIBING:
            raise TranscriptionInProgressError(f"Podcast {podcast.id} is already being transcribed")

        audio_uri = audio_file_url or podcast.audio_file_url
        if not audio_uri:
            raise TranscriptionRequestError("Missing audio_file_url for podcast")

        language = language_code or podcast.original_language or settings.default_transcription_language
        self.podcasts.update_status(podcast, PodcastStatus.TRANSCRIBING)

        logger.info("Starting transcription",
                    podcast_id=podcast.id,
                    audio_file_url=audio_uri,
                    language_code=language)

        try:
            transcript = await self.provider.transcribe(
                audio_uri,
                language_code=language,
                encoding=settings.speech_encoding,
                sample_rate_hertz=settings.speech_sample_rate_hertz,
                timeout_seconds=settings.transcription_timeout_seconds,
            )
        except ProviderError as e:
            self._mark_failed(podcast, str(e))
            raise TranscriptionFailedError(f"Transcription failed: {str(e)}")

        try:
            self.podcasts.update_status(
                podcast,
                PodcastStatus.TRANSCRIBED,
                transcript=transcript,
                original_language=language,
            )
        except SQLAlchemyError as e:
            self._mark_failed(podcast, str(e))
            raise TranscriptionFailedError(f"Failed to update podcast record: {str(e)}")

        logger.info("Transcription stored",
                    podcast_id=podcast.id,
                    transcript_length=len(transcript))
        notify_status_change(podcast.id, podcast.user_id, PodcastStatus.TRANSCRIBED,
                             previous_status=PodcastStatus.TRANSCRIBING)
        return podcast

    def _mark_failed(self, podcast: Podcast, reason: str) -> None:
        logger.error("Transcription failed", podcast_id=podcast.id, error=reason)
        try:
            self.podcasts.update_status(podcast, PodcastStatus.TRANSCRIPTION_FAILED)
        except SQLAlchemyError as e:
            logger.error("Failed to record transcription_failed status",
                         podcast_id=podcast.id,
                         error=str(e))
        notify_status_change(podcast.id, podcast.user_id, PodcastStatus.TRANSCRIPTION_FAILED,
                             previous_status=PodcastStatus.TRANSCRIBING,
                             error_message=reason)
