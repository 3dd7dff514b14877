"""
Tests for podcast transcription.
"""

from typing import Callable
from unittest.mock import AsyncMock, Mock, patch

import pytest
from sqlalchemy.orm import Session

from podcast_translator.models.podcast import Podcast, PodcastStatus
from podcast_translator.providers.base_provider import ProviderError
from podcast_translator.services.podcast_service import PodcastService
from podcast_translator.services.storage_service import LocalStorageBackend
from podcast_translator.services.transcription_service import (
    TranscriptionFailedError,
    TranscriptionInProgressError,
    TranscriptionRequestError,
    TranscriptionService,
)


class TestTranscriptionService:
    """Test the TranscriptionService class."""

    @pytest.fixture
    def service(self, test_db: Session, storage: LocalStorageBackend, speech_provider: Mock) -> TranscriptionService:
        return TranscriptionService(PodcastService(test_db, storage), speech_provider)

    @pytest.fixture
    def notify(self) -> Mock:
        with patch("podcast_translator.services.transcription_service.notify_status_change") as notify:
            yield notify

    @pytest.mark.asyncio
    async def test_transcribe_success(self, service: TranscriptionService, speech_provider: Mock,
                                      make_podcast: Callable[..., Podcast], notify: Mock) -> None:
        podcast = make_podcast(status=PodcastStatus.UPLOADED, transcript=None, original_language=None)

        result = await service.transcribe_podcast(podcast)

        assert result.status == PodcastStatus.TRANSCRIBED
        assert result.transcript == "Welcome to the show.\nToday we talk about rivers."
        assert result.original_language == "en-US"
        args, kwargs = speech_provider.transcribe.call_args
        assert args[0] == podcast.audio_file_url
        assert kwargs["language_code"] == "en-US"
        assert kwargs["encoding"] == "MP3"
        assert kwargs["sample_rate_hertz"] == 16000
        notify.assert_called_once()
        assert notify.call_args.args[2] == PodcastStatus.TRANSCRIBED

    @pytest.mark.asyncio
    async def test_request_language_wins(self, service: TranscriptionService, speech_provider: Mock,
                                         make_podcast: Callable[..., Podcast], notify: Mock) -> None:
        podcast = make_podcast(status=PodcastStatus.UPLOADED, original_language="de-DE")

        result = await service.transcribe_podcast(podcast, audio_file_url="gs://bucket/x.mp3", language_code="es-ES")

        assert result.original_language == "es-ES"
        assert speech_provider.transcribe.call_args.args[0] == "gs://bucket/x.mp3"

    @pytest.mark.asyncio
    async def test_provider_failure_marks_podcast_failed(self, service: TranscriptionService,
                                                         speech_provider: Mock, test_db: Session,
                                                         make_podcast: Callable[..., Podcast],
                                                         notify: Mock) -> None:
        """Test that a provider error ends in transcription_failed with the provider text."""
        speech_provider.transcribe = AsyncMock(
            side_effect=ProviderError("No transcription results returned from Google Speech-to-Text API.")
        )
        podcast = make_podcast(status=PodcastStatus.UPLOADED, transcript=None)

        with pytest.raises(TranscriptionFailedError, match="No transcription results returned"):
            await service.transcribe_podcast(podcast)

        test_db.expire_all()
        stored = test_db.query(Podcast).filter(Podcast.id == podcast.id).one()
        assert stored.status == PodcastStatus.TRANSCRIPTION_FAILED
        assert stored.transcript is None
        assert notify.call_args.args[2] == PodcastStatus.TRANSCRIPTION_FAILED

    @pytest.mark.asyncio
    async def test_refuses_while_transcribing(self, service: TranscriptionService, speech_provider: Mock,
                                              make_podcast: Callable[..., Podcast]) -> None:
        podcast = make_podcast(status=PodcastStatus.TRANSCRIBING)

        with pytest.raises(TranscriptionInProgressError):
            await service.transcribe_podcast(podcast)

        speech_provider.transcribe.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_retry_after_failure_is_allowed(self, service: TranscriptionService,
                                                  make_podcast: Callable[..., Podcast], notify: Mock) -> None:
        podcast = make_podcast(status=PodcastStatus.TRANSCRIPTION_FAILED, transcript=None)

        result = await service.transcribe_podcast(podcast)

        assert result.status == PodcastStatus.TRANSCRIBED

    @pytest.mark.asyncio
    async def test_missing_audio_location(self, service: TranscriptionService, speech_provider: Mock,
                                          make_podcast: Callable[..., Podcast]) -> None:
        podcast = make_podcast(status=PodcastStatus.UPLOADED, audio_file_url=None)

        with pytest.raises(TranscriptionRequestError):
            await service.transcribe_podcast(podcast)

        assert podcast.status == PodcastStatus.UPLOADED
        speech_provider.transcribe.assert_not_awaited()
