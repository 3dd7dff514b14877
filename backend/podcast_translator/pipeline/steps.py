"""
Per-language pipeline steps: translate the transcript, then voice it.
"""

import uuid
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from podcast_translator.config import get_settings
from podcast_translator.models.translated_episode import TranslatedEpisode
from podcast_translator.pipeline.job import DEFAULT_VOICE_NAME
from podcast_translator.providers.base_provider import ProviderError
from podcast_translator.providers.text_to_speech import TextToSpeechProvider, voice_locale
from podcast_translator.providers.translation import TranslationProvider
from podcast_translator.services.episode_service import EpisodeService
from podcast_translator.services.storage_service import StorageError
from podcast_translator.utils.audio_validator import AudioUploadValidator, AudioValidationError
from podcast_translator.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()


class PipelineStepError(Exception):
    """Base class for failures of a single pipeline step."""
    pass


class StepValidationError(PipelineStepError):
    """Raised when step input is rejected before any provider call."""
    pass


class TranslationStepError(PipelineStepError):
    """Raised when translation into one language fails."""
    pass


class SynthesisStepError(PipelineStepError):
    """Raised when voicing one language fails."""
    pass


class TranslationStep:
    """Translates source text into one target language."""

    def __init__(self, provider: TranslationProvider) -> None:
        self.provider: TranslationProvider = provider

    @staticmethod
    def validate(text: Optional[str], source_language: Optional[str], target_language: Optional[str]) -> None:
        if not text or not text.strip():
            raise StepValidationError("text_to_translate cannot be empty.")
        if not source_language or not target_language:
            raise StepValidationError("Both source and target language codes are required.")

    async def run(self, text: str, source_language: str, target_language: str) -> str:
        """
        Translate ``text``.

        Raises:
            StepValidationError: If input is empty; the provider is not called
            TranslationStepError: If the provider fails or returns nothing
        """
        self.validate(text, source_language, target_language)

        try:
            return await self.provider.translate(text, source_language, target_language)
        except ProviderError as e:
            raise TranslationStepError(f"Translation to {target_language} failed: {str(e)}")


class SynthesisStep:
    """Synthesizes translated text and publishes it as a translated episode."""

    def __init__(self, provider: TextToSpeechProvider, episodes: EpisodeService) -> None:
        self.provider: TextToSpeechProvider = provider
        self.episodes: EpisodeService = episodes

    async def run(self, text: str, language_code: str, voice_name: Optional[str],
                  podcast_id: uuid.UUID, user_id: str) -> TranslatedEpisode:
        """
        Voice ``text`` and store the result for ``podcast_id``.

        ``user_id`` must come from the caller's verified identity.

        Raises:
            StepValidationError: If the text is empty or the language or voice is malformed
            SynthesisStepError: If synthesis, upload or the episode row fails
        """
        if not text or not text.strip():
            raise StepValidationError("Text is required")

        stored_voice = voice_name or DEFAULT_VOICE_NAME
        try:
            AudioUploadValidator.validate_episode_key(language_code, stored_voice)
        except AudioValidationError as e:
            raise StepValidationError(str(e))

        tts_language = voice_locale(voice_name, language_code)

        try:
            audio = await self.provider.synthesize(
                text, tts_language, voice_name=voice_name, audio_encoding=settings.tts_audio_encoding
            )
        except ProviderError as e:
            raise SynthesisStepError(f"Voice synthesis for {language_code} failed: {str(e)}")

        try:
            episode = await self.episodes.publish_episode(
                podcast_id, user_id, language_code, stored_voice, audio
            )
        except (StorageError, SQLAlchemyError) as e:
            raise SynthesisStepError(f"Storing {language_code} audio failed: {str(e)}")

        logger.info("Generated audio",
                    podcast_id=podcast_id,
                    language_code=language_code,
                    voice_name=stored_voice,
                    episode_id=episode.id)
        return episode
