"""
Google Cloud Speech-to-Text wrapper for long-running podcast transcription.
"""

from typing import Any

from google.cloud import speech
from google.oauth2 import service_account

from podcast_translator.providers.base_provider import BaseProvider, ProviderError
from podcast_translator.utils.logger import get_logger

logger = get_logger(__name__)


class SpeechToTextProvider(BaseProvider):
    """Transcribes audio reachable by URI using long-running recognition."""

    provider_label = "Google Speech-to-Text"

    def _build_client(self, credentials: service_account.Credentials) -> Any:
        return speech.SpeechClient(credentials=credentials)

    async def transcribe(self, audio_uri: str, language_code: str, encoding: str = "MP3",
                         sample_rate_hertz: int = 16000, timeout_seconds: int = 3600) -> str:
        """
        Transcribe an audio file and wait for the operation to finish.

        Args:
            audio_uri: Location the provider can read the audio from
            language_code: BCP-47 language spoken in the audio
            encoding: RecognitionConfig audio encoding name
            sample_rate_hertz: Sample rate of the audio
            timeout_seconds: Maximum time to wait for the operation

        Returns:
            Transcript text, one line per recognized segment

        Raises:
            ProviderError: If recognition fails or returns nothing
        """
        config = speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding[encoding],
            sample_rate_hertz=sample_rate_hertz,
            language_code=language_code,
            enable_automatic_punctuation=True,
        )
        audio = speech.RecognitionAudio(uri=audio_uri)

        def _recognize() -> Any:
            operation = self.client.long_running_recognize(config=config, audio=audio)
            return operation.result(timeout=timeout_seconds)

        logger.info("Starting transcription", audio_uri=audio_uri, language_code=language_code)
        response = await self._call("long_running_recognize", _recognize)

        segments = [
            result.alternatives[0].transcript
            for result in (response.results or [])
            if result.alternatives
        ]
        if not segments:
            raise ProviderError("No transcription results returned from Google Speech-to-Text API.")

        transcript = "\n".join(segments)
        logger.info("Transcription received",
                    segment_count=len(segments),
                    transcript_length=len(transcript))
        return transcript
