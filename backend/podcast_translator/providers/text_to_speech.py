"""
Google Cloud Text-to-Speech wrapper: synthesis and voice catalogue.
"""

from typing import Any, Dict, List, Optional

from google.cloud import texttospeech
from google.oauth2 import service_account

from podcast_translator.providers.base_provider import BaseProvider, ProviderError
from podcast_translator.utils.logger import get_logger

logger = get_logger(__name__)

VOICE_FAMILIES = {"Wavenet": "WaveNet", "Standard": "Standard", "News": "News", "Studio": "Studio"}


def voice_locale(voice_name: Optional[str], fallback: str) -> str:
    """
    Locale a voice belongs to, e.g. ``es-ES`` for ``es-ES-Standard-A``.

    Falls back to the given language code when no voice is named or the
    name does not follow the ``xx-YY-Family-V`` pattern.
    """
    if voice_name:
        parts = voice_name.split("-")
        if len(parts) > 2:
            return f"{parts[0]}-{parts[1]}"
    return fallback


def voice_display_name(voice_name: str, gender: str) -> str:
    """Human readable voice label such as ``Female (WaveNet B)``."""
    gender_label = gender.capitalize() if gender in ("FEMALE", "MALE", "NEUTRAL") else "Unknown"
    parts = voice_name.split("-")

    for marker, family in VOICE_FAMILIES.items():
        if marker in voice_name:
            return f"{gender_label} ({family} {parts[-1]})"

    voice_type = "-".join(parts[2:]) if len(parts) > 2 else voice_name
    return f"{gender_label} ({voice_type})"


class TextToSpeechProvider(BaseProvider):
    """Synthesizes speech and lists the voices available for a language."""

    provider_label = "Google Text-to-Speech"

    def _build_client(self, credentials: service_account.Credentials) -> Any:
        return texttospeech.TextToSpeechClient(credentials=credentials)

    async def synthesize(self, text: str, language_code: str,
                         voice_name: Optional[str] = None, audio_encoding: str = "MP3") -> bytes:
        """
        Synthesize text to audio bytes.

        Args:
            text: Text to speak
            language_code: Locale of the voice
            voice_name: Specific voice; the provider picks one when omitted
            audio_encoding: AudioEncoding name, MP3 by default

        Returns:
            Raw encoded audio

        Raises:
            ProviderError: If synthesis fails or returns no audio
        """
        voice_params: Dict[str, Any] = {"language_code": language_code}
        if voice_name:
            voice_params["name"] = voice_name

        logger.info("Requesting speech synthesis",
                    language_code=language_code,
                    voice_name=voice_name,
                    text_length=len(text),
                    text_preview=self._truncate_for_log(text, 60))

        response = await self._call(
            "synthesize_speech",
            self.client.synthesize_speech,
            input=texttospeech.SynthesisInput(text=text),
            voice=texttospeech.VoiceSelectionParams(**voice_params),
            audio_config=texttospeech.AudioConfig(
                audio_encoding=texttospeech.AudioEncoding[audio_encoding],
            ),
        )

        if not response.audio_content:
            logger.error("TTS synthesis returned no audio content", language_code=language_code)
            raise ProviderError("TTS synthesis failed to return audio content.")

        logger.info("Speech synthesized", audio_bytes=len(response.audio_content))
        return response.audio_content

    async def list_voices(self, language_code: str) -> List[Dict[str, Any]]:
        """Voices offered for a language, with display names for pickers."""
        response = await self._call("list_voices", self.client.list_voices, language_code=language_code)

        voices = []
        for voice in response.voices or []:
            gender = texttospeech.SsmlVoiceGender(voice.ssml_gender).name
            voices.append({
                "name": voice.name,
                "display_name": voice_display_name(voice.name, gender),
                "ssml_gender": gender,
                "natural_sample_rate_hertz": voice.natural_sample_rate_hertz,
            })

        logger.info("Listed voices", language_code=language_code, voice_count=len(voices))
        return voices
