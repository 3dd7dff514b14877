"""
Tests for the Google Cloud provider wrappers.
"""

from typing import List
from unittest.mock import Mock

import pytest
from google.api_core import exceptions as google_exceptions
from google.cloud import texttospeech

from podcast_translator.providers.base_provider import ProviderError
from podcast_translator.providers.speech_to_text import SpeechToTextProvider
from podcast_translator.providers.text_to_speech import TextToSpeechProvider, voice_display_name, voice_locale
from podcast_translator.providers.translation import TranslationProvider
from podcast_translator.utils.google_credentials import ConfigurationError


def _recognition_response(segments: List[str]) -> Mock:
    results = []
    for text in segments:
        alternative = Mock()
        alternative.transcript = text
        result = Mock()
        result.alternatives = [alternative]
        results.append(result)
    response = Mock()
    response.results = results
    return response


class TestVoiceNaming:
    """Test voice locale and display name helpers."""

    @pytest.mark.parametrize("voice_name, fallback, expected", [
        ("es-ES-Standard-A", "es", "es-ES"),
        ("fr-CA-Wavenet-B", "fr", "fr-CA"),
        (None, "de", "de"),
        ("custom", "it", "it"),
    ])
    def test_voice_locale(self, voice_name: str, fallback: str, expected: str) -> None:
        assert voice_locale(voice_name, fallback) == expected

    @pytest.mark.parametrize("voice_name, gender, expected", [
        ("en-US-Wavenet-B", "FEMALE", "Female (WaveNet B)"),
        ("es-ES-Standard-C", "MALE", "Male (Standard C)"),
        ("en-GB-News-K", "FEMALE", "Female (News K)"),
        ("en-US-Studio-O", "NEUTRAL", "Neutral (Studio O)"),
        ("en-US-Neural2-A", "MALE", "Male (Neural2-A)"),
        ("en-US-Polyglot-1", "SSML_VOICE_GENDER_UNSPECIFIED", "Unknown (Polyglot-1)"),
    ])
    def test_voice_display_name(self, voice_name: str, gender: str, expected: str) -> None:
        assert voice_display_name(voice_name, gender) == expected


class TestProviderConfiguration:

    def test_missing_credentials_raise_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError, match="Missing Google Cloud credentials"):
            TranslationProvider()


class TestSpeechToTextProvider:
    """Test the SpeechToTextProvider class."""

    @pytest.mark.asyncio
    async def test_joins_first_alternatives(self) -> None:
        client = Mock()
        client.long_running_recognize.return_value.result.return_value = _recognition_response(
            ["Hello and welcome.", "Today we talk about rivers."]
        )
        provider = SpeechToTextProvider(client=client)

        transcript = await provider.transcribe("gs://podcast-audio/u/1.mp3", "en-US", timeout_seconds=30)

        assert transcript == "Hello and welcome.\nToday we talk about rivers."
        client.long_running_recognize.return_value.result.assert_called_once_with(timeout=30)
        config = client.long_running_recognize.call_args.kwargs["config"]
        assert config.language_code == "en-US"
        assert config.enable_automatic_punctuation is True

    @pytest.mark.asyncio
    async def test_empty_results_are_an_error(self) -> None:
        client = Mock()
        client.long_running_recognize.return_value.result.return_value = _recognition_response([])
        provider = SpeechToTextProvider(client=client)

        with pytest.raises(ProviderError, match="No transcription results returned"):
            await provider.transcribe("gs://podcast-audio/u/1.mp3", "en-US")

    @pytest.mark.asyncio
    async def test_google_error_converted(self) -> None:
        client = Mock()
        client.long_running_recognize.side_effect = google_exceptions.InvalidArgument("Invalid recognition config")
        provider = SpeechToTextProvider(client=client)

        with pytest.raises(ProviderError, match="Google Speech-to-Text API error: Invalid recognition config"):
            await provider.transcribe("gs://podcast-audio/u/1.mp3", "en-US")


class TestTranslationProvider:
    """Test the TranslationProvider class."""

    @pytest.mark.asyncio
    async def test_translate_success(self) -> None:
        client = Mock()
        client.translate.return_value = {"translatedText": "Hola a todos", "input": "Hello everyone"}
        provider = TranslationProvider(client=client)

        result = await provider.translate("Hello everyone", "en", "es")

        assert result == "Hola a todos"
        client.translate.assert_called_once_with(
            "Hello everyone", target_language="es", source_language="en", format_="text"
        )

    @pytest.mark.asyncio
    async def test_empty_translation_is_an_error(self) -> None:
        client = Mock()
        client.translate.return_value = {"translatedText": ""}
        provider = TranslationProvider(client=client)

        with pytest.raises(ProviderError, match="Translation failed to return text."):
            await provider.translate("Hello", "en", "es")

    @pytest.mark.asyncio
    async def test_unexpected_error_wrapped(self) -> None:
        client = Mock()
        client.translate.side_effect = RuntimeError("connection reset")
        provider = TranslationProvider(client=client)

        with pytest.raises(ProviderError, match="Unexpected error: connection reset"):
            await provider.translate("Hello", "en", "es")


class TestTextToSpeechProvider:
    """Test the TextToSpeechProvider class."""

    @pytest.mark.asyncio
    async def test_synthesize_returns_audio(self) -> None:
        client = Mock()
        client.synthesize_speech.return_value.audio_content = b"mp3-bytes"
        provider = TextToSpeechProvider(client=client)

        audio = await provider.synthesize("Hola", "es-ES", voice_name="es-ES-Standard-A")

        assert audio == b"mp3-bytes"
        voice = client.synthesize_speech.call_args.kwargs["voice"]
        assert voice.language_code == "es-ES"
        assert voice.name == "es-ES-Standard-A"

    @pytest.mark.asyncio
    async def test_empty_audio_is_an_error(self) -> None:
        client = Mock()
        client.synthesize_speech.return_value.audio_content = b""
        provider = TextToSpeechProvider(client=client)

        with pytest.raises(ProviderError, match="failed to return audio content"):
            await provider.synthesize("Hola", "es")

    @pytest.mark.asyncio
    async def test_list_voices(self) -> None:
        voice = Mock()
        voice.name = "es-ES-Wavenet-B"
        voice.ssml_gender = texttospeech.SsmlVoiceGender.MALE
        voice.natural_sample_rate_hertz = 24000
        client = Mock()
        client.list_voices.return_value.voices = [voice]
        provider = TextToSpeechProvider(client=client)

        voices = await provider.list_voices("es-ES")

        assert voices == [{
            "name": "es-ES-Wavenet-B",
            "display_name": "Male (WaveNet B)",
            "ssml_gender": "MALE",
            "natural_sample_rate_hertz": 24000,
        }]
        client.list_voices.assert_called_once_with(language_code="es-ES")
