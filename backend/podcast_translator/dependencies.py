"""
FastAPI dependency providers for cloud clients and background sessions.
"""

from functools import lru_cache
from typing import Callable

from sqlalchemy.orm import Session

from podcast_translator.db.database import SessionLocal
from podcast_translator.pipeline.job import JobRegistry, job_registry
from podcast_translator.providers.speech_to_text import SpeechToTextProvider
from podcast_translator.providers.text_to_speech import TextToSpeechProvider
from podcast_translator.providers.translation import TranslationProvider


@lru_cache()
def get_speech_provider() -> SpeechToTextProvider:
    """Speech-to-text provider; raises ConfigurationError without credentials."""
    return SpeechToTextProvider()


@lru_cache()
def get_translation_provider() -> TranslationProvider:
    return TranslationProvider()


@lru_cache()
def get_tts_provider() -> TextToSpeechProvider:
    return TextToSpeechProvider()


def get_session_factory() -> Callable[[], Session]:
    """Session factory for work that outlives the request's session."""
    return SessionLocal


def get_job_registry() -> JobRegistry:
    return job_registry
