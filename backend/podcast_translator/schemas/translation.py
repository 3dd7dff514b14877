"""
Pydantic schemas for transcription, translation and synthesis endpoints.
"""

from datetime import datetime
from typing import Optional, List, Dict
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from podcast_translator.utils.audio_validator import (
    LANGUAGE_CODE_PATTERN,
    MAX_LANGUAGE_CODE_LENGTH,
    MAX_VOICE_NAME_LENGTH,
    VOICE_NAME_PATTERN,
)


def _is_language_code(code: str) -> bool:
    return len(code) <= MAX_LANGUAGE_CODE_LENGTH and LANGUAGE_CODE_PATTERN.fullmatch(code) is not None


class TranscribeAudioRequest(BaseModel):
    """Schema for starting transcription of an uploaded podcast."""
    podcast_id: UUID
    audio_file_url: Optional[str] = None
    language_code: Optional[str] = None


class TranscribeAudioResponse(BaseModel):
    message: str
    podcast_id: UUID
    status: str
    original_language: str
    transcript_length: int


class TranslateTextRequest(BaseModel):
    """Schema for a single text translation."""
    text_to_translate: str
    source_language_code: str
    target_language_code: str


class TranslateTextResponse(BaseModel):
    translated_text: str
    source_language: str
    target_language: str


class SynthesizeSpeechRequest(BaseModel):
    """Schema for synthesizing and storing one translated episode."""
    text: str
    language_code: str = Field(..., max_length=MAX_LANGUAGE_CODE_LENGTH, pattern=LANGUAGE_CODE_PATTERN.pattern)
    podcast_id: UUID
    voice_name: Optional[str] = Field(None, max_length=MAX_VOICE_NAME_LENGTH, pattern=VOICE_NAME_PATTERN.pattern)


class SynthesizeSpeechResponse(BaseModel):
    episode_id: UUID
    storage_path: str
    file_size: int
    language_code: str
    voice_name: str


class StartTranslationRequest(BaseModel):
    """
    Schema for the languages and voices chosen for one translation run.

    Languages keep their submitted order; duplicates and blanks are dropped.
    Codes and voice names become storage folder and file names, so only
    plain BCP-47 codes and letters, digits and hyphens are accepted.
    """
    languages: List[str] = Field(..., min_length=1)
    voices: Dict[str, str] = {}

    @field_validator("languages")
    @classmethod
    def normalize_languages(cls, value: List[str]) -> List[str]:
        seen: List[str] = []
        for code in value:
            code = code.strip()
            if code and not _is_language_code(code):
                raise ValueError(f"Invalid language code '{code}'")
            if code and code not in seen:
                seen.append(code)
        if not seen:
            raise ValueError("At least one target language is required")
        return seen

    @field_validator("voices")
    @classmethod
    def check_voices(cls, value: Dict[str, str]) -> Dict[str, str]:
        voices: Dict[str, str] = {}
        for code, voice in value.items():
            voice = voice.strip()
            if not voice:
                continue
            if len(voice) > MAX_VOICE_NAME_LENGTH or not VOICE_NAME_PATTERN.fullmatch(voice):
                raise ValueError(f"Invalid voice name '{voice}' for '{code}'")
            voices[code.strip()] = voice
        return voices


class LanguageResultResponse(BaseModel):
    """Per-language outcome inside a translation job."""
    language_code: str
    voice_name: str
    status: str
    episode_id: Optional[UUID] = None
    error: Optional[str] = None


class LanguageFailureResponse(BaseModel):
    language_code: str
    reason: str


class TranslationJobResponse(BaseModel):
    """Schema for translation job creation and status polling."""
    job_id: UUID
    podcast_id: UUID
    status: str  # pending, running, completed, completed_with_errors, failed
    selected_languages: List[str]
    voice_map: Dict[str, str]
    progress: float
    completed_steps: int
    total_steps: int
    languages: List[LanguageResultResponse]
    succeeded: List[str]
    failed: List[LanguageFailureResponse]
    successful_languages: int
    error: Optional[str] = None
    created_at: datetime
    finished_at: Optional[datetime] = None
