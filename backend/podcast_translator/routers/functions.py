"""
API routes wrapping the individual pipeline operations.
Each route runs one step for the authenticated caller.
"""

import base64

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from podcast_translator.config import get_settings
from podcast_translator.db.database import get_db
from podcast_translator.dependencies import get_speech_provider, get_translation_provider, get_tts_provider
from podcast_translator.pipeline.steps import SynthesisStep, TranslationStep
from podcast_translator.providers.speech_to_text import SpeechToTextProvider
from podcast_translator.providers.text_to_speech import TextToSpeechProvider, voice_locale
from podcast_translator.providers.translation import TranslationProvider
from podcast_translator.schemas.translation import (
    SynthesizeSpeechRequest,
    SynthesizeSpeechResponse,
    TranscribeAudioRequest,
    TranscribeAudioResponse,
    TranslateTextRequest,
    TranslateTextResponse,
)
from podcast_translator.schemas.voice import (
    ListVoicesRequest,
    ListVoicesResponse,
    PreviewVoiceRequest,
    PreviewVoiceResponse,
    VoiceOption,
)
from podcast_translator.services.episode_service import EpisodeService
from podcast_translator.services.podcast_service import PodcastService
from podcast_translator.services.storage_service import StorageBackend, get_storage_backend
from podcast_translator.services.transcription_service import TranscriptionService
from podcast_translator.utils.auth import CurrentUser, get_current_user
from podcast_translator.utils.errors import api_error
from podcast_translator.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()
router = APIRouter(prefix="/api", tags=["functions"])


@router.post("/transcribe-audio", response_model=TranscribeAudioResponse)
async def transcribe_audio(
    request: TranscribeAudioRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage_backend),
    provider: SpeechToTextProvider = Depends(get_speech_provider)
) -> TranscribeAudioResponse:
    """
    Transcribe an uploaded podcast and store the transcript.

    Blocks until the recognition operation finishes. The podcast ends in
    ``transcribed`` or ``transcription_failed``.
    """
    logger.info("Transcribe audio request", podcast_id=request.podcast_id)

    podcasts = PodcastService(db, storage)
    podcast = podcasts.get_podcast(request.podcast_id, user.user_id)

    service = TranscriptionService(podcasts, provider)
    podcast = await service.transcribe_podcast(
        podcast, audio_file_url=request.audio_file_url, language_code=request.language_code
    )

    return TranscribeAudioResponse(
        message="Transcription completed and podcast updated successfully",
        podcast_id=podcast.id,
        status=podcast.status,
        original_language=podcast.original_language,
        transcript_length=len(podcast.transcript or "")
    )


@router.post("/translate-text", response_model=TranslateTextResponse)
async def translate_text(
    request: TranslateTextRequest,
    user: CurrentUser = Depends(get_current_user),
    provider: TranslationProvider = Depends(get_translation_provider)
) -> TranslateTextResponse:
    logger.info("Translate text request",
                source_language=request.source_language_code,
                target_language=request.target_language_code,
                text_length=len(request.text_to_translate))

    translated = await TranslationStep(provider).run(
        request.text_to_translate, request.source_language_code, request.target_language_code
    )

    return TranslateTextResponse(
        translated_text=translated,
        source_language=request.source_language_code,
        target_language=request.target_language_code
    )


@router.post("/synthesize-speech", response_model=SynthesizeSpeechResponse)
async def synthesize_speech(
    request: SynthesizeSpeechRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage_backend),
    provider: TextToSpeechProvider = Depends(get_tts_provider)
) -> SynthesizeSpeechResponse:
    """
    Voice translated text and store it as a translated episode.

    The episode is owned by the authenticated caller, who must also own
    the podcast.
    """
    logger.info("Synthesize speech request",
                podcast_id=request.podcast_id,
                language_code=request.language_code,
                voice_name=request.voice_name)

    PodcastService(db, storage).get_podcast(request.podcast_id, user.user_id)

    step = SynthesisStep(provider, EpisodeService(db, storage))
    episode = await step.run(
        request.text, request.language_code, request.voice_name, request.podcast_id, user.user_id
    )

    return SynthesizeSpeechResponse(
        episode_id=episode.id,
        storage_path=episode.audio_storage_path,
        file_size=episode.file_size,
        language_code=episode.language_code,
        voice_name=episode.voice_name
    )


@router.post("/list-voices", response_model=ListVoicesResponse)
async def list_voices(
    request: ListVoicesRequest,
    user: CurrentUser = Depends(get_current_user),
    provider: TextToSpeechProvider = Depends(get_tts_provider)
) -> ListVoicesResponse:
    if not request.language_code.strip():
        raise api_error(400, "VALIDATION_ERROR", "language_code is required")

    voices = await provider.list_voices(request.language_code)
    return ListVoicesResponse(voices=[VoiceOption(**voice) for voice in voices])


@router.post("/preview-voice", response_model=PreviewVoiceResponse)
async def preview_voice(
    request: PreviewVoiceRequest,
    user: CurrentUser = Depends(get_current_user),
    provider: TextToSpeechProvider = Depends(get_tts_provider)
) -> PreviewVoiceResponse:
    """Short spoken sample of a voice, returned as base64 MP3."""
    text = request.text.strip()
    if not text:
        raise api_error(400, "VALIDATION_ERROR", "Text is required")
    if len(text) > settings.voice_preview_max_chars:
        raise api_error(
            400, "VALIDATION_ERROR",
            f"Preview text must be at most {settings.voice_preview_max_chars} characters"
        )

    audio = await provider.synthesize(
        text,
        voice_locale(request.voice_name, request.language_code),
        voice_name=request.voice_name,
        audio_encoding=settings.tts_audio_encoding,
    )
    return PreviewVoiceResponse(audio_content=base64.b64encode(audio).decode("utf-8"))
