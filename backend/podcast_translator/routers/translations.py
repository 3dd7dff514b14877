"""
API routes for translation runs and their translated episodes.
"""

import uuid
from typing import Callable, List

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from podcast_translator.config import get_settings
from podcast_translator.db.database import get_db
from podcast_translator.dependencies import (
    get_job_registry,
    get_session_factory,
    get_translation_provider,
    get_tts_provider,
)
from podcast_translator.pipeline.job import JobRegistry, TranslationJob
from podcast_translator.pipeline.orchestrator import PipelineOrchestrator
from podcast_translator.pipeline.runner import run_translation_job
from podcast_translator.providers.text_to_speech import TextToSpeechProvider
from podcast_translator.providers.translation import TranslationProvider
from podcast_translator.schemas.podcast import EpisodeListResponse, SignedUrlResponse, TranslatedEpisodeResponse
from podcast_translator.schemas.translation import StartTranslationRequest, TranslationJobResponse
from podcast_translator.services.episode_service import EpisodeService
from podcast_translator.services.podcast_service import PodcastService
from podcast_translator.services.storage_service import StorageBackend, get_storage_backend
from podcast_translator.utils.auth import CurrentUser, get_current_user
from podcast_translator.utils.errors import api_error
from podcast_translator.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()
router = APIRouter(prefix="/api", tags=["translations"])


@router.post("/podcasts/{podcast_id}/translations", response_model=TranslationJobResponse, status_code=202)
async def start_translation(
    podcast_id: uuid.UUID,
    request: StartTranslationRequest,
    background_tasks: BackgroundTasks,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage_backend),
    registry: JobRegistry = Depends(get_job_registry),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
    translation_provider: TranslationProvider = Depends(get_translation_provider),
    tts_provider: TextToSpeechProvider = Depends(get_tts_provider)
) -> TranslationJobResponse:
    """
    Start translating a transcribed podcast into the selected languages.

    Preconditions are checked before anything is scheduled. The run then
    continues in the background; poll the returned job for progress.
    """
    podcast = PodcastService(db, storage).get_podcast(podcast_id, user.user_id)
    PipelineOrchestrator.check_preconditions(podcast, request.languages)

    job = registry.add(TranslationJob(
        podcast_id=podcast.id,
        user_id=user.user_id,
        selected_languages=request.languages,
        voice_map={code: voice for code, voice in request.voices.items() if code in request.languages},
    ))

    logger.info("Translation job queued",
                job_id=job.job_id,
                podcast_id=podcast_id,
                languages=job.selected_languages)

    background_tasks.add_task(
        run_translation_job, job, session_factory, storage, translation_provider, tts_provider
    )
    return TranslationJobResponse(**job.to_dict())


@router.get("/podcasts/{podcast_id}/translations", response_model=List[TranslationJobResponse])
def list_translation_jobs(
    podcast_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage_backend),
    registry: JobRegistry = Depends(get_job_registry)
) -> List[TranslationJobResponse]:
    """Translation runs started for a podcast since the service started."""
    PodcastService(db, storage).get_podcast(podcast_id, user.user_id)
    jobs = sorted(registry.for_podcast(podcast_id), key=lambda job: job.created_at, reverse=True)
    return [TranslationJobResponse(**job.to_dict()) for job in jobs]


@router.get("/translation-jobs/{job_id}", response_model=TranslationJobResponse)
def get_translation_job(
    job_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    registry: JobRegistry = Depends(get_job_registry)
) -> TranslationJobResponse:
    job = registry.get(job_id)
    if job is None or job.user_id != user.user_id:
        logger.warning("Translation job not found", job_id=job_id)
        raise api_error(404, "JOB_NOT_FOUND", "The requested translation job does not exist")
    return TranslationJobResponse(**job.to_dict())


@router.get("/podcasts/{podcast_id}/episodes", response_model=EpisodeListResponse)
def list_episodes(
    podcast_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage_backend)
) -> EpisodeListResponse:
    """Translated episodes of a podcast, newest first."""
    PodcastService(db, storage).get_podcast(podcast_id, user.user_id)
    episodes = EpisodeService(db, storage).list_episodes(podcast_id)
    return EpisodeListResponse(episodes=[TranslatedEpisodeResponse.model_validate(e) for e in episodes])


@router.get("/episodes/{episode_id}/url", response_model=SignedUrlResponse)
async def get_episode_url(
    episode_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage_backend)
) -> SignedUrlResponse:
    """Signed link for playing or downloading a translated episode."""
    url = await EpisodeService(db, storage).get_episode_url(episode_id, user.user_id)
    return SignedUrlResponse(url=url, expires_in=settings.signed_url_ttl_seconds)
