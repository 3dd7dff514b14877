"""
Background execution of translation jobs started over HTTP.
"""

from typing import Callable

from sqlalchemy.orm import Session

from podcast_translator.pipeline.job import TranslationJob
from podcast_translator.pipeline.orchestrator import PipelineOrchestrator, PipelinePreconditionError
from podcast_translator.pipeline.steps import SynthesisStep, TranslationStep
from podcast_translator.providers.text_to_speech import TextToSpeechProvider
from podcast_translator.providers.translation import TranslationProvider
from podcast_translator.services.episode_service import EpisodeService
from podcast_translator.services.podcast_service import PodcastService
from podcast_translator.services.storage_service import StorageBackend
from podcast_translator.utils.logger import get_logger, set_correlation_id

logger = get_logger(__name__)


async def run_translation_job(job: TranslationJob,
                              session_factory: Callable[[], Session],
                              storage: StorageBackend,
                              translation_provider: TranslationProvider,
                              tts_provider: TextToSpeechProvider) -> TranslationJob:
    """
    Run ``job`` with its own database session.

    The request that created the job has already returned, so every outcome
    is written to the job record rather than raised.
    """
    set_correlation_id(str(job.job_id))
    logger.info("Worker picked up translation job", job_id=job.job_id, podcast_id=job.podcast_id)

    db = session_factory()
    try:
        podcast = PodcastService(db, storage).get_podcast_by_id(job.podcast_id)
        if podcast is None:
            job.abort(f"Podcast {job.podcast_id} no longer exists")
            logger.warning("Podcast vanished before translation", job_id=job.job_id)
            return job

        orchestrator = PipelineOrchestrator(
            TranslationStep(translation_provider),
            SynthesisStep(tts_provider, EpisodeService(db, storage)),
        )
        await orchestrator.run(job, podcast)

    except PipelinePreconditionError as e:
        logger.warning("Translation job refused", job_id=job.job_id, reason=str(e))
        job.abort(str(e))

    except Exception as e:
        logger.error("Translation job crashed", job_id=job.job_id, error=str(e), error_type=type(e).__name__)
        job.abort(f"Unexpected error: {str(e)}")

    finally:
        db.close()

    return job
