"""
Pipeline orchestrator: sequences translation and synthesis per language.
"""

from typing import Callable, List, Optional

from podcast_translator.models.podcast import Podcast, PodcastStatus
from podcast_translator.pipeline.job import LanguageResult, LanguageStatus, TranslationJob
from podcast_translator.pipeline.steps import PipelineStepError, SynthesisStep, TranslationStep
from podcast_translator.utils.logger import get_logger

logger = get_logger(__name__)

BLOCKED_STATUSES = (PodcastStatus.TRANSCRIBING, PodcastStatus.TRANSCRIPTION_FAILED)


class PipelinePreconditionError(Exception):
    """Raised when a podcast is not ready for translation."""
    pass


def _reason(error: Exception, prefix: str) -> str:
    # Step errors already name the language and step
    if isinstance(error, PipelineStepError):
        return str(error)
    return f"{prefix}: {str(error)}"


class PipelineOrchestrator:
    """
    Drives one translation job over a podcast whose transcript is ready.

    Languages run strictly in the order they were selected. A failing
    language is recorded on the job and the loop moves on; the batch itself
    never fails once started, and nothing is retried.
    """

    def __init__(self, translation_step: TranslationStep, synthesis_step: SynthesisStep,
                 on_progress: Optional[Callable[[TranslationJob], None]] = None) -> None:
        self.translation_step: TranslationStep = translation_step
        self.synthesis_step: SynthesisStep = synthesis_step
        self.on_progress: Optional[Callable[[TranslationJob], None]] = on_progress

    @staticmethod
    def check_preconditions(podcast: Podcast, languages: List[str]) -> None:
        """
        Refuse podcasts that cannot be translated yet.

        Raises:
            PipelinePreconditionError: If a precondition does not hold
        """
        if podcast.status in BLOCKED_STATUSES:
            raise PipelinePreconditionError(
                f"Podcast is '{podcast.status}'; translation is not available"
            )
        if not podcast.transcript or not podcast.transcript.strip():
            raise PipelinePreconditionError("Podcast has no transcript yet")
        if not podcast.original_language:
            raise PipelinePreconditionError("Podcast original language is unknown")
        if not languages:
            raise PipelinePreconditionError("Select at least one target language")

    def _step_done(self, job: TranslationJob) -> None:
        job.record_step_attempt()
        if self.on_progress:
            self.on_progress(job)

    def _fail(self, job: TranslationJob, result: LanguageResult, reason: str) -> None:
        """Record a failed step attempt for one language; the batch continues."""
        logger.error("Language step failed",
                     job_id=job.job_id,
                     language=result.language_code,
                     error=reason)
        job.fail_language(result, reason)
        self._step_done(job)

    async def run(self, job: TranslationJob, podcast: Podcast) -> TranslationJob:
        """
        Execute ``job`` against ``podcast``.

        Returns:
            The same job, finished as completed or completed_with_errors

        Raises:
            PipelinePreconditionError: If the podcast is not ready; nothing runs
        """
        self.check_preconditions(podcast, job.selected_languages)

        job.start()
        logger.info("Translation run started",
                    job_id=job.job_id,
                    podcast_id=podcast.id,
                    languages=job.selected_languages)

        for result in job.languages:
            language = result.language_code
            result.status = LanguageStatus.TRANSLATING

            try:
                translated = await self.translation_step.run(
                    podcast.transcript, podcast.original_language, language
                )
            except Exception as e:
                self._fail(job, result, _reason(e, f"Translation to {language} failed"))
                continue

            self._step_done(job)
            result.status = LanguageStatus.SYNTHESIZING

            try:
                episode = await self.synthesis_step.run(
                    translated, language, job.voice_map.get(language), podcast.id, job.user_id
                )
            except Exception as e:
                self._fail(job, result, _reason(e, f"Voice synthesis for {language} failed"))
                continue

            job.complete_language(result, episode.id)
            self._step_done(job)

        job.finish()
        logger.info("Translation run finished",
                    job_id=job.job_id,
                    status=job.status,
                    successful_languages=len(job.succeeded),
                    failed_languages=[r.language_code for r in job.failed])
        return job
