"""
Tests for translation job bookkeeping and the background runner.
"""

import uuid
from datetime import datetime, timedelta
from typing import Callable
from unittest.mock import AsyncMock, Mock

import pytest
from sqlalchemy.orm import sessionmaker

from podcast_translator.models.podcast import Podcast, PodcastStatus
from podcast_translator.pipeline.job import JobRegistry, JobStatus, TranslationJob
from podcast_translator.pipeline.runner import run_translation_job
from podcast_translator.services.storage_service import LocalStorageBackend


def _job(podcast_id: uuid.UUID = None, user_id: str = "user-123", languages=None, voices=None) -> TranslationJob:
    return TranslationJob(
        podcast_id=podcast_id or uuid.uuid4(),
        user_id=user_id,
        selected_languages=languages or ["es", "fr"],
        voice_map=voices or {},
    )


class TestTranslationJob:
    """Test the TranslationJob record."""

    def test_languages_follow_selection_order(self) -> None:
        job = _job(languages=["ja", "es", "de"], voices={"es": "es-ES-Standard-A"})

        assert [r.language_code for r in job.languages] == ["ja", "es", "de"]
        assert [r.voice_name for r in job.languages] == ["default", "es-ES-Standard-A", "default"]
        assert job.total_steps == 6

    def test_step_attempts_drive_progress(self) -> None:
        job = _job(languages=["es", "fr"])

        job.record_step_attempt()
        assert job.progress == 25.0
        job.record_step_attempt()
        job.record_step_attempt()
        assert job.progress == 75.0

    def test_finish_with_failures(self) -> None:
        job = _job()
        job.start()
        job.fail_language(job.languages[1], "Translation to fr failed: quota")
        job.complete_language(job.languages[0], uuid.uuid4())
        job.finish()

        data = job.to_dict()
        assert data["status"] == JobStatus.COMPLETED_WITH_ERRORS
        assert data["progress"] == 100.0
        assert data["succeeded"] == ["es"]
        assert data["failed"] == [{"language_code": "fr", "reason": "Translation to fr failed: quota"}]
        assert data["successful_languages"] == 1
        assert data["finished_at"] is not None


class TestJobRegistry:

    def test_add_get_and_discard(self) -> None:
        registry = JobRegistry()
        podcast_id = uuid.uuid4()
        first = registry.add(_job(podcast_id))
        second = registry.add(_job(podcast_id))
        other = registry.add(_job())

        assert registry.get(first.job_id) is first
        assert {j.job_id for j in registry.for_podcast(podcast_id)} == {first.job_id, second.job_id}

        registry.discard_podcast(podcast_id)

        assert registry.get(first.job_id) is None
        assert registry.get(other.job_id) is other

    def test_expired_finished_jobs_evicted(self) -> None:
        registry = JobRegistry(finished_ttl_seconds=60)
        stale = registry.add(_job())
        running = registry.add(_job())
        running.start()
        running.created_at = datetime.utcnow() - timedelta(hours=3)
        stale.finish()
        stale.finished_at = datetime.utcnow() - timedelta(minutes=5)

        fresh = registry.add(_job())

        assert registry.get(stale.job_id) is None
        assert registry.get(running.job_id) is running
        assert registry.get(fresh.job_id) is fresh

    def test_oldest_finished_jobs_dropped_past_cap(self) -> None:
        registry = JobRegistry(max_finished=2)
        now = datetime.utcnow()
        finished = []
        for minutes_ago in (3, 2, 1):
            job = _job()
            job.finish()
            job.finished_at = now - timedelta(minutes=minutes_ago)
            finished.append(job)
        running = _job()
        running.start()

        for job in [running] + finished:
            registry.add(job)

        assert registry.get(finished[0].job_id) is None
        assert registry.get(finished[1].job_id) is finished[1]
        assert registry.get(finished[2].job_id) is finished[2]
        assert registry.get(running.job_id) is running


class TestRunTranslationJob:
    """Test the background runner."""

    @pytest.mark.asyncio
    async def test_runs_job_to_completion(self, session_factory: sessionmaker, storage: LocalStorageBackend,
                                          make_podcast: Callable[..., Podcast], translation_provider: Mock,
                                          tts_provider: Mock) -> None:
        podcast = make_podcast()
        job = _job(podcast.id, languages=["es"])

        result = await run_translation_job(job, session_factory, storage, translation_provider, tts_provider)

        assert result.status == JobStatus.COMPLETED
        assert result.languages[0].episode_id is not None

    @pytest.mark.asyncio
    async def test_missing_podcast_aborts(self, session_factory: sessionmaker, storage: LocalStorageBackend,
                                          translation_provider: Mock, tts_provider: Mock) -> None:
        job = _job(uuid.uuid4())

        result = await run_translation_job(job, session_factory, storage, translation_provider, tts_provider)

        assert result.status == JobStatus.FAILED
        assert "no longer exists" in result.error
        translation_provider.translate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_precondition_failure_aborts(self, session_factory: sessionmaker, storage: LocalStorageBackend,
                                               make_podcast: Callable[..., Podcast], translation_provider: Mock,
                                               tts_provider: Mock) -> None:
        podcast = make_podcast(status=PodcastStatus.TRANSCRIBING)

        result = await run_translation_job(_job(podcast.id), session_factory, storage,
                                           translation_provider, tts_provider)

        assert result.status == JobStatus.FAILED
        assert "transcribing" in result.error

    @pytest.mark.asyncio
    async def test_unexpected_step_error_fails_language(self, session_factory: sessionmaker,
                                                        storage: LocalStorageBackend,
                                                        make_podcast: Callable[..., Podcast],
                                                        tts_provider: Mock) -> None:
        podcast = make_podcast()
        broken = Mock()
        broken.translate = AsyncMock(side_effect=KeyError("translatedText"))

        result = await run_translation_job(_job(podcast.id, languages=["es"]), session_factory, storage,
                                           broken, tts_provider)

        # Unexpected step errors are per-language failures, not a crashed run
        assert result.status == JobStatus.COMPLETED_WITH_ERRORS
        assert result.failed[0].error.startswith("Translation to es failed:")
