"""
Translation job record carried through one orchestrator run.

A job holds the language selection (ordered target languages plus chosen
voices), per-language outcomes and progress. Jobs are kept in memory only;
finished jobs are evicted after a retention period or once too many pile up.
"""

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from podcast_translator.config import get_settings

settings = get_settings()

DEFAULT_VOICE_NAME = "default"


class JobStatus:
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"
    FAILED = "failed"


class LanguageStatus:
    PENDING = "pending"
    TRANSLATING = "translating"
    SYNTHESIZING = "synthesizing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class LanguageResult:
    """Outcome of one target language."""
    language_code: str
    voice_name: str
    status: str = LanguageStatus.PENDING
    episode_id: Optional[uuid.UUID] = None
    error: Optional[str] = None


@dataclass
class TranslationJob:
    """State of one translation run over a podcast."""
    podcast_id: uuid.UUID
    user_id: str
    selected_languages: List[str]
    voice_map: Dict[str, str]
    job_id: uuid.UUID = field(default_factory=uuid.uuid4)
    status: str = JobStatus.PENDING
    completed_steps: int = 0
    progress: float = 0.0
    languages: List[LanguageResult] = field(default_factory=list)
    error: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    finished_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.languages:
            self.languages = [
                LanguageResult(language_code=code, voice_name=self.voice_for(code))
                for code in self.selected_languages
            ]

    def voice_for(self, language_code: str) -> str:
        return self.voice_map.get(language_code) or DEFAULT_VOICE_NAME

    @property
    def total_steps(self) -> int:
        # One translation and one synthesis per language
        return 2 * len(self.selected_languages)

    def start(self) -> None:
        self.status = JobStatus.RUNNING

    def record_step_attempt(self) -> None:
        """Count a finished step attempt, successful or not."""
        self.completed_steps += 1
        self.progress = self.completed_steps * 100 / self.total_steps

    def fail_language(self, result: LanguageResult, reason: str) -> None:
        result.status = LanguageStatus.FAILED
        result.error = reason

    def complete_language(self, result: LanguageResult, episode_id: uuid.UUID) -> None:
        result.status = LanguageStatus.COMPLETED
        result.episode_id = episode_id

    def finish(self) -> None:
        """Close the run; per-language failures downgrade the status, never fail it."""
        self.progress = 100.0
        self.status = JobStatus.COMPLETED_WITH_ERRORS if self.failed else JobStatus.COMPLETED
        self.finished_at = datetime.utcnow()

    def abort(self, reason: str) -> None:
        """Mark a run that could not start or crashed outside any step."""
        self.status = JobStatus.FAILED
        self.error = reason
        self.finished_at = datetime.utcnow()

    @property
    def succeeded(self) -> List[LanguageResult]:
        return [r for r in self.languages if r.status == LanguageStatus.COMPLETED]

    @property
    def failed(self) -> List[LanguageResult]:
        return [r for r in self.languages if r.status == LanguageStatus.FAILED]

    def to_dict(self) -> Dict[str, Any]:
        """Plain representation used for API responses."""
        return {
            "job_id": self.job_id,
            "podcast_id": self.podcast_id,
            "status": self.status,
            "selected_languages": list(self.selected_languages),
            "voice_map": dict(self.voice_map),
            "progress": self.progress,
            "completed_steps": self.completed_steps,
            "total_steps": self.total_steps,
            "languages": [
                {
                    "language_code": r.language_code,
                    "voice_name": r.voice_name,
                    "status": r.status,
                    "episode_id": r.episode_id,
                    "error": r.error,
                }
                for r in self.languages
            ],
            "succeeded": [r.language_code for r in self.succeeded],
            "failed": [{"language_code": r.language_code, "reason": r.error or ""} for r in self.failed],
            "successful_languages": len(self.succeeded),
            "error": self.error,
            "created_at": self.created_at,
            "finished_at": self.finished_at,
        }


class JobRegistry:
    """
    Thread-safe in-process store of translation jobs.

    Pending and running jobs are never evicted. Finished jobs are dropped
    once older than ``finished_ttl_seconds``, and the oldest of them go first
    when more than ``max_finished`` are held.
    """

    def __init__(self, finished_ttl_seconds: float = 24 * 3600, max_finished: int = 1000) -> None:
        self._jobs: Dict[uuid.UUID, TranslationJob] = {}
        self._lock = threading.Lock()
        self.finished_ttl_seconds: float = finished_ttl_seconds
        self.max_finished: int = max_finished

    def add(self, job: TranslationJob) -> TranslationJob:
        with self._lock:
            self._jobs[job.job_id] = job
            self._evict_finished()
        return job

    def _evict_finished(self) -> None:
        # Caller holds the lock
        cutoff = datetime.utcnow() - timedelta(seconds=self.finished_ttl_seconds)
        finished = sorted(
            (job for job in self._jobs.values() if job.finished_at is not None),
            key=lambda job: job.finished_at,
        )
        overflow = len(finished) - self.max_finished
        for index, job in enumerate(finished):
            if index < overflow or job.finished_at < cutoff:
                del self._jobs[job.job_id]

    def get(self, job_id: uuid.UUID) -> Optional[TranslationJob]:
        with self._lock:
            return self._jobs.get(job_id)

    def for_podcast(self, podcast_id: uuid.UUID) -> List[TranslationJob]:
        with self._lock:
            return [job for job in self._jobs.values() if job.podcast_id == podcast_id]

    def discard_podcast(self, podcast_id: uuid.UUID) -> None:
        with self._lock:
            for job_id in [j for j, job in self._jobs.items() if job.podcast_id == podcast_id]:
                del self._jobs[job_id]


job_registry = JobRegistry(settings.finished_job_ttl_seconds, settings.max_finished_jobs)
