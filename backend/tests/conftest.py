"""
Pytest configuration and fixtures for testing.
"""

import os
import tempfile

# Settings are read at import time, so the environment is prepared first
TEST_STORAGE_DIR = tempfile.mkdtemp(prefix="podcast-translator-tests-")
TEST_JWT_SECRET = "test-jwt-secret-for-unit-tests-0123456789"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTH_JWT_SECRET"] = TEST_JWT_SECRET
os.environ["STORAGE_BACKEND"] = "local"
os.environ["STORAGE_PATH"] = TEST_STORAGE_DIR
os.environ["STORAGE_SIGNING_SECRET"] = "test-signing-secret"
os.environ["PODCAST_EVENTS_ENABLED"] = "false"
os.environ["GOOGLE_APPLICATION_CREDENTIALS_JSON"] = ""

import time
from datetime import datetime
from typing import Any, Callable, Dict, Generator
from unittest.mock import AsyncMock, Mock

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from podcast_translator.db.database import Base, build_engine, build_session_factory, get_db
from podcast_translator.dependencies import (
    get_job_registry,
    get_session_factory,
    get_speech_provider,
    get_translation_provider,
    get_tts_provider,
)
from podcast_translator.main import app
from podcast_translator.models.podcast import Podcast, PodcastStatus
from podcast_translator.models import translated_episode  # noqa: F401
from podcast_translator.pipeline.job import JobRegistry
from podcast_translator.services.storage_service import LocalStorageBackend, get_storage_backend

TEST_USER_ID = "user-123"
OTHER_USER_ID = "user-456"


@pytest.fixture(scope="function")
def test_engine() -> Generator[Engine, None, None]:
    """In-memory SQLite engine shared by every session of one test."""
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_engine: Engine) -> sessionmaker:
    return build_session_factory(test_engine)


@pytest.fixture(scope="function")
def test_db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Create test database session."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage(tmp_path: Any) -> LocalStorageBackend:
    """Local storage backend writing under the test's temp directory."""
    return LocalStorageBackend(
        root=str(tmp_path / "storage"),
        base_url="http://testserver",
        signing_secret="test-signing-secret",
    )


@pytest.fixture
def translation_provider() -> Mock:
    """Translation provider that tags text with the target language."""
    provider = Mock()

    async def _translate(text: str, source_language: str, target_language: str) -> str:
        return f"[{target_language}] {text}"

    provider.translate = AsyncMock(side_effect=_translate)
    return provider


@pytest.fixture
def tts_provider() -> Mock:
    """Text-to-speech provider returning fixed MP3 bytes."""
    provider = Mock()
    provider.synthesize = AsyncMock(return_value=b"ID3-fake-mp3-audio")
    provider.list_voices = AsyncMock(return_value=[
        {
            "name": "es-ES-Wavenet-B",
            "display_name": "Male (WaveNet B)",
            "ssml_gender": "MALE",
            "natural_sample_rate_hertz": 24000,
        }
    ])
    return provider


@pytest.fixture
def speech_provider() -> Mock:
    provider = Mock()
    provider.transcribe = AsyncMock(return_value="Welcome to the show.\nToday we talk about rivers.")
    return provider


@pytest.fixture
def job_registry() -> JobRegistry:
    return JobRegistry()


@pytest.fixture
def make_podcast(test_db: Session) -> Callable[..., Podcast]:
    """Factory inserting podcasts directly into the test database."""
    def _make(**overrides: Any) -> Podcast:
        values: Dict[str, Any] = {
            "user_id": TEST_USER_ID,
            "title": "River Stories",
            "audio_file_url": "http://testserver/api/storage/podcast-audio/user-123/1700000000000.mp3",
            "audio_storage_path": "user-123/1700000000000.mp3",
            "audio_file_size": 1024,
            "original_language": "en-US",
            "status": PodcastStatus.TRANSCRIBED,
            "transcript": "Welcome to the show.",
            "created_at": datetime.utcnow(),
        }
        values.update(overrides)
        podcast = Podcast(**values)
        test_db.add(podcast)
        test_db.commit()
        test_db.refresh(podcast)
        return podcast

    return _make


def make_token(user_id: str = TEST_USER_ID, secret: str = TEST_JWT_SECRET,
               audience: str = "authenticated", expires_in: int = 3600) -> str:
    """Encode an access token the way the identity provider does."""
    payload = {
        "sub": user_id,
        "email": f"{user_id}@example.com",
        "aud": audience,
        "exp": int(time.time()) + expires_in,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def auth_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
def other_user_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token(OTHER_USER_ID)}"}


@pytest.fixture(scope="function")
def client(test_db: Session, session_factory: sessionmaker, storage: LocalStorageBackend,
           speech_provider: Mock, translation_provider: Mock, tts_provider: Mock,
           job_registry: JobRegistry) -> Generator[TestClient, None, None]:
    """Create test client with database, storage and provider overrides."""
    def override_get_db() -> Generator[Session, None, None]:
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_storage_backend] = lambda: storage
    app.dependency_overrides[get_speech_provider] = lambda: speech_provider
    app.dependency_overrides[get_translation_provider] = lambda: translation_provider
    app.dependency_overrides[get_tts_provider] = lambda: tts_provider
    app.dependency_overrides[get_job_registry] = lambda: job_registry
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def token_factory() -> Callable[..., str]:
    return make_token
