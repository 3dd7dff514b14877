"""
SQLAlchemy model for uploaded podcasts.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, Text, Uuid
from sqlalchemy.orm import relationship

from podcast_translator.db.database import Base


class PodcastStatus:
    """Lifecycle states of a podcast."""
    UPLOADED = "uploaded"
    TRANSCRIBING = "transcribing"
    TRANSCRIBED = "transcribed"
    TRANSCRIPTION_FAILED = "transcription_failed"


class Podcast(Base):
    """
    Database model for a user-owned original audio upload.

    Stores where the original audio lives, the transcript produced by the
    speech-to-text provider and the language it was transcribed in.
    """

    __tablename__ = "podcasts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    audio_file_url = Column(String(1024), nullable=True)
    audio_storage_path = Column(String(500), nullable=True)
    audio_file_size = Column(Integer, nullable=True)
    duration_seconds = Column(Integer, nullable=True)
    original_language = Column(String(20), nullable=True)
    status = Column(String(30), nullable=False, default=PodcastStatus.UPLOADED, index=True)
    transcript = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    translated_episodes = relationship(
        "TranslatedEpisode",
        back_populates="podcast",
        cascade="all, delete-orphan",
        order_by="TranslatedEpisode.created_at",
    )

    def __repr__(self) -> str:
        return f"<Podcast(id={self.id}, title='{self.title}', status='{self.status}')>"
