"""
SQLAlchemy model for synthesized translations of a podcast.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from podcast_translator.db.database import Base


class EpisodeStatus:
    """States of a translated episode row."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class TranslatedEpisode(Base):
    """
    Database model for one synthesized-audio result.

    There is at most one row per (podcast, language, voice); the audio
    object path is derived from the same key so re-publishing overwrites.
    """

    __tablename__ = "translated_episodes"
    __table_args__ = (
        UniqueConstraint("podcast_id", "language_code", "voice_name", name="uq_episode_language_voice"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    podcast_id = Column(Uuid, ForeignKey("podcasts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    language_code = Column(String(20), nullable=False)
    voice_name = Column(String(100), nullable=False)
    audio_storage_path = Column(String(500), nullable=False)
    file_size = Column(Integer, nullable=True)
    duration_seconds = Column(Integer, nullable=True)
    status = Column(String(20), nullable=False, default=EpisodeStatus.PENDING, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    podcast = relationship("Podcast", back_populates="translated_episodes")

    def __repr__(self) -> str:
        return (f"<TranslatedEpisode(id={self.id}, language='{self.language_code}', "
                f"voice='{self.voice_name}', status='{self.status}')>")
