"""
Pydantic schemas for podcast and translated-episode API responses.
"""

from datetime import datetime
from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel


class PodcastResponse(BaseModel):
    """Schema for podcast API responses."""
    id: UUID
    title: str
    description: Optional[str] = None
    audio_file_url: Optional[str] = None
    audio_file_size: Optional[int] = None
    original_language: Optional[str] = None
    status: str
    transcript: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PodcastListResponse(BaseModel):
    """Schema for paginated podcast list responses."""
    podcasts: List[PodcastResponse]
    total: int
    page: int
    per_page: int


class PodcastUploadResponse(BaseModel):
    """Schema for podcast upload API response."""
    podcast_id: UUID
    title: str
    status: str
    audio_file_size: int
    message: str


class PodcastDeleteResponse(BaseModel):
    """Schema for podcast deletion; warnings list failed audio cleanups."""
    message: str
    warnings: List[str] = []


class TranslatedEpisodeResponse(BaseModel):
    """Schema for translated episode API responses."""
    id: UUID
    podcast_id: UUID
    language_code: str
    voice_name: str
    audio_storage_path: str
    file_size: Optional[int] = None
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class EpisodeListResponse(BaseModel):
    episodes: List[TranslatedEpisodeResponse]


class SignedUrlResponse(BaseModel):
    """Schema for a time-limited playback or download link."""
    url: str
    expires_in: int
