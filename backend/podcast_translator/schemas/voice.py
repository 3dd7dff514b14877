"""
Pydantic schemas for the text-to-speech voice catalogue.
"""

from typing import Optional, List

from pydantic import BaseModel


class ListVoicesRequest(BaseModel):
    language_code: str


class VoiceOption(BaseModel):
    """A voice offered by the text-to-speech provider."""
    name: str
    display_name: str
    ssml_gender: str
    natural_sample_rate_hertz: Optional[int] = None


class ListVoicesResponse(BaseModel):
    voices: List[VoiceOption]


class PreviewVoiceRequest(BaseModel):
    """Schema for a short spoken sample of a voice."""
    text: str
    language_code: str
    voice_name: str


class PreviewVoiceResponse(BaseModel):
    audio_content: str  # base64 encoded MP3
