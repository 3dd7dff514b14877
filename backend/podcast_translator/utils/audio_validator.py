"""
Validation helpers for uploaded podcast audio and the object keys it is stored under.
"""

import mimetypes
import re
import time
from pathlib import Path
from typing import Optional

from podcast_translator.utils.logger import get_logger

logger = get_logger(__name__)

# Both end up as folder and file names inside the translated-audio bucket
LANGUAGE_CODE_PATTERN = re.compile(r"^[A-Za-z]{2,3}(-[A-Za-z0-9]{2,8})*$")
VOICE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9-]+$")
MAX_LANGUAGE_CODE_LENGTH = 20
MAX_VOICE_NAME_LENGTH = 100


class AudioValidationError(Exception):
    """Raised when an uploaded audio file is rejected."""
    pass


class AudioUploadValidator:
    """Checks uploaded files before anything is written to storage."""

    @staticmethod
    def validate_audio_type(filename: Optional[str], content_type: Optional[str],
                            allowed_extensions: list[str]) -> str:
        """
        Validate that the upload is an audio file.

        Accepts any ``audio/*`` content type, or a known audio extension when
        the browser sent a generic content type.

        Args:
            filename: Name of the uploaded file
            content_type: MIME type reported by the client
            allowed_extensions: Extensions accepted without an audio MIME type

        Returns:
            Lower-case file extension without the dot

        Raises:
            AudioValidationError: If the file is not audio
        """
        if not filename:
            raise AudioValidationError("An audio file is required")

        file_ext = Path(filename).suffix.lower()
        is_audio_type = bool(content_type) and content_type.startswith("audio/")

        if not is_audio_type and file_ext not in allowed_extensions:
            logger.warning("Rejected non-audio upload",
                           filename=filename,
                           content_type=content_type,
                           extension=file_ext)
            raise AudioValidationError(
                f"Invalid file type '{content_type or file_ext}'. Please select an audio file "
                f"({', '.join(allowed_extensions)})"
            )

        if file_ext:
            return file_ext.lstrip(".")

        guessed = mimetypes.guess_extension(content_type or "") or ".mp3"
        return guessed.lstrip(".")

    @staticmethod
    def validate_file_size(file_size: int, max_size: int) -> None:
        """
        Validate that file size is within limits.

        Raises:
            AudioValidationError: If the file is empty or too large
        """
        if file_size == 0:
            raise AudioValidationError("Uploaded audio file is empty")

        if file_size > max_size:
            max_mb = max_size / (1024 * 1024)
            current_mb = file_size / (1024 * 1024)
            logger.warning("Audio file too large", file_size_mb=current_mb, max_size_mb=max_mb)
            raise AudioValidationError(
                f"File size ({current_mb:.2f} MB) exceeds maximum allowed size ({max_mb:.2f} MB)"
            )

    @staticmethod
    def original_object_path(user_id: str, extension: str, timestamp_ms: Optional[int] = None) -> str:
        """Object path for an original upload: ``{user_id}/{epoch_ms}.{ext}``."""
        if timestamp_ms is None:
            timestamp_ms = int(time.time() * 1000)
        return f"{user_id}/{timestamp_ms}.{extension}"

    @staticmethod
    def validate_episode_key(language_code: str, voice_name: str) -> None:
        """
        Validate the language code and voice name of a translated episode.

        Raises:
            AudioValidationError: If either is not a plain BCP-47 code or voice name
        """
        if (not language_code or len(language_code) > MAX_LANGUAGE_CODE_LENGTH
                or not LANGUAGE_CODE_PATTERN.fullmatch(language_code)):
            logger.warning("Rejected language code", language_code=language_code)
            raise AudioValidationError(f"Invalid language code '{language_code}'")

        if (not voice_name or len(voice_name) > MAX_VOICE_NAME_LENGTH
                or not VOICE_NAME_PATTERN.fullmatch(voice_name)):
            logger.warning("Rejected voice name", voice_name=voice_name)
            raise AudioValidationError(f"Invalid voice name '{voice_name}'")
