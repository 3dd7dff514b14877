"""
Google Cloud service account loading.

The service account is supplied as raw JSON in an environment variable,
so clients are built from parsed credentials instead of a key file path.
"""

import json
from typing import Optional

from google.oauth2 import service_account

from podcast_translator.config import get_settings
from podcast_translator.utils.logger import get_logger

logger = get_logger(__name__)


class ConfigurationError(Exception):
    """Raised when required credentials or settings are missing."""
    pass


def load_google_credentials(credentials_json: Optional[str] = None) -> service_account.Credentials:
    """
    Build service account credentials from JSON text.

    Args:
        credentials_json: Service account JSON; defaults to
            GOOGLE_APPLICATION_CREDENTIALS_JSON from settings

    Returns:
        Google service account credentials

    Raises:
        ConfigurationError: If the JSON is missing or malformed
    """
    if credentials_json is None:
        credentials_json = get_settings().google_application_credentials_json

    if not credentials_json:
        logger.error("Missing GOOGLE_APPLICATION_CREDENTIALS_JSON environment variable")
        raise ConfigurationError("Missing Google Cloud credentials configuration.")

    try:
        info = json.loads(credentials_json)
        return service_account.Credentials.from_service_account_info(info)
    except (json.JSONDecodeError, ValueError) as e:
        logger.error("Invalid Google Cloud credentials", error=str(e))
        raise ConfigurationError(f"Invalid Google Cloud credentials: {str(e)}")


def google_project_id(credentials: service_account.Credentials) -> str:
    """Project from settings, falling back to the service account's project."""
    return get_settings().google_cloud_project or credentials.project_id
