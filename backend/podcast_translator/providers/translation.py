"""
Google Cloud Translation (v2) wrapper.
"""

from typing import Any

from google.cloud import translate_v2 as translate
from google.oauth2 import service_account

from podcast_translator.providers.base_provider import BaseProvider, ProviderError
from podcast_translator.utils.logger import get_logger

logger = get_logger(__name__)


class TranslationProvider(BaseProvider):
    """Translates plain text between two languages in a single request."""

    provider_label = "Google Translate"

    def _build_client(self, credentials: service_account.Credentials) -> Any:
        return translate.Client(credentials=credentials)

    async def translate(self, text: str, source_language: str, target_language: str) -> str:
        """
        Translate text once; oversized input is passed through unchunked.

        Raises:
            ProviderError: If the API fails or returns no text
        """
        logger.info("Translating text",
                    source_language=source_language,
                    target_language=target_language,
                    text_length=len(text))

        result = await self._call(
            "translate",
            self.client.translate,
            text,
            target_language=target_language,
            source_language=source_language,
            format_="text",
        )

        if isinstance(result, list):
            result = result[0] if result else {}
        translated_text = (result or {}).get("translatedText")

        if not translated_text:
            logger.error("Translation returned empty result", target_language=target_language)
            raise ProviderError("Translation failed to return text.")

        logger.info("Translation successful", translated_length=len(translated_text))
        return translated_text
