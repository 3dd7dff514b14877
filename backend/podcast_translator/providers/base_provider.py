"""
Abstract base class for the Google Cloud providers used by the pipeline.
Provides common client construction, call timing and error conversion.
"""

import time
from abc import ABC, abstractmethod
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Callable, Optional

from google.api_core import exceptions as google_exceptions
from google.oauth2 import service_account
from starlette.concurrency import run_in_threadpool

from podcast_translator.utils.google_credentials import load_google_credentials
from podcast_translator.utils.logger import get_logger

logger = get_logger(__name__)


class ProviderError(Exception):
    """Raised when an upstream cloud provider call fails."""
    pass


class BaseProvider(ABC):
    """
    Abstract base class for cloud API wrappers.

    Subclasses build a vendor client from service account credentials;
    tests and callers may hand in a ready client instead. Every vendor call
    goes through ``_call`` so failures surface uniformly as ProviderError.
    """

    provider_label: str = "Google Cloud"

    def __init__(self, client: Optional[Any] = None) -> None:
        """Initialize the provider, building a client from credentials if none is given."""
        if client is None:
            client = self._build_client(load_google_credentials())
        self.client: Any = client
        self.provider_name: str = self.__class__.__name__

    @abstractmethod
    def _build_client(self, credentials: service_account.Credentials) -> Any:
        """Create the vendor client for this provider."""
        pass

    async def _call(self, operation: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """
        Run a blocking vendor call in the threadpool with logging.

        Args:
            operation: Short name of the API operation for logs
            func: Blocking callable performing the request

        Returns:
            Whatever ``func`` returns

        Raises:
            ProviderError: If the call fails for any reason
        """
        start_time = time.time()
        logger.info(f"[{self.provider_name}] Calling {operation}")

        try:
            result = await run_in_threadpool(func, *args, **kwargs)

        except ProviderError:
            raise

        except google_exceptions.GoogleAPIError as e:
            duration = time.time() - start_time
            message = getattr(e, "message", None) or str(e)
            logger.error(f"[{self.provider_name}] {operation} failed",
                         error=message,
                         error_type=type(e).__name__,
                         duration_seconds=round(duration, 2))
            raise ProviderError(f"{self.provider_label} API error: {message}")

        except FutureTimeoutError:
            duration = time.time() - start_time
            logger.error(f"[{self.provider_name}] {operation} timed out",
                         duration_seconds=round(duration, 2))
            raise ProviderError(f"{self.provider_label} operation {operation} timed out")

        except Exception as e:
            duration = time.time() - start_time
            logger.error(f"[{self.provider_name}] Unexpected error in {operation}",
                         error=str(e),
                         duration_seconds=round(duration, 2))
            raise ProviderError(f"Unexpected error: {str(e)}")

        duration = time.time() - start_time
        logger.info(f"[{self.provider_name}] {operation} completed",
                    duration_seconds=round(duration, 2))
        return result

    def _truncate_for_log(self, text: str, max_length: int = 200) -> str:
        """Truncate text for logging to avoid overly long log messages."""
        if len(text) <= max_length:
            return text
        return text[:max_length] + "..."
