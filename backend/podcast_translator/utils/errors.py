"""
Error envelope shared by route handlers and application exception handlers.
"""

from typing import Any, Dict

from fastapi import HTTPException

from podcast_translator.utils.logger import current_or_new_correlation_id


def error_body(code: str, message: str) -> Dict[str, Any]:
    """Build the ``{"error": {...}}`` body every failed request returns."""
    return {
        "error": {
            "code": code,
            "message": message,
            "correlation_id": current_or_new_correlation_id()
        }
    }


def api_error(status_code: int, code: str, message: str) -> HTTPException:
    return HTTPException(status_code=status_code, detail=error_body(code, message))
