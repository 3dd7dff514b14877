"""
FastAPI application entry point for Podcast Translator.
Configures the application, middleware, routes, and error handlers.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from podcast_translator.config import get_settings
from podcast_translator.db.database import init_db
from podcast_translator.pipeline.orchestrator import PipelinePreconditionError
from podcast_translator.pipeline.steps import PipelineStepError, StepValidationError
from podcast_translator.providers.base_provider import ProviderError
from podcast_translator.routers import functions, podcasts, storage, translations
from podcast_translator.services.episode_service import EpisodeNotFoundError
from podcast_translator.services.podcast_service import PodcastNotFoundError, StatusWaitTimeoutError
from podcast_translator.services.storage_service import StorageError
from podcast_translator.services.transcription_service import (
    TranscriptionFailedError,
    TranscriptionInProgressError,
    TranscriptionRequestError,
)
from podcast_translator.utils.audio_validator import AudioValidationError
from podcast_translator.utils.auth import AuthenticationError
from podcast_translator.utils.errors import error_body
from podcast_translator.utils.google_credentials import ConfigurationError
from podcast_translator.utils.logger import CORRELATION_ID_HEADER, setup_logging, set_correlation_id

# Initialize settings and logging
settings = get_settings()
logger = setup_logging(settings.log_level)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup and shutdown events."""
    logger.info("Starting Podcast Translator API", version=VERSION)

    try:
        init_db()
        logger.info("Database initialization completed")
    except Exception as e:
        logger.error("Database initialization failed", error=str(e))
        raise

    yield

    logger.info("Shutting down Podcast Translator API")


app = FastAPI(
    title="Podcast Translator API",
    description="Transcribe podcasts and publish voiced translations",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next) -> Response:
    """Add correlation ID to all requests for tracing."""
    correlation_id = set_correlation_id(request.headers.get(CORRELATION_ID_HEADER) or None)

    logger.info("Request started",
                method=request.method,
                url=str(request.url),
                client_ip=request.client.host if request.client else "unknown")

    response = await call_next(request)
    response.headers[CORRELATION_ID_HEADER] = correlation_id

    logger.info("Request completed",
                method=request.method,
                url=str(request.url),
                status_code=response.status_code)

    return response


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_body(code, message))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return route errors in the shared envelope instead of under ``detail``."""
    if isinstance(exc.detail, dict) and "error" in exc.detail:
        return JSONResponse(status_code=exc.status_code, content=exc.detail, headers=exc.headers)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body("HTTP_ERROR", str(exc.detail)),
        headers=exc.headers
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("Request validation failed", url=str(request.url), error_count=len(exc.errors()))
    body = error_body("VALIDATION_ERROR", "Request validation failed")
    body["error"]["details"] = [
        {"loc": list(err.get("loc", [])), "msg": err.get("msg", "")} for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content=body)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    """Missing or invalid server configuration, such as Google credentials."""
    logger.error("Configuration error", error=str(exc), url=str(request.url))
    return _error_response(500, "CONFIGURATION_ERROR", str(exc))


@app.exception_handler(AuthenticationError)
async def authentication_error_handler(request: Request, exc: AuthenticationError) -> JSONResponse:
    logger.warning("Authentication failed", error=str(exc), url=str(request.url))
    response = _error_response(401, "UNAUTHORIZED", str(exc))
    response.headers["WWW-Authenticate"] = "Bearer"
    return response


@app.exception_handler(AudioValidationError)
@app.exception_handler(StepValidationError)
@app.exception_handler(TranscriptionRequestError)
async def validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle rejected input; nothing has been changed."""
    logger.warning("Validation error", error=str(exc), url=str(request.url))
    return _error_response(400, "VALIDATION_ERROR", str(exc))


@app.exception_handler(PodcastNotFoundError)
async def podcast_not_found_handler(request: Request, exc: PodcastNotFoundError) -> JSONResponse:
    logger.warning("Podcast not found", error=str(exc), url=str(request.url))
    return _error_response(404, "PODCAST_NOT_FOUND", "The requested podcast does not exist")


@app.exception_handler(EpisodeNotFoundError)
async def episode_not_found_handler(request: Request, exc: EpisodeNotFoundError) -> JSONResponse:
    logger.warning("Episode not found", error=str(exc), url=str(request.url))
    return _error_response(404, "EPISODE_NOT_FOUND", "The requested translated episode does not exist")


@app.exception_handler(PipelinePreconditionError)
@app.exception_handler(TranscriptionInProgressError)
async def precondition_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle requests the podcast's current state does not allow."""
    logger.warning("Precondition failed", error=str(exc), url=str(request.url))
    return _error_response(409, "PRECONDITION_FAILED", str(exc))


@app.exception_handler(StatusWaitTimeoutError)
async def status_wait_timeout_handler(request: Request, exc: StatusWaitTimeoutError) -> JSONResponse:
    logger.warning("Status wait timed out", error=str(exc), url=str(request.url))
    return _error_response(408, "STATUS_WAIT_TIMEOUT", str(exc))


@app.exception_handler(TranscriptionFailedError)
async def transcription_failed_handler(request: Request, exc: TranscriptionFailedError) -> JSONResponse:
    logger.error("Transcription failed", error=str(exc), url=str(request.url))
    return _error_response(500, "TRANSCRIPTION_FAILED", str(exc))


@app.exception_handler(ProviderError)
@app.exception_handler(PipelineStepError)
async def provider_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Upstream Google API failures; the provider message is passed through."""
    logger.error("Provider error", error=str(exc), error_type=type(exc).__name__, url=str(request.url))
    return _error_response(500, "PROVIDER_ERROR", str(exc))


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    logger.error("Storage error", error=str(exc), url=str(request.url))
    return _error_response(500, "STORAGE_ERROR", str(exc))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all other unhandled exceptions."""
    logger.error("Unhandled exception",
                 error=str(exc),
                 error_type=type(exc).__name__,
                 url=str(request.url))
    return _error_response(500, "INTERNAL_ERROR", "An unexpected error occurred")


app.include_router(podcasts.router)
app.include_router(translations.router)
app.include_router(functions.router)
app.include_router(storage.router)


@app.get("/health")
async def health_check() -> Dict[str, str]:
    """Health check endpoint for monitoring."""
    return {
        "status": "healthy",
        "service": "podcast-translator-api",
        "version": VERSION
    }


@app.get("/")
async def root() -> Dict[str, str]:
    return {
        "message": "Podcast Translator API",
        "docs": "/docs",
        "health": "/health"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "podcast_translator.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower()
    )
