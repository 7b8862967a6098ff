"""
Gemini OpenAI Proxy Application Entry Point

FastAPI application main entry, including router registration and application configuration.
"""

import logging
import traceback
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gemini_proxy import __version__
from gemini_proxy.api.proxy import openai_router
from gemini_proxy.common.errors import ProxyError, as_proxy_error, invalid_request
from gemini_proxy.config import Settings, get_settings
from gemini_proxy.logging_config import setup_logging
from gemini_proxy.providers.base import ProviderClient
from gemini_proxy.providers.gemini_client import GeminiClient
from gemini_proxy.services.error_translator import translate_error

logger = logging.getLogger(__name__)


class MissingAPIKeyError(RuntimeError):
    """Raised at startup when no Gemini API key is configured."""


def build_provider_client(settings: Settings) -> ProviderClient:
    """
    Create the process-wide Gemini client

    Raises:
        MissingAPIKeyError: GEMINI_API_KEY is not set
    """
    if not settings.GEMINI_API_KEY:
        raise MissingAPIKeyError("GEMINI_API_KEY is required")
    return GeminiClient(
        api_key=settings.GEMINI_API_KEY,
        base_url=settings.GEMINI_BASE_URL,
        api_version=settings.GEMINI_API_VERSION,
        timeout=settings.HTTP_TIMEOUT,
    )


# Application Lifecycle Management
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application Lifecycle Management

    Create the shared Gemini client on startup, close it on shutdown.
    """
    # Startup
    settings: Settings = app.state.settings
    created = getattr(app.state, "provider_client", None) is None
    if created:
        app.state.provider_client = build_provider_client(settings)
    logger.info("Gemini backend: %s/%s", settings.GEMINI_BASE_URL, settings.GEMINI_API_VERSION)
    yield
    # Shutdown
    if created:
        await app.state.provider_client.aclose()
        app.state.provider_client = None


def _allowed_origins(settings: Settings) -> list[str]:
    return [origin.strip() for origin in settings.ALLOWED_ORIGINS.split(",") if origin.strip()]


def _error_response(err: ProxyError) -> JSONResponse:
    status_code, api_error = translate_error(err)
    return JSONResponse(status_code=status_code, content=api_error.model_dump())


def create_app(
    settings: Optional[Settings] = None,
    provider_client: Optional[ProviderClient] = None,
) -> FastAPI:
    """
    Create the FastAPI application

    Args:
        settings: Application settings (defaults to the environment)
        provider_client: Pre-built backend client; the lifespan creates one when omitted

    Returns:
        FastAPI: Configured application
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        description="OpenAI-compatible proxy for the Google Gemini API",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.provider_client = provider_client

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_allowed_origins(settings),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ProxyError)
    async def proxy_error_handler(request: Request, exc: ProxyError):
        """Errors raised by dependencies (e.g. the bearer header check)"""
        return _error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _error_response(invalid_request(str(exc)))

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """
        Handle uncaught exceptions

        The full traceback is logged; the client gets the translated envelope.
        """
        logger.error(
            "Uncaught exception: %s\nPath: %s\nTraceback:\n%s",
            str(exc),
            request.url.path,
            traceback.format_exc(),
        )
        return _error_response(as_proxy_error(exc))

    app.include_router(openai_router)
    return app


# Initialize logging configuration
setup_logging()

app = create_app()


if __name__ == "__main__":
    from gemini_proxy.cli import main

    raise SystemExit(main())
