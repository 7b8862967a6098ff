"""
OpenAI Proxy API

Provides OpenAI-compatible API endpoints backed by Gemini.
"""

import logging
from typing import Type, TypeVar

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ValidationError

from gemini_proxy.api.deps import BearerToken, GeminiAdapterDep
from gemini_proxy.common.errors import ProxyError, as_proxy_error, invalid_request
from gemini_proxy.common.sse import SSE_HEADERS
from gemini_proxy.domain.chat import ChatCompletionRequest
from gemini_proxy.domain.embedding import EmbeddingRequest
from gemini_proxy.domain.model import ModelCard
from gemini_proxy.services.error_translator import translate_error

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Proxy - OpenAI"])

WELCOME_MESSAGE = (
    "Welcome to the OpenAI API! Documentation is available at "
    "https://platform.openai.com/docs/api-reference"
)

RequestModel = TypeVar("RequestModel", bound=BaseModel)


def error_response(err: ProxyError) -> JSONResponse:
    status_code, api_error = translate_error(err)
    return JSONResponse(content=api_error.model_dump(), status_code=status_code)


def _format_validation_error(exc: ValidationError) -> str:
    messages: list[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "body"
        messages.append(f"{location}: {error.get('msg')}")
    return "; ".join(messages) or "Invalid request body"


async def _bind_json(request: Request, model: Type[RequestModel]) -> RequestModel:
    """Bind the raw request body to a request model; any failure is an invalid request."""
    raw = await request.body()
    if not raw.strip():
        raise invalid_request("Request body is empty")
    try:
        return model.model_validate_json(raw)
    except ValidationError as e:
        raise invalid_request(_format_validation_error(e)) from e


@router.get("/")
async def index():
    """
    Root Path

    Answers with 421 to signal that the client is pointed at the wrong base URL.
    """
    return JSONResponse(
        content={"message": WELCOME_MESSAGE},
        status_code=status.HTTP_421_MISDIRECTED_REQUEST,
    )


@router.get("/v1/models")
async def list_models(adapter: GeminiAdapterDep):
    """
    OpenAI Models API (List)

    Returns the models available to the configured Gemini credential.
    """
    try:
        models = await adapter.list_models()
        return models.model_dump()
    except ProxyError as e:
        return error_response(e)
    except Exception as e:
        logger.error("Unexpected error: %s", str(e), exc_info=True)
        return error_response(as_proxy_error(e))


@router.get("/v1/models/{model:path}")
async def retrieve_model(model: str):
    """
    OpenAI Models API (Retrieve)

    Echoes the requested id without consulting Gemini.
    """
    return ModelCard(id=model).model_dump()


@router.post("/v1/chat/completions")
async def chat_completions(
    request: Request,
    _token: BearerToken,
    adapter: GeminiAdapterDep,
):
    """
    OpenAI Chat Completions API Proxy

    Errors before the first streamed chunk are returned as JSON; later errors
    abort the event stream without the [DONE] marker.
    """
    try:
        body = await _bind_json(request, ChatCompletionRequest)

        if not body.stream:
            return JSONResponse(content=await adapter.generate_content(body))

        coordinator = adapter.generate_stream_content(body)
        first = await coordinator.first()
        return StreamingResponse(
            coordinator.events(first),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )

    except ProxyError as e:
        return error_response(e)
    except Exception as e:
        logger.error("Unexpected error: %s", str(e), exc_info=True)
        return error_response(as_proxy_error(e))


@router.post("/v1/embeddings")
async def embeddings(
    request: Request,
    _token: BearerToken,
    adapter: GeminiAdapterDep,
):
    """
    OpenAI Embeddings API Proxy
    """
    try:
        body = await _bind_json(request, EmbeddingRequest)
        return JSONResponse(content=await adapter.generate_embedding(body))
    except ProxyError as e:
        return error_response(e)
    except Exception as e:
        logger.error("Unexpected error: %s", str(e), exc_info=True)
        return error_response(as_proxy_error(e))
