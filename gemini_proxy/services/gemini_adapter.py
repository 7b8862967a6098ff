"""
Gemini Adapter Service

Runs one OpenAI-shaped request against Gemini: converts the request, invokes
the shared client, and converts the result back.
"""

import logging
import time
from typing import Any, Mapping, Optional

from gemini_proxy.common.errors import invalid_request
from gemini_proxy.config import Settings
from gemini_proxy.domain.chat import ChatCompletionRequest
from gemini_proxy.domain.embedding import EmbeddingRequest
from gemini_proxy.domain.model import ModelList
from gemini_proxy.providers.base import ProviderClient
from gemini_proxy.services.message_converter import (
    DEFAULT_POLICY,
    ConversionPolicy,
    build_generate_request,
)
from gemini_proxy.services.response_converter import (
    chunk_from_backend_result,
    embeddings_to_openai,
    from_backend_result,
    models_to_openai,
    new_completion_id,
    usage_chunk,
)
from gemini_proxy.services.stream_coordinator import StreamCoordinator

logger = logging.getLogger(__name__)

# OpenAI embedding model names with no Gemini counterpart
_OPENAI_EMBEDDING_PREFIXES = ("text-embedding-ada-", "text-embedding-3-")


def resolve_model(requested: str, aliases: Mapping[str, str]) -> str:
    """Map an OpenAI model name onto a Gemini model name; unknown names pass through."""
    name = requested.strip()
    if name.startswith("models/"):
        name = name[len("models/"):]
    return aliases.get(name, name)


def resolve_embedding_model(
    requested: str,
    aliases: Mapping[str, str],
    default_model: str,
) -> str:
    name = resolve_model(requested, aliases)
    if name.startswith(_OPENAI_EMBEDDING_PREFIXES):
        return default_model
    return name


class GeminiAdapter:
    """
    Request adapter bound to the process-wide Gemini client

    Args:
        client: Shared backend client (owned by the application lifespan)
        policy: Turn reshaping policy
        model_aliases: OpenAI -> Gemini model names
        default_embedding_model: Gemini model for OpenAI embedding names
        stream_queue_size: Capacity of the streaming hand-off queue
    """

    def __init__(
        self,
        client: ProviderClient,
        policy: ConversionPolicy = DEFAULT_POLICY,
        model_aliases: Optional[Mapping[str, str]] = None,
        default_embedding_model: str = "text-embedding-004",
        stream_queue_size: int = 8,
    ):
        self.client = client
        self.policy = policy
        self.model_aliases = dict(model_aliases or {})
        self.default_embedding_model = default_embedding_model
        self.stream_queue_size = stream_queue_size

    @classmethod
    def from_settings(cls, client: ProviderClient, settings: Settings) -> "GeminiAdapter":
        return cls(
            client,
            policy=ConversionPolicy(
                merge_consecutive_roles=settings.MERGE_CONSECUTIVE_ROLES,
                system_mode=settings.SYSTEM_MESSAGE_MODE,
            ),
            model_aliases=settings.MODEL_ALIASES,
            default_embedding_model=settings.DEFAULT_EMBEDDING_MODEL,
            stream_queue_size=settings.STREAM_QUEUE_SIZE,
        )

    async def generate_content(self, request: ChatCompletionRequest) -> dict[str, Any]:
        """Single-shot completion; returns a chat.completion object."""
        body = build_generate_request(request, self.policy)
        target_model = resolve_model(request.model, self.model_aliases)
        logger.info(
            "Chat completion: model=%s target=%s messages=%d",
            request.model,
            target_model,
            len(request.messages),
        )
        result = await self.client.generate_content(target_model, body)
        return from_backend_result(result, request.model)

    def generate_stream_content(self, request: ChatCompletionRequest) -> StreamCoordinator:
        """
        Streaming completion

        The request is converted before the coordinator is created, so
        validation errors surface before any backend call.

        Returns:
            StreamCoordinator: Started coordinator producing chat.completion.chunk JSON
        """
        body = build_generate_request(request, self.policy)
        target_model = resolve_model(request.model, self.model_aliases)
        logger.info(
            "Streaming chat completion: model=%s target=%s messages=%d",
            request.model,
            target_model,
            len(request.messages),
        )

        response_id = new_completion_id()
        created = int(time.time())
        include_usage = bool(request.stream_options and request.stream_options.include_usage)

        # Latest cumulative usageMetadata seen on the stream
        usage: dict[str, Any] = {}

        def convert(result: dict[str, Any], first: bool) -> dict[str, Any]:
            if isinstance(result.get("usageMetadata"), dict):
                usage["metadata"] = result["usageMetadata"]
            return chunk_from_backend_result(
                result,
                request.model,
                response_id=response_id,
                created=created,
                first=first,
            )

        def trailer() -> dict[str, Any]:
            return usage_chunk(request.model, response_id, created, usage.get("metadata"))

        return StreamCoordinator(
            self.client.stream_generate_content(target_model, body),
            convert,
            maxsize=self.stream_queue_size,
            trailer=trailer if include_usage else None,
        ).start()

    async def generate_embedding(self, request: EmbeddingRequest) -> dict[str, Any]:
        """Embed every input, returning vectors in input order."""
        inputs = request.inputs()
        target_model = resolve_embedding_model(
            request.model, self.model_aliases, self.default_embedding_model
        )
        logger.info("Embeddings: model=%s target=%s inputs=%d", request.model, target_model, len(inputs))
        if not inputs:
            raise invalid_request("input must contain at least one text")
        vectors = await self.client.embed_contents(target_model, inputs, request.dimensions)
        return embeddings_to_openai(vectors, request.model)

    async def list_models(self) -> ModelList:
        return models_to_openai(await self.client.list_models())
