"""
Domain models for the OpenAI-facing API surface.
"""

from gemini_proxy.domain.chat import (
    APIError,
    ChatCompletionRequest,
    ChatMessage,
    ContentPart,
    ImageURL,
    ToolCall,
)
from gemini_proxy.domain.embedding import EmbeddingRequest
from gemini_proxy.domain.model import ModelCard, ModelList

__all__ = [
    "APIError",
    "ChatCompletionRequest",
    "ChatMessage",
    "ContentPart",
    "ImageURL",
    "ToolCall",
    "EmbeddingRequest",
    "ModelCard",
    "ModelList",
]
