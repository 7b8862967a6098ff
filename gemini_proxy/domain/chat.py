"""
Chat Completion Domain Model

Request DTOs for the OpenAI Chat Completions API and the shared error envelope.
"""

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ImageURL(BaseModel):
    """Image reference inside a multi-part message"""

    url: str = Field(..., description="data: URL or fetchable URL")
    detail: Optional[str] = Field(None, description="Requested detail level (ignored)")


class ContentPart(BaseModel):
    """One item of a multi-part message content"""

    model_config = ConfigDict(extra="allow")

    # Part type: text / image_url
    type: str = Field(..., description="Part Type")
    text: Optional[str] = None
    image_url: Optional[Union[ImageURL, str]] = None


class FunctionCall(BaseModel):
    name: str
    # JSON-encoded arguments
    arguments: str = "{}"


class ToolCall(BaseModel):
    id: Optional[str] = None
    type: str = "function"
    function: FunctionCall


class ChatMessage(BaseModel):
    """Chat message as sent by the client"""

    model_config = ConfigDict(extra="allow")

    # Role: system / user / assistant / tool / function
    role: str = Field(..., description="Message Role")
    content: Optional[Union[str, list[ContentPart]]] = Field(None, description="Message Content")
    name: Optional[str] = None
    tool_calls: Optional[list[ToolCall]] = None
    tool_call_id: Optional[str] = None
    # Legacy single function call on assistant messages
    function_call: Optional[FunctionCall] = None


class FunctionDefinition(BaseModel):
    name: str
    description: Optional[str] = None
    parameters: Optional[dict[str, Any]] = None


class ToolDefinition(BaseModel):
    type: str = "function"
    function: FunctionDefinition


class StreamOptions(BaseModel):
    include_usage: bool = False


class ChatCompletionRequest(BaseModel):
    """OpenAI Chat Completions request body"""

    model_config = ConfigDict(extra="allow")

    model: str = Field(..., min_length=1, description="Requested Model Name")
    messages: list[ChatMessage] = Field(..., description="Conversation turns in order")
    stream: bool = False
    stream_options: Optional[StreamOptions] = None

    # Sampling parameters, left unset when absent so Gemini applies its defaults
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    top_k: Optional[int] = None
    max_tokens: Optional[int] = None
    max_completion_tokens: Optional[int] = None
    stop: Optional[Union[str, list[str]]] = None
    n: Optional[int] = Field(None, ge=1)
    presence_penalty: Optional[float] = None
    frequency_penalty: Optional[float] = None
    seed: Optional[int] = None
    response_format: Optional[dict[str, Any]] = None

    # Tool / function declarations
    tools: Optional[list[ToolDefinition]] = None
    tool_choice: Optional[Union[str, dict[str, Any]]] = None
    functions: Optional[list[FunctionDefinition]] = None
    function_call: Optional[Union[str, dict[str, Any]]] = None

    user: Optional[str] = None


class APIError(BaseModel):
    """OpenAI error envelope returned for every failed request"""

    code: int = Field(..., description="HTTP status code")
    message: str
    param: Optional[str] = None
    type: str = Field(..., description="Error taxonomy")
