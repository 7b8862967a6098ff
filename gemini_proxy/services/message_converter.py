"""
Message Model Converter

Turns an OpenAI chat completion request into a Gemini GenerateContentRequest body.
All functions here are pure; every failure is an invalid request.
"""

from __future__ import annotations

import base64
import binascii
import json
import mimetypes
from dataclasses import dataclass
from typing import Any, Literal, Optional

from gemini_proxy.common.errors import invalid_request
from gemini_proxy.domain.chat import ChatCompletionRequest, ChatMessage, ContentPart

USER_ROLE = "user"
MODEL_ROLE = "model"

# Gemini only has two conversational roles
ROLE_MAP: dict[str, str] = {
    "system": USER_ROLE,
    "user": USER_ROLE,
    "assistant": MODEL_ROLE,
    "tool": USER_ROLE,
    "function": USER_ROLE,
}

_REFERENCE_SCHEMES = ("http://", "https://", "gs://")


@dataclass(frozen=True)
class ConversionPolicy:
    """
    How chat turns are reshaped for Gemini.

    merge_consecutive_roles: merge adjacent turns mapping to the same Gemini role
    system_mode: "fold" prefixes leading system messages onto the first user turn,
        "instruction" sends them as systemInstruction
    """

    merge_consecutive_roles: bool = True
    system_mode: Literal["fold", "instruction"] = "fold"


DEFAULT_POLICY = ConversionPolicy()


def _image_part(image_url: Any, location: str) -> dict[str, Any]:
    url = image_url.url if hasattr(image_url, "url") else image_url
    if not isinstance(url, str) or not url:
        raise invalid_request(f"{location}: image_url.url is required")

    if url.startswith("data:"):
        header, sep, encoded = url.partition(",")
        if not sep or not header.endswith(";base64"):
            raise invalid_request(f"{location}: only base64 encoded data URLs are supported")
        mime_type = header[len("data:"):-len(";base64")]
        if not mime_type.startswith("image/"):
            raise invalid_request(f"{location}: unsupported image mime type '{mime_type}'")
        try:
            base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError):
            raise invalid_request(f"{location}: image data is not valid base64") from None
        return {"inlineData": {"mimeType": mime_type, "data": encoded}}

    if url.startswith(_REFERENCE_SCHEMES):
        mime_type, _ = mimetypes.guess_type(url.split("?", 1)[0])
        if not mime_type or not mime_type.startswith("image/"):
            mime_type = "image/jpeg"
        return {"fileData": {"mimeType": mime_type, "fileUri": url}}

    raise invalid_request(f"{location}: unsupported image URL encoding")


def _content_part(part: ContentPart, location: str) -> dict[str, Any]:
    if part.type == "text":
        return {"text": part.text or ""}
    if part.type == "image_url":
        if part.image_url is None:
            raise invalid_request(f"{location}: image_url is required")
        return _image_part(part.image_url, location)
    raise invalid_request(f"{location}: unsupported content part type '{part.type}'")


def content_to_parts(content: Any, location: str = "content") -> list[dict[str, Any]]:
    """Convert an OpenAI message content (string or part list) into Gemini parts."""
    if content is None:
        return []
    if isinstance(content, str):
        return [{"text": content}]
    return [
        _content_part(part, f"{location}[{index}]")
        for index, part in enumerate(content)
    ]


def _parse_arguments(arguments: str, location: str) -> dict[str, Any]:
    try:
        args = json.loads(arguments) if arguments else {}
    except json.JSONDecodeError:
        raise invalid_request(f"{location}: function arguments must be valid JSON") from None
    if not isinstance(args, dict):
        args = {"value": args}
    return args


def _function_response_payload(content: Any) -> dict[str, Any]:
    if isinstance(content, list):
        content = "".join(part.text or "" for part in content if part.type == "text")
    if isinstance(content, str):
        try:
            decoded = json.loads(content)
        except json.JSONDecodeError:
            decoded = content
        if isinstance(decoded, dict):
            return decoded
        return {"content": decoded}
    return {"content": content}


def _message_parts(
    message: ChatMessage,
    location: str,
    tool_names: dict[str, str],
) -> list[dict[str, Any]]:
    if message.role in ("tool", "function"):
        name = message.name
        if not name and message.tool_call_id:
            name = tool_names.get(message.tool_call_id)
        if not name:
            raise invalid_request(
                f"{location}: {message.role} message needs a name or a tool_call_id "
                "matching an earlier tool call"
            )
        return [
            {
                "functionResponse": {
                    "name": name,
                    "response": _function_response_payload(message.content),
                }
            }
        ]

    parts = content_to_parts(message.content, f"{location}.content")

    if message.role == "assistant":
        calls = list(message.tool_calls or [])
        for index, call in enumerate(calls):
            if call.id:
                tool_names[call.id] = call.function.name
            parts.append(
                {
                    "functionCall": {
                        "name": call.function.name,
                        "args": _parse_arguments(
                            call.function.arguments,
                            f"{location}.tool_calls[{index}]",
                        ),
                    }
                }
            )
        if message.function_call is not None:
            parts.append(
                {
                    "functionCall": {
                        "name": message.function_call.name,
                        "args": _parse_arguments(
                            message.function_call.arguments,
                            f"{location}.function_call",
                        ),
                    }
                }
            )

    return parts


def _leading_system_count(messages: list[ChatMessage]) -> int:
    count = 0
    for message in messages:
        if message.role != "system":
            break
        count += 1
    return count


def _convert_turns(
    messages: list[ChatMessage],
    offset: int = 0,
) -> list[tuple[str, str, list[dict[str, Any]]]]:
    """Return (source_role, backend_role, parts) per message, validating roles."""
    tool_names: dict[str, str] = {}
    turns: list[tuple[str, str, list[dict[str, Any]]]] = []
    for index, message in enumerate(messages, start=offset):
        location = f"messages[{index}]"
        backend_role = ROLE_MAP.get(message.role)
        if backend_role is None:
            raise invalid_request(f"{location}: unsupported role '{message.role}'")
        turns.append((message.role, backend_role, _message_parts(message, location, tool_names)))
    return turns


def to_backend_contents(
    request: ChatCompletionRequest,
    policy: ConversionPolicy = DEFAULT_POLICY,
) -> list[dict[str, Any]]:
    """
    Convert request messages into Gemini contents

    Caller order is preserved. In "instruction" mode leading system messages are
    left out here and picked up by system_instruction().

    Args:
        request: Chat completion request
        policy: Turn reshaping policy

    Returns:
        list[dict]: Non-empty list of {"role", "parts"} turns

    Raises:
        ProxyError: INVALID_REQUEST for empty messages, unknown roles or bad content
    """
    messages = request.messages
    if not messages:
        raise invalid_request("messages must contain at least one message")

    skip = 0
    if policy.system_mode == "instruction":
        skip = _leading_system_count(messages)
        if skip == len(messages):
            # Nothing but system messages: keep them as the conversation itself
            skip = 0

    turns = _convert_turns(messages[skip:], offset=skip)

    if policy.system_mode == "fold":
        leading = _leading_system_count(messages)
        if 0 < leading < len(turns) and turns[leading][1] == USER_ROLE:
            system_parts = [part for _, _, parts in turns[:leading] for part in parts]
            source_role, backend_role, parts = turns[leading]
            turns = [(source_role, backend_role, system_parts + parts)] + turns[leading + 1:]

    contents: list[dict[str, Any]] = []
    for _, backend_role, parts in turns:
        if (
            policy.merge_consecutive_roles
            and contents
            and contents[-1]["role"] == backend_role
        ):
            contents[-1]["parts"].extend(parts)
            continue
        contents.append({"role": backend_role, "parts": list(parts)})

    for content in contents:
        if not content["parts"]:
            content["parts"].append({"text": ""})

    return contents


def system_instruction(
    request: ChatCompletionRequest,
    policy: ConversionPolicy = DEFAULT_POLICY,
) -> Optional[dict[str, Any]]:
    """Build systemInstruction from leading system messages ("instruction" mode only)."""
    if policy.system_mode != "instruction":
        return None
    leading = _leading_system_count(request.messages)
    if leading == 0 or leading == len(request.messages):
        return None
    parts: list[dict[str, Any]] = []
    for index, message in enumerate(request.messages[:leading]):
        parts.extend(content_to_parts(message.content, f"messages[{index}].content"))
    return {"parts": parts} if parts else None


def _tool_declarations(request: ChatCompletionRequest) -> list[dict[str, Any]]:
    functions = [tool.function for tool in request.tools or [] if tool.type == "function"]
    functions.extend(request.functions or [])

    declarations: list[dict[str, Any]] = []
    for fn in functions:
        decl: dict[str, Any] = {"name": fn.name}
        if fn.description is not None:
            decl["description"] = fn.description
        if fn.parameters:
            decl["parameters"] = fn.parameters
        declarations.append(decl)
    return declarations


def _calling_mode(choice: str) -> str:
    if choice == "none":
        return "NONE"
    if choice in ("required", "any"):
        return "ANY"
    return "AUTO"


def _tool_config(request: ChatCompletionRequest) -> Optional[dict[str, Any]]:
    choice = request.tool_choice if request.tool_choice is not None else request.function_call
    if choice is None:
        return None

    if isinstance(choice, str):
        return {"functionCallingConfig": {"mode": _calling_mode(choice)}}

    # {"type": "function", "function": {"name": ...}} or legacy {"name": ...}
    named = choice.get("type") == "function" or "name" in choice
    fn = choice.get("function") if choice.get("type") == "function" else choice
    if isinstance(fn, dict) and isinstance(fn.get("name"), str) and fn["name"]:
        return {
            "functionCallingConfig": {
                "mode": "ANY",
                "allowedFunctionNames": [fn["name"]],
            }
        }
    if named:
        raise invalid_request("tool_choice of type function must name the function")
    if isinstance(choice.get("type"), str):
        return {"functionCallingConfig": {"mode": _calling_mode(choice["type"])}}
    raise invalid_request("tool_choice has an unsupported shape")


def generation_config(request: ChatCompletionRequest) -> dict[str, Any]:
    """Map sampling parameters 1:1; absent values stay unset."""
    config: dict[str, Any] = {}
    for src, dst in (
        ("temperature", "temperature"),
        ("top_p", "topP"),
        ("top_k", "topK"),
        ("n", "candidateCount"),
        ("presence_penalty", "presencePenalty"),
        ("frequency_penalty", "frequencyPenalty"),
        ("seed", "seed"),
    ):
        value = getattr(request, src)
        if value is not None:
            config[dst] = value

    max_tokens = request.max_completion_tokens
    if max_tokens is None:
        max_tokens = request.max_tokens
    if max_tokens is not None:
        config["maxOutputTokens"] = max_tokens

    if isinstance(request.stop, str):
        config["stopSequences"] = [request.stop]
    elif request.stop:
        config["stopSequences"] = list(request.stop)

    response_format = request.response_format
    if response_format:
        r_type = response_format.get("type")
        if r_type in ("json_object", "json_schema"):
            config["responseMimeType"] = "application/json"
            schema_payload = response_format.get("json_schema")
            if isinstance(schema_payload, dict) and isinstance(schema_payload.get("schema"), dict):
                config["responseSchema"] = schema_payload["schema"]
        elif r_type not in (None, "text"):
            raise invalid_request(f"unsupported response_format type '{r_type}'")

    return config


def build_generate_request(
    request: ChatCompletionRequest,
    policy: ConversionPolicy = DEFAULT_POLICY,
) -> dict[str, Any]:
    """
    Build the full Gemini GenerateContentRequest body

    Args:
        request: Chat completion request
        policy: Turn reshaping policy

    Returns:
        dict: Body for generateContent / streamGenerateContent
    """
    body: dict[str, Any] = {"contents": to_backend_contents(request, policy)}

    instruction = system_instruction(request, policy)
    if instruction:
        body["systemInstruction"] = instruction

    declarations = _tool_declarations(request)
    if declarations:
        body["tools"] = [{"functionDeclarations": declarations}]
        tool_config = _tool_config(request)
        if tool_config:
            body["toolConfig"] = tool_config

    config = generation_config(request)
    if config:
        body["generationConfig"] = config

    return body
