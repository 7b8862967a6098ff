"""
Response Converter

Turns Gemini GenerateContentResponse bodies into OpenAI chat.completion and
chat.completion.chunk objects.
"""

from __future__ import annotations

import json
import time
import uuid
from typing import Any, Optional

from gemini_proxy.domain.model import ModelCard, ModelList

# Every Gemini finish reason has exactly one OpenAI value; unknown values become "stop"
FINISH_REASON_MAP: dict[str, Optional[str]] = {
    "STOP": "stop",
    "MAX_TOKENS": "length",
    "SAFETY": "content_filter",
    "RECITATION": "content_filter",
    "BLOCKLIST": "content_filter",
    "PROHIBITED_CONTENT": "content_filter",
    "SPII": "content_filter",
    "IMAGE_SAFETY": "content_filter",
    "OTHER": None,
    "FINISH_REASON_UNSPECIFIED": None,
}


def map_finish_reason(reason: Optional[str]) -> Optional[str]:
    if reason is None:
        return None
    return FINISH_REASON_MAP.get(reason, "stop")


def new_completion_id() -> str:
    return f"chatcmpl-{uuid.uuid4().hex}"


def convert_usage(usage: Any) -> dict[str, int]:
    """
    Convert usageMetadata to OpenAI usage

    Missing metadata yields zeros rather than an estimate.
    """
    if not isinstance(usage, dict):
        return {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}
    prompt = int(usage.get("promptTokenCount") or 0)
    completion = int(usage.get("candidatesTokenCount") or 0)
    total = usage.get("totalTokenCount")
    return {
        "prompt_tokens": prompt,
        "completion_tokens": completion,
        "total_tokens": int(total) if total is not None else prompt + completion,
    }


def _candidate_index(candidate: dict[str, Any], position: int) -> int:
    index = candidate.get("index")
    return index if isinstance(index, int) else position


def _candidate_output(candidate: dict[str, Any]) -> tuple[str, list[dict[str, Any]]]:
    """Collect text and function calls from a candidate's parts."""
    content = candidate.get("content")
    parts = content.get("parts") if isinstance(content, dict) else None
    text_parts: list[str] = []
    tool_calls: list[dict[str, Any]] = []
    for part in parts or []:
        if not isinstance(part, dict):
            continue
        # Thought summaries are not part of the answer
        if part.get("thought") is True:
            continue
        if isinstance(part.get("text"), str):
            text_parts.append(part["text"])
        fc = part.get("functionCall")
        if isinstance(fc, dict) and isinstance(fc.get("name"), str):
            tool_calls.append(
                {
                    "id": f"call_{uuid.uuid4().hex[:24]}",
                    "type": "function",
                    "function": {
                        "name": fc["name"],
                        "arguments": json.dumps(fc.get("args") or {}, ensure_ascii=False),
                    },
                }
            )
    return "".join(text_parts), tool_calls


def _candidates(result: dict[str, Any]) -> list[dict[str, Any]]:
    candidates = result.get("candidates")
    if not isinstance(candidates, list):
        return []
    return [cand if isinstance(cand, dict) else {} for cand in candidates]


def _prompt_blocked(result: dict[str, Any]) -> bool:
    feedback = result.get("promptFeedback")
    return isinstance(feedback, dict) and bool(feedback.get("blockReason"))


def from_backend_result(
    result: dict[str, Any],
    model: str,
    created: Optional[int] = None,
) -> dict[str, Any]:
    """
    Build an OpenAI chat.completion from a Gemini response

    One choice per candidate; blocked or empty candidates keep an empty message.

    Args:
        result: Gemini GenerateContentResponse body
        model: Model name reported back to the client

    Returns:
        dict: chat.completion object
    """
    choices: list[dict[str, Any]] = []
    for position, cand in enumerate(_candidates(result)):
        text, tool_calls = _candidate_output(cand)
        # Tool-call-only turns carry null content
        message: dict[str, Any] = {
            "role": "assistant",
            "content": None if tool_calls and not text else text,
        }
        if tool_calls:
            message["tool_calls"] = tool_calls
        choices.append(
            {
                "index": _candidate_index(cand, position),
                "message": message,
                "finish_reason": map_finish_reason(cand.get("finishReason")),
            }
        )

    if not choices:
        choices.append(
            {
                "index": 0,
                "message": {"role": "assistant", "content": ""},
                "finish_reason": "content_filter" if _prompt_blocked(result) else "stop",
            }
        )

    return {
        "id": result.get("responseId") or new_completion_id(),
        "object": "chat.completion",
        "created": created or int(time.time()),
        "model": model,
        "choices": choices,
        "usage": convert_usage(result.get("usageMetadata")),
    }


def chunk_from_backend_result(
    result: dict[str, Any],
    model: str,
    response_id: str,
    created: int,
    first: bool = False,
) -> dict[str, Any]:
    """
    Build one OpenAI chat.completion.chunk from a Gemini partial result

    Args:
        result: Gemini partial GenerateContentResponse
        model: Model name reported back to the client
        response_id: Id shared by every chunk of the stream
        created: Timestamp shared by every chunk of the stream
        first: Whether this is the first chunk (its delta carries the role)

    Returns:
        dict: chat.completion.chunk object
    """
    choices: list[dict[str, Any]] = []
    for position, cand in enumerate(_candidates(result)):
        text, tool_calls = _candidate_output(cand)
        delta: dict[str, Any] = {}
        if first:
            delta["role"] = "assistant"
        if text:
            delta["content"] = text
        if tool_calls:
            delta["tool_calls"] = [
                dict(call, index=call_index) for call_index, call in enumerate(tool_calls)
            ]
        choices.append(
            {
                "index": _candidate_index(cand, position),
                "delta": delta,
                "finish_reason": map_finish_reason(cand.get("finishReason")),
            }
        )

    if not choices and _prompt_blocked(result):
        choices.append(
            {
                "index": 0,
                "delta": {"role": "assistant"} if first else {},
                "finish_reason": "content_filter",
            }
        )

    return {
        "id": response_id,
        "object": "chat.completion.chunk",
        "created": created,
        "model": model,
        "choices": choices,
    }


def usage_chunk(
    model: str,
    response_id: str,
    created: int,
    usage: Any,
) -> dict[str, Any]:
    """
    Build the closing usage chunk for `stream_options.include_usage`

    Gemini repeats cumulative usageMetadata on every partial result, so only
    the last one seen is reported, once, with an empty choices list.
    """
    return {
        "id": response_id,
        "object": "chat.completion.chunk",
        "created": created,
        "model": model,
        "choices": [],
        "usage": convert_usage(usage),
    }


def embeddings_to_openai(
    vectors: list[list[float]],
    model: str,
) -> dict[str, Any]:
    """Build an OpenAI embedding list, one entry per vector in input order."""
    return {
        "object": "list",
        "data": [
            {"object": "embedding", "index": index, "embedding": vector}
            for index, vector in enumerate(vectors)
        ],
        "model": model,
        "usage": {"prompt_tokens": 0, "total_tokens": 0},
    }


def models_to_openai(models: list[dict[str, Any]]) -> ModelList:
    """Map Gemini model descriptions to the OpenAI model listing."""
    return ModelList(
        data=[
            ModelCard(id=model["name"])
            for model in models
            if isinstance(model.get("name"), str) and model["name"]
        ]
    )
