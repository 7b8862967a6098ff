"""
Server-Sent Events helpers

Decodes the Gemini `alt=sse` stream and frames outgoing OpenAI chunks.
"""

from __future__ import annotations

from typing import Optional

DONE_MARKER = "[DONE]"


class SSEDecoder:
    """
    Incremental SSE decoder: splits a byte stream into events and extracts data fields.

    - Uses empty line (\\n\\n) as event boundary
    - Supports CRLF (\\r\\n)
    - Only parses data: lines, ignores other fields
    """

    def __init__(self) -> None:
        self._buf = b""

    def feed(self, chunk: bytes) -> list[str]:
        """
        Append bytes and return list of parsed data payloads (one string per event).
        """
        if not chunk:
            return []

        data = (self._buf + chunk).replace(b"\r\n", b"\n")
        events = data.split(b"\n\n")
        self._buf = events.pop()  # Keep last incomplete event

        payloads: list[str] = []
        for event in events:
            payload = self._extract_data_payload(event)
            if payload is not None:
                payloads.append(payload)
        return payloads

    def flush(self) -> list[str]:
        """Return the payload of a trailing event that was not terminated by a blank line."""
        remaining, self._buf = self._buf, b""
        payload = self._extract_data_payload(remaining.replace(b"\r\n", b"\n"))
        return [payload] if payload is not None else []

    @staticmethod
    def _extract_data_payload(event: bytes) -> Optional[str]:
        data_lines: list[bytes] = []
        for line in event.split(b"\n"):
            if not line:
                continue
            if line.startswith(b"data:"):
                value = line[5:]
                if value.startswith(b" "):
                    value = value[1:]
                data_lines.append(value)
        if not data_lines:
            return None
        return b"\n".join(data_lines).decode("utf-8", errors="replace")


def encode_sse_data(data: str) -> bytes:
    """Frame one payload as a `data:` event."""
    return f"data: {data}\n\n".encode("utf-8")


def encode_sse_done() -> bytes:
    return encode_sse_data(DONE_MARKER)


# Headers for event-stream responses; Content-Type is set by StreamingResponse
SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}
