"""
Error Translator

Maps a ProxyError onto the OpenAI error envelope and HTTP status.
"""

import logging

from gemini_proxy.common.errors import ErrorKind, ProxyError
from gemini_proxy.domain.chat import APIError

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Rate limit exceeded"


def translate_error(err: ProxyError) -> tuple[int, APIError]:
    """
    Translate a ProxyError into (http_status, APIError)

    The untranslated error is logged before the response is built.

    Args:
        err: Error raised anywhere in the request pipeline

    Returns:
        tuple[int, APIError]: Status code and response envelope
    """
    if err.kind == ErrorKind.API_ERROR:
        logger.warning("Passing through API error: %r", err)
        status_code = err.status_code or 500
        return status_code, APIError(
            code=status_code,
            message=err.message,
            type=err.error_type or "server_error",
        )

    if err.kind == ErrorKind.UPSTREAM:
        status_code = err.status_code or 502
        logger.warning("Gemini API error: %r details=%s", err, err.details)
        if status_code == 429:
            return 429, APIError(
                code=429,
                message=RATE_LIMIT_MESSAGE,
                type="rate_limit_error",
            )
        return status_code, APIError(
            code=status_code,
            message=err.message,
            type="server_error",
        )

    if err.kind == ErrorKind.INVALID_REQUEST:
        logger.info("Invalid request: %r", err)
        return 400, APIError(
            code=400,
            message=err.message,
            type="invalid_request_error",
        )

    if err.kind == ErrorKind.INTERNAL:
        logger.error("Internal error: %r details=%s", err, err.details)
        return 500, APIError(
            code=500,
            message=err.message,
            type="server_error",
        )

    raise AssertionError(f"Unhandled error kind: {err.kind}")
