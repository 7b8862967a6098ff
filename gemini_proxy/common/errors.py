"""
Error Definitions

Every fallible operation in the proxy raises ProxyError. The error carries an
explicit kind tag; the error translator switches on that tag to build the
client-visible response.
"""

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Tag identifying where an error came from."""

    # Already shaped as an OpenAI API error, carries its own status
    API_ERROR = "api_error"
    # Gemini answered with a non-success HTTP status
    UPSTREAM = "upstream"
    # Local validation failure (body, role, content, auth header)
    INVALID_REQUEST = "invalid_request"
    # Anything else
    INTERNAL = "internal"


class ProxyError(Exception):
    """
    Proxy Base Exception

    Args:
        kind: Error kind tag
        message: Error message
        status_code: HTTP status code reported by the source, if any
        error_type: OpenAI taxonomy string, only meaningful for API_ERROR
        details: Extra diagnostic details (logged, never returned)
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        status_code: Optional[int] = None,
        error_type: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code
        self.error_type = error_type
        self.details = details or {}

    def __repr__(self) -> str:
        return (
            f"ProxyError(kind={self.kind.value}, status_code={self.status_code}, "
            f"message={self.message!r})"
        )


def invalid_request(message: str, **details: Any) -> ProxyError:
    return ProxyError(ErrorKind.INVALID_REQUEST, message, status_code=400, details=details)


def upstream_error(status_code: int, message: str, **details: Any) -> ProxyError:
    return ProxyError(ErrorKind.UPSTREAM, message, status_code=status_code, details=details)


def internal_error(message: str, **details: Any) -> ProxyError:
    return ProxyError(ErrorKind.INTERNAL, message, status_code=500, details=details)


def api_error(status_code: int, message: str, error_type: str) -> ProxyError:
    return ProxyError(
        ErrorKind.API_ERROR, message, status_code=status_code, error_type=error_type
    )


def as_proxy_error(exc: BaseException) -> ProxyError:
    """Wrap an arbitrary exception as a ProxyError, keeping ProxyErrors unchanged."""
    if isinstance(exc, ProxyError):
        return exc
    return internal_error(str(exc) or type(exc).__name__, exception=type(exc).__name__)
