"""
API Dependency Injection Module

Provides the dependencies FastAPI routes need. The backend client lives on
app.state for the lifetime of the process and is injected per request.
"""

from typing import Annotated, Optional

from fastapi import Depends, Header, Request

from gemini_proxy.common.errors import internal_error, invalid_request
from gemini_proxy.config import Settings, get_settings
from gemini_proxy.providers.base import ProviderClient
from gemini_proxy.services.gemini_adapter import GeminiAdapter


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with, falling back to the environment"""
    return getattr(request.app.state, "settings", None) or get_settings()


def get_provider_client(request: Request) -> ProviderClient:
    """Shared backend client created by the application lifespan"""
    client = getattr(request.app.state, "provider_client", None)
    if client is None:
        raise internal_error("Backend client is not initialized")
    return client


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
ProviderClientDep = Annotated[ProviderClient, Depends(get_provider_client)]


def get_gemini_adapter(client: ProviderClientDep, settings: SettingsDep) -> GeminiAdapter:
    """Per-request adapter bound to the shared client"""
    return GeminiAdapter.from_settings(client, settings)


def extract_bearer_token(authorization: Optional[str]) -> str:
    """
    Parse an `Authorization: Bearer <token>` header value

    The token is only parsed, never checked against any store.

    Raises:
        ProxyError: INVALID_REQUEST when the header is missing or malformed
    """
    if not authorization:
        raise invalid_request("Missing Authorization header, expected 'Bearer <token>'")
    scheme, _, token = authorization.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token or " " in token:
        raise invalid_request("Malformed Authorization header, expected 'Bearer <token>'")
    return token


async def require_bearer_token(
    authorization: str = Header(None, description="Bearer token"),
) -> str:
    return extract_bearer_token(authorization)


GeminiAdapterDep = Annotated[GeminiAdapter, Depends(get_gemini_adapter)]
BearerToken = Annotated[str, Depends(require_bearer_token)]
