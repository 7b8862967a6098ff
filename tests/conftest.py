"""
Test Configuration Module
"""

from typing import Any, AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from gemini_proxy.common.errors import ProxyError
from gemini_proxy.config import Settings
from gemini_proxy.main import create_app
from gemini_proxy.providers.base import ProviderClient


def gemini_text_response(
    text: str,
    finish_reason: Optional[str] = "STOP",
    usage: Optional[dict[str, int]] = None,
) -> dict[str, Any]:
    """Minimal Gemini GenerateContentResponse with one candidate"""
    candidate: dict[str, Any] = {
        "content": {"role": "model", "parts": [{"text": text}]},
        "index": 0,
    }
    if finish_reason is not None:
        candidate["finishReason"] = finish_reason
    body: dict[str, Any] = {"candidates": [candidate]}
    if usage is not None:
        body["usageMetadata"] = usage
    return body


class FakeProviderClient(ProviderClient):
    """In-memory backend recording every call"""

    def __init__(self):
        self.result: dict[str, Any] = gemini_text_response(
            "Hello!",
            usage={"promptTokenCount": 3, "candidatesTokenCount": 2, "totalTokenCount": 5},
        )
        self.stream_results: list[dict[str, Any]] = [
            gemini_text_response("Hel", finish_reason=None),
            gemini_text_response("lo", finish_reason=None),
            gemini_text_response("!", finish_reason="STOP"),
        ]
        self.models: list[dict[str, Any]] = [
            {"name": "gemini-2.0-flash"},
            {"name": "text-embedding-004"},
        ]
        # Raised before any output
        self.error: Optional[ProxyError] = None
        # Raised after every stream result was yielded
        self.stream_error: Optional[ProxyError] = None
        self.calls: list[tuple[str, str, Any]] = []

    async def generate_content(self, model: str, body: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(("generate_content", model, body))
        if self.error:
            raise self.error
        return self.result

    async def stream_generate_content(self, model: str, body: dict[str, Any]):
        self.calls.append(("stream_generate_content", model, body))
        if self.error:
            raise self.error
        for result in self.stream_results:
            yield result
        if self.stream_error:
            raise self.stream_error

    async def embed_contents(self, model, texts, output_dimensionality=None):
        self.calls.append(("embed_contents", model, list(texts)))
        if self.error:
            raise self.error
        return [[float(index), float(len(text))] for index, text in enumerate(texts)]

    async def list_models(self) -> list[dict[str, Any]]:
        self.calls.append(("list_models", "", None))
        if self.error:
            raise self.error
        return [dict(model) for model in self.models]


@pytest.fixture
def fake_client() -> FakeProviderClient:
    return FakeProviderClient()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(GEMINI_API_KEY="test-key")


@pytest.fixture
def test_app(test_settings, fake_client):
    return create_app(test_settings, provider_client=fake_client)


@pytest_asyncio.fixture
async def client(test_app) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app through ASGITransport"""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"Authorization": "Bearer sk-test"},
    ) as ac:
        yield ac


@pytest.fixture
def make_gemini_response():
    return gemini_text_response
