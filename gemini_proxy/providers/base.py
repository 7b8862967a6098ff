"""
Backend Provider Client Base Class

Defines the abstract interface the adapter uses to reach the generative backend.
Implementations raise ProxyError for every failure.
"""

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator


class ProviderClient(ABC):
    """
    Backend Provider Client Abstract Base Class

    One instance is created at startup and shared by all in-flight requests.
    """

    @abstractmethod
    async def generate_content(self, model: str, body: dict[str, Any]) -> dict[str, Any]:
        """
        Run a single-shot generation

        Args:
            model: Backend model name
            body: Native GenerateContentRequest body

        Returns:
            dict: Native GenerateContentResponse body
        """

    @abstractmethod
    def stream_generate_content(
        self, model: str, body: dict[str, Any]
    ) -> AsyncIterator[dict[str, Any]]:
        """
        Run a streaming generation

        Yields one native GenerateContentResponse per partial result, in arrival order.
        """

    @abstractmethod
    async def embed_contents(
        self, model: str, texts: list[str], output_dimensionality: int | None = None
    ) -> list[list[float]]:
        """
        Embed texts

        Returns:
            list[list[float]]: One vector per input text, in input order
        """

    @abstractmethod
    async def list_models(self) -> list[dict[str, Any]]:
        """
        List models available to the configured credential

        Returns:
            list[dict]: Native model descriptions with the "models/" prefix stripped
        """

    async def aclose(self) -> None:
        """Release transport resources held by the client."""
