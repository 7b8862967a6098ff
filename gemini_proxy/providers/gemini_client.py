"""
Google Gemini Native API Client

Calls the Gemini generative-language REST API over a shared httpx.AsyncClient.
"""

import json
import logging
from typing import Any, AsyncIterator, Optional

import httpx

from gemini_proxy.common.errors import ProxyError, upstream_error
from gemini_proxy.common.sse import SSEDecoder
from gemini_proxy.providers.base import ProviderClient

logger = logging.getLogger(__name__)

_MODEL_PREFIX = "models/"
_LIST_MODELS_PAGE_SIZE = 1000


class GeminiClient(ProviderClient):
    """Google Gemini native API client."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://generativelanguage.googleapis.com",
        api_version: str = "v1beta",
        timeout: float = 300,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.api_version = api_version.strip("/")
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    def _headers(self) -> dict[str, str]:
        return {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }

    def _build_url(self, path: str) -> str:
        cleaned_path = path if path.startswith("/") else f"/{path}"
        return f"{self.base_url}/{self.api_version}{cleaned_path}"

    @staticmethod
    def _model_path(model: str, method: str) -> str:
        if model.startswith(_MODEL_PREFIX):
            model = model[len(_MODEL_PREFIX):]
        return f"/models/{model}:{method}"

    @staticmethod
    def _strip_model_name_prefix(models: list[Any]) -> None:
        """Strip 'models/' prefix from model names in-place."""
        for model in models:
            if not isinstance(model, dict):
                continue
            name = model.get("name")
            if isinstance(name, str) and name.startswith(_MODEL_PREFIX):
                model["name"] = name[len(_MODEL_PREFIX):]

    @staticmethod
    def _error_from_response(status_code: int, reason: str, content: bytes) -> ProxyError:
        """Build an upstream ProxyError from a Gemini error body ({"error": {...}})."""
        message = reason or "Upstream error"
        details: dict[str, Any] = {}
        try:
            payload = json.loads(content.decode("utf-8", errors="replace")) if content else None
        except json.JSONDecodeError:
            payload = None

        if isinstance(payload, list) and payload:
            payload = payload[0]
        if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
            error = payload["error"]
            if isinstance(error.get("message"), str) and error["message"]:
                message = error["message"]
            if isinstance(error.get("status"), str):
                details["status"] = error["status"]
        elif content:
            details["body"] = content[:512].decode("utf-8", errors="replace")

        return upstream_error(status_code, message, **details)

    async def _request(
        self,
        method: str,
        path: str,
        body: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        url = self._build_url(path)
        logger.debug(
            "Gemini Request: method=%s url=%s body=%s",
            method,
            url,
            json.dumps(body, ensure_ascii=False) if body is not None else None,
        )

        try:
            response = await self._http.request(
                method=method,
                url=url,
                headers=self._headers(),
                json=body,
                params=params,
            )
        except httpx.TimeoutException as e:
            raise upstream_error(504, f"Request timeout: {str(e)}") from e
        except httpx.RequestError as e:
            raise upstream_error(502, f"Request error: {str(e)}") from e

        if response.status_code >= 400:
            raise self._error_from_response(
                response.status_code, response.reason_phrase, response.content
            )

        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise upstream_error(502, "Gemini returned a non-JSON response") from e

    async def generate_content(self, model: str, body: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", self._model_path(model, "generateContent"), body)

    async def stream_generate_content(
        self, model: str, body: dict[str, Any]
    ) -> AsyncIterator[dict[str, Any]]:
        url = self._build_url(self._model_path(model, "streamGenerateContent"))
        logger.debug(
            "Gemini Stream Request: url=%s body=%s",
            url,
            json.dumps(body, ensure_ascii=False),
        )

        decoder = SSEDecoder()
        try:
            async with self._http.stream(
                "POST",
                url,
                headers=self._headers(),
                params={"alt": "sse"},
                json=body,
            ) as response:
                if response.status_code >= 400:
                    content = await response.aread()
                    raise self._error_from_response(
                        response.status_code, response.reason_phrase, content
                    )

                async for chunk in response.aiter_bytes():
                    for payload in decoder.feed(chunk):
                        yield self._decode_stream_payload(payload)
                for payload in decoder.flush():
                    yield self._decode_stream_payload(payload)

        except httpx.TimeoutException as e:
            raise upstream_error(504, f"Request timeout: {str(e)}") from e
        except httpx.RequestError as e:
            raise upstream_error(502, f"Request error: {str(e)}") from e

    @staticmethod
    def _decode_stream_payload(payload: str) -> dict[str, Any]:
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            raise upstream_error(502, "Gemini stream returned a malformed event") from e
        if isinstance(data, dict) and isinstance(data.get("error"), dict):
            error = data["error"]
            raise upstream_error(
                int(error.get("code") or 500),
                str(error.get("message") or "Upstream stream error"),
            )
        return data

    async def embed_contents(
        self, model: str, texts: list[str], output_dimensionality: int | None = None
    ) -> list[list[float]]:
        if len(texts) == 1:
            payload: dict[str, Any] = {"content": {"parts": [{"text": texts[0]}]}}
            if output_dimensionality:
                payload["outputDimensionality"] = output_dimensionality
            body = await self._request("POST", self._model_path(model, "embedContent"), payload)
            embedding = body.get("embedding") or {}
            return [list(embedding.get("values") or [])]

        requests: list[dict[str, Any]] = []
        for text in texts:
            req: dict[str, Any] = {
                "model": f"{_MODEL_PREFIX}{model}",
                "content": {"parts": [{"text": text}]},
            }
            if output_dimensionality:
                req["outputDimensionality"] = output_dimensionality
            requests.append(req)

        body = await self._request(
            "POST", self._model_path(model, "batchEmbedContents"), {"requests": requests}
        )
        embeddings = body.get("embeddings") or []
        if len(embeddings) != len(texts):
            raise upstream_error(
                502,
                f"Gemini returned {len(embeddings)} embeddings for {len(texts)} inputs",
            )
        return [list((item or {}).get("values") or []) for item in embeddings]

    async def list_models(self) -> list[dict[str, Any]]:
        models: list[dict[str, Any]] = []
        page_token: Optional[str] = None
        while True:
            params: dict[str, Any] = {"pageSize": _LIST_MODELS_PAGE_SIZE}
            if page_token:
                params["pageToken"] = page_token
            body = await self._request("GET", "/models", params=params)
            page = body.get("models") or []
            self._strip_model_name_prefix(page)
            models.extend(m for m in page if isinstance(m, dict))
            page_token = body.get("nextPageToken")
            if not page_token:
                return models

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self._http.aclose()
