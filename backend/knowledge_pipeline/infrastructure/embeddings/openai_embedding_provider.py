"""OpenAI-compatible embedding provider — calls the /embeddings endpoint.

Works against OpenAI and any gateway exposing the same API (e.g. OpenRouter).
Default model: text-embedding-3-large (3072 dimensions).
"""

import logging
from typing import Any

import httpx

from knowledge_pipeline.application.interfaces.embedding_provider import EmbeddingProvider
from knowledge_pipeline.domain.exceptions import ProviderError

logger = logging.getLogger(__name__)


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Infrastructure adapter — generates embeddings via the /embeddings API.

    Timeouts are owned by the rate-limited client, so this adapter sets none of
    its own on the shared http client.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        model: str = "text-embedding-3-large",
        dimensions: int | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._dimensions = dimensions
        self._http_client = http_client

    @property
    def provider_name(self) -> str:
        return "openai"

    def _get_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is not None:
            return self._http_client
        return httpx.AsyncClient(timeout=None)

    async def create_embedding(self, text: str) -> list[float]:
        """Generate the embedding for one text."""
        url = f"{self._base_url}/embeddings"
        payload: dict[str, Any] = {
            "model": self._model,
            "input": text,
            "encoding_format": "float",
        }
        if self._dimensions:
            payload["dimensions"] = self._dimensions

        client = await self._get_client()
        should_close = self._http_client is None

        try:
            try:
                response = await client.post(url, headers=self._get_headers(), json=payload)
            except httpx.HTTPError as exc:
                raise ProviderError(
                    provider=self.provider_name,
                    status_code=503,
                    message=f"{type(exc).__name__}: {exc}",
                ) from exc

            if response.status_code != 200:
                self._raise_provider_error(response)

            data = response.json().get("data") or []
            if not data or "embedding" not in data[0]:
                raise ProviderError(
                    provider=self.provider_name,
                    status_code=502,
                    message="No embedding in response",
                )

            embedding = data[0]["embedding"]
            logger.debug("Generated embedding (model=%s, dims=%d)", self._model, len(embedding))
            return embedding

        finally:
            if should_close:
                await client.aclose()

    def _raise_provider_error(self, response: httpx.Response) -> None:
        """Raise ProviderError from a non-200 httpx Response."""
        try:
            data = response.json()
            error = data.get("error", {})
            message = error.get("message", response.text)
        except Exception:
            message = response.text[:500]

        logger.error("Embedding API error %d: %s", response.status_code, message)
        raise ProviderError(
            provider=self.provider_name,
            status_code=response.status_code,
            message=message,
        )
