"""Cohere rerank adapter — scores passages with the /rerank endpoint."""

import logging
from typing import Any

import httpx

from knowledge_pipeline.application.interfaces.reranker import Reranker
from knowledge_pipeline.application.services.context_formatter import format_reranked_context
from knowledge_pipeline.domain.entities import KnowledgebaseSettings, ScoredPassage
from knowledge_pipeline.domain.exceptions import ProviderError

logger = logging.getLogger(__name__)


class CohereReranker(Reranker):
    """Infrastructure adapter — reranks with Cohere and renders the kept passages."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.cohere.com/v2",
        model: str = "rerank-v3.5",
        http_client: httpx.AsyncClient | None = None,
    ):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._http_client = http_client

    @property
    def provider_name(self) -> str:
        return "cohere"

    def _get_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    async def rerank(
        self,
        query: str,
        passages: list[ScoredPassage],
        settings: KnowledgebaseSettings,
    ) -> str:
        if not passages:
            return format_reranked_context([])

        payload: dict[str, Any] = {
            "model": self._model,
            "query": query,
            "documents": [p.text for p in passages],
            "top_n": min(settings.top_n, len(passages)),
        }

        client = self._http_client or httpx.AsyncClient(timeout=30.0)
        should_close = self._http_client is None
        try:
            response = await client.post(
                f"{self._base_url}/rerank", headers=self._get_headers(), json=payload
            )
        except httpx.HTTPError as exc:
            raise ProviderError(self.provider_name, 503, f"{type(exc).__name__}: {exc}") from exc
        finally:
            if should_close:
                await client.aclose()

        if response.status_code != 200:
            try:
                message = response.json().get("message", response.text)
            except Exception:
                message = response.text[:500]
            logger.error("Cohere rerank error %d: %s", response.status_code, message)
            raise ProviderError(self.provider_name, response.status_code, message)

        results = response.json().get("results") or []
        kept = [
            (passages[item["index"]], float(item["relevance_score"]))
            for item in results
            if 0 <= item.get("index", -1) < len(passages)
            and float(item.get("relevance_score", 0.0)) >= settings.relevance_threshold
        ]
        kept.sort(key=lambda pair: pair[1], reverse=True)

        logger.info(
            "Reranked %d passages, kept %d (top_n=%d, threshold=%.2f)",
            len(passages),
            len(kept),
            settings.top_n,
            settings.relevance_threshold,
        )
        return format_reranked_context(kept[: settings.top_n])
