"""Qdrant vector store — REST adapter over httpx.

Points carry ``{"embeddingId": ..., "metadata": {...}}`` payloads; user scoping
and document deletes filter on ``metadata.userId``, ``metadata.name`` and
``metadata.url``.
"""

import logging
from typing import Any

import httpx

from knowledge_pipeline.application.interfaces.vector_store import VectorStoreProvider
from knowledge_pipeline.domain.entities import (
    Embedding,
    KnowledgebaseFile,
    QueryResult,
    ScoredPassage,
)
from knowledge_pipeline.domain.exceptions import ProviderError
from knowledge_pipeline.infrastructure.vector_stores.points import document_filters, to_point

logger = logging.getLogger(__name__)


def _match(key: str, value: str) -> dict[str, Any]:
    return {"key": f"metadata.{key}", "match": {"value": value}}


class QdrantVectorStore(VectorStoreProvider):
    """Infrastructure adapter — stores and searches points in one Qdrant collection."""

    def __init__(
        self,
        url: str,
        collection: str,
        api_key: str = "",
        http_client: httpx.AsyncClient | None = None,
    ):
        self._url = url.rstrip("/")
        self._collection = collection
        self._api_key = api_key
        self._http_client = http_client

    @property
    def provider_name(self) -> str:
        return "qdrant"

    def _get_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["api-key"] = self._api_key
        return headers

    def _points_url(self, suffix: str = "") -> str:
        return f"{self._url}/collections/{self._collection}/points{suffix}"

    async def upsert(self, user_id: str, embeddings: list[Embedding]) -> int:
        logger.info("Starting upsert of %d points for user %s", len(embeddings), user_id)
        if not embeddings:
            return 0

        points = [
            {"id": p.point_id, "vector": p.vector, "payload": p.payload}
            for p in map(to_point, embeddings)
        ]
        await self._request(
            "PUT", self._points_url(), params={"wait": "true"}, json={"points": points}
        )
        logger.info("Upsert successful for user %s", user_id)
        return len(points)

    async def query(self, user_id: str, vector: list[float], top_k: int) -> QueryResult:
        logger.info("Querying %s for user %s (top_k=%d)", self._collection, user_id, top_k)
        data = await self._request(
            "POST",
            self._points_url("/search"),
            json={
                "vector": vector,
                "limit": top_k,
                "filter": {"must": [_match("userId", user_id)]},
                "with_payload": True,
            },
        )
        context = [
            ScoredPassage(
                id=(hit.get("payload") or {}).get("embeddingId") or str(hit.get("id")),
                score=float(hit.get("score", 0.0)),
                metadata=(hit.get("payload") or {}).get("metadata", {}),
            )
            for hit in data.get("result") or []
        ]
        context.sort(key=lambda p: p.score, reverse=True)
        return QueryResult(context=context[:top_k])

    async def delete(self, user_id: str, file: KnowledgebaseFile) -> int:
        filters = document_filters(file)
        point_filter = {
            "must": [_match("userId", user_id)]
            + [_match(key, value) for key, value in filters.items()]
        }

        counted = await self._request(
            "POST",
            self._points_url("/count"),
            json={"filter": point_filter, "exact": True},
        )
        count = int((counted.get("result") or {}).get("count", 0))

        await self._request(
            "POST",
            self._points_url("/delete"),
            params={"wait": "true"},
            json={"filter": point_filter},
        )
        logger.info(
            "Deleted %d vectors for user %s and file %s", count, user_id, file.name or file.url
        )
        return count

    async def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        client = self._http_client or httpx.AsyncClient(timeout=30.0)
        should_close = self._http_client is None
        try:
            response = await client.request(method, url, headers=self._get_headers(), **kwargs)
        except httpx.HTTPError as exc:
            logger.error("Qdrant request %s %s failed: %s", method, url, exc)
            raise ProviderError(self.provider_name, 503, f"{type(exc).__name__}: {exc}") from exc
        finally:
            if should_close:
                await client.aclose()

        if response.status_code >= 400:
            try:
                message = response.json().get("status", {}).get("error", response.text)
            except Exception:
                message = response.text[:500]
            logger.error("Qdrant error %d on %s %s: %s", response.status_code, method, url, message)
            raise ProviderError(self.provider_name, response.status_code, message)

        return response.json()
