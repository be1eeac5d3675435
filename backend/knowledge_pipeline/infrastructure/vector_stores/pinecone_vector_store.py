"""Pinecone vector store — REST adapter over the index data plane.

Each user gets its own namespace, so queries are scoped without a filter.
Pinecone metadata must be flat, so the embedding id is stored alongside the
chunk metadata rather than nested.
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
from knowledge_pipeline.domain.exceptions import ProviderError, VectorStoreNotImplementedError
from knowledge_pipeline.infrastructure.vector_stores.points import document_filters, to_point

logger = logging.getLogger(__name__)

_API_VERSION = "2024-07"
_UPSERT_BATCH = 100


class PineconeVectorStore(VectorStoreProvider):
    """Infrastructure adapter — one Pinecone index, one namespace per user."""

    def __init__(
        self,
        index_host: str,
        api_key: str,
        http_client: httpx.AsyncClient | None = None,
    ):
        host = index_host.rstrip("/")
        self._host = host if host.startswith("http") else f"https://{host}"
        self._api_key = api_key
        self._http_client = http_client

    @property
    def provider_name(self) -> str:
        return "pinecone"

    def _get_headers(self) -> dict[str, str]:
        return {
            "Api-Key": self._api_key,
            "Content-Type": "application/json",
            "X-Pinecone-API-Version": _API_VERSION,
        }

    async def upsert(self, user_id: str, embeddings: list[Embedding]) -> int:
        vectors = []
        for point in map(to_point, embeddings):
            # Pinecone rejects null metadata values.
            metadata = {k: v for k, v in point.metadata.items() if v is not None}
            vectors.append(
                {
                    "id": point.point_id,
                    "values": point.vector,
                    "metadata": {**metadata, "embeddingId": point.embedding_id},
                }
            )

        upserted = 0
        for start in range(0, len(vectors), _UPSERT_BATCH):
            batch = vectors[start : start + _UPSERT_BATCH]
            data = await self._post(
                "/vectors/upsert", {"vectors": batch, "namespace": user_id}
            )
            upserted += int(data.get("upsertedCount", len(batch)))

        logger.info("Upsert successful for user %s (%d vectors)", user_id, upserted)
        return upserted

    async def query(self, user_id: str, vector: list[float], top_k: int) -> QueryResult:
        data = await self._post(
            "/query",
            {
                "vector": vector,
                "topK": top_k,
                "namespace": user_id,
                "includeMetadata": True,
            },
        )
        context = []
        for match in data.get("matches") or []:
            metadata = dict(match.get("metadata") or {})
            embedding_id = metadata.pop("embeddingId", None)
            context.append(
                ScoredPassage(
                    id=embedding_id or str(match.get("id")),
                    score=float(match.get("score", 0.0)),
                    metadata=metadata,
                )
            )
        context.sort(key=lambda p: p.score, reverse=True)
        return QueryResult(context=context[:top_k])

    async def delete(self, user_id: str, file: KnowledgebaseFile) -> int:
        """Serverless indexes cannot delete by metadata filter."""
        document_filters(file)
        raise VectorStoreNotImplementedError(self.provider_name, "delete")

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        client = self._http_client or httpx.AsyncClient(timeout=30.0)
        should_close = self._http_client is None
        try:
            response = await client.post(
                f"{self._host}{path}", headers=self._get_headers(), json=payload
            )
        except httpx.HTTPError as exc:
            logger.error("Pinecone request %s failed: %s", path, exc)
            raise ProviderError(self.provider_name, 503, f"{type(exc).__name__}: {exc}") from exc
        finally:
            if should_close:
                await client.aclose()

        if response.status_code >= 400:
            try:
                message = response.json().get("message", response.text)
            except Exception:
                message = response.text[:500]
            logger.error("Pinecone error %d on %s: %s", response.status_code, path, message)
            raise ProviderError(self.provider_name, response.status_code, message)

        return response.json() if response.content else {}
