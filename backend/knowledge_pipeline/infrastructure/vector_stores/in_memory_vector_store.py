"""In-process vector store — cosine similarity over points kept in a dict.

Used for local development (VECTOR_STORE_PROVIDER=memory) and tests.
"""

import logging
import math

from knowledge_pipeline.application.interfaces.vector_store import VectorStoreProvider
from knowledge_pipeline.domain.entities import (
    Embedding,
    KnowledgebaseFile,
    QueryResult,
    ScoredPassage,
    VectorPoint,
)
from knowledge_pipeline.infrastructure.vector_stores.points import document_filters, to_point

logger = logging.getLogger(__name__)


def cosine_similarity(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class InMemoryVectorStore(VectorStoreProvider):
    """Vector store adapter keeping every point in memory."""

    def __init__(self) -> None:
        self._points: dict[str, VectorPoint] = {}

    @property
    def provider_name(self) -> str:
        return "memory"

    @property
    def points(self) -> list[VectorPoint]:
        return list(self._points.values())

    async def upsert(self, user_id: str, embeddings: list[Embedding]) -> int:
        for embedding in embeddings:
            point = to_point(embedding)
            self._points[point.point_id] = point
        logger.info("Upserted %d points for user %s", len(embeddings), user_id)
        return len(embeddings)

    async def query(self, user_id: str, vector: list[float], top_k: int) -> QueryResult:
        scored = [
            ScoredPassage(
                id=point.embedding_id or point.point_id,
                score=cosine_similarity(vector, point.vector),
                metadata=point.metadata,
            )
            for point in self._points.values()
            if point.metadata.get("userId") == user_id
        ]
        scored.sort(key=lambda p: p.score, reverse=True)
        return QueryResult(context=scored[: max(0, top_k)])

    async def delete(self, user_id: str, file: KnowledgebaseFile) -> int:
        filters = document_filters(file)
        doomed = [
            point_id
            for point_id, point in self._points.items()
            if point.metadata.get("userId") == user_id
            and all(point.metadata.get(k) == v for k, v in filters.items())
        ]
        for point_id in doomed:
            del self._points[point_id]
        logger.info("Deleted %d points for user %s matching %s", len(doomed), user_id, filters)
        return len(doomed)
