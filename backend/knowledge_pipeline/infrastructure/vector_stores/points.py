"""Helpers shared by the vector store adapters."""

import uuid

from knowledge_pipeline.domain.entities import Embedding, KnowledgebaseFile, VectorPoint
from knowledge_pipeline.domain.exceptions import RetrievalValidationError

# Fixed namespace so point ids are identical across processes and runs.
POINT_ID_NAMESPACE = uuid.UUID("6f1c2a4e-9b7d-4c53-8e2a-0d5b7f3c9a41")


def point_id_for(embedding_id: str) -> str:
    """Deterministic store-local point id; re-upserting an embedding overwrites its point."""
    return str(uuid.uuid5(POINT_ID_NAMESPACE, embedding_id))


def to_point(embedding: Embedding) -> VectorPoint:
    """Map an Embedding to the persisted VectorPoint form."""
    return VectorPoint(
        point_id=point_id_for(embedding.id),
        vector=list(embedding.values),
        payload={
            "embeddingId": embedding.id,
            "metadata": dict(embedding.metadata),
        },
    )


def document_filters(file: KnowledgebaseFile) -> dict[str, str]:
    """Metadata fields identifying a document, only those supplied.

    Raises:
        RetrievalValidationError: neither name nor url is set.
    """
    filters: dict[str, str] = {}
    if file.name:
        filters["name"] = file.name
    if file.url:
        filters["url"] = file.url
    if not filters:
        raise RetrievalValidationError("No filename or URL provided for deletion.")
    return filters
