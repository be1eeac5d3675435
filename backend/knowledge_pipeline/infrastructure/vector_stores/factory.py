"""Vector store factory — resolves the configured provider name once, at startup."""

import logging
from enum import Enum

import httpx

from knowledge_pipeline.application.interfaces.vector_store import VectorStoreProvider
from knowledge_pipeline.config import Settings
from knowledge_pipeline.infrastructure.vector_stores.in_memory_vector_store import InMemoryVectorStore
from knowledge_pipeline.infrastructure.vector_stores.pinecone_vector_store import PineconeVectorStore
from knowledge_pipeline.infrastructure.vector_stores.qdrant_vector_store import QdrantVectorStore

logger = logging.getLogger(__name__)


class VectorStoreKind(str, Enum):
    """Closed set of supported vector store providers."""

    QDRANT = "qdrant"
    PINECONE = "pinecone"
    MEMORY = "memory"


def create_vector_store(
    settings: Settings,
    http_client: httpx.AsyncClient | None = None,
) -> VectorStoreProvider:
    """Build the vector store named by ``settings.vector_store_provider``.

    Raises:
        ValueError: if the provider name is unknown or its settings are incomplete.
    """
    name = settings.vector_store_provider.strip().lower()
    try:
        kind = VectorStoreKind(name)
    except ValueError:
        raise ValueError(
            f"Invalid VECTOR_STORE_PROVIDER: {name!r}. "
            f"Must be one of: {', '.join(k.value for k in VectorStoreKind)}."
        ) from None

    if kind is VectorStoreKind.QDRANT:
        logger.info("Using Qdrant vector store (collection=%s)", settings.qdrant_collection)
        return QdrantVectorStore(
            url=settings.qdrant_url,
            collection=settings.qdrant_collection,
            api_key=settings.qdrant_api_key,
            http_client=http_client,
        )

    if kind is VectorStoreKind.PINECONE:
        if not settings.pinecone_index_host:
            raise ValueError("PINECONE_INDEX_HOST must be set when VECTOR_STORE_PROVIDER=pinecone")
        logger.info("Using Pinecone vector store (host=%s)", settings.pinecone_index_host)
        return PineconeVectorStore(
            index_host=settings.pinecone_index_host,
            api_key=settings.pinecone_api_key,
            http_client=http_client,
        )

    logger.info("Using in-memory vector store (local dev mode)")
    return InMemoryVectorStore()
