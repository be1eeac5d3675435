"""Vector store adapters and the provider factory."""

from .factory import VectorStoreKind, create_vector_store
from .in_memory_vector_store import InMemoryVectorStore
from .pinecone_vector_store import PineconeVectorStore
from .qdrant_vector_store import QdrantVectorStore

__all__ = [
    "VectorStoreKind",
    "create_vector_store",
    "InMemoryVectorStore",
    "PineconeVectorStore",
    "QdrantVectorStore",
]
