"""Abstract interface (port) for vector store providers."""

from abc import ABC, abstractmethod

from knowledge_pipeline.domain.entities import (
    Embedding,
    KnowledgebaseFile,
    QueryResult,
)


class VectorStoreProvider(ABC):
    """Port for persisting, querying and deleting embedding vectors.

    Every variant must raise VectorStoreNotImplementedError for an operation it
    cannot back, never silently return an empty answer.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        ...

    @abstractmethod
    async def upsert(self, user_id: str, embeddings: list[Embedding]) -> int:
        """Store embeddings as points. Re-running with the same embedding ids overwrites.

        Returns:
            Number of points written.
        """
        ...

    @abstractmethod
    async def query(self, user_id: str, vector: list[float], top_k: int) -> QueryResult:
        """Return up to ``top_k`` of the user's passages by descending similarity."""
        ...

    @abstractmethod
    async def delete(self, user_id: str, file: KnowledgebaseFile) -> int:
        """Delete the user's points whose payload matches the file's name and/or url.

        Raises:
            RetrievalValidationError: when neither name nor url is set. Raised
                before any network call.

        Returns:
            Number of points deleted.
        """
        ...
