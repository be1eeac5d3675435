"""Observer interface for document embedding progress and chunk failures."""

from abc import ABC, abstractmethod

from knowledge_pipeline.domain.entities import ChunkFailure, KnowledgebaseFile


class EmbeddingProgressObserver(ABC):
    """Receives fire-and-forget notifications while a document is embedded.

    Observers are for operator-facing reporting only; the embedding result
    never depends on them.
    """

    def on_start(self, file: KnowledgebaseFile, total: int) -> None:
        """Called once before any chunk is scheduled."""

    @abstractmethod
    def on_progress(self, file: KnowledgebaseFile, completed: int, total: int) -> None:
        """Called after each chunk finishes, with a monotonically increasing count."""
        ...

    @abstractmethod
    def on_failure(self, file: KnowledgebaseFile, failure: ChunkFailure) -> None:
        """Called once per chunk that failed to embed."""
        ...

    def on_finish(self, file: KnowledgebaseFile, succeeded: int, failed: int) -> None:
        """Called once after every chunk has finished."""
