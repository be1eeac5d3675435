"""Domain entities for embeddings and the outcome of a document embedding run."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Embedding:
    """A vector representation of text plus its provenance metadata.

    ``id`` is reproducible for document chunks so that re-embedding a document
    overwrites rather than duplicates its vectors.
    """

    id: str
    values: list[float]
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ChunkFailure:
    """A single chunk that could not be embedded."""

    index: int
    reason: str
    timed_out: bool = False


@dataclass
class DocumentEmbeddingResult:
    """Partial result of embedding a document: the successes plus a failure report."""

    embeddings: list[Embedding] = field(default_factory=list)
    failures: list[ChunkFailure] = field(default_factory=list)
    total_chunks: int = 0

    @property
    def succeeded(self) -> int:
        return len(self.embeddings)

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def is_complete(self) -> bool:
        """True when every chunk was embedded."""
        return not self.failures and self.succeeded == self.total_chunks
