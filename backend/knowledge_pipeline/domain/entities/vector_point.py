"""Domain entities for the vector store — persisted points and query results."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class VectorPoint:
    """The persisted form of an Embedding inside a vector store."""

    point_id: str
    vector: list[float]
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def embedding_id(self) -> str | None:
        return self.payload.get("embeddingId")

    @property
    def metadata(self) -> dict[str, Any]:
        return self.payload.get("metadata", {})


@dataclass(frozen=True)
class ScoredPassage:
    """A retrieved passage with its similarity score.

    ``metadata`` holds the flattened chunk metadata (text, citation, url, ...)
    so the passage can be reranked and cited without another lookup.
    """

    id: str
    score: float
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def text(self) -> str:
        return str(self.metadata.get("text", ""))

    @property
    def citation(self) -> str | None:
        return self.metadata.get("citation")


@dataclass
class QueryResult:
    """Passages returned by a similarity query, ordered by descending score."""

    context: list[ScoredPassage] = field(default_factory=list)
