"""Domain entities for a retrieval session and the events it streams."""

from dataclasses import dataclass, field
from enum import Enum


class RetrievalStage(str, Enum):
    """Status label carried by each streamed event, in state-machine order."""

    STARTED = "Retrieving context"
    EMBEDDED = "Embedding complete"
    QUERIED = "Query complete"
    RERANKED = "Reranking complete"
    NO_CONTEXT = "No context"
    ERROR = "Error"
    DONE = "Done"


@dataclass(frozen=True)
class RetrievalEvent:
    """A single event written to the retrieval stream."""

    status: RetrievalStage
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"status": self.status.value, "message": self.message}


@dataclass(frozen=True)
class KnowledgebaseSettings:
    """Per-user retrieval settings: query breadth and reranking cut-offs."""

    top_k: int = 10
    top_n: int = 5
    relevance_threshold: float = 0.0


@dataclass
class RetrievalSession:
    """Ephemeral state of one inbound query. Never persisted."""

    user_id: str
    message: str
    settings: KnowledgebaseSettings = field(default_factory=KnowledgebaseSettings)
    stage: RetrievalStage = RetrievalStage.STARTED
    reranking_context: str = ""
