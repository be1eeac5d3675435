from .chunk import Chunk, KnowledgebaseFile
from .embedding import ChunkFailure, DocumentEmbeddingResult, Embedding
from .retrieval import (
    KnowledgebaseSettings,
    RetrievalEvent,
    RetrievalSession,
    RetrievalStage,
)
from .vector_point import QueryResult, ScoredPassage, VectorPoint

__all__ = [
    "Chunk",
    "KnowledgebaseFile",
    "ChunkFailure",
    "DocumentEmbeddingResult",
    "Embedding",
    "KnowledgebaseSettings",
    "RetrievalEvent",
    "RetrievalSession",
    "RetrievalStage",
    "QueryResult",
    "ScoredPassage",
    "VectorPoint",
]
