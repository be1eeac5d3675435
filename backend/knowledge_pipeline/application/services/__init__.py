from .context_formatter import format_reranked_context
from .embedding_client import EmbeddingOutcome, RateLimitedEmbeddingClient
from .embedding_service import DocumentEmbeddingService
from .knowledgebase_service import IngestionReport, KnowledgebaseService
from .rate_limiter import RateLimitConfig, ReservoirRateLimiter
from .retrieval_service import RetrievalService

__all__ = [
    "format_reranked_context",
    "EmbeddingOutcome",
    "RateLimitedEmbeddingClient",
    "DocumentEmbeddingService",
    "IngestionReport",
    "KnowledgebaseService",
    "RateLimitConfig",
    "ReservoirRateLimiter",
    "RetrievalService",
]
