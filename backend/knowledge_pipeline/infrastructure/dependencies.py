"""Dependency graph and FastAPI dependency injection.

The graph is built once per process (in the FastAPI lifespan) so that every
embedding call shares one rate limiter and one HTTP connection pool, and the
vector store provider is resolved once from configuration.
"""

import logging
from dataclasses import dataclass

import httpx
from fastapi import Request

from knowledge_pipeline.application.interfaces import (
    Reranker,
    UserSettingsProvider,
    VectorStoreProvider,
)
from knowledge_pipeline.application.services import (
    DocumentEmbeddingService,
    KnowledgebaseService,
    RateLimitConfig,
    RateLimitedEmbeddingClient,
    ReservoirRateLimiter,
    RetrievalService,
)
from knowledge_pipeline.config import Settings
from knowledge_pipeline.infrastructure.embeddings import OpenAIEmbeddingProvider
from knowledge_pipeline.infrastructure.logging.progress_observer import LoggingProgressObserver
from knowledge_pipeline.infrastructure.reranking import CohereReranker, ScoreOrderReranker
from knowledge_pipeline.infrastructure.users.config_user_settings_provider import (
    ConfigUserSettingsProvider,
)
from knowledge_pipeline.infrastructure.vector_stores import create_vector_store

logger = logging.getLogger(__name__)


@dataclass
class PipelineContainer:
    """Process-wide services, wired from Settings."""

    http_client: httpx.AsyncClient
    limiter: ReservoirRateLimiter
    vector_store: VectorStoreProvider
    reranker: Reranker
    user_settings: UserSettingsProvider
    embedding_service: DocumentEmbeddingService
    retrieval_service: RetrievalService
    knowledgebase_service: KnowledgebaseService

    async def aclose(self) -> None:
        await self.http_client.aclose()


def build_container(
    settings: Settings,
    http_client: httpx.AsyncClient | None = None,
) -> PipelineContainer:
    """Construct the dependency graph. Raises ValueError on a bad vector store setting."""
    client = http_client or httpx.AsyncClient(
        timeout=httpx.Timeout(60.0, connect=10.0),
        limits=httpx.Limits(max_connections=settings.embedding_max_concurrent + 10),
    )

    limiter = ReservoirRateLimiter(
        RateLimitConfig(
            reservoir=settings.embedding_reservoir,
            interval=settings.embedding_reservoir_interval_seconds,
            max_concurrent=settings.embedding_max_concurrent,
            min_time=settings.embedding_min_time_ms / 1000,
        )
    )
    provider = OpenAIEmbeddingProvider(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        model=settings.embedding_model,
        dimensions=settings.embedding_dimensions,
        http_client=client,
    )
    embedding_client = RateLimitedEmbeddingClient(
        provider, limiter, timeout=settings.embedding_timeout_seconds
    )
    embedding_service = DocumentEmbeddingService(
        embedding_client, observer=LoggingProgressObserver()
    )

    vector_store = create_vector_store(settings, http_client=client)

    reranker: Reranker
    if settings.cohere_api_key.strip():
        reranker = CohereReranker(
            api_key=settings.cohere_api_key,
            base_url=settings.cohere_base_url,
            model=settings.rerank_model,
            http_client=client,
        )
    else:
        logger.warning("COHERE_API_KEY is not configured; reranking keeps similarity order.")
        reranker = ScoreOrderReranker()

    user_settings = ConfigUserSettingsProvider(settings)

    return PipelineContainer(
        http_client=client,
        limiter=limiter,
        vector_store=vector_store,
        reranker=reranker,
        user_settings=user_settings,
        embedding_service=embedding_service,
        retrieval_service=RetrievalService(
            embedding_service,
            vector_store,
            reranker,
            user_settings,
            session_timeout=settings.retrieval_timeout_seconds,
        ),
        knowledgebase_service=KnowledgebaseService(embedding_service, vector_store),
    )


def get_container(request: Request) -> PipelineContainer:
    return request.app.state.container


def get_retrieval_service(request: Request) -> RetrievalService:
    """Provides the process-wide RetrievalService."""
    return get_container(request).retrieval_service


def get_knowledgebase_service(request: Request) -> KnowledgebaseService:
    """Provides the process-wide KnowledgebaseService."""
    return get_container(request).knowledgebase_service
