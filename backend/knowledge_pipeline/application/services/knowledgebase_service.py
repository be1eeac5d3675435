"""Knowledgebase service — adds documents to and removes them from the vector store."""

import logging
from dataclasses import dataclass

from knowledge_pipeline.application.interfaces.vector_store import VectorStoreProvider
from knowledge_pipeline.application.services.embedding_service import DocumentEmbeddingService
from knowledge_pipeline.domain.entities import (
    Chunk,
    DocumentEmbeddingResult,
    KnowledgebaseFile,
)
from knowledge_pipeline.domain.exceptions import RetrievalValidationError
from knowledge_pipeline.infrastructure.logging.colored_logger import PipelineLogger, PipelineStage

logger = logging.getLogger(__name__)

plog = PipelineLogger("EmbeddingPipeline")


@dataclass
class IngestionReport:
    """Outcome of ingesting one document."""

    embedding: DocumentEmbeddingResult
    upserted: int = 0


class KnowledgebaseService:
    """Application service for document ingestion and removal."""

    def __init__(
        self,
        embedding_service: DocumentEmbeddingService,
        vector_store: VectorStoreProvider,
    ):
        self._embedding_service = embedding_service
        self._vector_store = vector_store

    async def ingest_document(
        self,
        user_id: str,
        file: KnowledgebaseFile,
        chunks: list[Chunk],
    ) -> IngestionReport:
        """Embed a document's chunks and store the ones that succeeded.

        Partial chunk loss is reported, not raised; callers needing all-or-nothing
        semantics check ``report.embedding.failed``.
        """
        if not user_id:
            raise RetrievalValidationError("No userId provided")
        if not file.name and not file.url:
            raise RetrievalValidationError("No filename or URL provided for the document.")

        result = await self._embedding_service.embed_document(user_id, file, chunks)
        report = IngestionReport(embedding=result)

        if result.embeddings:
            with plog.timed_step(
                PipelineStage.VECTOR_STORE,
                f"Upserting {file.name} into {self._vector_store.provider_name}",
                points=len(result.embeddings),
            ):
                report.upserted = await self._vector_store.upsert(user_id, result.embeddings)
        else:
            logger.warning("No chunks embedded for document %s; nothing to upsert", file.name)

        return report

    async def remove_document(self, user_id: str, file: KnowledgebaseFile) -> int:
        """Delete every stored vector of the document. Returns the deleted count."""
        if not user_id:
            raise RetrievalValidationError("No userId provided")
        return await self._vector_store.delete(user_id, file)
