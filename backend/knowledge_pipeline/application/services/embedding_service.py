"""Embedding service — turns a document's chunks and user messages into embeddings.

Coordinates:
1. Fanning every chunk out through the rate-limited embedding client
2. Building stable ids, flat metadata and citations for the successes
3. Reporting progress and per-chunk failures to an observer

A failing chunk never fails the document; only a setup error does.
"""

import json
import logging
import re
import time
import uuid
from typing import Any

from knowledge_pipeline.application.interfaces.progress_observer import EmbeddingProgressObserver
from knowledge_pipeline.application.services.embedding_client import (
    EmbeddingOutcome,
    RateLimitedEmbeddingClient,
)
from knowledge_pipeline.domain.entities import (
    Chunk,
    ChunkFailure,
    DocumentEmbeddingResult,
    Embedding,
    KnowledgebaseFile,
)
from knowledge_pipeline.domain.exceptions import EmbeddingTimeoutError

logger = logging.getLogger(__name__)

_NON_ASCII = re.compile(r"[^\x00-\x7F]")


def to_ascii(value: str) -> str:
    """Strip every non-ASCII character."""
    return _NON_ASCII.sub("", value)


def chunk_embedding_id(file: KnowledgebaseFile, index: int) -> str:
    """Stable id for the chunk at zero-based ``index`` of ``file``."""
    return f"{to_ascii(file.name or '')}#{file.key or ''}#{index + 1}"


def flatten_metadata(metadata: dict[str, Any]) -> dict[str, Any]:
    """Flatten nested values into ``["key:<json>", ...]`` string lists.

    Mappings flatten by key, other lists by position. Primitives and lists of
    plain strings pass through unchanged, so the stored payload is always a
    flat key/value structure.
    """
    flat: dict[str, Any] = {}
    for key, value in metadata.items():
        if isinstance(value, dict):
            flat[key] = [f"{k}:{json.dumps(v)}" for k, v in value.items()]
        elif isinstance(value, (list, tuple)) and not all(isinstance(v, str) for v in value):
            flat[key] = [f"{i}:{json.dumps(v)}" for i, v in enumerate(value)]
        else:
            flat[key] = value
    return flat


def build_citation(file: KnowledgebaseFile, page_number: Any = None) -> str:
    """Markdown link citing the file, with the page when known."""
    page_info = f", Page {page_number}" if page_number else ""
    return f"[{file.name}{page_info}]({file.url})"


class DocumentEmbeddingService:
    """Application service for embedding document chunks and query messages."""

    def __init__(
        self,
        client: RateLimitedEmbeddingClient,
        observer: EmbeddingProgressObserver | None = None,
    ):
        self._client = client
        self._observer = observer

    async def embed_message(self, user_id: str, message: str) -> Embedding:
        """Embed a single user message through the shared limiter.

        Raises:
            EmbeddingTimeoutError / ProviderError: propagated to the caller.
        """
        start = time.monotonic()
        logger.info("Embedding message for user: %s", user_id)
        try:
            values = await self._client.embed_one(message, label=f"message from {user_id}")
        except Exception as exc:
            logger.error("Failed to embed message for user: %s. Error: %s", user_id, exc)
            raise
        finally:
            logger.info(
                "Embedding message for user: %s took %dms",
                user_id,
                int((time.monotonic() - start) * 1000),
            )

        logger.info("Successfully generated embeddings for message by user: %s", user_id)
        return Embedding(id=str(uuid.uuid4()), values=values, metadata={"userId": user_id})

    async def embed_document(
        self,
        user_id: str,
        file: KnowledgebaseFile,
        chunks: list[Chunk],
    ) -> DocumentEmbeddingResult:
        """Embed every chunk of a document independently.

        Returns:
            The successful embeddings (in chunk order) and one ChunkFailure per
            failed chunk. Raises only when the scheduling itself fails.
        """
        start = time.monotonic()
        total = len(chunks)
        completed = 0

        logger.info("Starting embedding process for document: %s (%d chunks)", file.name, total)
        self._notify("on_start", file, total)

        def on_result(outcome: EmbeddingOutcome) -> None:
            nonlocal completed
            completed += 1
            self._notify("on_progress", file, completed, total)

        try:
            outcomes = await self._client.embed_many(
                [chunk.text for chunk in chunks], on_result=on_result
            )
        except Exception as exc:
            logger.error("Failed to embed document: %s. Error: %s", file.name, exc)
            raise
        finally:
            logger.info(
                "Embedding document for file: %s took %dms",
                file.name,
                int((time.monotonic() - start) * 1000),
            )

        result = DocumentEmbeddingResult(total_chunks=total)
        for outcome in outcomes:
            if outcome.ok:
                result.embeddings.append(
                    self._build_embedding(user_id, file, chunks[outcome.index], outcome)
                )
            else:
                failure = ChunkFailure(
                    index=outcome.index,
                    reason=str(outcome.error),
                    timed_out=isinstance(outcome.error, EmbeddingTimeoutError),
                )
                result.failures.append(failure)
                logger.error(
                    "Embedding failed for chunk %d of file %s: %s",
                    failure.index + 1,
                    file.name,
                    failure.reason,
                )
                self._notify("on_failure", file, failure)

        logger.info(
            "Embedded document %s: %d/%d chunks succeeded, %d failed",
            file.name,
            result.succeeded,
            total,
            result.failed,
        )
        self._notify("on_finish", file, result.succeeded, result.failed)
        return result

    @staticmethod
    def _build_embedding(
        user_id: str,
        file: KnowledgebaseFile,
        chunk: Chunk,
        outcome: EmbeddingOutcome,
    ) -> Embedding:
        metadata = {
            **flatten_metadata(chunk.metadata),
            "text": chunk.text,
            "userId": user_id,
            "name": file.name,
            "url": file.url,
            "citation": build_citation(file, chunk.page_number),
        }
        return Embedding(
            id=chunk_embedding_id(file, outcome.index),
            values=outcome.vector or [],
            metadata=metadata,
        )

    def _notify(self, event: str, *args: Any) -> None:
        """Forward to the observer; observer failures never affect the embedding run."""
        if self._observer is None:
            return
        try:
            getattr(self._observer, event)(*args)
        except Exception:
            logger.exception("Embedding progress observer failed on %s", event)
