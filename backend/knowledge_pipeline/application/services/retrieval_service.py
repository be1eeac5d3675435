"""Retrieval service — streams the stages of context retrieval for one user query.

State machine per session:

    Start → Embedding → Querying → (Reranking | NoContext) → Done
                 └──────────┴──────────┴── Error ──────────→ Done

Every transition writes exactly one event. Stage failures become an ``Error``
event and never escape the service; ``Done`` is written exactly once on every
exit path, including cancellation.
"""

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import TypeVar

from knowledge_pipeline.application.interfaces.reranker import Reranker
from knowledge_pipeline.application.interfaces.user_settings_provider import UserSettingsProvider
from knowledge_pipeline.application.interfaces.vector_store import VectorStoreProvider
from knowledge_pipeline.application.services.embedding_service import DocumentEmbeddingService
from knowledge_pipeline.domain.entities import (
    KnowledgebaseSettings,
    RetrievalEvent,
    RetrievalSession,
    RetrievalStage,
)
from knowledge_pipeline.domain.exceptions import RetrievalTimeoutError, RetrievalValidationError
from knowledge_pipeline.infrastructure.logging.colored_logger import PipelineLogger, PipelineStage

logger = logging.getLogger(__name__)

T = TypeVar("T")

Emit = Callable[[RetrievalEvent], None]

_DEFAULT_SESSION_TIMEOUT = 60.0

plog = PipelineLogger("RetrievalPipeline")


class RetrievalService:
    """Application service orchestrating embed → query → rerank for a single query."""

    def __init__(
        self,
        embedding_service: DocumentEmbeddingService,
        vector_store: VectorStoreProvider,
        reranker: Reranker,
        user_settings: UserSettingsProvider,
        *,
        session_timeout: float | None = _DEFAULT_SESSION_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._embedding_service = embedding_service
        self._vector_store = vector_store
        self._reranker = reranker
        self._user_settings = user_settings
        self._session_timeout = session_timeout
        self._clock = clock

    async def open_session(self, user_id: str | None, message: str | None) -> RetrievalSession:
        """Validate the inbound query and resolve the user's settings.

        Raises:
            RetrievalValidationError: missing userId/message or unknown user.
        """
        if not user_id or not message:
            logger.warning("Missing userId or message in request.")
            raise RetrievalValidationError("No userId or message provided")

        settings = await self._user_settings.get_settings(user_id)
        logger.info("User validated successfully: %s", user_id)
        return RetrievalSession(user_id=user_id, message=message, settings=settings)

    async def stream(self, session: RetrievalSession) -> AsyncIterator[RetrievalEvent]:
        """Yield the session's events in state-machine order.

        The stages run in a producer task feeding an ordered queue. Closing the
        generator early cancels the producer.
        """
        queue: asyncio.Queue[RetrievalEvent | None] = asyncio.Queue()

        async def produce() -> None:
            try:
                await self.run(session, queue.put_nowait)
            finally:
                queue.put_nowait(None)

        producer = asyncio.create_task(produce())
        try:
            while True:
                event = await queue.get()
                if event is None:
                    break
                yield event
        finally:
            if not producer.done():
                producer.cancel()
            await asyncio.gather(producer, return_exceptions=True)

    async def retrieve(
        self,
        user_id: str,
        message: str,
        settings: KnowledgebaseSettings | None = None,
    ) -> list[RetrievalEvent]:
        """Run a whole session and collect its events."""
        session = RetrievalSession(
            user_id=user_id,
            message=message,
            settings=settings or await self._user_settings.get_settings(user_id),
        )
        events: list[RetrievalEvent] = []
        await self.run(session, events.append)
        return events

    async def run(self, session: RetrievalSession, emit: Emit) -> None:
        """Drive the state machine, writing each transition through ``emit``."""
        deadline = (
            self._clock() + self._session_timeout if self._session_timeout else None
        )

        def transition(stage: RetrievalStage, message: str) -> None:
            session.stage = stage
            emit(RetrievalEvent(status=stage, message=message))

        start = time.perf_counter()
        plog.step_start(PipelineStage.RETRIEVAL, "Retrieving context", user=session.user_id)
        transition(RetrievalStage.STARTED, session.message)

        try:
            embedding = await self._within_deadline(
                self._embedding_service.embed_message(session.user_id, session.message),
                deadline,
                "embedding",
            )
            transition(
                RetrievalStage.EMBEDDED,
                f"Message embedding complete for: {session.message}",
            )
            plog.step_complete(PipelineStage.EMBEDDING, "Message embedding complete")

            plog.step_start(
                PipelineStage.VECTOR_STORE,
                f"Querying {self._vector_store.provider_name}",
                top_k=session.settings.top_k,
            )
            result = await self._within_deadline(
                self._vector_store.query(
                    session.user_id, embedding.values, session.settings.top_k
                ),
                deadline,
                "querying",
            )
            transition(
                RetrievalStage.QUERIED,
                f"Query results retrieved from {self._vector_store.provider_name}.",
            )
            plog.step_complete(
                PipelineStage.VECTOR_STORE, "Query complete", passages=len(result.context)
            )

            if result.context:
                session.reranking_context = await self._within_deadline(
                    self._reranker.rerank(session.message, result.context, session.settings),
                    deadline,
                    "reranking",
                )
                transition(RetrievalStage.RERANKED, session.reranking_context)
                plog.step_complete(PipelineStage.RERANK, "Reranking complete")
            else:
                transition(RetrievalStage.NO_CONTEXT, "No context found for the message.")
                plog.step_warning(PipelineStage.RETRIEVAL, "No context found for the message.")
        except Exception as exc:
            transition(RetrievalStage.ERROR, f"Error retrieving context: {exc}")
            plog.step_error(
                PipelineStage.ERROR,
                f"Error retrieving context for user: {session.user_id}",
                error=exc,
            )
        finally:
            outcome = session.stage.name
            transition(RetrievalStage.DONE, f"Processing complete for: {session.message}")
            plog.step_complete(PipelineStage.COMPLETE, "Processing complete", outcome=outcome)
            plog.stats(
                user=session.user_id,
                elapsed=f"{time.perf_counter() - start:.2f}s",
            )

    async def _within_deadline(
        self,
        awaitable: Awaitable[T],
        deadline: float | None,
        stage: str,
    ) -> T:
        """Await one stage within what is left of the session budget; cancel it on expiry."""
        if deadline is None:
            return await awaitable

        remaining = deadline - self._clock()
        if remaining <= 0:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise RetrievalTimeoutError(stage, self._session_timeout or 0.0)
        try:
            return await asyncio.wait_for(awaitable, timeout=remaining)
        except asyncio.TimeoutError:
            raise RetrievalTimeoutError(stage, self._session_timeout or 0.0) from None
