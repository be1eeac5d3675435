"""Knowledgebase endpoints — streamed context retrieval, document ingestion and removal."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse, StreamingResponse

from knowledge_pipeline.application.schemas import (
    ChunkFailureSchema,
    DeleteDocumentRequest,
    DeleteDocumentResponse,
    IngestDocumentRequest,
    IngestDocumentResponse,
    RetrievalEventSchema,
)
from knowledge_pipeline.application.services import KnowledgebaseService, RetrievalService
from knowledge_pipeline.domain.entities import Chunk, KnowledgebaseFile
from knowledge_pipeline.domain.exceptions import (
    ProviderError,
    RetrievalValidationError,
    VectorStoreNotImplementedError,
)
from knowledge_pipeline.infrastructure.dependencies import (
    get_knowledgebase_service,
    get_retrieval_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/knowledgebase", tags=["Knowledgebase"])


def _http_error(exc: Exception) -> HTTPException:
    """Map pipeline errors raised before any response was sent to HTTP errors."""
    if isinstance(exc, RetrievalValidationError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, VectorStoreNotImplementedError):
        return HTTPException(status_code=501, detail=str(exc))
    if isinstance(exc, ProviderError):
        return HTTPException(
            status_code=exc.status_code if 400 <= exc.status_code < 600 else 502,
            detail=f"[{exc.provider}] {exc.message}",
        )
    return HTTPException(status_code=500, detail="Internal server error")


@router.get("/retrieve")
async def retrieve_context(
    user_id: str | None = Query(None, alias="userId"),
    message: str | None = Query(None),
    service: RetrievalService = Depends(get_retrieval_service),
):
    """Stream the retrieval of context for a message via Server-Sent Events (SSE).

    Each frame is ``data: {"status": ..., "message": ...}``. Once the stream
    has started, failures arrive as an ``Error`` frame and the stream always
    ends with a single ``Done`` frame.
    """
    logger.info("GET request received for retrieving context.")
    try:
        session = await service.open_session(user_id, message)
    except RetrievalValidationError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})

    async def event_generator():
        async for event in service.stream(session):
            frame = RetrievalEventSchema(**event.to_dict())
            yield f"data: {frame.model_dump_json()}\n\n"

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.post("/documents", response_model=IngestDocumentResponse)
async def ingest_document(
    body: IngestDocumentRequest,
    service: KnowledgebaseService = Depends(get_knowledgebase_service),
) -> IngestDocumentResponse:
    """Embed a parsed document's chunks and store them in the vector store.

    Individual chunk failures do not fail the request; they are listed in
    ``failures``.
    """
    file = KnowledgebaseFile(name=body.file.name, key=body.file.key, url=body.file.url)
    chunks = [Chunk(text=c.text, metadata=c.metadata, page=c.page) for c in body.chunks]

    try:
        report = await service.ingest_document(body.user_id, file, chunks)
    except (RetrievalValidationError, VectorStoreNotImplementedError, ProviderError) as e:
        raise _http_error(e)

    return IngestDocumentResponse(
        embedded=report.embedding.succeeded,
        failed=report.embedding.failed,
        upserted=report.upserted,
        failures=[
            ChunkFailureSchema(index=f.index, reason=f.reason, timed_out=f.timed_out)
            for f in report.embedding.failures
        ],
    )


@router.delete("/documents", response_model=DeleteDocumentResponse)
async def delete_document(
    body: DeleteDocumentRequest,
    service: KnowledgebaseService = Depends(get_knowledgebase_service),
) -> DeleteDocumentResponse:
    """Remove every stored vector of a document, matched by name and/or url."""
    try:
        deleted = await service.remove_document(
            body.user_id, KnowledgebaseFile(name=body.name, url=body.url)
        )
    except (RetrievalValidationError, VectorStoreNotImplementedError, ProviderError) as e:
        raise _http_error(e)
    return DeleteDocumentResponse(deleted=deleted)
