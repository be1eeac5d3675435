"""Pydantic v2 schemas (DTOs) for knowledgebase ingestion, deletion and retrieval."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    """Accepts both camelCase (wire) and snake_case field names."""

    model_config = ConfigDict(populate_by_name=True)


# ── Documents ──


class KnowledgebaseFileSchema(_CamelModel):
    """Source document of a chunk batch."""

    name: str | None = None
    key: str | None = None
    url: str | None = None


class ChunkSchema(_CamelModel):
    """A parsed chunk as produced by the chunking step."""

    text: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    page: int | None = None


class IngestDocumentRequest(_CamelModel):
    user_id: str = Field(..., alias="userId", min_length=1)
    file: KnowledgebaseFileSchema
    chunks: list[ChunkSchema]


class ChunkFailureSchema(BaseModel):
    index: int
    reason: str
    timed_out: bool = Field(False, serialization_alias="timedOut")


class IngestDocumentResponse(BaseModel):
    """Partial-failure report of an ingestion: callers check ``failed`` for strictness."""

    embedded: int
    failed: int
    upserted: int
    failures: list[ChunkFailureSchema] = Field(default_factory=list)


class DeleteDocumentRequest(_CamelModel):
    user_id: str = Field(..., alias="userId", min_length=1)
    name: str | None = None
    url: str | None = None


class DeleteDocumentResponse(BaseModel):
    deleted: int


# ── Retrieval stream ──


class RetrievalEventSchema(BaseModel):
    """One frame of the retrieval event stream."""

    status: str
    message: str
