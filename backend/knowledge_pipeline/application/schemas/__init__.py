from .knowledgebase import (
    ChunkFailureSchema,
    ChunkSchema,
    DeleteDocumentRequest,
    DeleteDocumentResponse,
    IngestDocumentRequest,
    IngestDocumentResponse,
    KnowledgebaseFileSchema,
    RetrievalEventSchema,
)

__all__ = [
    "ChunkFailureSchema",
    "ChunkSchema",
    "DeleteDocumentRequest",
    "DeleteDocumentResponse",
    "IngestDocumentRequest",
    "IngestDocumentResponse",
    "KnowledgebaseFileSchema",
    "RetrievalEventSchema",
]
