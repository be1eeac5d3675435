from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

_BACKEND_DIR = Path(__file__).resolve().parents[1]
_ENV_FILES = (
    _BACKEND_DIR / ".env",
    ".env",
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_title: str = "Knowledge Retrieval API"
    app_version: str = "0.1.0"
    app_env: str = "development"
    cors_origins: list[str] = ["http://localhost:3000"]

    # Embedding provider (OpenAI-compatible /embeddings endpoint)
    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    embedding_model: str = "text-embedding-3-large"
    embedding_dimensions: int | None = None
    embedding_timeout_seconds: float = 15.0

    # Shared embedding rate limiter
    embedding_reservoir: int = 5000
    embedding_reservoir_interval_seconds: float = 60.0
    embedding_max_concurrent: int = 50
    embedding_min_time_ms: int = 12

    # Vector store — "qdrant" | "pinecone" | "memory"
    vector_store_provider: str = "qdrant"
    qdrant_url: str = "http://localhost:6333"
    qdrant_api_key: str = ""
    qdrant_collection: str = "atlasv1"
    pinecone_api_key: str = ""
    pinecone_index_host: str = ""

    # Reranking via Cohere; falls back to similarity order when no key is set
    cohere_api_key: str = ""
    cohere_base_url: str = "https://api.cohere.com/v2"
    rerank_model: str = "rerank-v3.5"

    # Retrieval defaults, used for every user without stored settings
    knowledgebase_top_k: int = 10
    knowledgebase_top_n: int = 5
    knowledgebase_relevance_threshold: float = 0.0
    retrieval_timeout_seconds: float = 60.0

    # Logging — per-category log levels (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    log_level: str = "INFO"                  # Root / app-wide
    log_level_http: str = "WARNING"          # httpx / httpcore — outbound HTTP
    log_level_uvicorn: str = "INFO"          # uvicorn.access / uvicorn.error
    log_level_pipeline: str = "INFO"         # embedding + retrieval services
    log_level_vector_store: str = "INFO"     # vector store adapters

    model_config = {
        "env_file": _ENV_FILES,
        "env_file_encoding": "utf-8",
    }


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance — reads .env once."""
    return Settings()
