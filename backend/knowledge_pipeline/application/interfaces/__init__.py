from .embedding_provider import EmbeddingProvider
from .progress_observer import EmbeddingProgressObserver
from .reranker import Reranker
from .user_settings_provider import UserSettingsProvider
from .vector_store import VectorStoreProvider

__all__ = [
    "EmbeddingProvider",
    "EmbeddingProgressObserver",
    "Reranker",
    "UserSettingsProvider",
    "VectorStoreProvider",
]
