"""Abstract interface (port) for embedding generation."""

from abc import ABC, abstractmethod


class EmbeddingProvider(ABC):
    """Port for generating text embeddings — implemented in the infrastructure layer."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        ...

    @abstractmethod
    async def create_embedding(self, text: str) -> list[float]:
        """Generate the embedding vector for a single text.

        Raises:
            ProviderError: when the provider rejects the request or is unreachable.
        """
        ...
