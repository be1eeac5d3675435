"""Abstract interface (port) for per-user retrieval settings."""

from abc import ABC, abstractmethod

from knowledge_pipeline.domain.entities import KnowledgebaseSettings


class UserSettingsProvider(ABC):
    """Port for looking up a user's knowledgebase settings."""

    @abstractmethod
    async def get_settings(self, user_id: str) -> KnowledgebaseSettings:
        """Return the user's settings.

        Raises:
            RetrievalValidationError: when the user is unknown.
        """
        ...
