"""User settings provider backed by application configuration and optional overrides."""

from knowledge_pipeline.application.interfaces.user_settings_provider import UserSettingsProvider
from knowledge_pipeline.config import Settings
from knowledge_pipeline.domain.entities import KnowledgebaseSettings
from knowledge_pipeline.domain.exceptions import RetrievalValidationError


class ConfigUserSettingsProvider(UserSettingsProvider):
    """Returns the configured defaults, or a per-user override when one is registered.

    ``allowed_users`` restricts lookups to known users; ``None`` accepts anyone.
    """

    def __init__(
        self,
        settings: Settings,
        overrides: dict[str, KnowledgebaseSettings] | None = None,
        allowed_users: set[str] | None = None,
    ):
        self._defaults = KnowledgebaseSettings(
            top_k=settings.knowledgebase_top_k,
            top_n=settings.knowledgebase_top_n,
            relevance_threshold=settings.knowledgebase_relevance_threshold,
        )
        self._overrides = dict(overrides or {})
        self._allowed_users = allowed_users

    async def get_settings(self, user_id: str) -> KnowledgebaseSettings:
        if self._allowed_users is not None and user_id not in self._allowed_users:
            raise RetrievalValidationError("Invalid user")
        return self._overrides.get(user_id, self._defaults)
