"""Abstract interface (port) for reranking retrieved passages."""

from abc import ABC, abstractmethod

from knowledge_pipeline.domain.entities import KnowledgebaseSettings, ScoredPassage


class Reranker(ABC):
    """Port for re-scoring passages against the query and rendering the kept context."""

    @abstractmethod
    async def rerank(
        self,
        query: str,
        passages: list[ScoredPassage],
        settings: KnowledgebaseSettings,
    ) -> str:
        """Rerank ``passages`` and return the formatted context block.

        Keeps at most ``settings.top_n`` passages scoring at or above
        ``settings.relevance_threshold``.
        """
        ...
