"""Fallback reranker — keeps the vector store's similarity order and scores."""

from knowledge_pipeline.application.interfaces.reranker import Reranker
from knowledge_pipeline.application.services.context_formatter import format_reranked_context
from knowledge_pipeline.domain.entities import KnowledgebaseSettings, ScoredPassage


class ScoreOrderReranker(Reranker):
    """Used when no reranking service is configured."""

    async def rerank(
        self,
        query: str,
        passages: list[ScoredPassage],
        settings: KnowledgebaseSettings,
    ) -> str:
        ranked = sorted(passages, key=lambda p: p.score, reverse=True)
        kept = [(p, p.score) for p in ranked if p.score >= settings.relevance_threshold]
        return format_reranked_context(kept[: settings.top_n])
