"""Reranker adapters."""

from .cohere_reranker import CohereReranker
from .score_order_reranker import ScoreOrderReranker

__all__ = ["CohereReranker", "ScoreOrderReranker"]
