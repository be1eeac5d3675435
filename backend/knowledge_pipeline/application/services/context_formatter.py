"""Rendering of reranked passages into the context block handed to the chat model."""

from typing import Any

from knowledge_pipeline.domain.entities import ScoredPassage

_BANNER = "=============="


def _field(metadata: dict[str, Any], key: str) -> str:
    value = metadata.get(key)
    if value in (None, "", []):
        return "N/A"
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


def format_result(passage: ScoredPassage, relevance_score: float, index: int) -> str:
    """Render one reranked passage."""
    meta = passage.metadata
    return (
        f"\n  Document {index + 1}, Filename: {_field(meta, 'filename')}, "
        f"Filetype: {_field(meta, 'filetype')}, Languages: {_field(meta, 'languages')}, "
        f"Page Number: {_field(meta, 'page_number')}, "
        f"Relevance Score: {relevance_score:.4f}\n"
        f"  Content: {passage.text or 'No content available'}\n"
        f"  Citation: {_field(meta, 'citation')}\n"
    )


def format_reranked_context(results: list[tuple[ScoredPassage, float]]) -> str:
    """Render ``(passage, relevance_score)`` pairs between Context Start/End banners."""
    body = "".join(format_result(p, score, i) for i, (p, score) in enumerate(results))
    return (
        f"\n{_BANNER}\nContext: Start\n{_BANNER}"
        f"{body}"
        f"{_BANNER}\nContext: End\n{_BANNER}"
    )
