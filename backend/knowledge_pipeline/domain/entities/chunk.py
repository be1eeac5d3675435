"""Domain entities for parsed document input — chunks and their source file."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class KnowledgebaseFile:
    """Identifies the source document of a chunk batch.

    ``name`` and ``url`` double as delete filters; ``key`` is the storage key
    used in stable embedding ids.
    """

    name: str | None = None
    key: str | None = None
    url: str | None = None


@dataclass(frozen=True)
class Chunk:
    """A unit of parsed document content produced by the chunking step."""

    text: str
    metadata: dict[str, Any] = field(default_factory=dict)
    page: int | None = None

    @property
    def page_number(self) -> Any:
        """Page hint — provider metadata wins over the positional hint."""
        return self.metadata.get("page_number") or self.page
