"""Unit tests for DocumentEmbeddingService — partial failures, stable ids and metadata."""

import asyncio
import logging

import pytest

from knowledge_pipeline.application.interfaces.embedding_provider import EmbeddingProvider
from knowledge_pipeline.application.interfaces.progress_observer import EmbeddingProgressObserver
from knowledge_pipeline.application.services.embedding_client import RateLimitedEmbeddingClient
from knowledge_pipeline.application.services.embedding_service import (
    DocumentEmbeddingService,
    build_citation,
    chunk_embedding_id,
    flatten_metadata,
    to_ascii,
)
from knowledge_pipeline.application.services.rate_limiter import (
    RateLimitConfig,
    ReservoirRateLimiter,
)
from knowledge_pipeline.domain.entities import Chunk, KnowledgebaseFile
from knowledge_pipeline.domain.exceptions import ProviderError


# ── Fakes ────────────────────────────────────────────────────────────


class ScriptedEmbeddingProvider(EmbeddingProvider):
    """Hangs on texts listed in ``hang``, fails on texts listed in ``fail``."""

    def __init__(self, hang: set[str] | None = None, fail: set[str] | None = None):
        self._hang = hang or set()
        self._fail = fail or set()

    @property
    def provider_name(self) -> str:
        return "scripted"

    async def create_embedding(self, text: str) -> list[float]:
        if text in self._hang:
            await asyncio.Event().wait()
        if text in self._fail:
            raise ProviderError("scripted", 429, "Rate limit exceeded")
        await asyncio.sleep(0)
        return [0.1, 0.2, float(len(text))]


class RecordingObserver(EmbeddingProgressObserver):
    def __init__(self) -> None:
        self.progress: list[tuple[int, int]] = []
        self.failures = []
        self.finished: tuple[int, int] | None = None

    def on_progress(self, file, completed, total):
        self.progress.append((completed, total))

    def on_failure(self, file, failure):
        self.failures.append(failure)

    def on_finish(self, file, succeeded, failed):
        self.finished = (succeeded, failed)


class ExplodingObserver(EmbeddingProgressObserver):
    def on_progress(self, file, completed, total):
        raise RuntimeError("progress bar crashed")

    def on_failure(self, file, failure):
        raise RuntimeError("progress bar crashed")


class BrokenClient:
    """Client whose scheduling fails before any chunk is embedded."""

    async def embed_many(self, texts, *, on_result=None):
        raise RuntimeError("limiter unavailable")


def _service(provider: EmbeddingProvider, observer=None) -> DocumentEmbeddingService:
    limiter = ReservoirRateLimiter(
        RateLimitConfig(reservoir=1000, interval=60.0, max_concurrent=4, min_time=0.0)
    )
    client = RateLimitedEmbeddingClient(provider, limiter, timeout=0.05)
    return DocumentEmbeddingService(client, observer=observer)


_FILE = KnowledgebaseFile(name="Résumé.pdf", key="files/abc123", url="https://files.test/r.pdf")


def _chunks(n: int) -> list[Chunk]:
    return [Chunk(text=f"chunk text {i + 1}", metadata={"page_number": i + 1}) for i in range(n)]


# ── Tests ────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_failed_chunks_do_not_fail_the_document(caplog):
    """Chunks 3 and 7 of 10 fail: 8 embeddings come back and exactly 2 failures are logged."""
    provider = ScriptedEmbeddingProvider(hang={"chunk text 3"}, fail={"chunk text 7"})
    observer = RecordingObserver()
    service = _service(provider, observer)

    with caplog.at_level(logging.ERROR, logger="knowledge_pipeline.application.services.embedding_service"):
        result = await service.embed_document("u1", _FILE, _chunks(10))

    assert result.total_chunks == 10
    assert result.succeeded == 8
    assert result.failed == 2
    assert not result.is_complete
    assert [f.index for f in result.failures] == [2, 6]
    assert [f.timed_out for f in result.failures] == [True, False]
    assert "Rate limit exceeded" in result.failures[1].reason

    failure_logs = [r for r in caplog.records if "Embedding failed for chunk" in r.getMessage()]
    assert len(failure_logs) == 2
    assert "chunk 3" in failure_logs[0].getMessage()
    assert "chunk 7" in failure_logs[1].getMessage()

    assert [e.id.rsplit("#", 1)[1] for e in result.embeddings] == [
        "1", "2", "4", "5", "6", "8", "9", "10",
    ]
    assert len(observer.failures) == 2
    assert observer.finished == (8, 2)


@pytest.mark.asyncio
async def test_progress_is_monotonic_up_to_chunk_count():
    observer = RecordingObserver()
    service = _service(ScriptedEmbeddingProvider(fail={"chunk text 2"}), observer)

    await service.embed_document("u1", _FILE, _chunks(5))

    assert [completed for completed, _ in observer.progress] == [1, 2, 3, 4, 5]
    assert {total for _, total in observer.progress} == {5}


@pytest.mark.asyncio
async def test_embedding_ids_are_stable_across_runs():
    service = _service(ScriptedEmbeddingProvider())

    first = await service.embed_document("u1", _FILE, _chunks(4))
    second = await service.embed_document("u1", _FILE, _chunks(4))

    first_ids = {e.id for e in first.embeddings}
    assert first_ids == {e.id for e in second.embeddings}
    assert "Rsum.pdf#files/abc123#1" in first_ids
    assert "Rsum.pdf#files/abc123#4" in first_ids


@pytest.mark.asyncio
async def test_metadata_is_flattened_and_cited():
    chunk = Chunk(
        text="Refunds are issued within 30 days.",
        metadata={
            "page_number": 3,
            "filetype": "application/pdf",
            "coordinates": {"x": 1, "points": [2, 3]},
        },
    )
    service = _service(ScriptedEmbeddingProvider())

    result = await service.embed_document("u1", _FILE, [chunk])
    metadata = result.embeddings[0].metadata

    assert metadata["coordinates"] == ["x:1", "points:[2, 3]"]
    assert metadata["filetype"] == "application/pdf"
    assert metadata["page_number"] == 3
    assert metadata["text"] == "Refunds are issued within 30 days."
    assert metadata["userId"] == "u1"
    assert metadata["url"] == "https://files.test/r.pdf"
    assert metadata["name"] == "Résumé.pdf"
    assert metadata["citation"] == "[Résumé.pdf, Page 3](https://files.test/r.pdf)"


@pytest.mark.asyncio
async def test_positional_page_hint_is_used_for_citation():
    service = _service(ScriptedEmbeddingProvider())

    result = await service.embed_document("u1", _FILE, [Chunk(text="hello", page=7)])

    assert result.embeddings[0].metadata["citation"] == "[Résumé.pdf, Page 7](https://files.test/r.pdf)"


@pytest.mark.asyncio
async def test_scheduling_failure_fails_the_document():
    service = DocumentEmbeddingService(BrokenClient())

    with pytest.raises(RuntimeError, match="limiter unavailable"):
        await service.embed_document("u1", _FILE, _chunks(3))


@pytest.mark.asyncio
async def test_observer_errors_do_not_affect_the_result():
    service = _service(ScriptedEmbeddingProvider(fail={"chunk text 1"}), ExplodingObserver())

    result = await service.embed_document("u1", _FILE, _chunks(3))

    assert result.succeeded == 2
    assert result.failed == 1


@pytest.mark.asyncio
async def test_embed_message_returns_fresh_embedding():
    service = _service(ScriptedEmbeddingProvider())

    first = await service.embed_message("u1", "What is the refund policy?")
    second = await service.embed_message("u1", "What is the refund policy?")

    assert first.values == [0.1, 0.2, 26.0]
    assert first.metadata == {"userId": "u1"}
    assert first.id != second.id


@pytest.mark.asyncio
async def test_embed_message_propagates_provider_errors():
    service = _service(ScriptedEmbeddingProvider(fail={"hi"}))

    with pytest.raises(ProviderError):
        await service.embed_message("u1", "hi")


def test_helpers():
    assert to_ascii("Café ñ.pdf") == "Caf .pdf"
    assert chunk_embedding_id(KnowledgebaseFile(name="a.pdf", key="k"), 0) == "a.pdf#k#1"
    assert flatten_metadata({"a": 1, "b": "x", "c": None, "d": [1]}) == {
        "a": 1,
        "b": "x",
        "c": None,
        "d": ["0:1"],
    }
    assert build_citation(KnowledgebaseFile(name="a.pdf", url="u")) == "[a.pdf](u)"


def test_flatten_metadata_leaves_no_nested_values():
    flat = flatten_metadata({
        "links": [{"text": "a", "url": "u"}],
        "languages": ["eng"],
        "emphasis": [["bold", 3]],
        "coordinates": {"points": [[0, 1]]},
        "page_number": 2,
    })

    assert flat == {
        "links": ['0:{"text": "a", "url": "u"}'],
        "languages": ["eng"],
        "emphasis": ['0:["bold", 3]'],
        "coordinates": ["points:[[0, 1]]"],
        "page_number": 2,
    }
    for value in flat.values():
        if isinstance(value, list):
            assert all(isinstance(item, str) for item in value)
