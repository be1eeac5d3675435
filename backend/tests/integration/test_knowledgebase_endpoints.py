"""Integration tests for the knowledgebase endpoints, wired against in-memory collaborators."""

import asyncio
import json

import pytest
from httpx import ASGITransport, AsyncClient

from knowledge_pipeline.application.interfaces.embedding_provider import EmbeddingProvider
from knowledge_pipeline.application.services import (
    DocumentEmbeddingService,
    KnowledgebaseService,
    RateLimitConfig,
    RateLimitedEmbeddingClient,
    ReservoirRateLimiter,
    RetrievalService,
)
from knowledge_pipeline.config import Settings
from knowledge_pipeline.infrastructure.dependencies import (
    get_knowledgebase_service,
    get_retrieval_service,
)
from knowledge_pipeline.infrastructure.reranking import ScoreOrderReranker
from knowledge_pipeline.infrastructure.users.config_user_settings_provider import (
    ConfigUserSettingsProvider,
)
from knowledge_pipeline.infrastructure.vector_stores import (
    InMemoryVectorStore,
    PineconeVectorStore,
)
from knowledge_pipeline.main import app


class KeywordEmbeddingProvider(EmbeddingProvider):
    """Two-dimensional embeddings: "refund" texts point one way, the rest the other.

    Texts containing "hang" never answer, so they hit the per-call timeout.
    """

    @property
    def provider_name(self) -> str:
        return "keyword"

    async def create_embedding(self, text: str) -> list[float]:
        if "hang" in text:
            await asyncio.Event().wait()
        return [1.0, 0.0] if "refund" in text else [0.0, 1.0]


def _wire(vector_store=None):
    """Override the service dependencies with an in-memory pipeline."""
    store = vector_store or InMemoryVectorStore()
    limiter = ReservoirRateLimiter(RateLimitConfig(min_time=0.0))
    embedding_service = DocumentEmbeddingService(
        RateLimitedEmbeddingClient(KeywordEmbeddingProvider(), limiter, timeout=0.05)
    )
    retrieval = RetrievalService(
        embedding_service,
        store,
        ScoreOrderReranker(),
        ConfigUserSettingsProvider(Settings(_env_file=None)),
    )
    knowledgebase = KnowledgebaseService(embedding_service, store)

    app.dependency_overrides[get_retrieval_service] = lambda: retrieval
    app.dependency_overrides[get_knowledgebase_service] = lambda: knowledgebase
    return store


@pytest.fixture(autouse=True)
def _clear_overrides():
    yield
    app.dependency_overrides.clear()


def _client() -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


def _sse_events(body: str) -> list[dict]:
    return [
        json.loads(frame[len("data: "):])
        for frame in body.split("\n\n")
        if frame.startswith("data: ")
    ]


_DOCUMENT = {
    "userId": "u1",
    "file": {"name": "policy.pdf", "key": "files/1", "url": "https://files.test/policy.pdf"},
    "chunks": [
        {"text": "Refund requests are honoured for 30 days.", "metadata": {"page_number": 1}},
        {"text": "Shipping takes a week.", "metadata": {"page_number": 2}},
    ],
}


@pytest.mark.asyncio
async def test_ingest_then_retrieve_streams_ordered_events():
    _wire()

    async with _client() as client:
        ingest = await client.post("/api/v1/knowledgebase/documents", json=_DOCUMENT)
        response = await client.get(
            "/api/v1/knowledgebase/retrieve",
            params={"userId": "u1", "message": "What about a refund?"},
        )

    assert ingest.status_code == 200
    assert ingest.json() == {"embedded": 2, "failed": 0, "upserted": 2, "failures": []}

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    events = _sse_events(response.text)
    assert [e["status"] for e in events] == [
        "Retrieving context",
        "Embedding complete",
        "Query complete",
        "Reranking complete",
        "Done",
    ]
    context = events[3]["message"]
    assert "Context: Start" in context
    assert context.index("Refund requests") < context.index("Shipping takes")
    assert "Citation: [policy.pdf, Page 1](https://files.test/policy.pdf)" in context


@pytest.mark.asyncio
async def test_retrieve_for_user_without_documents_reports_no_context():
    _wire()

    async with _client() as client:
        response = await client.get(
            "/api/v1/knowledgebase/retrieve", params={"userId": "u2", "message": "hello"}
        )

    statuses = [e["status"] for e in _sse_events(response.text)]
    assert statuses == ["Retrieving context", "Embedding complete", "Query complete", "No context", "Done"]


@pytest.mark.asyncio
@pytest.mark.parametrize("params", [{"userId": "u1"}, {"message": "hello"}, {}])
async def test_retrieve_without_user_or_message_is_a_client_error(params):
    _wire()

    async with _client() as client:
        response = await client.get("/api/v1/knowledgebase/retrieve", params=params)

    assert response.status_code == 400
    assert response.json() == {"error": "No userId or message provided"}


@pytest.mark.asyncio
async def test_ingest_reports_timed_out_chunks():
    store = _wire()
    document = {
        **_DOCUMENT,
        "chunks": [{"text": "refund rules"}, {"text": "hang forever"}, {"text": "other"}],
    }

    async with _client() as client:
        response = await client.post("/api/v1/knowledgebase/documents", json=document)

    assert response.status_code == 200
    body = response.json()
    assert body["embedded"] == 2
    assert body["failed"] == 1
    assert body["failures"][0]["index"] == 1
    assert body["failures"][0]["timedOut"] is True
    assert len(store.points) == 2


@pytest.mark.asyncio
async def test_delete_document_removes_its_vectors():
    store = _wire()

    async with _client() as client:
        await client.post("/api/v1/knowledgebase/documents", json=_DOCUMENT)
        response = await client.request(
            "DELETE",
            "/api/v1/knowledgebase/documents",
            json={"userId": "u1", "name": "policy.pdf"},
        )

    assert response.status_code == 200
    assert response.json() == {"deleted": 2}
    assert store.points == []


@pytest.mark.asyncio
async def test_delete_without_name_or_url_is_a_client_error():
    _wire()

    async with _client() as client:
        response = await client.request(
            "DELETE", "/api/v1/knowledgebase/documents", json={"userId": "u1"}
        )

    assert response.status_code == 400
    assert response.json()["detail"] == "No filename or URL provided for deletion."


@pytest.mark.asyncio
async def test_delete_on_pinecone_is_not_implemented():
    _wire(PineconeVectorStore(index_host="idx.pinecone.io", api_key="pc-key"))

    async with _client() as client:
        response = await client.request(
            "DELETE",
            "/api/v1/knowledgebase/documents",
            json={"userId": "u1", "url": "https://files.test/policy.pdf"},
        )

    assert response.status_code == 501
    assert "does not implement 'delete'" in response.json()["detail"]
