"""Unit tests for QdrantVectorStore — requests are served by an httpx.MockTransport."""

import json

import httpx
import pytest

from knowledge_pipeline.domain.entities import Embedding, KnowledgebaseFile
from knowledge_pipeline.domain.exceptions import ProviderError, RetrievalValidationError
from knowledge_pipeline.infrastructure.vector_stores.points import point_id_for
from knowledge_pipeline.infrastructure.vector_stores.qdrant_vector_store import QdrantVectorStore


class RecordingHandler:
    """Records every request and answers from a path → (status, body) table."""

    def __init__(self, routes: dict[str, tuple[int, dict]]):
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self.routes.get(request.url.path, (404, {"status": {"error": "Not found"}}))
        return httpx.Response(status, json=body)

    def body(self, index: int) -> dict:
        return json.loads(self.requests[index].content)


def _store(handler: RecordingHandler) -> QdrantVectorStore:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return QdrantVectorStore(
        url="http://qdrant.test:6333/",
        collection="kb",
        api_key="secret",
        http_client=client,
    )


@pytest.mark.asyncio
async def test_upsert_writes_deterministic_points():
    handler = RecordingHandler({"/collections/kb/points": (200, {"result": {"status": "completed"}})})
    store = _store(handler)
    embedding = Embedding(id="a.pdf#k#1", values=[0.1, 0.2], metadata={"userId": "u1", "text": "hi"})

    upserted = await store.upsert("u1", [embedding])

    assert upserted == 1
    request = handler.requests[0]
    assert request.method == "PUT"
    assert request.url.params["wait"] == "true"
    assert request.headers["api-key"] == "secret"
    point = handler.body(0)["points"][0]
    assert point["id"] == point_id_for("a.pdf#k#1")
    assert point["payload"] == {"embeddingId": "a.pdf#k#1", "metadata": {"userId": "u1", "text": "hi"}}


@pytest.mark.asyncio
async def test_upsert_with_no_embeddings_skips_the_request():
    handler = RecordingHandler({})
    assert await _store(handler).upsert("u1", []) == 0
    assert handler.requests == []


@pytest.mark.asyncio
async def test_query_filters_by_user_and_orders_by_score():
    handler = RecordingHandler({
        "/collections/kb/points/search": (200, {"result": [
            {"id": "p2", "score": 0.4, "payload": {"embeddingId": "b#k#1", "metadata": {"text": "low"}}},
            {"id": "p1", "score": 0.9, "payload": {"embeddingId": "a#k#1", "metadata": {"text": "high"}}},
        ]}),
    })
    store = _store(handler)

    result = await store.query("u1", [1.0, 0.0], top_k=5)

    assert [p.id for p in result.context] == ["a#k#1", "b#k#1"]
    assert result.context[0].text == "high"
    body = handler.body(0)
    assert body["limit"] == 5
    assert body["filter"] == {"must": [{"key": "metadata.userId", "match": {"value": "u1"}}]}


@pytest.mark.asyncio
async def test_delete_counts_then_deletes_with_document_filter():
    handler = RecordingHandler({
        "/collections/kb/points/count": (200, {"result": {"count": 3}}),
        "/collections/kb/points/delete": (200, {"result": {"status": "completed"}}),
    })
    store = _store(handler)

    deleted = await store.delete("u1", KnowledgebaseFile(name="a.pdf"))

    assert deleted == 3
    assert [r.url.path for r in handler.requests] == [
        "/collections/kb/points/count",
        "/collections/kb/points/delete",
    ]
    assert handler.body(1)["filter"] == {
        "must": [
            {"key": "metadata.userId", "match": {"value": "u1"}},
            {"key": "metadata.name", "match": {"value": "a.pdf"}},
        ]
    }


@pytest.mark.asyncio
async def test_delete_without_name_or_url_sends_nothing():
    handler = RecordingHandler({})

    with pytest.raises(RetrievalValidationError, match="No filename or URL provided for deletion."):
        await _store(handler).delete("u1", KnowledgebaseFile())

    assert handler.requests == []


@pytest.mark.asyncio
async def test_error_status_becomes_provider_error():
    handler = RecordingHandler({
        "/collections/kb/points/search": (404, {"status": {"error": "Collection kb not found"}}),
    })

    with pytest.raises(ProviderError) as exc_info:
        await _store(handler).query("u1", [1.0], top_k=1)

    assert exc_info.value.status_code == 404
    assert "Collection kb not found" in exc_info.value.message


@pytest.mark.asyncio
async def test_transport_failure_becomes_provider_error():
    def boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    store = QdrantVectorStore(
        url="http://qdrant.test:6333",
        collection="kb",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(boom)),
    )

    with pytest.raises(ProviderError) as exc_info:
        await store.query("u1", [1.0], top_k=1)

    assert exc_info.value.status_code == 503
