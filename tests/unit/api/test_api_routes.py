"""
Unit tests for the HTTP routes.

The analysis facade is swapped in through app.dependency_overrides so the
routes run against a scripted inference client.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from threat_inference.api.dependencies import get_analysis_service
from threat_inference.api.error_handlers import EXCEPTION_HANDLERS
from threat_inference.inference.exceptions import InferenceGenerationError
from threat_inference.main import app
from threat_inference.models.deployment import DeploymentConfig
from threat_inference.models.enums import DeploymentMode
from threat_inference.search.index import InMemoryVectorIndex
from threat_inference.service import ArticleAnalysisService


@pytest.fixture
def build_client(make_client, make_router, governor):
    """TestClient whose facade uses the given scripted replies."""
    def _create(replies, mode=DeploymentMode.BASELINE, vector_index=None):
        service = ArticleAnalysisService(
            router=make_router(make_client(replies)),
            governor=governor,
            default_config=DeploymentConfig(mode=mode),
            vector_index=vector_index,
        )
        app.dependency_overrides[get_analysis_service] = lambda: service
        return TestClient(app), service

    yield _create
    app.dependency_overrides.clear()


@pytest.fixture
def article_json(sample_article):
    return sample_article.model_dump(mode="json")


def test_root():
    response = TestClient(app).get("/")
    assert response.status_code == 200
    assert response.json()["health"] == "/health"


class TestHealth:

    def test_healthy(self, build_client):
        client, _ = build_client({})
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["services"] == {"workers_ai": "ok", "budget": "OK"}

    def test_unhealthy(self, build_client):
        client, service = build_client({})
        service.router.client.health_check = AsyncMock(return_value=False)

        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["services"]["workers_ai"] == "unreachable"


class TestAnalyze:

    def test_success(self, build_client, catalog, chat_reply, full_analysis_data, article_json):
        client, _ = build_client({catalog.generalist.endpoint: chat_reply(full_analysis_data)})

        response = client.post("/analyze", json={"article": article_json})

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"
        assert body["article_id"] == "article-001"
        assert body["result"]["category"] == "ransomware"
        assert body["result"]["strategy"] == "baseline"

    def test_mode_override(self, build_client, catalog, chat_reply,
                           classifier_data, extractor_data, article_json):
        client, _ = build_client({
            catalog.classifier.endpoint: chat_reply(classifier_data),
            catalog.extractor.endpoint: chat_reply(extractor_data),
        })

        response = client.post("/analyze", json={"article": article_json, "mode": "tiered"})

        assert response.status_code == 200
        assert response.json()["result"]["strategy"] == "tiered"

    def test_failure_is_503(self, build_client, catalog, article_json):
        client, _ = build_client({catalog.generalist.endpoint: InferenceGenerationError("boom")})

        response = client.post("/analyze", json={"article": article_json})

        assert response.status_code == 503
        assert response.json()["status"] == "failed"
        assert response.json()["result"] is None

    def test_invalid_article(self, build_client):
        client, _ = build_client({})
        response = client.post("/analyze", json={"article": {"id": "x"}})
        assert response.status_code == 422


class TestEmbed:

    def test_success(self, build_client, catalog):
        vector = [0.25] * 1024
        client, _ = build_client(
            {catalog.embedding_baseline.endpoint: {"shape": [1, 1024], "data": [vector]}}
        )

        response = client.post("/embed", json={"text": "LockBit"})

        assert response.status_code == 200
        assert response.json()["dimensions"] == 1024

    def test_failure_is_503(self, build_client, catalog):
        client, _ = build_client({catalog.embedding_baseline.endpoint: {"data": []}})
        response = client.post("/embed", json={"text": "LockBit"})
        assert response.status_code == 503
        assert response.json()["vector"] is None


def test_trends(build_client, catalog, chat_reply, full_analysis_data, article_json):
    client, _ = build_client({catalog.generalist.endpoint: chat_reply("Ransomware rose sharply.")})
    item = {"article": article_json, "analysis": {**full_analysis_data, "strategy": "baseline"}}

    response = client.post("/trends", json={"items": [item, item]})

    assert response.status_code == 200
    assert response.json() == {"analysis": "Ransomware rose sharply.", "article_count": 2}


def test_search(build_client, catalog):
    vector = [1.0] + [0.0] * 1023
    index = InMemoryVectorIndex()
    client, _ = build_client(
        {catalog.embedding_baseline.endpoint: {"data": [vector]}},
        vector_index=index,
    )
    asyncio.run(index.upsert("article-001", vector))

    response = client.get("/search", params={"q": "lockbit", "limit": 5})

    assert response.status_code == 200
    assert response.json()["matches"][0]["id"] == "article-001"


class TestBudget:

    def test_report(self, build_client):
        client, _ = build_client({})
        response = client.get("/budget", params={"units_per_article": 50})

        assert response.status_code == 200
        body = response.json()
        assert body["summary"]["used"] == 0
        assert body["summary"]["status"] == "OK"
        assert body["remaining_articles"] == 200

    def test_requires_units(self, build_client):
        client, _ = build_client({})
        assert client.get("/budget").status_code == 422
        assert client.get("/budget", params={"units_per_article": -1}).status_code == 422


def test_request_id_echoed(build_client):
    client, _ = build_client({})
    response = client.get("/budget", params={"units_per_article": 1}, headers={"X-Request-ID": "req-42"})
    assert response.headers["X-Request-ID"] == "req-42"


def test_analyzed_article_becomes_searchable(build_client, catalog, chat_reply,
                                             full_analysis_data, article_json):
    vector = [0.0, 1.0] + [0.0] * 1022
    index = InMemoryVectorIndex(dimensions=1024)
    client, service = build_client(
        {
            catalog.generalist.endpoint: chat_reply(full_analysis_data),
            catalog.embedding_baseline.endpoint: {"shape": [1, 1024], "data": [vector]},
        },
        vector_index=index,
    )

    response = client.post("/analyze", json={"article": article_json})

    assert response.status_code == 200
    assert response.json()["indexed"] is True
    assert len(index) == 1
    embedded = service.router.client.run.call_args.args[1]["text"]
    assert embedded.startswith("LockBit affiliate hits regional hospital network LockBit affiliate")

    matches = client.get("/search", params={"q": "hospital ransomware"}).json()["matches"]
    assert [m["id"] for m in matches] == ["article-001"]


def test_unexpected_error_is_500(build_client):
    client, service = build_client({})
    service.budget_report = lambda units_per_article: 1 / 0
    client = TestClient(app, raise_server_exceptions=False)

    response = client.get("/budget", params={"units_per_article": 1})

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "internal_error"
    assert "division" not in body["message"]


def test_only_catch_all_handler_registered():
    assert list(EXCEPTION_HANDLERS) == [Exception]
