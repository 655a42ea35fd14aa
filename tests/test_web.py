"""Tests for the FastAPI app using TestClient and injected services."""

import json

import pytest
from fastapi.testclient import TestClient

from gigarag.indexing import EmbeddingIndexer
from gigarag.search import RetrievalEngine
from gigarag.web import create_app
from gigarag.web.database import make_session_factory
from gigarag.web.services import Services

from conftest import StubGenerator


@pytest.fixture
def services(tmp_path, project, cfg, embedder, qdrant_store):
    return Services(
        cfg,
        project,
        make_session_factory(f"sqlite:///{tmp_path / 'jobs.db'}"),
        store=qdrant_store,
        indexer_factory=lambda: EmbeddingIndexer(embedder, qdrant_store, cfg),
        engine_factory=lambda: RetrievalEngine(embedder, qdrant_store, StubGenerator("Alpha answer."), cfg),
    )


@pytest.fixture
def client(services):
    return TestClient(create_app(services=services))


@pytest.fixture
def indexed(client):
    response = client.post("/api/index", json={})
    assert response.status_code == 202
    return response.json()


class TestIndexing:

    def test_background_job_completes(self, client, indexed, project):
        job = client.get(f"/api/index/{indexed['id']}").json()

        assert indexed["status"] == "pending"
        assert job["status"] == "completed"
        assert job["root"] == str(project)
        assert job["files"] == 3
        assert job["indexed"] == job["chunks"] > 0
        assert job["error_message"] is None
        assert len(job["config_fingerprint"]) == 64

    def test_missing_root(self, client, tmp_path):
        response = client.post("/api/index", json={"root": str(tmp_path / "nowhere")})

        assert response.status_code == 400

    def test_unknown_job(self, client):
        assert client.get("/api/index/999").status_code == 404

    def test_progress_stream_sends_json(self, client, indexed):
        with client.stream("GET", f"/api/index/{indexed['id']}/progress") as response:
            assert response.status_code == 200
            lines = [line for line in response.iter_lines() if line.startswith("data:")]

        event = json.loads(lines[-1][len("data:"):].strip())
        assert event["job_id"] == indexed["id"]
        assert event["status"] == "completed"
        assert event["indexed"] > 0
        assert event["error"] is None

    def test_progress_unknown_job(self, client):
        assert client.get("/api/index/999/progress").status_code == 404

    def test_failed_job_records_error(self, client, services):
        def broken():
            raise RuntimeError("embedding provider unavailable")

        services._indexer_factory = broken
        job_id = client.post("/api/index", json={}).json()["id"]
        job = client.get(f"/api/index/{job_id}").json()

        assert job["status"] == "failed"
        assert job["error_message"] == "embedding provider unavailable"


class TestQuerying:

    def test_collection_info(self, client, indexed):
        body = client.get("/api/collection").json()

        assert body["exists"] is True
        assert body["points_count"] > 0
        assert body["dimension"] == 4
        assert body["distance"] == "cosine"

    def test_collection_missing(self, client):
        assert client.get("/api/collection").json() == {
            "name": "test_codebase",
            "exists": False,
            "points_count": 0,
            "dimension": None,
            "distance": None,
        }

    def test_clear_collection(self, client, indexed):
        response = client.delete("/api/collection")

        assert response.status_code == 200
        assert response.json() == {"name": "test_codebase", "deleted": True}
        assert client.get("/api/collection").json()["exists"] is False
        assert client.delete("/api/collection").json()["deleted"] is False

    def test_search(self, client, indexed):
        body = client.post("/api/search", json={"query": "alpha"}).json()

        assert body["no_results"] is False
        assert body["results"][0]["file_path"] == "src/alpha.ts"
        assert body["results"][0]["score"] >= 0.4

    def test_search_no_results(self, client, indexed):
        body = client.post("/api/search", json={"query": "how does foo work"}).json()

        assert body["no_results"] is True
        assert body["results"] == []

    def test_answer(self, client, indexed):
        body = client.post("/api/answer", json={"query": "alpha", "limit": 2}).json()

        assert body["answer"] == "Alpha answer."
        assert body["generation_error"] is None
        assert len(body["results"]) <= 2

    def test_invalid_request(self, client):
        assert client.post("/api/search", json={"query": ""}).status_code == 422
        assert client.post("/api/search", json={"query": "x", "threshold": 2}).status_code == 422
