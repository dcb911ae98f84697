"""
Tests for the matching admin routes.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.matching.interfaces import matching_router


@pytest.fixture
def client(confident_engine):
    app = FastAPI()
    app.include_router(matching_router)
    app.state.matching_engine = confident_engine
    return TestClient(app)


def test_get_threshold(client):
    response = client.get("/matching/threshold")

    assert response.status_code == 200
    assert response.json() == {"confidence_threshold": 0.7}


def test_update_threshold(client, confident_engine):
    response = client.put("/matching/threshold", json={"confidence_threshold": 0.85})

    assert response.status_code == 200
    assert response.json() == {"confidence_threshold": 0.85}
    assert confident_engine.confidence_threshold == 0.85


@pytest.mark.parametrize("value", [1.5, -0.1])
def test_out_of_range_threshold_is_rejected(client, confident_engine, value):
    response = client.put("/matching/threshold", json={"confidence_threshold": value})

    assert response.status_code == 400
    assert confident_engine.confidence_threshold == 0.7


def test_dry_run_match(client):
    response = client.post("/matching/match", json={"question": "how do i reset my password"})

    assert response.status_code == 200
    body = response.json()
    assert body["source"] == "WEIGHTED_SCAN"
    assert body["is_confident"] is True
    assert body["matched_entry"]["id"] == "kb-1"
    assert body["detected_category"] == "Access"
    assert body["confidence_score"] == pytest.approx(0.855, abs=1e-6)


def test_dry_run_without_match(client):
    response = client.post("/matching/match", json={"question": "what are your opening hours"})

    body = response.json()
    assert body["matched_entry"] is None
    assert body["source"] == "NONE"
    assert body["detected_category"] == "Unknown"


def test_reindex_without_vector_index_is_unavailable(client):
    response = client.post("/matching/reindex")

    assert response.status_code == 503


def test_health(client):
    response = client.get("/matching/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["matching_mode"] == "scan"


def test_missing_engine_is_unavailable():
    app = FastAPI()
    app.include_router(matching_router)

    response = TestClient(app).get("/matching/threshold")

    assert response.status_code == 503
