"""
Tests for the chat routes and the chat-shaped error handlers.
"""

import pytest
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.testclient import TestClient

from src.conversation.domain import ChatMessages
from src.conversation.interfaces import chat_router
from src.matching.interfaces import matching_router
from src.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    global_exception_handler,
    validation_exception_handler,
)

SESSION = "session-3f1c2b"


def build_app(service) -> FastAPI:
    app = FastAPI()
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(CorrelationIDMiddleware)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
    app.include_router(chat_router)
    app.include_router(matching_router)
    app.state.conversation_service = service
    app.state.matching_engine = service._matching
    return app


@pytest.fixture
def answering_client(confident_engine, conversation_factory):
    service, _ = conversation_factory(confident_engine)
    return TestClient(build_app(service), raise_server_exceptions=False)


@pytest.fixture
def escalating_client(unconfident_engine, conversation_factory):
    service, _ = conversation_factory(unconfident_engine)
    return TestClient(build_app(service), raise_server_exceptions=False)


def verify(client):
    response = client.post("/chat", json={
        "user_question": "Kanak, kanak@mps.com, MPS",
        "user_session_id": SESSION,
    })
    assert response.json()["response_type"] == "ANSWERED"


def test_collects_info_first(answering_client):
    response = answering_client.post("/chat", json={"user_question": "I need help", "user_session_id": SESSION})

    assert response.status_code == 200
    assert response.json() == {
        "response_type": "COLLECT_INFO",
        "message": ChatMessages.COLLECT_INFO,
        "info_needed": ["name", "email", "organization"],
    }
    assert "X-Correlation-ID" in response.headers


def test_answer_after_verification(answering_client):
    verify(answering_client)

    response = answering_client.post("/chat", json={
        "user_question": "how do i reset my password",
        "user_session_id": SESSION,
    })

    body = response.json()
    assert body["response_type"] == "ANSWERED"
    assert body["answer"].startswith("You are in good hands! I can help you with it\n\n")
    assert body["confidence_score"] == pytest.approx(0.855, abs=1e-6)
    assert set(body) == {"response_type", "answer", "confidence_score"}


def test_escalation_with_explicit_user_info(escalating_client):
    response = escalating_client.post("/chat", json={
        "user_question": "Why can't I login?",
        "user_session_id": SESSION,
        "user_info": {"name": "Kanak", "email": "kanak@mps.com", "organization": "MPS"},
    })

    body = response.json()
    assert body["response_type"] == "ESCALATED"
    assert body["case_id"] == "5003000000D8cuI"
    assert set(body) == {"response_type", "message", "case_id"}


def test_blank_question_is_error(answering_client):
    response = answering_client.post("/chat", json={"user_question": "   ", "user_session_id": SESSION})

    assert response.status_code == 200
    assert response.json() == {"response_type": "ERROR", "message": ChatMessages.ERROR}


@pytest.mark.parametrize("body", [
    {"user_question": ["not", "a", "string"]},
    {"user_question": "hi", "user_session_id": "x" * 101},
])
def test_malformed_body_gets_error_shape(answering_client, body):
    response = answering_client.post("/chat", json=body)

    assert response.status_code == 400
    assert response.json() == {"response_type": "ERROR", "message": ChatMessages.ERROR}


def test_invalid_json_gets_error_shape(answering_client):
    response = answering_client.post(
        "/chat", content="{not json", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400
    assert response.json()["response_type"] == "ERROR"


def test_non_chat_routes_keep_default_validation(answering_client):
    response = answering_client.put("/matching/threshold", json={"confidence_threshold": "high"})

    assert response.status_code == 422


def test_chat_before_startup_gets_error_shape(answering_client):
    del answering_client.app.state.conversation_service

    response = answering_client.post("/chat", json={"user_question": "hi", "user_session_id": SESSION})

    assert response.status_code == 503
    assert response.json() == {"response_type": "ERROR", "message": ChatMessages.ERROR}


def test_initial_message(answering_client):
    response = answering_client.get("/chat/initial-message", params={"name": "Kanak"})

    assert response.status_code == 200
    assert response.json()["message"].startswith("Hi Kanak,")


def test_config(answering_client):
    body = answering_client.get("/chat/config").json()

    assert body["confidence_threshold"] == 0.7
    assert body["static_messages"]["error"] == ChatMessages.ERROR


def test_health_status_codes(confident_engine, conversation_factory):
    service, fakes = conversation_factory(confident_engine)
    client = TestClient(build_app(service))

    assert client.get("/chat/health").status_code == 200

    fakes["case_creator"].healthy = False
    response = client.get("/chat/health")

    assert response.status_code == 206
    assert response.json()["status"] == "degraded"
