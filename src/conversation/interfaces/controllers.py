"""
Conversation Controllers (API Routes)
=====================================

FastAPI routes for the chat widget.

Controllers delegate to application services.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse

from src.conversation.application import (
    ChatConfigResponse,
    ChatHealthResponse,
    ChatRequest,
    ChatResponse,
    ConversationService,
    InitialMessageResponse,
    chat_response_from_domain,
)
from src.conversation.domain import ChatMessages
from src.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/chat", tags=["Chat"])


# ========== Example payloads for Swagger ==========

CHAT_REQUEST_EXAMPLE = {
    "user_question": "How do I reset my password?",
    "user_session_id": "session-3f1c2b",
}

CHAT_RESPONSE_EXAMPLES = {
    "answered": {
        "summary": "Confident match",
        "value": {
            "response_type": "ANSWERED",
            "answer": "You are in good hands! I can help you with it\n\nUse the 'Forgot password' link on the sign-in page.",
            "confidence_score": 0.855
        }
    },
    "escalated": {
        "summary": "No confident match, case opened",
        "value": {
            "response_type": "ESCALATED",
            "message": "Thanks for your question. I wasn't able to confidently answer this, but I've raised a support ticket for you. ...",
            "case_id": "5003000000D8cuI"
        }
    },
    "collect_info": {
        "summary": "Identity needed",
        "value": {
            "response_type": "COLLECT_INFO",
            "message": "Before we continue, I'll need some information. ...",
            "info_needed": ["name", "email", "organization"]
        }
    },
    "error": {
        "summary": "Invalid question or internal failure",
        "value": {
            "response_type": "ERROR",
            "message": "Sorry, something went wrong on our end. Your request has been escalated to our support team."
        }
    }
}


# ========== Dependencies ==========

def get_conversation_service(request: Request) -> ConversationService:
    """Get conversation service from app state."""
    service = getattr(request.app.state, "conversation_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Conversation service not initialized"
        )
    return service


def get_optional_conversation_service(request: Request) -> Optional[ConversationService]:
    """Conversation service from app state, or None before startup finished."""
    return getattr(request.app.state, "conversation_service", None)


# ========== Route Handlers ==========

@router.post(
    "",
    response_model=ChatResponse,
    summary="Ask a question",
    description="""
    Handle one chat turn.

    The reply is exactly one of:
    - `ANSWERED` - answered from the knowledge base (or identity confirmed)
    - `ESCALATED` - no confident answer, a support case was opened
    - `COLLECT_INFO` - name, email and organization are needed first
    - `ERROR` - invalid question or internal failure

    Identity can be sent as `"Name, email@domain.tld, Organization"` in
    `user_question`, or explicitly in `user_info`. It is remembered for
    `user_session_id`.
    """,
    responses={
        200: {"content": {"application/json": {"examples": CHAT_RESPONSE_EXAMPLES}}},
        400: {"description": "Malformed body, answered with the ERROR shape"},
        503: {"description": "Service still starting, answered with the ERROR shape"}
    }
)
async def chat(
    request: Request,
    payload: ChatRequest,
    service: Optional[ConversationService] = Depends(get_optional_conversation_service)
):
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    if service is None:
        logger.error("Chat request before conversation service was ready", extra={"correlation_id": correlation_id})
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"response_type": "ERROR", "message": ChatMessages.ERROR}
        )

    logger.info(
        "Chat request received",
        extra={
            "correlation_id": correlation_id,
            "session_id": payload.user_session_id,
            "question_length": len(payload.user_question),
            "has_user_info": payload.user_info is not None,
        }
    )

    reply = await service.handle_turn(payload.to_domain())

    logger.info(
        "Chat response sent",
        extra={
            "correlation_id": correlation_id,
            "session_id": payload.user_session_id,
            "response_type": reply.response_type.value,
            "case_id": reply.case_id,
        }
    )
    return chat_response_from_domain(reply)


@router.get(
    "/initial-message",
    response_model=InitialMessageResponse,
    summary="Greeting shown when the widget opens"
)
async def initial_message(
    name: Optional[str] = Query(None, max_length=100, description="User name for the greeting"),
    service: ConversationService = Depends(get_conversation_service)
):
    return InitialMessageResponse(
        message=service.initial_message(name),
        timestamp=datetime.now(timezone.utc)
    )


@router.get(
    "/config",
    response_model=ChatConfigResponse,
    summary="Current threshold and static messages"
)
async def chat_config(service: ConversationService = Depends(get_conversation_service)):
    return ChatConfigResponse(**service.config_view())


@router.get(
    "/health",
    response_model=ChatHealthResponse,
    summary="Combined matching and ticketing health",
    description="""
    - `healthy` (200): embeddings, knowledge base and ticketing all up
    - `degraded` (206): ticketing down
    - `unhealthy` (503): embeddings or knowledge base down
    """
)
async def chat_health(service: ConversationService = Depends(get_conversation_service)):
    health = await service.health_check()
    status_code = {"healthy": 200, "degraded": 206}.get(health["status"], 503)
    body = ChatHealthResponse(**health)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


# Export router for inclusion in main app
chat_router = router
