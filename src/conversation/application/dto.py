"""
Conversation Application DTOs
=============================

Data Transfer Objects for the chat API.

The chat response is closed over four shapes discriminated by
``response_type``.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from src.config import ResponseType
from src.conversation.domain import ChatReply, ChatTurn, IdentityParser


# ========== Request DTOs ==========

class UserInfoDTO(BaseModel):
    """Explicit identity fields sent with a turn."""
    name: Optional[str] = None
    email: Optional[str] = None
    organization: Optional[str] = None


class ChatRequest(BaseModel):
    """
    Request model for a chat turn.

    Length is checked by the conversation service so an invalid question
    still gets the ERROR shape.
    """
    user_question: str = Field(default="", description="Question, 1 to 1000 characters")
    user_session_id: Optional[str] = Field(None, max_length=100, description="Client session id")
    user_info: Optional[UserInfoDTO] = Field(None, description="Explicit identity")

    def to_domain(self) -> ChatTurn:
        """Convert to domain turn."""
        identity = None
        if self.user_info is not None:
            identity = IdentityParser.from_fields(
                self.user_info.name,
                self.user_info.email,
                self.user_info.organization,
                session_id=self.user_session_id
            )
        return ChatTurn(
            question=self.user_question,
            session_id=self.user_session_id,
            explicit_identity=identity
        )


# ========== Response DTOs ==========

class AnsweredResponse(BaseModel):
    """Question answered from the knowledge base, or a system confirmation."""
    response_type: Literal["ANSWERED"] = "ANSWERED"
    answer: str
    confidence_score: float = Field(..., ge=0.0, le=1.0)


class EscalatedResponse(BaseModel):
    """Question escalated to a support case."""
    response_type: Literal["ESCALATED"] = "ESCALATED"
    message: str
    case_id: str


class CollectInfoResponse(BaseModel):
    """Identity needed before the question can be handled."""
    response_type: Literal["COLLECT_INFO"] = "COLLECT_INFO"
    message: str
    info_needed: List[str]


class ErrorResponse(BaseModel):
    """Generic failure; never carries internal detail."""
    response_type: Literal["ERROR"] = "ERROR"
    message: str


ChatResponse = Annotated[
    Union[AnsweredResponse, EscalatedResponse, CollectInfoResponse, ErrorResponse],
    Field(discriminator="response_type")
]


def chat_response_from_domain(reply: ChatReply) -> Union[
    AnsweredResponse, EscalatedResponse, CollectInfoResponse, ErrorResponse
]:
    """Create the API shape for a domain reply."""
    if reply.response_type == ResponseType.ANSWERED:
        return AnsweredResponse(answer=reply.message, confidence_score=reply.confidence_score)
    if reply.response_type == ResponseType.ESCALATED:
        return EscalatedResponse(message=reply.message, case_id=reply.case_id)
    if reply.response_type == ResponseType.COLLECT_INFO:
        return CollectInfoResponse(message=reply.message, info_needed=reply.info_needed or [])
    return ErrorResponse(message=reply.message)


class InitialMessageResponse(BaseModel):
    """Response model for the greeting."""
    message: str
    timestamp: datetime


class ChatConfigResponse(BaseModel):
    """Response model for the chat configuration view."""
    confidence_threshold: float
    static_messages: Dict[str, str]


class ChatHealthResponse(BaseModel):
    """Response model for combined chat health."""
    status: Literal["healthy", "degraded", "unhealthy"]
    timestamp: datetime
    services: Dict[str, Any]
