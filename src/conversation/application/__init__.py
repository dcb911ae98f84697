"""
Conversation Application Layer
==============================

Application layer for the chat conversation.

Contains:
- Services: ConversationService state machine
- Interfaces: session, identity, chat log, unanswered question and case contracts
- DTOs: Data transfer objects for API serialization
"""

from src.conversation.application.dto import (
    AnsweredResponse,
    ChatConfigResponse,
    ChatHealthResponse,
    ChatRequest,
    ChatResponse,
    CollectInfoResponse,
    ErrorResponse,
    EscalatedResponse,
    InitialMessageResponse,
    UserInfoDTO,
    chat_response_from_domain,
)
from src.conversation.application.services import (
    ConversationService,
    ICaseCreator,
    IChatLogRepository,
    IIdentityStore,
    ISessionStore,
    IUnansweredQuestionRepository,
)

__all__ = [
    # DTOs
    "AnsweredResponse",
    "ChatConfigResponse",
    "ChatHealthResponse",
    "ChatRequest",
    "ChatResponse",
    "CollectInfoResponse",
    "ErrorResponse",
    "EscalatedResponse",
    "InitialMessageResponse",
    "UserInfoDTO",
    "chat_response_from_domain",
    # Services
    "ConversationService",
    # Collaborator Interfaces
    "ICaseCreator",
    "IChatLogRepository",
    "IIdentityStore",
    "ISessionStore",
    "IUnansweredQuestionRepository",
]
