"""
Conversation Infrastructure Layer
=================================

Infrastructure implementations for the conversation module.

Contains:
- Models: SQLAlchemy ORM models
- Repositories: identity store, chat log, unanswered questions
- Session Store: in-memory TTL map
- External: case creation adapter
"""

from src.conversation.infrastructure.models import (
    ChatLogModel,
    UnansweredQuestionModel,
    UserInfoModel,
)
from src.conversation.infrastructure.repositories import (
    SQLAlchemyChatLogRepository,
    SQLAlchemyIdentityStore,
    SQLAlchemyUnansweredQuestionRepository,
)
from src.conversation.infrastructure.session_store import InMemorySessionStore
from src.conversation.infrastructure.external import CaseCreatorAdapter

__all__ = [
    "ChatLogModel",
    "UnansweredQuestionModel",
    "UserInfoModel",
    "SQLAlchemyChatLogRepository",
    "SQLAlchemyIdentityStore",
    "SQLAlchemyUnansweredQuestionRepository",
    "InMemorySessionStore",
    "CaseCreatorAdapter",
]
