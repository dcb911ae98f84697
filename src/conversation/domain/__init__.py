"""
Conversation Domain Layer
=========================

Domain layer for the chat conversation.

Contains:
- Entities: SessionIdentity, ChatTurn, ChatReply, log records
- Value Objects: IdentityParser, ChatMessages

This layer is framework-agnostic and contains pure business logic.
"""

from src.conversation.domain.entities import (
    ChatLogRecord,
    ChatReply,
    ChatTurn,
    ConversationState,
    SessionIdentity,
    UnansweredQuestionRecord,
)
from src.conversation.domain.value_objects import ChatMessages, IdentityParser

__all__ = [
    "ChatLogRecord",
    "ChatReply",
    "ChatTurn",
    "ConversationState",
    "SessionIdentity",
    "UnansweredQuestionRecord",
    "ChatMessages",
    "IdentityParser",
]
