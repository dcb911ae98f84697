"""
Conversation Domain Entities
============================

Domain entities for the chat conversation.

Contains pure Python business objects: the identity attached to a session,
one inbound chat turn, the reply it produces and the records written for it.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from src.config import ResponseType


class ConversationState(str, Enum):
    """Logical per-session state."""
    NO_IDENTITY = "NO_IDENTITY"
    HAS_IDENTITY = "HAS_IDENTITY"


@dataclass(frozen=True)
class SessionIdentity:
    """Who is asking: set once per session, read on every later turn."""
    name: str
    email: str
    organization: str
    session_id: Optional[str] = None

    def for_session(self, session_id: Optional[str]) -> "SessionIdentity":
        return SessionIdentity(self.name, self.email, self.organization, session_id)


@dataclass(frozen=True)
class ChatTurn:
    """One inbound chat turn."""
    question: str
    session_id: Optional[str] = None
    explicit_identity: Optional[SessionIdentity] = None


@dataclass(frozen=True)
class ChatReply:
    """
    Outcome of one turn.

    Closed over the four response types; use the factory classmethods so
    each type carries exactly its own fields.
    """
    response_type: ResponseType
    message: str
    confidence_score: Optional[float] = None
    case_id: Optional[str] = None
    info_needed: Optional[List[str]] = None

    @classmethod
    def answered(cls, answer: str, confidence_score: float) -> "ChatReply":
        return cls(ResponseType.ANSWERED, answer, confidence_score=confidence_score)

    @classmethod
    def escalated(cls, message: str, case_id: str) -> "ChatReply":
        return cls(ResponseType.ESCALATED, message, case_id=case_id)

    @classmethod
    def collect_info(cls, message: str, info_needed: List[str]) -> "ChatReply":
        return cls(ResponseType.COLLECT_INFO, message, info_needed=list(info_needed))

    @classmethod
    def error(cls, message: str) -> "ChatReply":
        return cls(ResponseType.ERROR, message)


@dataclass
class ChatLogRecord:
    """Append-only record of a handled question."""
    question: str
    response_type: ResponseType
    response_text: str
    session_id: Optional[str] = None
    confidence_score: Optional[float] = None
    case_id: Optional[str] = None
    matched_entry_id: Optional[str] = None
    processing_time_ms: Optional[int] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class UnansweredQuestionRecord:
    """Escalated question kept for KB curation."""
    question: str
    detected_category: str
    confidence_score: float
    case_id: str
    status: str = "open"
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
