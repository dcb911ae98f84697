"""
Conversation Application Services
=================================

The per-session chat state machine.

Decides, turn by turn, between collecting identity, answering from the
knowledge base and escalating to a support case. Every turn ends in exactly
one of ANSWERED, ESCALATED, COLLECT_INFO or ERROR.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional

from src.conversation.domain import (
    ChatLogRecord,
    ChatMessages,
    ChatReply,
    ChatTurn,
    ConversationState,
    IdentityParser,
    SessionIdentity,
    UnansweredQuestionRecord,
)
from src.matching.application import MatchingEngine
from src.matching.domain import MatchResult
from src.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Collaborator Interfaces ==========

class ISessionStore(ABC):
    """Interface for per-session identity storage."""

    @abstractmethod
    def get(self, session_id: str) -> Optional[SessionIdentity]:
        """Identity recorded for the session, or None."""

    @abstractmethod
    def put(self, session_id: str, identity: SessionIdentity) -> None:
        """Record the identity for the session."""


class IIdentityStore(ABC):
    """Interface for durable user identity storage."""

    @abstractmethod
    async def upsert(self, name: str, email: str, organization: Optional[str]) -> None:
        """Insert, or update name and organization for an existing email."""


class IChatLogRepository(ABC):
    """Interface for the append-only chat log."""

    @abstractmethod
    async def append(self, record: ChatLogRecord) -> None:
        """Append one record."""


class IUnansweredQuestionRepository(ABC):
    """Interface for escalated-question storage."""

    @abstractmethod
    async def record(self, record: UnansweredQuestionRecord) -> None:
        """Store one unanswered question."""


class ICaseCreator(ABC):
    """Interface for opening a support case; must not raise."""

    @abstractmethod
    async def create_case(
        self,
        question: str,
        category: str,
        confidence_score: float,
        threshold: float,
        identity: SessionIdentity
    ) -> str:
        """Open a case and return its id."""

    @abstractmethod
    async def health_check(self) -> bool:
        """Whether the ticketing system is reachable."""


# ========== Application Services ==========

class ConversationService:
    """
    Chat state machine.

    Rules, in order:
    - validation guard (blank or too long)
    - explicit identity on the turn, else identity restored from the session
    - no identity: collect it, or parse a submitted one
    - identity known and input is a submission: already verified
    - otherwise match; answer when confident, escalate when not
    - anything unhandled becomes ERROR
    """

    def __init__(
        self,
        matching_engine: MatchingEngine,
        case_creator: ICaseCreator,
        session_store: ISessionStore,
        identity_store: IIdentityStore,
        chat_log_repository: IChatLogRepository,
        unanswered_repository: IUnansweredQuestionRepository,
        max_question_length: int = 1000,
        persistence_timeout_seconds: float = 5.0
    ):
        self._matching = matching_engine
        self._case_creator = case_creator
        self._sessions = session_store
        self._identities = identity_store
        self._chat_logs = chat_log_repository
        self._unanswered = unanswered_repository
        self._max_length = max_question_length
        self._persistence_timeout = persistence_timeout_seconds

    async def handle_turn(self, turn: ChatTurn) -> ChatReply:
        """
        Handle one chat turn.

        Args:
            turn: Question, optional session id, optional explicit identity

        Returns:
            ChatReply; never raises
        """
        question = turn.question or ""
        if not question.strip() or len(question) > self._max_length:
            logger.info(
                "Rejected invalid question",
                extra={"session_id": turn.session_id, "question_length": len(question)}
            )
            return ChatReply.error(ChatMessages.ERROR)

        try:
            return await self._route(turn, question.strip())
        except Exception as e:
            logger.error(
                "Chat turn failed",
                extra={
                    "session_id": turn.session_id,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
                exc_info=True
            )
            return ChatReply.error(ChatMessages.ERROR)

    def _resolve_identity(self, turn: ChatTurn) -> Optional[SessionIdentity]:
        if turn.explicit_identity is not None:
            identity = turn.explicit_identity.for_session(turn.session_id)
            if turn.session_id:
                self._sessions.put(turn.session_id, identity)
            return identity
        if turn.session_id:
            return self._sessions.get(turn.session_id)
        return None

    def state_of(self, session_id: Optional[str]) -> ConversationState:
        if session_id and self._sessions.get(session_id) is not None:
            return ConversationState.HAS_IDENTITY
        return ConversationState.NO_IDENTITY

    async def _route(self, turn: ChatTurn, question: str) -> ChatReply:
        identity = self._resolve_identity(turn)
        is_submission = IdentityParser.looks_like_submission(question)

        if identity is None:
            if not is_submission:
                return self._collect_info(turn)
            return await self._verify_identity(turn, question)

        if is_submission:
            logger.info("Identity already verified", extra={"session_id": turn.session_id})
            return ChatReply.answered(ChatMessages.already_verified(identity), 1.0)

        return await self._answer_or_escalate(turn, question, identity)

    def _collect_info(self, turn: ChatTurn) -> ChatReply:
        logger.info("Collecting identity", extra={"session_id": turn.session_id})
        return ChatReply.collect_info(ChatMessages.COLLECT_INFO, list(ChatMessages.INFO_NEEDED))

    async def _verify_identity(self, turn: ChatTurn, question: str) -> ChatReply:
        identity = IdentityParser.parse(question, session_id=turn.session_id)
        if identity is None:
            logger.info("Identity submission could not be parsed", extra={"session_id": turn.session_id})
            return self._collect_info(turn)

        if turn.session_id:
            self._sessions.put(turn.session_id, identity)

        await self._persist(
            "identity_upsert",
            self._identities.upsert(identity.name, identity.email, identity.organization)
        )

        logger.info(
            "Identity verified",
            extra={"session_id": turn.session_id, "organization": identity.organization}
        )
        return ChatReply.answered(ChatMessages.verified(identity), 1.0)

    async def _answer_or_escalate(
        self,
        turn: ChatTurn,
        question: str,
        identity: SessionIdentity
    ) -> ChatReply:
        start_time = time.perf_counter()
        match = await self._matching.find_best_match(question)

        if match.is_confident and match.matched_entry is not None:
            reply = ChatReply.answered(
                ChatMessages.answered(match.matched_entry.answer_text),
                match.confidence_score
            )
            await self._log_chat(turn, question, reply, match, start_time)
            return reply

        return await self._escalate(turn, question, identity, match, start_time)

    async def _escalate(
        self,
        turn: ChatTurn,
        question: str,
        identity: SessionIdentity,
        match: MatchResult,
        start_time: float
    ) -> ChatReply:
        category = self._matching.detect_category(question)
        case_id = await self._case_creator.create_case(
            question=question,
            category=category,
            confidence_score=match.confidence_score,
            threshold=self._matching.confidence_threshold,
            identity=identity
        )

        reply = ChatReply.escalated(ChatMessages.escalated(identity, case_id), case_id)
        await self._log_chat(turn, question, reply, match, start_time)
        await self._persist(
            "unanswered_question",
            self._unanswered.record(UnansweredQuestionRecord(
                question=question,
                detected_category=category,
                confidence_score=match.confidence_score,
                case_id=case_id
            ))
        )

        logger.info(
            "Question escalated",
            extra={
                "session_id": turn.session_id,
                "case_id": case_id,
                "category": category,
                "confidence_score": round(match.confidence_score, 4),
            }
        )
        return reply

    async def _log_chat(
        self,
        turn: ChatTurn,
        question: str,
        reply: ChatReply,
        match: MatchResult,
        start_time: float
    ) -> None:
        record = ChatLogRecord(
            question=question,
            response_type=reply.response_type,
            response_text=reply.message,
            session_id=turn.session_id,
            confidence_score=match.confidence_score,
            case_id=reply.case_id,
            matched_entry_id=match.matched_entry.id if match.matched_entry else None,
            processing_time_ms=int((time.perf_counter() - start_time) * 1000)
        )
        await self._persist("chat_log", self._chat_logs.append(record))

    async def _persist(self, operation: str, write) -> None:
        """Await a best-effort write; failures are logged, never raised."""
        try:
            await asyncio.wait_for(write, timeout=self._persistence_timeout)
        except Exception as e:
            logger.error(
                "Persistence write failed",
                extra={"operation": operation, "error": str(e), "error_type": type(e).__name__}
            )

    # ========== Supplementary views ==========

    def initial_message(self, name: Optional[str] = None) -> str:
        return ChatMessages.initial(name)

    def config_view(self) -> dict:
        return {
            "confidence_threshold": self._matching.confidence_threshold,
            "static_messages": ChatMessages.static_messages(),
        }

    async def health_check(self) -> dict:
        """
        Combined health of matching and ticketing.

        unhealthy when embeddings or the knowledge base are down, degraded
        when only ticketing is down.
        """
        matching_health = await self._matching.health_check()
        ticketing_ok = await self._case_creator.health_check()

        if not matching_health["embedding_service"] or not matching_health["knowledge_base"]:
            overall = "unhealthy"
        elif not ticketing_ok:
            overall = "degraded"
        else:
            overall = "healthy"

        return {
            "status": overall,
            "timestamp": datetime.now(timezone.utc),
            "services": {
                "matching_engine": matching_health,
                "salesforce": ticketing_ok,
            },
        }

