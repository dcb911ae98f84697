"""
Conversation Infrastructure Repositories
========================================

SQLAlchemy implementations of the identity store, chat log and unanswered
question repositories.

Each write opens its own session, so one failed write cannot roll back
another.
"""

from datetime import datetime, timezone
from typing import Callable, Optional
from uuid import uuid4

from sqlalchemy.dialects.postgresql import insert

from src.conversation.application import (
    IChatLogRepository,
    IIdentityStore,
    IUnansweredQuestionRepository,
)
from src.conversation.domain import ChatLogRecord, UnansweredQuestionRecord
from src.conversation.infrastructure.models import (
    ChatLogModel,
    UnansweredQuestionModel,
    UserInfoModel,
)
from src.core import PersistenceException
from src.infrastructure.database import get_session_context


class SQLAlchemyIdentityStore(IIdentityStore):
    """Postgres upsert keyed by email."""

    def __init__(self, session_factory: Callable = get_session_context):
        self._session_factory = session_factory

    async def upsert(self, name: str, email: str, organization: Optional[str]) -> None:
        now = datetime.now(timezone.utc)
        stmt = insert(UserInfoModel).values(
            id=uuid4(),
            name=name,
            email=email,
            organization=organization,
            created_at=now
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[UserInfoModel.email],
            set_={"name": name, "organization": organization, "updated_at": now}
        )

        try:
            async with self._session_factory() as session:
                await session.execute(stmt)
        except Exception as e:
            raise PersistenceException(f"Failed to upsert user info: {str(e)}")


class SQLAlchemyChatLogRepository(IChatLogRepository):
    """SQLAlchemy implementation for chat logs."""

    def __init__(self, session_factory: Callable = get_session_context):
        self._session_factory = session_factory

    async def append(self, record: ChatLogRecord) -> None:
        model = ChatLogModel(
            id=uuid4(),
            timestamp=record.timestamp,
            user_question=record.question,
            response_type=record.response_type.value,
            response_text=record.response_text,
            confidence_score=record.confidence_score,
            matched_kb_id=record.matched_entry_id,
            salesforce_case_id=record.case_id,
            user_session_id=record.session_id,
            processing_time_ms=record.processing_time_ms
        )

        try:
            async with self._session_factory() as session:
                session.add(model)
                await session.flush()
        except Exception as e:
            raise PersistenceException(f"Failed to append chat log: {str(e)}")


class SQLAlchemyUnansweredQuestionRepository(IUnansweredQuestionRepository):
    """SQLAlchemy implementation for unanswered questions."""

    def __init__(self, session_factory: Callable = get_session_context):
        self._session_factory = session_factory

    async def record(self, record: UnansweredQuestionRecord) -> None:
        model = UnansweredQuestionModel(
            id=uuid4(),
            user_question=record.question,
            detected_category=record.detected_category,
            confidence_score=record.confidence_score,
            salesforce_case_id=record.case_id,
            status=record.status,
            created_at=record.created_at
        )

        try:
            async with self._session_factory() as session:
                session.add(model)
                await session.flush()
        except Exception as e:
            raise PersistenceException(f"Failed to record unanswered question: {str(e)}")
