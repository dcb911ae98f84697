"""
Conversation Infrastructure Models
==================================

SQLAlchemy ORM models for the conversation module.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Float, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.config import ResponseType
from src.infrastructure.database import Base


class UserInfoModel(Base):
    """
    Database model for user identities.

    One row per email; name and organization follow the latest submission.
    """
    __tablename__ = "user_info"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(150), nullable=False, unique=True, index=True)
    organization: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class ChatLogModel(Base):
    """
    Database model for ChatLogRecord.

    Append-only.
    """
    __tablename__ = "chat_logs"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
        default=lambda: datetime.now(timezone.utc)
    )

    user_question: Mapped[str] = mapped_column(Text, nullable=False)
    response_type: Mapped[ResponseType] = mapped_column(String(20), nullable=False, index=True)
    response_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    confidence_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Links
    matched_kb_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    salesforce_case_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    user_session_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    processing_time_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)


class UnansweredQuestionModel(Base):
    """
    Database model for UnansweredQuestionRecord.

    One row per escalated turn, kept open until curated into the KB.
    """
    __tablename__ = "unanswered_questions"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_question: Mapped[str] = mapped_column(Text, nullable=False)
    detected_category: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    confidence_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    salesforce_case_id: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="open", index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
        default=lambda: datetime.now(timezone.utc)
    )
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
