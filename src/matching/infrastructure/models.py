"""
Matching Infrastructure Models
==============================

SQLAlchemy ORM models for the matching module.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, DateTime, Float, Index, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from src.config import EntryStatus, KnowledgeCategory
from src.infrastructure.database import Base
from src.matching.domain import KnowledgeEntry


class KnowledgeEntryModel(Base):
    """
    Database model for KnowledgeEntry entity.

    Alternate phrasings and optional pre-computed question embeddings are
    stored as JSON.
    """
    __tablename__ = "knowledge_base"
    __table_args__ = (
        Index(
            "idx_knowledge_base_primary_question_fts",
            text("to_tsvector('english', primary_question)"),
            postgresql_using="gin",
        ),
    )

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Content
    primary_question: Mapped[str] = mapped_column(Text, nullable=False)
    alternate_questions: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    answer_text: Mapped[str] = mapped_column(Text, nullable=False)
    question_embeddings: Mapped[Optional[Dict[str, List[float]]]] = mapped_column(JSON, nullable=True)

    # Classification
    category: Mapped[KnowledgeCategory] = mapped_column(String(20), nullable=False, index=True)
    confidence_weight: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    status: Mapped[EntryStatus] = mapped_column(
        String(10), nullable=False, default=EntryStatus.ACTIVE.value, index=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def to_domain(self) -> KnowledgeEntry:
        """Convert to an immutable domain snapshot."""
        return KnowledgeEntry(
            id=str(self.id),
            primary_question=self.primary_question,
            answer_text=self.answer_text,
            category=KnowledgeCategory(self.category),
            confidence_weight=float(self.confidence_weight),
            alternate_questions=tuple(self.alternate_questions or ()),
            status=EntryStatus(self.status),
            question_embeddings=self.question_embeddings
        )
