"""
Matching Infrastructure Repositories
====================================

SQLAlchemy implementations of the knowledge store and Postgres full-text
lexical search.
"""

import asyncio
from typing import Callable, List, Optional
from uuid import UUID

from sqlalchemy import Text, cast, func, or_, select

from src.config import EntryStatus, settings
from src.core import LexicalSearchException, PersistenceException
from src.infrastructure.database import get_session_context
from src.matching.application import IKnowledgeStore, ILexicalSearch
from src.matching.domain import KnowledgeEntry, LexicalHit
from src.matching.infrastructure.models import KnowledgeEntryModel
from src.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


def _to_domain_or_skip(model: KnowledgeEntryModel) -> Optional[KnowledgeEntry]:
    try:
        return model.to_domain()
    except ValueError as e:
        logger.warning("Skipping malformed knowledge base row", extra={"entry_id": str(model.id), "error": str(e)})
        return None


def _like_pattern(text: str) -> str:
    """Substring LIKE pattern with the user's own wildcards escaped."""
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class SQLAlchemyKnowledgeStore(IKnowledgeStore):
    """SQLAlchemy implementation for knowledge-base reads."""

    def __init__(self, session_factory: Callable = get_session_context):
        self._session_factory = session_factory

    async def list_active(self) -> List[KnowledgeEntry]:
        """Active entries ordered by creation time, then id."""
        stmt = (
            select(KnowledgeEntryModel)
            .where(KnowledgeEntryModel.status == EntryStatus.ACTIVE.value)
            .order_by(KnowledgeEntryModel.created_at, KnowledgeEntryModel.id)
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                models = result.scalars().all()
        except Exception as e:
            raise PersistenceException(f"Failed to load knowledge base: {str(e)}")

        entries = []
        for model in models:
            entry = _to_domain_or_skip(model)
            if entry is not None:
                entries.append(entry)
        return entries

    async def get_by_id(self, entry_id: str) -> Optional[KnowledgeEntry]:
        """Get entry by id."""
        try:
            entry_uuid = UUID(entry_id)
        except ValueError:
            return None

        try:
            async with self._session_factory() as session:
                model = await session.get(KnowledgeEntryModel, entry_uuid)
        except Exception as e:
            raise PersistenceException(f"Failed to load knowledge base entry: {str(e)}")

        if model is None:
            return None
        return _to_domain_or_skip(model)


class PostgresLexicalSearch(ILexicalSearch):
    """
    Ranked full-text search over KB question text.

    ``ts_rank`` over the primary question, plus a substring match against
    the alternates. Ordered by rank, then confidence weight.
    """

    def __init__(
        self,
        session_factory: Callable = get_session_context,
        limit: Optional[int] = None,
        timeout_seconds: Optional[float] = None
    ):
        self._session_factory = session_factory
        self._limit = limit or settings.lexical_result_limit
        self._timeout = timeout_seconds or settings.lexical_search_timeout_seconds

    def _build_query(self, text: str):
        document = func.to_tsvector("english", KnowledgeEntryModel.primary_question)
        query = func.plainto_tsquery("english", text)
        rank = func.ts_rank(document, query).label("rank")

        return (
            select(KnowledgeEntryModel, rank)
            .where(KnowledgeEntryModel.status == EntryStatus.ACTIVE.value)
            .where(
                or_(
                    document.op("@@")(query),
                    cast(KnowledgeEntryModel.alternate_questions, Text).ilike(_like_pattern(text), escape="\\")
                )
            )
            .order_by(rank.desc(), KnowledgeEntryModel.confidence_weight.desc())
            .limit(self._limit)
        )

    async def _run(self, text: str) -> List[LexicalHit]:
        async with self._session_factory() as session:
            result = await session.execute(self._build_query(text))
            rows = result.all()

        hits = []
        for model, rank in rows:
            entry = _to_domain_or_skip(model)
            if entry is not None:
                hits.append(LexicalHit(entry=entry, rank=float(rank or 0.0)))
        return hits

    async def search(self, text: str) -> List[LexicalHit]:
        """
        Search KB questions.

        Raises:
            LexicalSearchException: On query failure or timeout
        """
        try:
            return await asyncio.wait_for(self._run(text), timeout=self._timeout)
        except asyncio.TimeoutError:
            raise LexicalSearchException(f"Lexical search timed out after {self._timeout}s")
        except Exception as e:
            raise LexicalSearchException(f"Lexical search failed: {str(e)}")
