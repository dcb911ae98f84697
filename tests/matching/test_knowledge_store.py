"""
Tests for the SQLAlchemy knowledge store, with the session mocked out.
"""

import asyncio
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.dialects import postgresql

from src.config import EntryStatus, KnowledgeCategory, MatchSource
from src.core import LexicalSearchException, PersistenceException
from src.matching.application import MatchingEngine
from src.matching.infrastructure import (
    KnowledgeEntryModel,
    PostgresLexicalSearch,
    SQLAlchemyKnowledgeStore,
)


def model(**overrides) -> KnowledgeEntryModel:
    values = {
        "id": uuid4(),
        "primary_question": "How do I reset my password?",
        "alternate_questions": ["I forgot my password"],
        "answer_text": "Use the 'Forgot password' link.",
        "category": "Access",
        "confidence_weight": 0.95,
        "status": "active",
        "question_embeddings": None,
    }
    values.update(overrides)
    return KnowledgeEntryModel(**values)


def session_factory(rows=None, get_result=None, error=None, ranked=None):
    session = MagicMock()
    result = MagicMock()
    result.scalars.return_value.all.return_value = rows or []
    result.all.return_value = ranked or []
    session.execute = AsyncMock(return_value=result, side_effect=error)
    session.get = AsyncMock(return_value=get_result, side_effect=error)

    @asynccontextmanager
    async def factory():
        yield session

    return factory


def test_model_to_domain():
    row = model()

    entry = row.to_domain()

    assert entry.id == str(row.id)
    assert entry.category == KnowledgeCategory.ACCESS
    assert entry.status == EntryStatus.ACTIVE
    assert entry.question_variants == ("How do I reset my password?", "I forgot my password")


@pytest.mark.asyncio
async def test_list_active_skips_malformed_rows():
    good = model()
    bad = model(category="Billing")
    store = SQLAlchemyKnowledgeStore(session_factory(rows=[bad, good]))

    entries = await store.list_active()

    assert [e.id for e in entries] == [str(good.id)]


@pytest.mark.asyncio
async def test_list_active_wraps_database_errors():
    store = SQLAlchemyKnowledgeStore(session_factory(error=ConnectionError("db down")))

    with pytest.raises(PersistenceException):
        await store.list_active()


@pytest.mark.asyncio
async def test_get_by_id():
    row = model()
    store = SQLAlchemyKnowledgeStore(session_factory(get_result=row))

    entry = await store.get_by_id(str(row.id))

    assert entry.answer_text == "Use the 'Forgot password' link."


@pytest.mark.asyncio
async def test_get_by_id_with_non_uuid_is_none():
    store = SQLAlchemyKnowledgeStore(session_factory())

    assert await store.get_by_id("q_kb-1") is None


def slow_session_factory(delay: float):
    async def slow_execute(*args, **kwargs):
        await asyncio.sleep(delay)

    session = MagicMock()
    session.execute = AsyncMock(side_effect=slow_execute)

    @asynccontextmanager
    async def factory():
        yield session

    return factory


class TestPostgresLexicalSearch:
    def test_query_escapes_like_wildcards(self):
        search = PostgresLexicalSearch(session_factory(), limit=5, timeout_seconds=1)

        compiled = search._build_query("100%_done").compile(dialect=postgresql.dialect())

        assert "%100\\%\\_done%" in compiled.params.values()
        assert "ESCAPE" in str(compiled)

    def test_plain_question_is_a_substring_pattern(self):
        search = PostgresLexicalSearch(session_factory(), limit=5, timeout_seconds=1)

        compiled = search._build_query("reset password").compile(dialect=postgresql.dialect())

        assert "%reset password%" in compiled.params.values()

    @pytest.mark.asyncio
    async def test_returns_ranked_hits(self):
        row = model()
        search = PostgresLexicalSearch(session_factory(ranked=[(row, 0.42)]), limit=5, timeout_seconds=1)

        hits = await search.search("reset password")

        assert [(h.entry.id, h.rank) for h in hits] == [(str(row.id), 0.42)]

    @pytest.mark.asyncio
    async def test_timeout_is_a_search_failure(self):
        search = PostgresLexicalSearch(slow_session_factory(0.5), limit=5, timeout_seconds=0.01)

        with pytest.raises(LexicalSearchException, match="timed out"):
            await search.search("reset password")

    @pytest.mark.asyncio
    async def test_timeout_falls_through_to_scan(self, confident_engine, threshold):
        engine = MatchingEngine(
            embedding_provider=confident_engine._embeddings,
            knowledge_store=confident_engine._store,
            lexical_search=PostgresLexicalSearch(slow_session_factory(0.5), limit=5, timeout_seconds=0.01),
            threshold=threshold,
        )

        result = await engine.find_best_match("how do i reset my password")

        assert result.source == MatchSource.WEIGHTED_SCAN
        assert result.is_confident
