"""
Test Configuration and Fixtures

In-memory fakes for every collaborator interface, plus factories for KB
entries and wired services.
"""

import math
from typing import Dict, List, Optional

import pytest

from src.config import KnowledgeCategory
from src.conversation.application import (
    ConversationService,
    ICaseCreator,
    IChatLogRepository,
    IIdentityStore,
    IUnansweredQuestionRepository,
)
from src.conversation.infrastructure import InMemorySessionStore
from src.core import EmbeddingException, LexicalSearchException, PersistenceException, TicketingException, VectorStoreException
from src.escalation.application import ITicketSystem
from src.matching.application import (
    IEmbeddingProvider,
    IKnowledgeStore,
    ILexicalSearch,
    IVectorIndex,
    MatchingEngine,
)
from src.matching.domain import ConfidenceThreshold, KnowledgeEntry, LexicalHit, VectorHit


# =============================================================================
# PYTEST MARKERS
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: long-running tests")


# =============================================================================
# VECTOR HELPERS
# =============================================================================

def vector_at(similarity: float) -> List[float]:
    """Unit vector whose cosine with [1, 0] is ``similarity``."""
    return [similarity, math.sqrt(max(0.0, 1.0 - similarity ** 2))]


QUERY_VECTOR = [1.0, 0.0]
ORTHOGONAL_VECTOR = [0.0, 1.0]


# =============================================================================
# MATCHING FAKES
# =============================================================================

class FakeEmbeddingProvider(IEmbeddingProvider):
    """Maps text to fixed vectors; unknown text embeds orthogonally to the query."""

    def __init__(self, vectors: Optional[Dict[str, List[float]]] = None, fail: bool = False):
        self.vectors = dict(vectors or {})
        self.fail = fail
        self.failing_texts = set()
        self.calls: List[str] = []
        self.healthy = True

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if self.fail or text in self.failing_texts:
            raise EmbeddingException("embedding backend down")
        return self.vectors.get(text, ORTHOGONAL_VECTOR)

    async def health_check(self) -> bool:
        return self.healthy


class FakeKnowledgeStore(IKnowledgeStore):
    def __init__(self, entries: Optional[List[KnowledgeEntry]] = None, fail: bool = False):
        self.entries = list(entries or [])
        self.fail = fail

    async def list_active(self) -> List[KnowledgeEntry]:
        if self.fail:
            raise PersistenceException("knowledge store down")
        return [e for e in self.entries if e.is_active]

    async def get_by_id(self, entry_id: str) -> Optional[KnowledgeEntry]:
        return next((e for e in self.entries if e.id == entry_id), None)


class FakeVectorIndex(IVectorIndex):
    def __init__(self, hits: Optional[List[VectorHit]] = None, fail: bool = False):
        self.hits = list(hits or [])
        self.fail = fail
        self.queries = []

    async def query(self, vector: List[float], top_k: int = 1) -> List[VectorHit]:
        self.queries.append((vector, top_k))
        if self.fail:
            raise VectorStoreException("index down")
        return self.hits[:top_k]


class FakeLexicalSearch(ILexicalSearch):
    def __init__(self, hits: Optional[List[LexicalHit]] = None, fail: bool = False):
        self.hits = list(hits or [])
        self.fail = fail
        self.queries: List[str] = []

    async def search(self, text: str) -> List[LexicalHit]:
        self.queries.append(text)
        if self.fail:
            raise LexicalSearchException("full-text search down")
        return list(self.hits)


# =============================================================================
# CONVERSATION FAKES
# =============================================================================

class FakeIdentityStore(IIdentityStore):
    def __init__(self, fail: bool = False):
        self.upserts = []
        self.fail = fail

    async def upsert(self, name: str, email: str, organization: Optional[str]) -> None:
        if self.fail:
            raise PersistenceException("user_info write failed")
        self.upserts.append((name, email, organization))


class FakeChatLogRepository(IChatLogRepository):
    def __init__(self, fail: bool = False):
        self.records = []
        self.fail = fail

    async def append(self, record) -> None:
        if self.fail:
            raise PersistenceException("chat_logs write failed")
        self.records.append(record)


class FakeUnansweredRepository(IUnansweredQuestionRepository):
    def __init__(self, fail: bool = False):
        self.records = []
        self.fail = fail

    async def record(self, record) -> None:
        if self.fail:
            raise PersistenceException("unanswered_questions write failed")
        self.records.append(record)


class FakeCaseCreator(ICaseCreator):
    def __init__(self, case_id: str = "5003000000D8cuI"):
        self.case_id = case_id
        self.calls = []
        self.healthy = True

    async def create_case(self, question, category, confidence_score, threshold, identity) -> str:
        self.calls.append({
            "question": question,
            "category": category,
            "confidence_score": confidence_score,
            "threshold": threshold,
            "identity": identity,
        })
        return self.case_id

    async def health_check(self) -> bool:
        return self.healthy


# =============================================================================
# ESCALATION FAKES
# =============================================================================

class ScriptedTicketSystem(ITicketSystem):
    """Plays back a list of outcomes: a case id string, or an exception to raise."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.payloads = []
        self.invalidations = 0

    async def create_case(self, fields: dict) -> str:
        self.payloads.append(fields)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def invalidate_credentials(self) -> None:
        self.invalidations += 1

    async def health_check(self) -> bool:
        return True


def ticketing_error(message: str = "503 Service Unavailable") -> TicketingException:
    return TicketingException(message)


# =============================================================================
# FACTORIES AND FIXTURES
# =============================================================================

def make_entry(
    entry_id: str = "kb-1",
    primary_question: str = "How do I reset my password?",
    answer_text: str = "Use the 'Forgot password' link on the sign-in page.",
    category: KnowledgeCategory = KnowledgeCategory.ACCESS,
    confidence_weight: float = 1.0,
    alternate_questions=(),
    question_embeddings=None,
) -> KnowledgeEntry:
    return KnowledgeEntry(
        id=entry_id,
        primary_question=primary_question,
        answer_text=answer_text,
        category=category,
        confidence_weight=confidence_weight,
        alternate_questions=tuple(alternate_questions),
        question_embeddings=question_embeddings,
    )


@pytest.fixture
def threshold():
    return ConfidenceThreshold(0.7)


@pytest.fixture
def embeddings():
    return FakeEmbeddingProvider({"how do i reset my password": QUERY_VECTOR})


@pytest.fixture
def scan_engine_factory(threshold):
    """Build a scan-mode engine over the given entries and embeddings."""

    def _build(entries, embedding_provider, lexical_search=None):
        return MatchingEngine(
            embedding_provider=embedding_provider,
            knowledge_store=FakeKnowledgeStore(entries),
            lexical_search=lexical_search,
            threshold=threshold,
        )

    return _build


@pytest.fixture
def confident_engine(scan_engine_factory):
    """Scan engine that answers "how do i reset my password" at 0.855."""
    question = "how do i reset my password"
    entry = make_entry(confidence_weight=0.95)
    provider = FakeEmbeddingProvider({
        question: QUERY_VECTOR,
        entry.primary_question: vector_at(0.9),
    })
    return scan_engine_factory([entry], provider)


@pytest.fixture
def unconfident_engine(scan_engine_factory):
    """Scan engine whose only entry is orthogonal to every question."""
    entry = make_entry()
    return scan_engine_factory([entry], FakeEmbeddingProvider({entry.primary_question: QUERY_VECTOR}))


@pytest.fixture
def conversation_factory():
    """Build a ConversationService with fresh fakes; returns (service, fakes)."""

    def _build(matching_engine, **overrides):
        fakes = {
            "case_creator": overrides.pop("case_creator", FakeCaseCreator()),
            "session_store": overrides.pop("session_store", InMemorySessionStore()),
            "identity_store": overrides.pop("identity_store", FakeIdentityStore()),
            "chat_log_repository": overrides.pop("chat_log_repository", FakeChatLogRepository()),
            "unanswered_repository": overrides.pop("unanswered_repository", FakeUnansweredRepository()),
        }
        service = ConversationService(matching_engine=matching_engine, **fakes, **overrides)
        return service, fakes

    return _build
